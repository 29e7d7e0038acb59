"""Tests for settings loading."""

from statement_ingest.config import Settings


class TestSettings:
    """Test environment-driven configuration."""

    def test_defaults(self, monkeypatch):
        """Should default to a three-row window and the built-in mappings."""
        for name in ("LOOK_AHEAD_ROWS", "CLEAN_DESCRIPTIONS", "FIELD_MAPPINGS_PATH", "LLM_PROVIDER"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings(_env_file=None)

        assert settings.look_ahead_rows == 3
        assert settings.clean_descriptions is True
        assert settings.field_mappings_path is None
        assert settings.active_api_key is None  # ollama needs no key

    def test_reads_environment(self, monkeypatch):
        """Upper-case environment variables override defaults."""
        monkeypatch.setenv("LOOK_AHEAD_ROWS", "5")
        monkeypatch.setenv("LLM_PROVIDER", "gemini")
        monkeypatch.setenv("GEMINI_API_KEY", "AIzaSyTESTKEY1234")

        settings = Settings(_env_file=None)

        assert settings.look_ahead_rows == 5
        assert settings.active_api_key == "AIzaSyTESTKEY1234"

    def test_log_config_redacts_keys(self, capsys):
        """Printed configuration never shows a full API key."""
        Settings(_env_file=None, openai_api_key="sk-abcdefghijklmnop").log_config()

        output = capsys.readouterr().out
        assert "sk-abcdefghijklmnop" not in output
        assert "✓ Set (sk-a...mnop)" in output
        assert "Look-ahead Rows" in output
