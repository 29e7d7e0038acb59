"""Configuration management for the statement ingestion pipeline."""

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pipeline settings loaded from environment variables."""

    # Grouping defaults
    look_ahead_rows: int = 3
    clean_descriptions: bool = True

    # Optional JSON file replacing the built-in bank field mappings
    field_mappings_path: Path | None = None

    # Categorization service (LLM)
    llm_provider: Literal["ollama", "openai", "gemini"] = "ollama"
    openai_api_key: str = ""
    gemini_api_key: str = ""
    ollama_host: str = "http://localhost:11434"
    ollama_model: str = "llama3.2"
    openai_model: str = "gpt-4o-mini"
    gemini_model: str = "gemini-2.5-flash"
    llm_timeout: float = 60.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def active_api_key(self) -> str | None:
        """API key for the configured provider, if it needs one."""
        if self.llm_provider == "openai":
            return self.openai_api_key or None
        if self.llm_provider == "gemini":
            return self.gemini_api_key or None
        return None

    def log_config(self) -> None:
        """Print current configuration with sensitive values redacted."""

        def _redact(key: str) -> str:
            return f"✓ Set ({key[:4]}...{key[-4:]})" if key else "✗ Not set"

        print("\n" + "=" * 60)
        print("📋 CONFIGURATION LOADED")
        print("=" * 60)
        print(f"Look-ahead Rows:     {self.look_ahead_rows}")
        print(f"Clean Descriptions:  {self.clean_descriptions}")
        print(f"Field Mappings:      {self.field_mappings_path or 'built-in'}")
        print("-" * 60)
        print(f"LLM Provider:        {self.llm_provider}")
        print(f"OpenAI API Key:      {_redact(self.openai_api_key)}")
        print(f"OpenAI Model:        {self.openai_model}")
        print(f"Gemini API Key:      {_redact(self.gemini_api_key)}")
        print(f"Gemini Model:        {self.gemini_model}")
        print(f"Ollama Host:         {self.ollama_host}")
        print(f"Ollama Model:        {self.ollama_model}")
        print(f"LLM Timeout:         {self.llm_timeout}s")
        print("=" * 60 + "\n")


# Global settings instance
settings = Settings()
