"""Tests for the statement cleaning pipeline."""

import logging

import pytest
from pydantic import ValidationError

from statement_ingest.models import CleaningOptions, RawTransactionRow
from statement_ingest.services.pipeline import clean_and_normalize_bank_statement

RAW_TEXT = """GUARANTY TRUST BANK
Customer Statement ********
TRANS. DATE  ||||  REMARKS  ||||  DEBITS
------------------------------------------
05-Jan-2024   TRANSFER TO JOHN   5,000.00



05-Jan-2024   COMMISSION   50.00
"""


def _rows() -> list[RawTransactionRow]:
    return [
        RawTransactionRow(
            date="05-Jan-2024", description="TRANSFER TO JOHN", debit="5,000.00", balance="95,000.00", reference="R1"
        ),
        RawTransactionRow(date="05-Jan-2024", description="COMMISSION", debit="50.00", balance="94,950.00"),
        RawTransactionRow(date="05-Jan-2024", description="VAT", debit="3.75", balance="94,946.25"),
        RawTransactionRow(date="06-Jan-2024", description="SALARY", credit="200,000.00", balance="294,946.25"),
    ]


@pytest.mark.asyncio
class TestCleanAndNormalizeBankStatement:
    """Integration tests for the cleaning pipeline."""

    async def test_runs_full_pipeline(self):
        """Detected bank, grouped rows, payload, text and stats all line up."""
        seen = {}

        def extractor(normalized_text: str, bank_type: str) -> list[RawTransactionRow]:
            seen["text"] = normalized_text
            seen["bank"] = bank_type
            return _rows()

        result = await clean_and_normalize_bank_statement(RAW_TEXT, row_extractor=extractor)

        assert result.bank_type == "gtbank"
        assert seen["bank"] == "gtbank"
        assert seen["text"] == result.normalized_text
        assert "||" not in result.normalized_text
        assert "*" not in result.normalized_text

        assert len(result.grouped_transactions) == 2
        assert result.grouped_transactions[0].total_debit == 5053.75
        assert [record.type for record in result.llm_data] == ["debit", "credit"]

        assert result.cleaned_text.split("\n") == [
            "DATE: 05-Jan-2024 | DESC: TRANSFER TO JOHN | AMOUNT: 5053.75 | TYPE: debit | BALANCE: 95,000.00 | "
            "FEES: 53.75 | COMMISSION: 50 | VAT: 3.75 | REF: R1",
            "DATE: 06-Jan-2024 | DESC: SALARY | AMOUNT: 200000 | TYPE: credit | BALANCE: 294,946.25",
        ]

        assert result.stats.original_char_count == len(RAW_TEXT)
        assert result.stats.cleaned_char_count == len(result.cleaned_text)
        assert result.stats.total_transactions == 2
        assert result.stats.transactions_with_fees == 1
        assert result.stats.total_fees == 2
        assert result.stats.processing_time_ms >= 0
        assert result.original_text is None
        assert result.debug is None

    async def test_supports_async_extractor(self):
        """Awaitable extractors are awaited."""

        async def extractor(normalized_text: str, bank_type: str) -> list[RawTransactionRow]:
            return _rows()[:1]

        result = await clean_and_normalize_bank_statement("statement", row_extractor=extractor)

        assert result.stats.total_transactions == 1

    async def test_without_extractor_returns_empty_result(self):
        """No rows still produces a complete result with a warning."""
        result = await clean_and_normalize_bank_statement(RAW_TEXT)

        assert result.grouped_transactions == []
        assert result.llm_data == []
        assert result.cleaned_text == ""
        assert result.stats.total_transactions == 0
        assert result.stats.total_fees == 0
        assert result.debug is not None
        assert "No row extractor" in result.debug.warnings[0]
        assert result.normalized_text

    async def test_extractor_failure_is_recorded(self):
        """A failing extractor lands in debug.errors instead of raising."""

        def extractor(normalized_text: str, bank_type: str) -> list[RawTransactionRow]:
            raise RuntimeError("table parse failed")

        result = await clean_and_normalize_bank_statement(RAW_TEXT, row_extractor=extractor)

        assert result.grouped_transactions == []
        assert result.debug is not None
        assert "table parse failed" in result.debug.errors[0]

    async def test_extractor_returning_none_is_recorded(self):
        """An extractor that returns None leaves an error and an empty result."""
        result = await clean_and_normalize_bank_statement(RAW_TEXT, row_extractor=lambda t, b: None)

        assert result.grouped_transactions == []
        assert result.stats.total_transactions == 0
        assert result.debug is not None
        assert "returned None" in result.debug.errors[0]

    async def test_malformed_rows_are_recorded(self):
        """Rows that are not transaction rows are reported, not raised."""
        result = await clean_and_normalize_bank_statement(
            RAW_TEXT, row_extractor=lambda t, b: [{"date": "05-Jan-2024", "debit": 5000}, "TRANSFER"]
        )

        assert result.grouped_transactions == []
        assert result.llm_data == []
        assert result.debug is not None
        assert result.debug.errors[0].startswith("Row extraction failed:")

    async def test_row_dicts_are_accepted(self):
        """Extractors may return plain dicts with row fields."""
        rows = [
            {"date": "05-Jan-2024", "description": "TRANSFER", "debit": "5,000.00", "balance": "95,000.00"},
            {"date": "05-Jan-2024", "description": "COMMISSION", "debit": "50.00", "valueDate": "05-Jan-2024"},
        ]

        result = await clean_and_normalize_bank_statement(RAW_TEXT, row_extractor=lambda t, b: rows)

        assert result.debug is None
        assert len(result.grouped_transactions) == 1
        assert result.grouped_transactions[0].total_debit == 5050.0
        assert result.grouped_transactions[0].fees[0].value_date == "05-Jan-2024"

    async def test_uses_provided_bank_type(self):
        """A caller-supplied bank type skips detection."""
        result = await clean_and_normalize_bank_statement(RAW_TEXT, {"bankType": "ZenithBank"})

        assert result.bank_type == "zenithbank"

    async def test_auto_bank_type_means_detect(self):
        """'auto' asks for detection."""
        result = await clean_and_normalize_bank_statement(RAW_TEXT, CleaningOptions(bank_type="auto"))

        assert result.bank_type == "gtbank"

    async def test_unknown_bank_type_warns(self):
        """Banks without a mapping are kept but flagged."""
        result = await clean_and_normalize_bank_statement("text", {"bank_type": "kuda"}, row_extractor=lambda t, b: [])

        assert result.bank_type == "kuda"
        assert result.debug is not None
        assert any("kuda" in warning for warning in result.debug.warnings)

    async def test_falls_back_to_generic_bank(self):
        """Unrecognized statements use the generic identifier."""
        result = await clean_and_normalize_bank_statement("Kuda Microfinance Bank", row_extractor=lambda t, b: [])

        assert result.bank_type == "generic"
        assert result.debug is None

    async def test_preserves_original_text(self):
        """preserve_original keeps the untouched input."""
        result = await clean_and_normalize_bank_statement(RAW_TEXT, {"preserveOriginal": True})

        assert result.original_text == RAW_TEXT

    async def test_look_ahead_option_is_applied(self):
        """The grouping window comes from the options."""
        result = await clean_and_normalize_bank_statement(
            RAW_TEXT, {"lookAheadRows": 1}, row_extractor=lambda t, b: _rows()
        )

        assert len(result.grouped_transactions) == 3
        assert result.stats.total_fees == 1

    async def test_rejects_invalid_options(self):
        """Wrongly typed options are rejected outright."""
        with pytest.raises(ValidationError):
            await clean_and_normalize_bank_statement(RAW_TEXT, {"lookAheadRows": "three"})
        with pytest.raises(ValidationError):
            await clean_and_normalize_bank_statement(RAW_TEXT, {"lookAheadRows": -1})
        with pytest.raises(ValidationError):
            await clean_and_normalize_bank_statement(RAW_TEXT, {"unknownOption": True})

    async def test_verbose_logs_at_info(self, caplog):
        """Verbose runs report each step at INFO level."""
        with caplog.at_level(logging.INFO, logger="statement_ingest.services.pipeline"):
            await clean_and_normalize_bank_statement(RAW_TEXT, {"verbose": True}, row_extractor=lambda t, b: _rows())

        assert "Bank type: gtbank" in caplog.text
        assert "Pipeline complete" in caplog.text

    async def test_serializes_camel_case_result(self):
        """The result dumps with the keys the import flow consumes."""
        result = await clean_and_normalize_bank_statement(RAW_TEXT, row_extractor=lambda t, b: _rows())

        payload = result.model_dump(by_alias=True)

        assert {"cleanedText", "groupedTransactions", "llmData", "bankType", "stats"} <= set(payload)
        assert payload["stats"]["transactionsWithFees"] == 1
        assert payload["groupedTransactions"][0]["mainTransaction"]["description"] == "TRANSFER TO JOHN"
