"""Data models for the statement ingestion pipeline."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from statement_ingest.config import settings

StandardFieldName = Literal[
    "transaction_date",
    "value_date",
    "description",
    "debit",
    "credit",
    "balance",
    "reference",
    "branch",
]

TransactionType = Literal["debit", "credit"]


class CamelModel(BaseModel):
    """Immutable model that serializes with camelCase keys (``model_dump(by_alias=True)``)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class RawTransactionRow(CamelModel):
    """A statement row before grouping. Amounts stay as formatted strings."""

    date: str = ""
    value_date: str | None = None
    description: str = ""
    debit: str | None = None  # e.g. "₦1,000.00"
    credit: str | None = None
    balance: str = ""
    reference: str | None = None
    branch: str | None = None


class StandardFields(CamelModel):
    """Canonical row shape after applying a bank's column mapping."""

    transaction_date: str = ""
    value_date: str | None = None
    description: str = ""
    debit: str | None = None
    credit: str | None = None
    balance: str = ""
    reference: str | None = None
    branch: str | None = None

    def to_row(self) -> RawTransactionRow:
        """Convert to the row shape consumed by the grouper."""
        return RawTransactionRow(
            date=self.transaction_date,
            value_date=self.value_date,
            description=self.description,
            debit=self.debit,
            credit=self.credit,
            balance=self.balance,
            reference=self.reference,
            branch=self.branch,
        )


class GroupedTransaction(CamelModel):
    """A main transaction together with the fee rows that trail it."""

    main_transaction: RawTransactionRow
    fees: list[RawTransactionRow] = Field(default_factory=list)
    cleaned_description: str
    total_debit: float  # main debit + every fee debit
    total_credit: float  # main credit only
    has_fees: bool
    original_index: int


class FeeBreakdownItem(CamelModel):
    """One fee line inside an LLM payload record."""

    description: str
    amount: float


class OriginalDescriptions(CamelModel):
    """Untouched descriptions kept for audit."""

    main_description: str
    fee_descriptions: list[str] = Field(default_factory=list)


class LLMPayloadRecord(CamelModel):
    """Flattened grouped transaction sent to the categorization service."""

    id: int
    date: str
    description: str
    amount: float
    type: TransactionType
    has_fees: bool
    fee_breakdown: list[FeeBreakdownItem] = Field(default_factory=list)
    balance: str
    reference: str | None = None
    original: OriginalDescriptions


class GroupingStats(CamelModel):
    """Summary statistics for a list of grouped transactions."""

    total_transactions: int
    transactions_with_fees: int
    total_fees: int
    total_debits: float
    total_credits: float
    net_amount: float


class CleaningOptions(CamelModel):
    """Options accepted by the cleaning pipeline."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True, strict=True, extra="forbid"
    )

    bank_type: str | None = None  # None, "" or "auto" means detect from text
    look_ahead_rows: int = Field(default_factory=lambda: settings.look_ahead_rows, ge=0)
    verbose: bool = False
    preserve_original: bool = False


class CleaningStats(CamelModel):
    """Statistics reported by the cleaning pipeline."""

    original_char_count: int
    cleaned_char_count: int
    total_transactions: int
    transactions_with_fees: int
    total_fees: int
    processing_time_ms: int


class DebugInfo(CamelModel):
    """Operator-facing diagnostics collected during a pipeline run."""

    warnings: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class CleaningResult(CamelModel):
    """Result of ``clean_and_normalize_bank_statement``."""

    cleaned_text: str
    original_text: str | None = None
    normalized_text: str
    grouped_transactions: list[GroupedTransaction]
    llm_data: list[LLMPayloadRecord]
    bank_type: str
    stats: CleaningStats
    debug: DebugInfo | None = None
