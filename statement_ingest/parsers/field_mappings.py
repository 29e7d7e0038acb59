"""Bank field mappings and keyword vocabularies.

Maps bank-specific column headers to the standard field vocabulary and holds
the keyword lists used for fee detection, transaction-type hints and bank
detection. The tables are owned by a ``FieldMappingRegistry`` so the source
can be swapped (e.g. a JSON file named by ``FIELD_MAPPINGS_PATH``) without
touching calling code.

When adding a new bank:
1. Add an entry to ``BANK_FIELD_MAPPINGS`` mapping its headers to standard fields
2. Add its detection signatures to ``BANK_DETECTION_PATTERNS``
"""

import logging
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, model_validator

from statement_ingest.config import settings
from statement_ingest.models import StandardFieldName, StandardFields

logger = logging.getLogger(__name__)

GENERIC_BANK = "generic"


class PatternSet(BaseModel):
    """A named, ordered list of substrings."""

    model_config = ConfigDict(frozen=True)

    name: str
    patterns: tuple[str, ...]


BANK_FIELD_MAPPINGS: dict[str, dict[str, StandardFieldName]] = {
    "firstbank": {
        "TXN DATE": "transaction_date",
        "TRANSACTION DATE": "transaction_date",
        "VAL DATE": "value_date",
        "VALUE DATE": "value_date",
        "REMARKS": "description",
        "DESCRIPTION": "description",
        "DEBIT": "debit",
        "CREDIT": "credit",
        "BALANCE": "balance",
    },
    "gtbank": {
        "TRANS. DATE": "transaction_date",
        "TRANS DATE": "transaction_date",
        "TRANSACTION DATE": "transaction_date",
        "VALUE DATE": "value_date",
        "REMARKS": "description",
        "DESCRIPTION": "description",
        "DEBITS": "debit",
        "DEBIT": "debit",
        "CREDITS": "credit",
        "CREDIT": "credit",
        "BALANCE": "balance",
        "REFERENCE": "reference",
        "REF": "reference",
        "ORIGINATING BRANCH": "branch",
        "BRANCH": "branch",
    },
    "accessbank": {
        "TRANSACTION DATE": "transaction_date",
        "TXN DATE": "transaction_date",
        "VALUE DATE": "value_date",
        "NARRATION": "description",
        "DESCRIPTION": "description",
        "REMARKS": "description",
        "DEBIT": "debit",
        "CREDIT": "credit",
        "BALANCE": "balance",
        "REFERENCE": "reference",
    },
    "zenithbank": {
        "TRANSACTION DATE": "transaction_date",
        "TXN DATE": "transaction_date",
        "VALUE DATE": "value_date",
        "VAL DATE": "value_date",
        "NARRATION": "description",
        "REMARKS": "description",
        "DESCRIPTION": "description",
        "DEBIT": "debit",
        "CREDIT": "credit",
        "BALANCE": "balance",
        "RUNNING BALANCE": "balance",
        "REFERENCE": "reference",
    },
    "uba": {
        "TRANSACTION DATE": "transaction_date",
        "TXN DATE": "transaction_date",
        "VALUE DATE": "value_date",
        "VAL DATE": "value_date",
        "NARRATION": "description",
        "DESCRIPTION": "description",
        "DEBIT": "debit",
        "CREDIT": "credit",
        "BALANCE": "balance",
        "REFERENCE": "reference",
    },
    # Fallback, catches common variations
    GENERIC_BANK: {
        "DATE": "transaction_date",
        "TRANSACTION DATE": "transaction_date",
        "TXN DATE": "transaction_date",
        "TRANS DATE": "transaction_date",
        "VALUE DATE": "value_date",
        "VAL DATE": "value_date",
        "DESCRIPTION": "description",
        "REMARKS": "description",
        "NARRATION": "description",
        "DETAILS": "description",
        "PARTICULARS": "description",
        "DEBIT": "debit",
        "DEBITS": "debit",
        "WITHDRAWAL": "debit",
        "CREDIT": "credit",
        "CREDITS": "credit",
        "DEPOSIT": "credit",
        "BALANCE": "balance",
        "RUNNING BALANCE": "balance",
        "CLOSING BALANCE": "balance",
        "REFERENCE": "reference",
        "REF": "reference",
        "REF NO": "reference",
        "BRANCH": "branch",
    },
}

FEE_KEYWORDS: tuple[str, ...] = (
    "COMMISSION",
    "VAT",
    "VATCHARGES",
    "STAMP DUTY",
    "LEVY",
    "CHARGE",
    "CHARGES",
    "FEE",
    "FEES",
    "SMS CHARGE",
    "SMS ALERT",
    "PROCESSING FEE",
    "SERVICE CHARGE",
    "TRANSFER FEE",
    "TRANSFER CHARGE",
    "ELECTRONIC MONEY TRANSFER LEVY",
    "COT",  # Commission on Turnover
    "CARD MAINTENANCE",
)

# Hints only; final categorization belongs to the LLM service
TRANSACTION_TYPE_PATTERNS: tuple[PatternSet, ...] = (
    PatternSet(name="transfer", patterns=("TRANSFER", "NIP", "NIBSS", "OUTWARD", "INWARD", "SEND", "RECEIVE")),
    PatternSet(name="airtime", patterns=("AIRTIME", "RECHARGE", "MTN", "AIRTEL", "GLO", "ETISALAT", "9MOBILE")),
    PatternSet(name="data", patterns=("DATA", "INTERNET")),
    PatternSet(name="withdrawal", patterns=("ATM", "WITHDRAWAL", "CASH WITHDRAWAL", "POS WITHDRAWAL")),
    PatternSet(name="purchase", patterns=("POS", "PURCHASE", "PAYMENT", "WEB PURCHASE")),
    PatternSet(
        name="bill",
        patterns=("BILL PAYMENT", "UTILITY", "ELECTRICITY", "NEPA", "DSTV", "GOTV", "SHOWMAX"),
    ),
)

# Checked in order; the first bank with a matching signature wins
BANK_DETECTION_PATTERNS: tuple[PatternSet, ...] = (
    PatternSet(
        name="firstbank",
        patterns=("FIRST BANK", "FBN", "ACCOUNT TRANSFERS MOB:", "OUTWARD TRANSFER (N) MOB:"),
    ),
    PatternSet(
        name="gtbank",
        patterns=("GTBANK", "GUARANTY TRUST BANK", "GTB", "NIBSS INSTANT PAYMENT", "ORIGINATING BRANCH"),
    ),
    PatternSet(name="accessbank", patterns=("ACCESS BANK", "ACCESSBANK")),
    PatternSet(name="zenithbank", patterns=("ZENITH BANK", "ZENITHBANK")),
    PatternSet(name="uba", patterns=("UNITED BANK", "UBA")),
)


class RegistryData(BaseModel):
    """Immutable configuration backing a ``FieldMappingRegistry``."""

    model_config = ConfigDict(frozen=True)

    field_mappings: dict[str, dict[str, StandardFieldName]]
    fee_keywords: tuple[str, ...]
    transaction_type_patterns: tuple[PatternSet, ...]
    bank_detection_patterns: tuple[PatternSet, ...]

    @model_validator(mode="after")
    def require_generic_mapping(self) -> "RegistryData":
        if GENERIC_BANK not in self.field_mappings:
            raise ValueError(f"field_mappings must define a '{GENERIC_BANK}' fallback")
        return self


DEFAULT_REGISTRY_DATA = RegistryData(
    field_mappings=BANK_FIELD_MAPPINGS,
    fee_keywords=FEE_KEYWORDS,
    transaction_type_patterns=TRANSACTION_TYPE_PATTERNS,
    bank_detection_patterns=BANK_DETECTION_PATTERNS,
)


def normalize_header(header: object) -> str:
    """Collapse whitespace inside a column header (PDF headers often wrap)."""
    return " ".join(str(header).split())


class FieldMappingRegistry:
    """Lookup functions over one set of bank mapping tables."""

    def __init__(self, data: RegistryData | None = None):
        self._data = data or DEFAULT_REGISTRY_DATA
        self._mappings = {
            bank.lower(): MappingProxyType(dict(mapping))
            for bank, mapping in self._data.field_mappings.items()
        }

    @classmethod
    def from_json(cls, path: Path) -> "FieldMappingRegistry":
        """Load registry tables from a JSON file shaped like ``RegistryData``."""
        data = RegistryData.model_validate_json(Path(path).read_text(encoding="utf-8"))
        logger.info(f"Loaded field mappings for {len(data.field_mappings)} banks from {path}")
        return cls(data)

    @property
    def bank_identifiers(self) -> list[str]:
        """Banks with a field mapping, in registration order."""
        return list(self._mappings)

    @property
    def fee_keywords(self) -> tuple[str, ...]:
        return self._data.fee_keywords

    @property
    def transaction_type_patterns(self) -> tuple[PatternSet, ...]:
        return self._data.transaction_type_patterns

    @property
    def bank_detection_patterns(self) -> tuple[PatternSet, ...]:
        return self._data.bank_detection_patterns

    def has_mapping(self, bank_type: str) -> bool:
        """Check whether a bank has its own field mapping."""
        return bank_type.lower() in self._mappings

    def get_field_mapping(self, bank_type: str) -> Mapping[str, StandardFieldName]:
        """
        Get the column mapping for a bank, falling back to ``generic``.

        Args:
            bank_type: Bank identifier (case-insensitive)

        Returns:
            Read-only mapping of raw column header -> standard field name
        """
        mapping = self._mappings.get(bank_type.lower())
        if mapping is None:
            logger.warning(f"No mapping found for bank type: {bank_type}, using {GENERIC_BANK}")
            return self._mappings[GENERIC_BANK]
        return mapping

    def is_fee_transaction(self, description: str | None) -> bool:
        """Check if a description indicates a fee/charge row."""
        if not description:
            return False
        upper_desc = description.upper()
        return any(keyword in upper_desc for keyword in self.fee_keywords)

    def detect_transaction_type(self, description: str | None) -> str | None:
        """
        Detect a coarse transaction type from a description.

        Returns None when no pattern matches; the LLM decides in that case.
        """
        if not description:
            return None
        upper_desc = description.upper()
        for pattern_set in self.transaction_type_patterns:
            if any(pattern in upper_desc for pattern in pattern_set.patterns):
                return pattern_set.name
        return None

    def map_to_standard_fields(self, raw_row: Mapping[str, str | None], bank_type: str) -> StandardFields:
        """
        Apply a bank's column mapping to one extracted row.

        Header lookup is case-sensitive after whitespace collapsing. Columns
        without a mapping are ignored; when several columns map to the same
        standard field the first non-empty value wins.
        """
        mapping = self.get_field_mapping(bank_type)
        values: dict[str, str] = {}

        for header, value in raw_row.items():
            field_name = mapping.get(normalize_header(header))
            if field_name is None or field_name in values:
                continue
            text = " ".join(str(value).split()) if value is not None else ""
            if text:
                values[field_name] = text

        return StandardFields(**values)


@lru_cache(maxsize=1)
def get_registry() -> FieldMappingRegistry:
    """Registry built from ``settings.field_mappings_path`` or the built-in tables."""
    if settings.field_mappings_path:
        return FieldMappingRegistry.from_json(settings.field_mappings_path)
    return FieldMappingRegistry()


def get_field_mapping(bank_type: str) -> Mapping[str, StandardFieldName]:
    """Get the column mapping for a bank from the active registry."""
    return get_registry().get_field_mapping(bank_type)


def is_fee_transaction(description: str | None) -> bool:
    """Check if a description indicates a fee/charge row."""
    return get_registry().is_fee_transaction(description)


def detect_transaction_type(description: str | None) -> str | None:
    """Detect a coarse transaction type hint from a description."""
    return get_registry().detect_transaction_type(description)


def map_to_standard_fields(raw_row: Mapping[str, str | None], bank_type: str) -> StandardFields:
    """Apply a bank's column mapping to one extracted row."""
    return get_registry().map_to_standard_fields(raw_row, bank_type)
