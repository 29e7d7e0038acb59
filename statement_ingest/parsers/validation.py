"""Shared validation utilities for bank statement parsing."""

import logging
import re
from dataclasses import dataclass, field

from statement_ingest.models import RawTransactionRow

# Configure logging for parsers
logger = logging.getLogger("statement_ingest.parsers")

# Leading numeric prefix, so "1234.56CR" still yields 1234.56
_NUMBER_PREFIX = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


@dataclass
class ExtractionResult:
    """Result of turning extracted tables into transaction rows."""

    rows: list[RawTransactionRow]
    total_rows_processed: int = 0
    rows_skipped: int = 0
    header_rows: int = 0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        """Percentage of processed rows that became transaction rows."""
        if self.total_rows_processed == 0:
            return 0.0
        return (len(self.rows) / self.total_rows_processed) * 100


class ValidationError(Exception):
    """Raised when file validation fails."""

    pass


class ParsingError(Exception):
    """Raised when a document or a categorization response cannot be parsed."""

    pass


def validate_file_contents(contents: bytes, min_size: int = 10) -> None:
    """
    Validate file contents before extraction.

    Args:
        contents: Raw file bytes
        min_size: Minimum expected file size in bytes

    Raises:
        ValidationError: If validation fails
    """
    if not contents:
        raise ValidationError("File is empty")

    if len(contents) < min_size:
        raise ValidationError(f"File too small ({len(contents)} bytes), minimum {min_size} bytes expected")


def clean_amount_string(amount_str: str | None) -> str:
    """
    Strip the Naira symbol, thousands separators and whitespace from an amount.

    Args:
        amount_str: Raw amount string, e.g. "₦ 1,234.56"

    Returns:
        Cleaned string ready for float conversion ("" when nothing is left)
    """
    if not amount_str:
        return ""

    return re.sub(r"[₦,\s]", "", amount_str)


def parse_amount_safe(amount_str: str | None, default: float = 0.0) -> tuple[float, bool]:
    """
    Safely parse an amount string.

    Args:
        amount_str: Raw amount string
        default: Value returned when parsing fails

    Returns:
        Tuple of (parsed amount, success flag)
    """
    cleaned = clean_amount_string(amount_str)
    match = _NUMBER_PREFIX.match(cleaned)
    if not match:
        return default, False

    amount = float(match.group(0))

    # Overflowing exponents parse to inf
    if amount != amount or abs(amount) == float("inf"):
        return default, False

    return amount, True


def is_blank_row(cells: list[str | None]) -> bool:
    """Check whether every cell of an extracted row is empty."""
    return all(cell is None or not str(cell).strip() for cell in cells)


def log_extraction_result(result: ExtractionResult, source_name: str) -> None:
    """
    Log extraction results for debugging.

    Args:
        result: The extraction result
        source_name: Name of the table source
    """
    logger.info(
        f"{source_name}: Extracted {len(result.rows)} rows "
        f"(processed {result.total_rows_processed}, "
        f"skipped {result.rows_skipped}, "
        f"headers {result.header_rows})"
    )

    for error in result.errors[:5]:  # Log first 5 errors
        logger.warning(f"{source_name}: {error}")

    for warning in result.warnings[:5]:  # Log first 5 warnings
        logger.debug(f"{source_name}: {warning}")
