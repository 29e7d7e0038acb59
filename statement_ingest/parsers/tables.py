"""Turn tables extracted from statements into transaction rows.

PDF and CSV byte handling stays inside pdfplumber and pandas; this module only
locates each table's header row and applies the bank's column mapping.
"""

import logging
from collections.abc import Sequence
from io import BytesIO

import pandas as pd
import pdfplumber

from statement_ingest.models import RawTransactionRow
from statement_ingest.parsers.field_mappings import FieldMappingRegistry, get_registry, normalize_header
from statement_ingest.parsers.validation import (
    ExtractionResult,
    ParsingError,
    ValidationError,
    is_blank_row,
    log_extraction_result,
    validate_file_contents,
)

logger = logging.getLogger(__name__)

Table = Sequence[Sequence[str | None]]

# A header row must map at least this many cells
MIN_HEADER_MATCHES = 2


def extract_pdf_tables(contents: bytes) -> list[list[list[str | None]]]:
    """
    Extract every table from every page of a PDF statement.

    Raises:
        ValidationError: If the file is empty or too small
        ParsingError: If the PDF cannot be read
    """
    validate_file_contents(contents, min_size=100)

    all_tables: list[list[list[str | None]]] = []
    try:
        with pdfplumber.open(BytesIO(contents)) as pdf:
            for page in pdf.pages:
                tables = page.extract_tables()
                if tables:
                    all_tables.extend(tables)
    except Exception as e:
        logger.error(f"PDF table extraction failed: {e}")
        raise ParsingError(f"Failed to extract PDF tables: {e}")

    logger.debug(f"Extracted {len(all_tables)} tables from PDF")
    return all_tables


def extract_csv_table(contents: bytes) -> list[list[str | None]]:
    """
    Read a CSV statement export as one table (header row first).

    Raises:
        ValidationError: If the file is empty or cannot be decoded
        ParsingError: If pandas cannot parse the file
    """
    validate_file_contents(contents)

    try:
        for encoding in ["utf-8", "latin-1", "cp1252"]:
            try:
                df = pd.read_csv(BytesIO(contents), encoding=encoding, dtype=str, keep_default_na=False)
                break
            except UnicodeDecodeError:
                continue
        else:
            raise ValidationError("Failed to decode CSV with any supported encoding")
    except ValidationError:
        raise
    except Exception as e:
        logger.error(f"CSV extraction failed: {e}")
        raise ParsingError(f"Failed to extract CSV content: {e}")

    return [list(df.columns)] + df.values.tolist()


def _header_matches(cells: Sequence[str | None], mapping) -> int:
    return sum(1 for cell in cells if cell is not None and normalize_header(cell) in mapping)


def rows_from_tables(
    tables: Sequence[Table],
    bank_type: str,
    registry: FieldMappingRegistry | None = None,
) -> ExtractionResult:
    """
    Apply a bank's column mapping to extracted tables.

    The header is the first row in which at least two cells map to standard
    fields. A table without its own header (a continuation page) reuses the
    previous table's header. Header repeats and blank rows are skipped.

    Args:
        tables: Tables as lists of rows of cell strings
        bank_type: Bank identifier selecting the column mapping
        registry: Registry to read mappings from

    Returns:
        ExtractionResult with the mapped rows and bookkeeping
    """
    registry = registry or get_registry()
    mapping = registry.get_field_mapping(bank_type)
    result = ExtractionResult(rows=[])
    header: list[str] | None = None

    for table_num, table in enumerate(tables, start=1):
        for cells in table:
            result.total_rows_processed += 1
            cells = list(cells)

            if is_blank_row(cells):
                result.rows_skipped += 1
                continue

            if _header_matches(cells, mapping) >= MIN_HEADER_MATCHES:
                header = [normalize_header(cell) if cell is not None else "" for cell in cells]
                result.header_rows += 1
                continue

            if header is None:
                result.rows_skipped += 1
                result.warnings.append(f"Table {table_num}: row before any header skipped")
                continue

            raw: dict[str, str | None] = {}
            for position, name in enumerate(header):
                value = cells[position] if position < len(cells) else None
                if name and not raw.get(name):
                    raw[name] = value

            if len(cells) > len(header):
                result.warnings.append(
                    f"Table {table_num}: row has {len(cells)} cells, header has {len(header)}"
                )

            result.rows.append(registry.map_to_standard_fields(raw, bank_type).to_row())

    if header is None and tables:
        result.errors.append(f"No header row found for bank type {bank_type}")

    return result


class TableRowExtractor:
    """Row extractor over pre-extracted tables, pluggable into the cleaning pipeline."""

    def __init__(
        self,
        tables: Sequence[Table],
        registry: FieldMappingRegistry | None = None,
        source_name: str = "Statement tables",
    ):
        self.tables = tables
        self.registry = registry
        self.source_name = source_name
        self.last_result: ExtractionResult | None = None

    @classmethod
    def from_pdf(cls, contents: bytes, registry: FieldMappingRegistry | None = None) -> "TableRowExtractor":
        return cls(extract_pdf_tables(contents), registry=registry, source_name="PDF tables")

    @classmethod
    def from_csv(cls, contents: bytes, registry: FieldMappingRegistry | None = None) -> "TableRowExtractor":
        return cls([extract_csv_table(contents)], registry=registry, source_name="CSV table")

    def __call__(self, normalized_text: str, bank_type: str) -> list[RawTransactionRow]:
        # Tables were extracted up front; the normalized text is not needed here
        self.last_result = rows_from_tables(self.tables, bank_type, registry=self.registry)
        log_extraction_result(self.last_result, self.source_name)
        return self.last_result.rows
