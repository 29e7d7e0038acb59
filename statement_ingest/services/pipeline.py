"""Bank statement cleaning pipeline.

detect bank -> normalize text -> extract rows -> group fees -> prepare LLM
payload -> render cleaned text + statistics.

Row extraction is supplied by the caller (see ``parsers.tables``); without an
extractor the pipeline still completes with an empty payload.
"""

import inspect
import json
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from pydantic import TypeAdapter

from statement_ingest.models import CleaningOptions, CleaningResult, CleaningStats, DebugInfo, RawTransactionRow
from statement_ingest.parsers.bank_detector import detect_bank_from_text
from statement_ingest.parsers.field_mappings import FieldMappingRegistry, get_registry
from statement_ingest.parsers.grouper import get_grouping_stats, group_transactions
from statement_ingest.parsers.llm_payload import prepare_for_llm, render_llm_text
from statement_ingest.parsers.text_normalizer import normalize_statement_text

logger = logging.getLogger(__name__)

# (normalized_text, bank_type) -> rows, sync or async
RowExtractor = Callable[[str, str], list[RawTransactionRow] | Awaitable[list[RawTransactionRow]]]

_ROWS_ADAPTER = TypeAdapter(list[RawTransactionRow])

AUTO_DETECT = "auto"


def _resolve_options(options: CleaningOptions | Mapping[str, Any] | None) -> CleaningOptions:
    """Accept a CleaningOptions, a camelCase/snake_case dict or None."""
    if options is None:
        return CleaningOptions()
    if isinstance(options, CleaningOptions):
        return options
    return CleaningOptions.model_validate(dict(options))


async def _extract_rows(
    row_extractor: RowExtractor | None,
    normalized_text: str,
    bank_type: str,
    warnings: list[str],
    errors: list[str],
) -> list[RawTransactionRow]:
    if row_extractor is None:
        warnings.append("No row extractor configured; no transactions extracted")
        return []

    try:
        rows = row_extractor(normalized_text, bank_type)
        if inspect.isawaitable(rows):
            rows = await rows
        if rows is None:
            errors.append("Row extractor returned None instead of a list of rows")
            return []
        # Row dicts are accepted; anything else fails validation
        return _ROWS_ADAPTER.validate_python(list(rows))
    except Exception as e:
        logger.error(f"Row extraction failed: {e}")
        errors.append(f"Row extraction failed: {e}")
        return []


async def clean_and_normalize_bank_statement(
    raw_text: str,
    options: CleaningOptions | Mapping[str, Any] | None = None,
    row_extractor: RowExtractor | None = None,
    registry: FieldMappingRegistry | None = None,
) -> CleaningResult:
    """
    Clean a raw statement and prepare it for categorization.

    Args:
        raw_text: Statement text as extracted from the PDF
        options: bank_type, look_ahead_rows, verbose, preserve_original
        row_extractor: Callable turning the normalized text into rows
        registry: Mapping registry (defaults to the active one)

    Returns:
        CleaningResult; per-row problems land in ``debug`` rather than raising

    Raises:
        pydantic.ValidationError: If options have invalid types or values
    """
    opts = _resolve_options(options)
    registry = registry or get_registry()
    log = logger.info if opts.verbose else logger.debug

    start_time = time.perf_counter()
    warnings: list[str] = []
    errors: list[str] = []
    raw_text = raw_text or ""

    log(f"Starting cleaning pipeline, input length {len(raw_text)} chars")

    # Step 1: bank type
    if opts.bank_type and opts.bank_type.lower() != AUTO_DETECT:
        bank_type = opts.bank_type.lower()
        if not registry.has_mapping(bank_type):
            warnings.append(f"No field mapping for bank type {bank_type}; generic mapping applies")
    else:
        bank_type = detect_bank_from_text(raw_text, registry)
    log(f"Bank type: {bank_type}")

    # Step 2: shallow cleanup
    normalized_text = normalize_statement_text(raw_text)
    log(f"After basic cleanup: {len(normalized_text)} chars (removed {len(raw_text) - len(normalized_text)})")

    # Step 3: rows
    rows = await _extract_rows(row_extractor, normalized_text, bank_type, warnings, errors)
    log(f"Extracted {len(rows)} transaction rows")

    # Step 4: fee grouping
    grouped = group_transactions(rows, look_ahead_rows=opts.look_ahead_rows, clean_descriptions=True, registry=registry)
    grouping_stats = get_grouping_stats(grouped)
    log(
        f"Grouping complete: {grouping_stats.total_transactions} transactions, "
        f"{grouping_stats.transactions_with_fees} with fees, {grouping_stats.total_fees} fee rows"
    )

    # Step 5: LLM payload
    llm_data = prepare_for_llm(grouped)
    if llm_data:
        log(f"Sample LLM entry: {json.dumps(llm_data[0].model_dump(by_alias=True), indent=2)}")

    # Step 6: cleaned text
    cleaned_text = render_llm_text(llm_data)
    processing_time_ms = int((time.perf_counter() - start_time) * 1000)
    log(f"✅ Pipeline complete in {processing_time_ms}ms")

    return CleaningResult(
        cleaned_text=cleaned_text,
        original_text=raw_text if opts.preserve_original else None,
        normalized_text=normalized_text,
        grouped_transactions=grouped,
        llm_data=llm_data,
        bank_type=bank_type,
        stats=CleaningStats(
            original_char_count=len(raw_text),
            cleaned_char_count=len(cleaned_text),
            total_transactions=grouping_stats.total_transactions,
            transactions_with_fees=grouping_stats.transactions_with_fees,
            total_fees=grouping_stats.total_fees,
            processing_time_ms=processing_time_ms,
        ),
        debug=DebugInfo(warnings=warnings, errors=errors) if warnings or errors else None,
    )
