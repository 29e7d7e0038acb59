"""Group statement rows with the fee/charge rows that trail them.

Nigerian statements list bank charges (commission, VAT, stamp duty, SMS alert
fees, ...) as separate rows right after the transaction that caused them. The
grouper folds those rows into the main transaction so the categorization
service sees one logical transaction per user action.
"""

import logging
from collections.abc import Sequence

from statement_ingest.config import settings
from statement_ingest.models import GroupedTransaction, GroupingStats, RawTransactionRow
from statement_ingest.parsers.field_mappings import FieldMappingRegistry, get_registry
from statement_ingest.parsers.text_normalizer import clean_description
from statement_ingest.parsers.validation import parse_amount_safe

logger = logging.getLogger(__name__)


def parse_amount(amount_str: str | None) -> float:
    """
    Parse an amount string such as "1,000.00", "1000" or "₦1,000".

    Missing or unparsable amounts yield 0.0.
    """
    amount, _ = parse_amount_safe(amount_str)
    return amount


def is_dates_close(date1: str, date2: str) -> bool:
    """Check whether a fee row belongs to the same day as its transaction.

    Exact string equality only.
    """
    return date1 == date2


def _build_group(
    main: RawTransactionRow,
    fees: list[RawTransactionRow],
    fee_total: float,
    index: int,
    clean_descriptions: bool,
) -> GroupedTransaction:
    return GroupedTransaction(
        main_transaction=main,
        fees=fees,
        cleaned_description=clean_description(main.description) if clean_descriptions else main.description,
        total_debit=parse_amount(main.debit) + fee_total,
        total_credit=parse_amount(main.credit),
        has_fees=len(fees) > 0,
        original_index=index,
    )


def group_transactions(
    rows: Sequence[RawTransactionRow],
    look_ahead_rows: int | None = None,
    clean_descriptions: bool | None = None,
    registry: FieldMappingRegistry | None = None,
) -> list[GroupedTransaction]:
    """
    Group each main transaction with the fee rows that immediately follow it.

    Single left-to-right pass. For a non-fee row at ``i``, rows ``i+1`` up to
    ``i+look_ahead_rows`` are scanned in order; each one that is a fee row
    with the same date is attached, and the scan stops at the first row that
    is not. A fee row that nothing claimed becomes its own group. Every input
    row ends up in exactly one group.

    Args:
        rows: Rows in statement order
        look_ahead_rows: Fee search window (defaults to ``settings.look_ahead_rows``)
        clean_descriptions: Clean the main description (defaults to ``settings.clean_descriptions``)
        registry: Registry providing the fee keywords

    Returns:
        Grouped transactions in statement order
    """
    if look_ahead_rows is None:
        look_ahead_rows = settings.look_ahead_rows
    if clean_descriptions is None:
        clean_descriptions = settings.clean_descriptions
    registry = registry or get_registry()

    grouped: list[GroupedTransaction] = []
    consumed: set[int] = set()

    for i, current in enumerate(rows):
        if i in consumed:
            continue

        # Orphaned fee, no preceding transaction claimed it
        if registry.is_fee_transaction(current.description):
            grouped.append(_build_group(current, [], 0.0, i, clean_descriptions))
            consumed.add(i)
            continue

        related_fees: list[RawTransactionRow] = []
        fee_total = 0.0

        for j in range(i + 1, min(i + 1 + look_ahead_rows, len(rows))):
            candidate = rows[j]
            if not (
                registry.is_fee_transaction(candidate.description)
                and is_dates_close(current.date, candidate.date)
            ):
                break
            related_fees.append(candidate)
            fee_total += parse_amount(candidate.debit)
            consumed.add(j)

        grouped.append(_build_group(current, related_fees, fee_total, i, clean_descriptions))
        consumed.add(i)

    logger.debug(f"Grouped {len(rows)} rows into {len(grouped)} transactions")
    return grouped


def get_grouping_stats(grouped: Sequence[GroupedTransaction]) -> GroupingStats:
    """Summary statistics for grouped transactions."""
    total_debits = sum(txn.total_debit for txn in grouped)
    total_credits = sum(txn.total_credit for txn in grouped)

    return GroupingStats(
        total_transactions=len(grouped),
        transactions_with_fees=sum(1 for txn in grouped if txn.has_fees),
        total_fees=sum(len(txn.fees) for txn in grouped),
        total_debits=total_debits,
        total_credits=total_credits,
        net_amount=total_credits - total_debits,
    )
