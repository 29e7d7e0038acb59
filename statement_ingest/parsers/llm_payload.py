"""Flatten grouped transactions for the categorization service."""

from collections.abc import Sequence

from statement_ingest.models import (
    FeeBreakdownItem,
    GroupedTransaction,
    LLMPayloadRecord,
    OriginalDescriptions,
    TransactionType,
)
from statement_ingest.parsers.grouper import parse_amount
from statement_ingest.parsers.text_normalizer import clean_description


def _amount_and_type(txn: GroupedTransaction) -> tuple[float, TransactionType]:
    """Pick the non-zero total; only a positive debit total is typed debit.

    A row with no amount at all is a zero debit.
    """
    if txn.total_debit > 0:
        return txn.total_debit, "debit"
    if txn.total_credit:
        return txn.total_credit, "credit"
    if txn.total_debit:
        return txn.total_debit, "credit"
    return 0.0, "debit"


def prepare_for_llm(grouped: Sequence[GroupedTransaction]) -> list[LLMPayloadRecord]:
    """
    Convert grouped transactions to minimal records for the LLM.

    Args:
        grouped: Output of ``group_transactions``

    Returns:
        One record per group, ids numbered from 1
    """
    records = []
    for index, txn in enumerate(grouped):
        amount, txn_type = _amount_and_type(txn)
        records.append(
            LLMPayloadRecord(
                id=index + 1,
                date=txn.main_transaction.date,
                description=txn.cleaned_description,
                amount=amount,
                type=txn_type,
                has_fees=txn.has_fees,
                fee_breakdown=[
                    FeeBreakdownItem(description=clean_description(fee.description), amount=parse_amount(fee.debit))
                    for fee in txn.fees
                ],
                balance=txn.main_transaction.balance,
                reference=txn.main_transaction.reference,
                original=OriginalDescriptions(
                    main_description=txn.main_transaction.description,
                    fee_descriptions=[fee.description for fee in txn.fees],
                ),
            )
        )
    return records


def format_amount(value: float) -> str:
    """Render a number the way the categorization prompt expects (5000, 3.75)."""
    value = float(value)
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def render_llm_line(record: LLMPayloadRecord) -> str:
    """
    Serialize one record as a pipe-delimited line.

    Field order is fixed: DATE, DESC, AMOUNT, TYPE, BALANCE, then FEES and one
    segment per fee when present, then REF when present.
    """
    parts = [
        f"DATE: {record.date}",
        f"DESC: {record.description}",
        f"AMOUNT: {format_amount(record.amount)}",
        f"TYPE: {record.type}",
        f"BALANCE: {record.balance}",
    ]

    if record.has_fees and record.fee_breakdown:
        total_fees = sum(fee.amount for fee in record.fee_breakdown)
        parts.append(f"FEES: {format_amount(total_fees)}")
        for fee in record.fee_breakdown:
            parts.append(f"{fee.description.upper()}: {format_amount(fee.amount)}")

    if record.reference:
        parts.append(f"REF: {record.reference}")

    return " | ".join(parts)


def render_llm_text(records: Sequence[LLMPayloadRecord]) -> str:
    """Render all records, one line each."""
    return "\n".join(render_llm_line(record) for record in records)
