"""Request/response adapter for the external categorization service."""

import logging
from collections.abc import Sequence

from pydantic import BaseModel, Field

from statement_ingest.models import CleaningResult
from statement_ingest.parsers.llm_payload import render_llm_line
from statement_ingest.services.llm_client import llm_extract_json

logger = logging.getLogger(__name__)


class CategoryAssignment(BaseModel):
    """Category the service assigned to one payload record."""

    id: int
    category: str
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)


class CategorizationResponse(BaseModel):
    """Reply shape requested from the service."""

    assignments: list[CategoryAssignment]


def build_categorization_prompt(result: CleaningResult, categories: Sequence[str]) -> str:
    """Build the prompt: numbered pipe-delimited lines plus the allowed categories."""
    lines = "\n".join(f"{record.id}. {render_llm_line(record)}" for record in result.llm_data)
    category_list = "\n".join(f"- {category}" for category in categories)

    return f"""You are categorizing transactions from a Nigerian bank statement ({result.bank_type}).

Each line is one transaction. FEES lists bank charges already folded into AMOUNT.

Transactions:
{lines}

Allowed categories:
{category_list}

Respond with JSON only:
{{"assignments": [{{"id": 1, "category": "<one of the allowed categories>", "confidence": 0.9}}]}}

Rules:
- Return exactly one assignment per transaction id
- Use only the allowed categories
- TYPE credit means money received"""


async def categorize_statement(
    result: CleaningResult, categories: Sequence[str], timeout: float | None = None
) -> list[CategoryAssignment]:
    """
    Send a cleaned statement to the categorization service.

    Args:
        result: Output of ``clean_and_normalize_bank_statement``
        categories: Allowed category names
        timeout: Per-call timeout in seconds

    Returns:
        Assignments for known record ids, in the order returned

    Raises:
        ParsingError: If the service fails after all retries
    """
    if not result.llm_data:
        logger.info("No transactions to categorize")
        return []

    prompt = build_categorization_prompt(result, categories)
    response = await llm_extract_json(prompt, CategorizationResponse, timeout=timeout)

    known_ids = {record.id for record in result.llm_data}
    allowed = set(categories)
    assignments = []
    for assignment in response.assignments:
        if assignment.id not in known_ids:
            logger.warning(f"Ignoring assignment for unknown transaction id {assignment.id}")
            continue
        if allowed and assignment.category not in allowed:
            logger.warning(f"Transaction {assignment.id}: category {assignment.category!r} not allowed")
            continue
        assignments.append(assignment)

    missing = known_ids - {a.id for a in assignments}
    if missing:
        logger.warning(f"{len(missing)} transactions left uncategorized")

    return assignments
