"""Bank detection from raw statement text."""

import logging

from statement_ingest.parsers.field_mappings import GENERIC_BANK, FieldMappingRegistry, get_registry

logger = logging.getLogger(__name__)


def detect_bank_from_text(text: str | None, registry: FieldMappingRegistry | None = None) -> str:
    """
    Auto-detect the bank that issued a statement.

    Banks are checked in registration order and the first one with any
    signature found in the upper-cased text wins.

    Args:
        text: Raw statement text
        registry: Registry to read signatures from (defaults to the active one)

    Returns:
        Bank identifier, or ``generic`` when nothing matches
    """
    if not text:
        return GENERIC_BANK

    registry = registry or get_registry()
    upper_text = text.upper()

    for signature in registry.bank_detection_patterns:
        if any(pattern in upper_text for pattern in signature.patterns):
            logger.debug(f"Detected bank {signature.name}")
            return signature.name

    return GENERIC_BANK
