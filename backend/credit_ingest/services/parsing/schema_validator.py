"""
Credit Ingest - Experian Format Sniffing

A permissive check that a parsed document looks like an Experian report.
This is not schema validation: the transformer degrades gracefully on
missing substructure, so all we need is a recognizable root.
"""
from __future__ import annotations
import logging
from typing import Any

logger = logging.getLogger(__name__)

PRIMARY_ROOT = "INProfileResponse"

# Fragments matched case-insensitively against top-level keys
ROOT_INDICATORS = (
    PRIMARY_ROOT,
    "CreditReport",
    "CREDITREPORT",
    "ExpCreditReport",
    "Report",
    "XMLResponse",
)

# At least one must be present under INProfileResponse
PRIMARY_SECTIONS = ("Header", "CAIS_Account", "Current_Application")


def validate_schema(doc: Any) -> bool:
    """Return True if the parsed document is recognizable as an Experian report."""
    if not isinstance(doc, dict):
        return False

    indicators = [indicator.lower() for indicator in ROOT_INDICATORS]
    has_root = any(
        indicator in key.lower()
        for key in doc.keys()
        for indicator in indicators
    )
    if not has_root:
        logger.warning("XML does not appear to be an Experian credit report")
        return False

    if PRIMARY_ROOT in doc:
        profile = doc[PRIMARY_ROOT]
        has_sections = isinstance(profile, dict) and any(
            profile.get(section) for section in PRIMARY_SECTIONS
        )
        if not has_sections:
            logger.warning("Missing required Experian credit report sections")
            return False

    return True
