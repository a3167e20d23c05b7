"""
Credit Ingest - Node Extraction Helpers

Tolerant scalar extraction from heterogeneous parsed-XML nodes, plus the
dotted-path resolver used to support legacy report shapes. None of these
functions raise on bad input; they return "", 0.0, None or [] instead.
"""
from __future__ import annotations
import math
import re
from datetime import date, datetime
from typing import Any, Iterable, List, Optional

from dateutil import parser as date_parser

from .nodes import TEXT_KEY, Node, TextNode

# Leading float literal; trailing junk is ignored ("12.5.1" -> 12.5)
_FLOAT_PREFIX_RE = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")
_NON_NUMERIC_RE = re.compile(r"[^0-9.\-]")

DATE_FORMATS = ["%Y%m%d", "%d%m%Y", "%Y-%m-%d", "%d/%m/%Y", "%m/%d/%Y", "%d-%m-%Y"]

# Experian's "no date of birth" filler value
NULL_DATE_SENTINEL = "00010201"


# =============================================================================
# SCALAR EXTRACTION
# =============================================================================

def _number_to_text(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def extract_text(node: Node) -> str:
    """Best-effort text content of a node; "" when there is none."""
    if node is None or isinstance(node, bool):
        return ""
    if isinstance(node, str):
        return node.strip()
    if isinstance(node, (int, float)):
        return _number_to_text(node)
    if isinstance(node, TextNode):
        return node.text.strip()
    if isinstance(node, dict):
        if node.get(TEXT_KEY) is not None:
            text = node[TEXT_KEY]
            if isinstance(text, (int, float)) and not isinstance(text, bool):
                return _number_to_text(text)
            return str(text).strip()
        for value in node.values():
            if isinstance(value, str):
                return value
        return ""
    return ""


def extract_number(node: Node) -> float:
    """Numeric value of a node with currency/grouping noise removed; 0.0 if none."""
    cleaned = _NON_NUMERIC_RE.sub("", extract_text(node))
    match = _FLOAT_PREFIX_RE.match(cleaned)
    if not match:
        return 0.0
    try:
        value = float(match.group(0))
    except ValueError:
        return 0.0
    return value if math.isfinite(value) else 0.0


def extract_date(node: Node) -> Optional[date]:
    """Parse a free-form date node. Returns None when empty or unparseable."""
    text = extract_text(node)
    if not text:
        return None

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError):
        return None


def parse_compact_date(value: Optional[str]) -> Optional[date]:
    """
    Decode an Experian YYYYMMDD date code.

    Anything not exactly 8 characters, the 00010201 sentinel, any year-0001
    code and impossible calendar dates all decode to None.
    """
    if not value or len(value) != 8:
        return None
    if value == NULL_DATE_SENTINEL or value.startswith("0001"):
        return None
    if not value.isdigit():
        return None
    try:
        return date(int(value[0:4]), int(value[4:6]), int(value[6:8]))
    except ValueError:
        return None


# =============================================================================
# PATH RESOLUTION
# =============================================================================

def get_nested_value(doc: Any, path: str) -> Any:
    """
    Walk a dotted path ("XMLResponse.Response.CreditReport") through nested
    mappings. Returns None as soon as a step is missing or not a mapping.
    """
    current = doc
    for key in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(key)
        if current is None:
            return None
    return current


def find_value_from_paths(doc: Any, paths: Iterable[str]) -> Any:
    """First non-None value among candidate paths, tried in order."""
    for path in paths:
        value = get_nested_value(doc, path)
        if value is not None:
            return value
    return None


def first_present(node: Any, *keys: str) -> Any:
    """Value of the first truthy key of a mapping (field-name guessing)."""
    for key in keys:
        value = get_nested_value(node, key)
        if value:
            return value
    return None


def as_list(node: Any) -> List[Any]:
    """Treat a lone node as a one-element collection."""
    if node is None:
        return []
    if isinstance(node, list):
        return node
    return [node]
