"""
Credit Ingest - XML Parser

Reads raw Experian XML into the generic parsed tree consumed by the
schema validator and transformer. Parsing goes through defusedxml so
entity-expansion and external-entity payloads are rejected up front.

Element repetition becomes a list. Elements listed in REPEATABLE_ELEMENTS
are always lists, even when they occur once, so downstream code sees one
canonical shape for "zero or more" fields.
"""
from __future__ import annotations
import logging
from pathlib import Path
from typing import Any, Dict, Union
from xml.etree.ElementTree import Element

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as SafeET
from defusedxml.ElementTree import ParseError as SafeParseError

from ..exceptions import XMLParsingError
from .nodes import ATTRIBUTE_PREFIX, TEXT_KEY, ParsedDocument, TextNode

logger = logging.getLogger(__name__)


# Semantically repeatable elements in INProfileResponse and the legacy shapes
REPEATABLE_ELEMENTS = frozenset({
    "CAIS_Account_DETAILS",
    "CAIS_Account_History",
    "CAIS_Holder_Details",
    "CAIS_Holder_Phone_Details",
    "CAIS_Holder_Address_Details",
    "CAIS_Holder_ID_Details",
    "CAPS_Application_Details",
    "Account",
    "CreditAccount",
    "TradeLine",
    "Enquiry",
    "CreditEnquiry",
    "Inquiry",
    "EnquiryDetails",
})


# =============================================================================
# TREE ADAPTATION
# =============================================================================

def _local_name(tag: str) -> str:
    """Drop a '{namespace}' prefix from an element tag."""
    if "}" in tag:
        return tag.split("}", 1)[1]
    return tag


def _element_to_node(element: Element) -> Any:
    text = (element.text or "").strip()
    attributes = {_local_name(k): v for k, v in element.attrib.items()}
    children = list(element)

    if not children:
        if attributes:
            return TextNode(text=text, attributes=attributes)
        return text

    node: Dict[str, Any] = {f"{ATTRIBUTE_PREFIX}{k}": v for k, v in attributes.items()}
    for child in children:
        tag = _local_name(child.tag)
        value = _element_to_node(child)
        if tag in node:
            existing = node[tag]
            if isinstance(existing, list):
                existing.append(value)
            else:
                node[tag] = [existing, value]
        elif tag in REPEATABLE_ELEMENTS:
            node[tag] = [value]
        else:
            node[tag] = value

    if text:
        node[TEXT_KEY] = text
    return node


def element_to_document(root: Element) -> ParsedDocument:
    """Convert a parsed root element into {root_tag: tree}."""
    return {_local_name(root.tag): _element_to_node(root)}


# =============================================================================
# ENTRY POINTS
# =============================================================================

def _parse(source: Union[str, bytes]) -> ParsedDocument:
    if not source or not source.strip():
        raise XMLParsingError("XML file is empty")

    try:
        root = SafeET.fromstring(source)
    except (SafeParseError, DefusedXmlException) as e:
        logger.error(f"XML parsing failed: {e}")
        raise XMLParsingError(f"XML parsing failed: {e}") from e

    return element_to_document(root)


def parse_xml_bytes(data: bytes) -> ParsedDocument:
    """Parse raw XML bytes (encoding taken from the XML declaration)."""
    return _parse(data)


def parse_xml_string(text: str) -> ParsedDocument:
    """Parse XML text. A leading BOM is ignored."""
    return _parse((text or "").lstrip("\ufeff"))


def parse_xml_file(file_path: Union[str, Path]) -> ParsedDocument:
    """Read and parse an XML file from disk."""
    path = Path(file_path)
    try:
        data = path.read_bytes()
    except OSError as e:
        logger.error(f"XML parsing failed for {path}: {e}")
        raise XMLParsingError(f"XML parsing failed: {e}") from e

    document = _parse(data)
    logger.info(f"XML file parsed successfully: {path.name}")
    return document
