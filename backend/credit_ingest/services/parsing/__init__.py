"""Credit Ingest - Parsing Layer

This layer converts raw Experian XML into TransformedReport (SSOT).
All downstream modules MUST use TransformedReport exclusively.
"""
from .xml_parser import parse_xml_bytes, parse_xml_file, parse_xml_string
from .schema_validator import validate_schema
from .transformer import locate_report_root, transform

__all__ = [
    "parse_xml_bytes",
    "parse_xml_file",
    "parse_xml_string",
    "validate_schema",
    "locate_report_root",
    "transform",
]
