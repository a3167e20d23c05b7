"""Credit Ingest - Data Models"""
from .ssot import (
    # Enums
    Gender,
    # SSOT: Parsing Output
    BasicDetails, ReportSummary, CreditAccount, Enquiry, TransformedReport,
    serialize_report,
)

__all__ = [
    "Gender",
    "BasicDetails", "ReportSummary", "CreditAccount", "Enquiry", "TransformedReport",
    "serialize_report",
]
