"""
Credit Ingest - Single Source of Truth Models

TransformedReport is the ONLY structure handed from the parsing layer to
persistence. Nothing downstream reads the raw XML tree again.
"""

from __future__ import annotations
import re
from dataclasses import dataclass, field, fields, asdict
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


# =============================================================================
# ENUMS
# =============================================================================

class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"


# =============================================================================
# SSOT: TRANSFORMED REPORT (Output of Parsing Layer)
# =============================================================================

@dataclass
class BasicDetails:
    """Applicant identity. Empty string / None both mean "unknown"."""
    name: str = ""
    mobile_phone: str = ""
    pan: str = ""
    email: str = ""
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    address: str = ""
    credit_score: Optional[int] = None


@dataclass
class ReportSummary:
    """Aggregate account and enquiry figures."""
    total_accounts: int = 0
    active_accounts: int = 0
    closed_accounts: int = 0
    current_balance_amount: float = 0.0
    secured_amount: float = 0.0
    unsecured_amount: float = 0.0
    recent_enquiries: int = 0

    @property
    def total_debt(self) -> float:
        return self.secured_amount + self.unsecured_amount

    @property
    def active_percentage(self) -> int:
        if self.total_accounts <= 0:
            return 0
        return round(self.active_accounts / self.total_accounts * 100)

    @classmethod
    def from_serialized(cls, data: Optional[Dict[str, Any]]) -> "ReportSummary":
        """Rebuild from the camelCase dict produced by serialize_report."""
        known = {f.name for f in fields(cls)}
        values = {_snake(k): v for k, v in (data or {}).items()}
        return cls(**{k: v for k, v in values.items() if k in known})


@dataclass
class CreditAccount:
    """Single tradeline."""
    type: str = "Other"
    bank_name: str = ""
    account_number: str = ""
    address: str = ""
    amount_overdue: float = 0.0
    current_balance: float = 0.0
    sanctioned_amount: float = 0.0
    date_opened: Optional[date] = None
    date_closed: Optional[date] = None
    last_reported: Optional[date] = None
    status: str = "Active"
    payment_history: str = ""
    payment_rating: str = ""
    portfolio_type: str = ""


@dataclass
class Enquiry:
    """Credit enquiry (real, or synthesized from CAPS counters)."""
    institution: str = ""
    date: Optional[date] = None
    amount: float = 0.0
    purpose: str = ""


@dataclass
class TransformedReport:
    """
    Normalized credit report.

    Created once per successful transformation. Persistence attaches the
    file hash and storage location; the parsing layer never sees them.
    """
    basic_details: BasicDetails = field(default_factory=BasicDetails)
    report_summary: ReportSummary = field(default_factory=ReportSummary)
    credit_accounts: List[CreditAccount] = field(default_factory=list)
    enquiries: List[Enquiry] = field(default_factory=list)
    report_date: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


# =============================================================================
# SERIALIZATION
# =============================================================================

_CAMEL_BOUNDARY_RE = re.compile(r"(?<!^)(?=[A-Z])")


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _snake(name: str) -> str:
    return _CAMEL_BOUNDARY_RE.sub("_", name).lower()


def _convert(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {_camel(k): _convert(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_convert(i) for i in obj]
    elif isinstance(obj, Enum):
        return obj.value
    elif isinstance(obj, (date, datetime)):
        return obj.isoformat()
    return obj


def serialize_report(report: TransformedReport) -> Dict[str, Any]:
    """Convert TransformedReport to a JSON-ready dict with camelCase keys."""
    return _convert(asdict(report))
