"""
Credit Ingest - Experian Code Tables

Read-only code -> label maps consulted by the transformer. Wrapped in
MappingProxyType so nothing can mutate them after import.
"""
from types import MappingProxyType

from ...models.ssot import Gender


# =============================================================================
# ACCOUNT TYPE (CAIS Account_Type)
# =============================================================================

ACCOUNT_TYPE_LABELS = MappingProxyType({
    "10": "Credit Card",
    "51": "Personal Loan",
    "52": "Personal Loan",
    "53": "Auto Loan",
    "61": "Housing Loan",
    "71": "Gold Loan",
    "81": "Two Wheeler Loan",
})

DEFAULT_ACCOUNT_TYPE = "Other"


# =============================================================================
# PORTFOLIO TYPE (CAIS Portfolio_Type)
# =============================================================================

PORTFOLIO_REVOLVING = "R"
PORTFOLIO_INSTALLMENT = "I"

PORTFOLIO_QUALIFIERS = MappingProxyType({
    PORTFOLIO_REVOLVING: "Revolving",
    PORTFOLIO_INSTALLMENT: "Installment",
})


# =============================================================================
# ACCOUNT STATUS (CAIS Account_Status)
# =============================================================================

ACCOUNT_STATUS_LABELS = MappingProxyType({
    "11": "Active - Regular",
    "12": "Active - Regular",
    "13": "Closed - Regular",
    "14": "Closed - Regular",
    "21": "Active - Irregular",
    "22": "Active - Irregular",
    "31": "Active - Irregular",
    "32": "Active - Irregular",
    "41": "Active - Irregular",
    "42": "Active - Irregular",
    "51": "Active - Irregular",
    "52": "Active - Irregular",
    "53": "Active - Irregular",
    "71": "Active - Irregular",
    "78": "Settled",
    "80": "Settled",
    "82": "Settled",
    "83": "Settled",
    "84": "Settled",
    "89": "Closed",
})

# Used only when recomputing the summary from account details
ACTIVE_STATUS_CODES = frozenset({"11", "53", "71"})
CLOSED_STATUS_CODE = "13"


# =============================================================================
# HOLDER GENDER (CAIS_Holder_Details Gender_Code)
# =============================================================================

GENDER_CODES = MappingProxyType({
    "1": Gender.MALE,
    "2": Gender.FEMALE,
})


def account_type_label(type_code: str, portfolio_type: str) -> str:
    """'10' + 'R' -> 'Credit Card (Revolving)'; unknown codes -> 'Other'."""
    label = ACCOUNT_TYPE_LABELS.get(type_code, DEFAULT_ACCOUNT_TYPE)
    qualifier = PORTFOLIO_QUALIFIERS.get(portfolio_type)
    if qualifier:
        label = f"{label} ({qualifier})"
    return label


def account_status_label(status_code: str) -> str:
    """'11' -> 'Active - Regular'; unknown codes render as 'Status <code>'."""
    return ACCOUNT_STATUS_LABELS.get(status_code, f"Status {status_code}")
