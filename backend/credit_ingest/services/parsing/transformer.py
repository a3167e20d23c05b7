"""
Credit Ingest - Experian Report Transformer

Maps a parsed Experian XML tree to TransformedReport (SSOT).

The primary shape is INProfileResponse (Current_Application, SCORE,
CAIS_Account, CAPS). Older exports use flatter legacy shapes (Accounts,
Enquiries, PersonalInfo, ...). Each record group is produced by an ordered
list of strategies: pure functions of the report root that return a group,
or None when their shape is not present. The first result wins; if none
applies the group falls back to its empty default.

Only one condition is fatal: no report root at all.
"""
from __future__ import annotations
import logging
from dataclasses import fields
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Sequence, TypeVar

from ...models.ssot import (
    BasicDetails, CreditAccount, Enquiry, ReportSummary, TransformedReport,
)
from ..exceptions import TransformationError
from .extractors import (
    as_list, extract_date, extract_number, extract_text, find_value_from_paths,
    first_present, get_nested_value, parse_compact_date,
)
from .lookups import (
    ACTIVE_STATUS_CODES, CLOSED_STATUS_CODE, DEFAULT_ACCOUNT_TYPE, GENDER_CODES,
    PORTFOLIO_REVOLVING, account_status_label, account_type_label,
)
from .nodes import ATTRIBUTE_PREFIX
from .schema_validator import PRIMARY_ROOT

logger = logging.getLogger(__name__)

T = TypeVar("T")
Strategy = Callable[[Any], Optional[T]]


# =============================================================================
# CONSTANTS
# =============================================================================

FALLBACK_ROOT_PATHS = (
    "CreditReport",
    "CREDITREPORT",
    "ExpCreditReport",
    "Report",
    "XMLResponse.CreditReport",
    "XMLResponse.Response.CreditReport",
)

APPLICANT_DETAILS_PATH = "Current_Application.Current_Application_Details.Current_Applicant_Details"
APPLICANT_ADDRESS_PATH = "Current_Application.Current_Application_Details.Current_Applicant_Address_Details"

APPLICANT_ADDRESS_FIELDS = (
    "FlatNoPlotNoHouseNo",
    "BldgNoSocietyName",
    "RoadNoNameAreaLocality",
    "City",
    "State",
    "PINCode",
)

HOLDER_ADDRESS_FIELDS = (
    "First_Line_Of_Address_non_normalized",
    "Second_Line_Of_Address_non_normalized",
    "Third_Line_Of_Address_non_normalized",
    "City_non_normalized",
    "State_non_normalized",
    "ZIP_Postal_Code_non_normalized",
)

LEGACY_NAME_PATHS = (
    "PersonalInfo.Name",
    "PersonalInformation.Name",
    "ApplicantInfo.Name",
    "Consumer.Name",
    "Header.SubjectName",
)

LEGACY_NAME_PARTS = ("FirstName", "MiddleName", "LastName")

LEGACY_ACCOUNT_PATHS = ("Accounts", "CreditAccounts", "AccountInfo", "TradeLines")
LEGACY_ENQUIRY_PATHS = ("Enquiries", "CreditEnquiries", "InquiryInfo")

# Child tags a legacy container may wrap its repeated records in
LEGACY_ITEM_TAGS = frozenset({
    "Account",
    "CreditAccount",
    "AccountInfo",
    "TradeLine",
    "Enquiry",
    "CreditEnquiry",
    "Inquiry",
    "InquiryInfo",
    "EnquiryDetails",
})

CAIS_DETAILS_PATH = "CAIS_Account.CAIS_Account_DETAILS"
CAIS_SUMMARY_PATH = "CAIS_Account.CAIS_Summary"
CAPS_SUMMARY_PATH = "CAPS.CAPS_Summary"

UNKNOWN_BANK = "Unknown Bank"
UNKNOWN_ACCOUNT_NUMBER = "N/A"
DEFAULT_PAYMENT_RATING = "0"
DEFAULT_LEGACY_STATUS = "Active"
SYNTHETIC_ENQUIRY_INSTITUTION = "Various Institutions"


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def _first(node: Any) -> Any:
    """First element of a zero-or-more node, or None."""
    items = as_list(node)
    return items[0] if items else None


def _text_at(node: Any, path: str) -> str:
    return extract_text(get_nested_value(node, path))


def _number_at(node: Any, path: str) -> float:
    return extract_number(get_nested_value(node, path))


def _count_at(node: Any, path: str) -> int:
    return max(0, int(_number_at(node, path)))


def _join_name(first: str, last: str) -> str:
    return f"{first} {last}".strip()


def _join_address(block: Any, field_names: Sequence[str]) -> str:
    parts = [_text_at(block, name) for name in field_names]
    return ", ".join(part for part in parts if part)


def _name_from_node(node: Any) -> str:
    """Legacy name nodes are either plain text or a FirstName/LastName block."""
    if isinstance(node, dict) and any(part in node for part in LEGACY_NAME_PARTS):
        parts = [_text_at(node, part) for part in LEGACY_NAME_PARTS]
        return " ".join(part for part in parts if part)
    return extract_text(node)


def _cais_details(root: Any) -> List[Any]:
    return as_list(get_nested_value(root, CAIS_DETAILS_PATH))


def _legacy_collection(root: Any, paths: Sequence[str]) -> List[Any]:
    """
    Records under a legacy collection path. A container that only wraps
    repeated item elements (<CreditAccounts><CreditAccount/>...</CreditAccounts>)
    is unwrapped; container attributes do not count as children.
    """
    collection = find_value_from_paths(root, paths)
    if isinstance(collection, dict):
        children = {k: v for k, v in collection.items() if not k.startswith(ATTRIBUTE_PREFIX)}
        if len(children) == 1:
            tag, items = next(iter(children.items()))
            if tag in LEGACY_ITEM_TAGS:
                collection = items
    return as_list(collection)


def _merge_missing(target: BasicDetails, source: BasicDetails) -> None:
    """Copy fields from source that are still unset ('' or None) on target."""
    for f in fields(BasicDetails):
        if getattr(target, f.name) in ("", None):
            value = getattr(source, f.name)
            if value not in ("", None):
                setattr(target, f.name, value)


def _run_strategies(strategies: Sequence[Strategy], root: Any, group: str) -> Optional[T]:
    for strategy in strategies:
        try:
            result = strategy(root)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"{group} strategy {strategy.__name__} failed: {e}")
            continue
        if result is not None:
            return result
    return None


# =============================================================================
# REPORT ROOT
# =============================================================================

def _is_container(node: Any) -> bool:
    return isinstance(node, (dict, list))


def locate_report_root(doc: Any) -> Optional[Any]:
    """
    Find the sub-tree holding the report payload.

    Priority: INProfileResponse, then the legacy root paths, then the first
    top-level value that is itself a container.
    """
    if not isinstance(doc, dict):
        return None

    primary = doc.get(PRIMARY_ROOT)
    if _is_container(primary):
        return primary

    for path in FALLBACK_ROOT_PATHS:
        candidate = get_nested_value(doc, path)
        if _is_container(candidate):
            return candidate

    for value in doc.values():
        if _is_container(value):
            return value

    return None


# =============================================================================
# BASIC DETAILS
# =============================================================================

def _details_from_current_applicant(root: Any) -> Optional[BasicDetails]:
    applicant = _first(get_nested_value(root, APPLICANT_DETAILS_PATH))
    address_block = _first(get_nested_value(root, APPLICANT_ADDRESS_PATH))
    if applicant is None and address_block is None:
        return None

    details = BasicDetails()
    if applicant is not None:
        details.name = _join_name(_text_at(applicant, "First_Name"), _text_at(applicant, "Last_Name"))
        details.mobile_phone = (
            _text_at(applicant, "MobilePhoneNumber")
            or _text_at(applicant, "Telephone_Number_Applicant_1st")
        )
        details.pan = _text_at(applicant, "IncomeTaxPan")
        details.email = _text_at(applicant, "EMailId")
        details.date_of_birth = parse_compact_date(_text_at(applicant, "Date_Of_Birth_Applicant"))
    if address_block is not None:
        details.address = _join_address(address_block, APPLICANT_ADDRESS_FIELDS)
    return details


def _details_from_bureau_score(root: Any) -> Optional[BasicDetails]:
    score_block = _first(get_nested_value(root, "SCORE"))
    if score_block is None:
        return None
    # Scores are 300-900 by contract; only non-positive noise is filtered.
    score = extract_number(get_nested_value(score_block, "BureauScore"))
    return BasicDetails(credit_score=int(score) if score > 0 else None)


def _details_from_cais_holder(root: Any) -> Optional[BasicDetails]:
    account = _first(_cais_details(root))
    if account is None:
        return None

    details = BasicDetails()

    holder = _first(get_nested_value(account, "CAIS_Holder_Details"))
    if holder is not None:
        details.name = _join_name(
            _text_at(holder, "First_Name_Non_Normalized"),
            _text_at(holder, "Surname_Non_Normalized"),
        )
        details.pan = _text_at(holder, "Income_TAX_PAN")
        details.date_of_birth = parse_compact_date(_text_at(holder, "Date_of_birth"))
        details.gender = GENDER_CODES.get(_text_at(holder, "Gender_Code"))

    phone = _first(get_nested_value(account, "CAIS_Holder_Phone_Details"))
    if phone is not None:
        details.mobile_phone = (
            _text_at(phone, "Telephone_Number")
            or _text_at(phone, "Mobile_Telephone_Number")
        )

    address_block = _first(get_nested_value(account, "CAIS_Holder_Address_Details"))
    if address_block is not None:
        details.address = _join_address(address_block, HOLDER_ADDRESS_FIELDS)

    return details


def _details_from_legacy_name(root: Any) -> Optional[BasicDetails]:
    name = _name_from_node(find_value_from_paths(root, LEGACY_NAME_PATHS))
    return BasicDetails(name=name) if name else None


# Applied in order; later sources only fill fields still unset.
BASIC_DETAILS_SOURCES: Sequence[Strategy] = (
    _details_from_current_applicant,
    _details_from_bureau_score,
    _details_from_cais_holder,
    _details_from_legacy_name,
)


def extract_basic_details(root: Any) -> BasicDetails:
    details = BasicDetails()
    for source in BASIC_DETAILS_SOURCES:
        partial = _run_strategies([source], root, "basic details")
        if partial is not None:
            _merge_missing(details, partial)
    return details


# =============================================================================
# REPORT SUMMARY
# =============================================================================

def _summary_from_cais_summary(root: Any) -> Optional[ReportSummary]:
    cais_summary = get_nested_value(root, CAIS_SUMMARY_PATH)
    if cais_summary is None:
        return None

    summary = ReportSummary(
        total_accounts=_count_at(cais_summary, "Credit_Account.CreditAccountTotal"),
        active_accounts=_count_at(cais_summary, "Credit_Account.CreditAccountActive"),
        closed_accounts=_count_at(cais_summary, "Credit_Account.CreditAccountClosed"),
    )
    if summary.total_accounts == 0:
        # Counters absent: let the account-level strategies recompute.
        return None

    _apply_outstanding_balances(summary, cais_summary)
    return summary


def _apply_outstanding_balances(summary: ReportSummary, cais_summary: Any) -> None:
    balances = get_nested_value(cais_summary, "Total_Outstanding_Balance")
    summary.secured_amount = extract_number(get_nested_value(balances, "Outstanding_Balance_Secured"))
    summary.unsecured_amount = extract_number(get_nested_value(balances, "Outstanding_Balance_UnSecured"))
    summary.current_balance_amount = extract_number(get_nested_value(balances, "Outstanding_Balance_All"))


def _summary_from_cais_details(root: Any) -> Optional[ReportSummary]:
    accounts = _cais_details(root)
    if not accounts:
        return None

    summary = ReportSummary(total_accounts=len(accounts))
    for account in accounts:
        status = _text_at(account, "Account_Status")
        balance = _number_at(account, "Current_Balance")

        if status in ACTIVE_STATUS_CODES:
            summary.active_accounts += 1
        elif status == CLOSED_STATUS_CODE:
            summary.closed_accounts += 1

        summary.current_balance_amount += balance

        # Approximation: revolving lines are counted as unsecured and every
        # other portfolio type as secured. Not a bureau classification.
        if _text_at(account, "Portfolio_Type") == PORTFOLIO_REVOLVING:
            summary.unsecured_amount += balance
        else:
            summary.secured_amount += balance
    return summary


def _summary_from_legacy_accounts(root: Any) -> Optional[ReportSummary]:
    accounts = _legacy_collection(root, LEGACY_ACCOUNT_PATHS)
    if not accounts:
        return None

    summary = ReportSummary(total_accounts=len(accounts))
    for account in accounts:
        status = extract_text(first_present(account, "Status", "AccountStatus")).lower()
        if "active" in status or "current" in status:
            summary.active_accounts += 1
        elif "closed" in status:
            summary.closed_accounts += 1

        balance = extract_number(first_present(account, "CurrentBalance", "Balance"))
        summary.current_balance_amount += balance

        account_type = extract_text(first_present(account, "Type", "AccountType")).lower()
        if "secured" in account_type and "unsecured" not in account_type:
            summary.secured_amount += balance
        else:
            summary.unsecured_amount += balance
    return summary


def _summary_from_cais_balances(root: Any) -> Optional[ReportSummary]:
    """Outstanding balances without counters and without any account records."""
    cais_summary = get_nested_value(root, CAIS_SUMMARY_PATH)
    if cais_summary is None:
        return None
    summary = ReportSummary()
    _apply_outstanding_balances(summary, cais_summary)
    return summary


SUMMARY_STRATEGIES: Sequence[Strategy] = (
    _summary_from_cais_summary,
    _summary_from_cais_details,
    _summary_from_legacy_accounts,
    _summary_from_cais_balances,
)


def _has_cais_accounts(root: Any) -> bool:
    total = _count_at(root, f"{CAIS_SUMMARY_PATH}.Credit_Account.CreditAccountTotal")
    return total > 0 or bool(_cais_details(root))


def _recent_enquiry_count(root: Any) -> int:
    """CAPS 90-day counter; legacy enquiry records are counted only for non-CAIS reports."""
    caps_count = get_nested_value(root, f"{CAPS_SUMMARY_PATH}.CAPSLast90Days")
    if caps_count is not None:
        return max(0, int(extract_number(caps_count)))
    if not _has_cais_accounts(root):
        return len(_legacy_collection(root, LEGACY_ENQUIRY_PATHS))
    return 0


def extract_report_summary(root: Any) -> ReportSummary:
    summary = _run_strategies(SUMMARY_STRATEGIES, root, "summary") or ReportSummary()
    summary.recent_enquiries = _recent_enquiry_count(root)
    return summary


# =============================================================================
# CREDIT ACCOUNTS
# =============================================================================

def _map_cais_account(account: Any) -> CreditAccount:
    portfolio_type = _text_at(account, "Portfolio_Type")
    return CreditAccount(
        type=account_type_label(_text_at(account, "Account_Type"), portfolio_type),
        bank_name=_text_at(account, "Subscriber_Name") or UNKNOWN_BANK,
        account_number=_text_at(account, "Account_Number") or UNKNOWN_ACCOUNT_NUMBER,
        address="",
        amount_overdue=_number_at(account, "Amount_Past_Due"),
        current_balance=_number_at(account, "Current_Balance"),
        sanctioned_amount=(
            _number_at(account, "Credit_Limit_Amount")
            or _number_at(account, "Highest_Credit_or_Original_Loan_Amount")
        ),
        date_opened=parse_compact_date(_text_at(account, "Open_Date")),
        date_closed=parse_compact_date(_text_at(account, "Date_Closed")),
        last_reported=parse_compact_date(_text_at(account, "Date_Reported")),
        status=account_status_label(_text_at(account, "Account_Status")),
        payment_history=_text_at(account, "Payment_History_Profile"),
        payment_rating=_text_at(account, "Payment_Rating") or DEFAULT_PAYMENT_RATING,
        portfolio_type=portfolio_type,
    )


def _map_legacy_account(account: Any) -> CreditAccount:
    return CreditAccount(
        type=extract_text(first_present(account, "Type", "AccountType")) or DEFAULT_ACCOUNT_TYPE,
        bank_name=extract_text(first_present(account, "BankName", "Institution", "Creditor")),
        account_number=extract_text(first_present(account, "AccountNumber", "AccNum")),
        address=extract_text(first_present(account, "Address")),
        amount_overdue=extract_number(first_present(account, "AmountOverdue", "PastDue")),
        current_balance=extract_number(first_present(account, "CurrentBalance", "Balance")),
        sanctioned_amount=extract_number(first_present(account, "SanctionedAmount", "CreditLimit")),
        date_opened=extract_date(first_present(account, "DateOpened", "OpenDate")),
        date_closed=extract_date(first_present(account, "DateClosed", "CloseDate")),
        status=extract_text(first_present(account, "Status", "AccountStatus")) or DEFAULT_LEGACY_STATUS,
        payment_history=extract_text(first_present(account, "PaymentHistory")),
    )


def _accounts_from_cais(root: Any) -> Optional[List[CreditAccount]]:
    accounts = _cais_details(root)
    if not accounts:
        return None
    return [_map_cais_account(account) for account in accounts]


def _accounts_from_legacy(root: Any) -> Optional[List[CreditAccount]]:
    accounts = _legacy_collection(root, LEGACY_ACCOUNT_PATHS)
    if not accounts:
        return None
    return [_map_legacy_account(account) for account in accounts]


ACCOUNT_STRATEGIES: Sequence[Strategy] = (
    _accounts_from_cais,
    _accounts_from_legacy,
)


def extract_credit_accounts(root: Any) -> List[CreditAccount]:
    return _run_strategies(ACCOUNT_STRATEGIES, root, "accounts") or []


# =============================================================================
# ENQUIRIES
# =============================================================================

def _enquiries_from_caps(root: Any) -> Optional[List[Enquiry]]:
    """
    INProfileResponse has no per-enquiry records, only rolling CAPS counters.
    One summary enquiry stands in for them when the 90-day count is positive.
    """
    caps_summary = get_nested_value(root, CAPS_SUMMARY_PATH)
    if caps_summary is None:
        return None

    last_90 = int(_number_at(caps_summary, "CAPSLast90Days"))
    if last_90 <= 0:
        return None
    last_30 = int(_number_at(caps_summary, "CAPSLast30Days"))
    last_7 = int(_number_at(caps_summary, "CAPSLast7Days"))

    return [Enquiry(
        institution=SYNTHETIC_ENQUIRY_INSTITUTION,
        date=datetime.now(timezone.utc).date(),
        amount=0.0,
        purpose=(
            f"{last_90} enquiries in last 90 days "
            f"({last_30} in last 30 days, {last_7} in last 7 days)"
        ),
    )]


def _map_legacy_enquiry(enquiry: Any) -> Enquiry:
    return Enquiry(
        institution=extract_text(first_present(enquiry, "Institution", "BankName", "InstitutionName")),
        date=extract_date(first_present(enquiry, "Date", "EnquiryDate")),
        amount=extract_number(first_present(enquiry, "Amount", "EnquiryAmount")),
        purpose=extract_text(first_present(enquiry, "Purpose", "EnquiryPurpose")),
    )


def _enquiries_from_legacy(root: Any) -> Optional[List[Enquiry]]:
    enquiries = _legacy_collection(root, LEGACY_ENQUIRY_PATHS)
    if not enquiries:
        return None
    return [_map_legacy_enquiry(enquiry) for enquiry in enquiries]


ENQUIRY_STRATEGIES: Sequence[Strategy] = (
    _enquiries_from_caps,
    _enquiries_from_legacy,
)


def extract_enquiries(root: Any) -> List[Enquiry]:
    return _run_strategies(ENQUIRY_STRATEGIES, root, "enquiries") or []


# =============================================================================
# ENTRY POINT
# =============================================================================

def transform(doc: Any) -> TransformedReport:
    """
    Transform a parsed Experian XML document into a TransformedReport.

    Raises:
        TransformationError: if no report root can be located.
    """
    root = locate_report_root(doc)
    if root is None:
        logger.error("Data transformation failed: no report root found")
        raise TransformationError("Could not find credit report data in XML")

    report = TransformedReport(
        basic_details=extract_basic_details(root),
        report_summary=extract_report_summary(root),
        credit_accounts=extract_credit_accounts(root),
        enquiries=extract_enquiries(root),
        report_date=datetime.now(timezone.utc),
    )

    logger.info(
        f"Credit report data transformed successfully: "
        f"{len(report.credit_accounts)} accounts, {len(report.enquiries)} enquiries"
    )
    return report
