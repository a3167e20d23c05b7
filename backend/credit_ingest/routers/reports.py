"""
Credit Ingest - Reports API Router

Handles XML upload, listing, retrieval, stats and deletion of credit reports.
"""
from __future__ import annotations
import logging
import math
import os
from datetime import datetime
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from ..config import (
    ALLOWED_CONTENT_TYPES, ALLOWED_EXTENSIONS, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE,
    MAX_UPLOAD_BYTES, STORAGE_DIR,
)
from ..database import get_db
from ..models.db_models import CreditReportDB
from ..models.ssot import ReportSummary
from ..services.exceptions import InvalidUploadError
from ..services.report_service import ReportService
from ..services.storage import LocalFileStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["reports"])


# =============================================================================
# PYDANTIC MODELS FOR API
# =============================================================================

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReportListItem(CamelModel):
    id: str
    name: str
    credit_score: Optional[int] = None
    total_accounts: int
    active_accounts: int
    current_balance: float
    created_at: datetime
    raw_file_url: Optional[str] = None


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_reports: int
    has_next_page: bool
    has_prev_page: bool


class ReportListData(CamelModel):
    reports: List[ReportListItem]
    pagination: Pagination


class ReportListResponse(CamelModel):
    success: bool = True
    data: ReportListData


class AccountSummary(CamelModel):
    total: int
    active: int
    closed: int
    active_percentage: int


class ReportDetail(CamelModel):
    id: str
    file_hash: str
    source_file: Optional[str] = None
    basic_details: Dict[str, Any]
    report_summary: Dict[str, Any]
    credit_accounts: List[Dict[str, Any]]
    enquiries: List[Dict[str, Any]]
    raw_file_url: Optional[str] = None
    account_summary: AccountSummary
    total_debt: float
    report_date: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class ReportDetailResponse(CamelModel):
    success: bool = True
    message: Optional[str] = None
    data: ReportDetail


class StatsOverview(CamelModel):
    total_reports: int
    total_accounts: int
    total_balance: float


class ActivityEntry(CamelModel):
    date: str
    count: int


class StatsData(CamelModel):
    overview: StatsOverview
    recent_activity: List[ActivityEntry]


class StatsResponse(CamelModel):
    success: bool = True
    data: StatsData


class DeleteResponse(CamelModel):
    success: bool = True
    message: str


# =============================================================================
# DEPENDENCIES & HELPERS
# =============================================================================

@lru_cache(maxsize=1)
def get_file_store() -> LocalFileStore:
    """Dependency - raw XML store rooted at STORAGE_DIR."""
    return LocalFileStore(STORAGE_DIR)


def get_report_service(
    db: Session = Depends(get_db),
    store: LocalFileStore = Depends(get_file_store),
) -> ReportService:
    return ReportService(db, store)


def validate_upload(file: Optional[UploadFile]) -> None:
    """Reject anything that is not an .xml upload with an XML-ish content type."""
    if file is None:
        raise InvalidUploadError("No file uploaded", 400, "NO_FILE")
    extension = os.path.splitext(file.filename or "")[1].lower()
    if extension not in ALLOWED_EXTENSIONS:
        raise InvalidUploadError("Only XML files are allowed", 422, "INVALID_FILE_TYPE")
    if file.content_type not in ALLOWED_CONTENT_TYPES:
        raise InvalidUploadError("Invalid MIME type. Only XML files are allowed", 422, "INVALID_MIME_TYPE")


def to_list_item(report: CreditReportDB) -> ReportListItem:
    return ReportListItem(
        id=report.id,
        name=report.consumer_name or "",
        credit_score=report.credit_score,
        total_accounts=report.total_accounts or 0,
        active_accounts=report.active_accounts or 0,
        current_balance=report.current_balance_amount or 0.0,
        created_at=report.created_at,
        raw_file_url=report.raw_file_url,
    )


def to_detail(report: CreditReportDB) -> ReportDetail:
    summary = ReportSummary.from_serialized(report.report_summary)
    return ReportDetail(
        id=report.id,
        file_hash=report.file_hash,
        source_file=report.source_file,
        basic_details=report.basic_details or {},
        report_summary=report.report_summary or {},
        credit_accounts=report.credit_accounts or [],
        enquiries=report.enquiries or [],
        raw_file_url=report.raw_file_url,
        account_summary=AccountSummary(
            total=summary.total_accounts,
            active=summary.active_accounts,
            closed=summary.closed_accounts,
            active_percentage=summary.active_percentage,
        ),
        total_debt=summary.total_debt,
        report_date=report.report_date,
        created_at=report.created_at,
        updated_at=report.updated_at,
    )


# =============================================================================
# API ENDPOINTS
# =============================================================================

@router.post("/upload", response_model=ReportDetailResponse, status_code=201)
def upload_report(
    file: Optional[UploadFile] = File(None),
    service: ReportService = Depends(get_report_service),
):
    """
    Upload and process an Experian XML credit report.
    """
    validate_upload(file)

    content = file.file.read(MAX_UPLOAD_BYTES + 1)
    if len(content) > MAX_UPLOAD_BYTES:
        raise InvalidUploadError(
            f"File too large. Maximum allowed size is {MAX_UPLOAD_BYTES // (1024 * 1024)}MB",
            400,
            "FILE_TOO_LARGE",
        )

    logger.info(f"Processing XML file upload: {file.filename}")
    report = service.ingest(content, file.filename)

    return ReportDetailResponse(
        message="Credit report processed successfully",
        data=to_detail(report),
    )


@router.get("/reports", response_model=ReportListResponse)
def list_reports(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    service: ReportService = Depends(get_report_service),
):
    """List reports, newest first."""
    reports, total = service.list_reports(page, limit)
    total_pages = math.ceil(total / limit)

    return ReportListResponse(
        data=ReportListData(
            reports=[to_list_item(r) for r in reports],
            pagination=Pagination(
                current_page=page,
                total_pages=total_pages,
                total_reports=total,
                has_next_page=page < total_pages,
                has_prev_page=page > 1,
            ),
        )
    )


@router.get("/reports/stats", response_model=StatsResponse)
def get_report_stats(service: ReportService = Depends(get_report_service)):
    """Report counts and balance totals."""
    return StatsResponse(data=StatsData(**service.stats()))


@router.get("/reports/{report_id}", response_model=ReportDetailResponse)
def get_report(report_id: str, service: ReportService = Depends(get_report_service)):
    """Get full report by ID."""
    report = service.get_report(report_id)
    if not report:
        raise HTTPException(status_code=404, detail="Credit report not found")

    logger.info(f"Credit report retrieved: {report_id}")
    return ReportDetailResponse(data=to_detail(report))


@router.delete("/reports/{report_id}", response_model=DeleteResponse)
def delete_report(report_id: str, service: ReportService = Depends(get_report_service)):
    """Delete a report and its stored raw XML."""
    if not service.delete_report(report_id):
        raise HTTPException(status_code=404, detail="Credit report not found")
    return DeleteResponse(message="Credit report deleted successfully")
