"""
Report Service

Persistence boundary for TransformedReport. Takes raw upload bytes through
parse -> sniff -> transform, attaches file identity and storage location,
and owns every read/delete against the credit_reports table.
"""
import hashlib
import logging
from typing import Dict, List, Optional, Tuple
from uuid import uuid4

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.db_models import CreditReportDB
from ..models.ssot import TransformedReport, serialize_report
from .exceptions import DuplicateReportError, InvalidUploadError, StorageError
from .parsing import parse_xml_bytes, transform, validate_schema
from .storage import LocalFileStore

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_WINDOW = 30


def compute_file_hash(content: bytes) -> str:
    """SHA-256 hex digest of the raw upload."""
    return hashlib.sha256(content).hexdigest()


class ReportService:
    """
    Single entry point for report persistence.
    Routers never touch CreditReportDB directly.
    """

    def __init__(self, db: Session, store: LocalFileStore):
        self.db = db
        self.store = store

    # =========================================================================
    # INGEST
    # =========================================================================

    def ingest(self, content: bytes, filename: str) -> CreditReportDB:
        """
        Process one uploaded XML file.

        Raises:
            DuplicateReportError: same content already ingested
            XMLParsingError: empty or malformed XML
            InvalidUploadError: XML is not an Experian report
            TransformationError: no report root could be located
            StorageError: raw file could not be written
        """
        file_hash = compute_file_hash(content)
        existing = self.find_by_hash(file_hash)
        if existing:
            raise DuplicateReportError(existing.id)

        parsed = parse_xml_bytes(content)
        if not validate_schema(parsed):
            raise InvalidUploadError(
                "Invalid XML format. Please ensure this is a valid Experian credit report.",
                status_code=422,
                code="INVALID_REPORT_FORMAT",
            )

        report = transform(parsed)

        raw_path = self.store.save(content, filename)
        try:
            db_report = self._build_row(report, file_hash, filename, raw_path)
            self.db.add(db_report)
            self.db.commit()
            self.db.refresh(db_report)
        except IntegrityError as e:
            self.db.rollback()
            self.store.delete(raw_path)
            # Lost a race on the unique file_hash
            winner = self.find_by_hash(file_hash)
            if winner is None:
                raise
            raise DuplicateReportError(winner.id) from e
        except SQLAlchemyError:
            self.db.rollback()
            self.store.delete(raw_path)
            raise

        logger.info(f"Credit report processed successfully: {db_report.id} ({filename})")
        return db_report

    def _build_row(
        self, report: TransformedReport, file_hash: str, filename: str, raw_path: str
    ) -> CreditReportDB:
        serialized = serialize_report(report)
        details = report.basic_details
        summary = report.report_summary
        return CreditReportDB(
            id=str(uuid4()),
            file_hash=file_hash,
            source_file=filename,
            raw_file_path=raw_path,
            raw_file_url=self.store.url_for(raw_path),
            consumer_name=details.name,
            pan=details.pan.upper() or None,
            credit_score=details.credit_score,
            total_accounts=summary.total_accounts,
            active_accounts=summary.active_accounts,
            current_balance_amount=summary.current_balance_amount,
            basic_details=serialized["basicDetails"],
            report_summary=serialized["reportSummary"],
            credit_accounts=serialized["creditAccounts"],
            enquiries=serialized["enquiries"],
            report_date=report.report_date.replace(tzinfo=None),
        )

    # =========================================================================
    # QUERIES
    # =========================================================================

    def find_by_hash(self, file_hash: str) -> Optional[CreditReportDB]:
        return self.db.query(CreditReportDB).filter(CreditReportDB.file_hash == file_hash).first()

    def get_report(self, report_id: str) -> Optional[CreditReportDB]:
        return self.db.query(CreditReportDB).filter(CreditReportDB.id == report_id).first()

    def list_reports(self, page: int, limit: int) -> Tuple[List[CreditReportDB], int]:
        """Newest first. Returns (rows for the page, total row count)."""
        total = self.db.query(func.count(CreditReportDB.id)).scalar() or 0
        rows = (
            self.db.query(CreditReportDB)
            .order_by(CreditReportDB.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return rows, total

    def stats(self) -> Dict:
        """Counts and sums across all reports (no averages or trends)."""
        total_reports, total_accounts, total_balance = self.db.query(
            func.count(CreditReportDB.id),
            func.coalesce(func.sum(CreditReportDB.total_accounts), 0),
            func.coalesce(func.sum(CreditReportDB.current_balance_amount), 0.0),
        ).one()

        recent = (
            self.db.query(CreditReportDB.created_at)
            .order_by(CreditReportDB.created_at.desc())
            .limit(RECENT_ACTIVITY_WINDOW)
            .all()
        )
        activity: Dict[str, int] = {}
        for (created_at,) in recent:
            day = created_at.date().isoformat()
            activity[day] = activity.get(day, 0) + 1

        return {
            "overview": {
                "totalReports": total_reports,
                "totalAccounts": int(total_accounts),
                "totalBalance": float(total_balance),
            },
            "recentActivity": [{"date": day, "count": count} for day, count in activity.items()],
        }

    # =========================================================================
    # DELETE
    # =========================================================================

    def delete_report(self, report_id: str) -> bool:
        """Delete a report row and its raw file. Returns False if not found."""
        report = self.get_report(report_id)
        if not report:
            return False

        raw_path = report.raw_file_path
        self.db.delete(report)
        self.db.commit()

        try:
            self.store.delete(raw_path)
        except StorageError as e:
            logger.warning(f"Failed to delete raw file for report {report_id}: {e}")

        logger.info(f"Credit report deleted: {report_id}")
        return True
