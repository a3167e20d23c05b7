"""
Credit Ingest - SQLAlchemy ORM Models
Database models for persistent storage
"""
from datetime import datetime
from sqlalchemy import Column, String, Integer, Float, DateTime, JSON

from ..database import Base


class CreditReportDB(Base):
    """Persisted credit report."""
    __tablename__ = "credit_reports"

    id = Column(String(36), primary_key=True)  # UUID

    # ==========================================================================
    # FILE IDENTITY - duplicate detection and raw file retrieval
    # ==========================================================================
    file_hash = Column(String(64), unique=True, nullable=False, index=True)  # SHA-256 hex
    source_file = Column(String(500))
    raw_file_path = Column(String(1000), nullable=False)
    raw_file_url = Column(String(1000))

    # ==========================================================================
    # QUERYABLE COLUMNS (denormalized from the JSON blocks below)
    # ==========================================================================
    consumer_name = Column(String(255), default="")
    pan = Column(String(20), index=True)
    credit_score = Column(Integer, nullable=True)
    total_accounts = Column(Integer, default=0)
    active_accounts = Column(Integer, default=0)
    current_balance_amount = Column(Float, default=0.0)

    # Full transformed report, camelCase JSON as served by the API
    basic_details = Column(JSON)
    report_summary = Column(JSON)
    credit_accounts = Column(JSON)
    enquiries = Column(JSON)

    report_date = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
