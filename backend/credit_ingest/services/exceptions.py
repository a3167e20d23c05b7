"""
Credit Ingest - Service Exceptions

Only TransformationError can come out of the transformation core. The rest
belong to the service shell around it (upload, parsing, storage).
"""
from typing import Optional


class CreditIngestError(Exception):
    """Base class for all credit ingest errors."""


class XMLParsingError(CreditIngestError):
    """Raw input is empty or not well-formed XML."""


class TransformationError(CreditIngestError):
    """No credit report payload could be located in a parsed document."""


class InvalidUploadError(CreditIngestError):
    """Uploaded file rejected before parsing."""

    def __init__(self, message: str, status_code: int = 422, code: str = "INVALID_FILE_TYPE"):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class DuplicateReportError(CreditIngestError):
    """A report with the same content hash already exists."""

    def __init__(self, report_id: str):
        super().__init__("This file has already been processed")
        self.report_id = report_id


class StorageError(CreditIngestError):
    """Raw file could not be written to or removed from storage."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path
