"""
Credit Ingest - FastAPI Application

Main entry point for the Credit Ingest backend.

Architecture:
- Raw XML → XML Parser → ParsedDocument (transient)
- ParsedDocument → Schema Validator → accept / reject
- ParsedDocument → Transformer → TransformedReport (SSOT)
- TransformedReport → ReportService → credit_reports table + raw file store
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import CORS_ORIGINS, LOG_LEVEL
from .database import init_db
from .routers import reports_router
from .services.exceptions import (
    CreditIngestError, DuplicateReportError, InvalidUploadError, StorageError,
    TransformationError, XMLParsingError,
)

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

STARTED_AT = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup."""
    init_db()
    yield


# Create FastAPI app
app = FastAPI(
    lifespan=lifespan,
    title="Credit Ingest",
    description="""
    Credit Ingest - Experian XML Credit Report Service

    Upload Experian XML credit reports, extract applicant details, score,
    accounts and enquiries, and browse the stored results.

    ## Pipeline
    1. **XML Parser**: raw XML → parsed tree
    2. **Schema Validator**: is this an Experian report?
    3. **Transformer**: parsed tree → TransformedReport
    4. **Report Service**: persist report + raw file
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(reports_router)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message, **extra})


@app.exception_handler(DuplicateReportError)
async def duplicate_report_handler(request: Request, exc: DuplicateReportError):
    return _error(409, str(exc), reportId=exc.report_id)


@app.exception_handler(InvalidUploadError)
async def invalid_upload_handler(request: Request, exc: InvalidUploadError):
    return _error(exc.status_code, str(exc), error=exc.code)


@app.exception_handler(XMLParsingError)
async def xml_parsing_handler(request: Request, exc: XMLParsingError):
    return _error(422, str(exc))


@app.exception_handler(TransformationError)
async def transformation_handler(request: Request, exc: TransformationError):
    return _error(422, f"Data transformation failed: {exc}")


@app.exception_handler(StorageError)
async def storage_handler(request: Request, exc: StorageError):
    logger.error(f"Storage error: {exc}")
    return _error(500, "File storage error")


@app.exception_handler(CreditIngestError)
async def credit_ingest_handler(request: Request, exc: CreditIngestError):
    logger.error(f"Unhandled ingest error: {exc}")
    return _error(500, str(exc) or "Server Error")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_handler(request: Request, exc: RequestValidationError):
    return _error(422, "Invalid request", errors=jsonable_encoder(exc.errors()))


# =============================================================================
# ROOT & HEALTH
# =============================================================================

@app.get("/")
async def root():
    """Root endpoint - API information."""
    return {
        "name": "Credit Ingest",
        "version": __version__,
        "description": "Experian XML Credit Report Service",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - STARTED_AT, 3),
    }


# For running with: python -m credit_ingest.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
