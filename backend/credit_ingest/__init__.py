"""Credit Ingest - Experian XML credit report ingestion service."""

__version__ = "1.0.0"
