"""Credit Ingest - Services"""
