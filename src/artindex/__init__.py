"""Token ingestion pipeline for on-chain art catalogs."""
