"""Exchange REST clients and trade ingestion."""
