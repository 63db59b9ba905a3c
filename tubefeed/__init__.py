"""YouTube search ingestion and keyword search service."""
