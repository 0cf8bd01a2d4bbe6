"""HTTP API for roster ingestion and notifications."""
