"""End-to-end flows composed from the auth, ingestion and recommendation layers."""
