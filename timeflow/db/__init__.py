"""Database session and metadata."""
