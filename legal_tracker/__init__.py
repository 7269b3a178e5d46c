"""Upload and status tracking for the legal document processing pipeline."""

__version__ = "0.1.0"
