"""File upload server: local disk or S3-compatible storage with relational metadata."""

__version__ = "0.1.0"
