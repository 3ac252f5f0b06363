"""
Custom exception hierarchy for the media indexer.
"""


class OnThisDayError(Exception):
    """Base exception for all indexer errors."""
    pass


class MetadataExtractionError(OnThisDayError):
    """Raised when embedded metadata cannot be read from a file."""
    pass


class DatabaseError(OnThisDayError):
    """Raised when the index database cannot be opened."""
    pass


class ScanError(OnThisDayError):
    """Raised when a scan aborts outside the per-file boundary."""
    pass


class ConfigurationError(OnThisDayError):
    """Raised for invalid user-supplied settings."""
    pass
