"""
Custom exception hierarchy for the photo deduplicator.

Most failures inside the matching pipeline are recovered locally and logged;
these types mark the boundaries where a caller has to decide what to do.
"""


class PhotoDedupError(Exception):
    """Base exception for all photo deduplicator errors."""
    pass


class MetadataExtractionError(PhotoDedupError):
    """Raised when metadata cannot be extracted from a file."""
    pass


class ExternalToolError(PhotoDedupError):
    """Raised when the external metadata tool fails or returns garbage."""
    pass


class IndexFormatError(PhotoDedupError):
    """Raised when a saved partition index cannot be read."""
    pass


class FileOperationError(PhotoDedupError):
    """Raised when delete/move operations fail."""
    pass


class ConfigurationError(PhotoDedupError):
    """Raised when operator options are contradictory."""
    pass
