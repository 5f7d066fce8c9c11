"""Failures of the media ingestion pipeline.

Every fatal failure derives from ``MediaProcessingError`` so the route can
turn it into the uniform ``{"success": false, "error": ...}`` body.
"""
from typing import Optional


class MediaProcessingError(Exception):
    """Base class for fatal pipeline failures."""


class AcquisitionError(MediaProcessingError):
    """Raised when the media bytes cannot be obtained (bad base64, failed download, empty payload)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class StorageError(MediaProcessingError):
    """Raised when the object store refuses the upload after every retry."""


class ReconciliationError(MediaProcessingError):
    """Raised when the messages table cannot be updated or the fallback insert fails."""
