"""Error types for capture history."""

from __future__ import annotations


class CaptureHistoryError(RuntimeError):
    """Base error for capture history modules."""


class ConfigError(CaptureHistoryError):
    """Raised when configuration is invalid."""


class AllocationFailure(CaptureHistoryError):
    """Raised when a pixel buffer cannot be allocated."""


class SourceUnreadable(CaptureHistoryError):
    """Raised when a pixel source is torn down or a region lies outside it."""


class EncodeFailure(CaptureHistoryError):
    """Raised when pixels cannot be encoded into a still image."""


class DecodeFailure(CaptureHistoryError):
    """Raised when stored image or snapshot data is empty or corrupt."""


class UnsupportedFormat(CaptureHistoryError):
    """Raised when a codec cannot handle the requested format or version."""


class StorageIOFailure(CaptureHistoryError):
    """Raised when durable storage cannot be written, deleted or read."""
