"""Shared error types, logging, hashing and write helpers."""

from .errors import (
    AllocationFailure,
    CaptureHistoryError,
    ConfigError,
    DecodeFailure,
    EncodeFailure,
    SourceUnreadable,
    StorageIOFailure,
    UnsupportedFormat,
)

__all__ = [
    "AllocationFailure",
    "CaptureHistoryError",
    "ConfigError",
    "DecodeFailure",
    "EncodeFailure",
    "SourceUnreadable",
    "StorageIOFailure",
    "UnsupportedFormat",
]
