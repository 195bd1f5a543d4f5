"""Durable storage of user captures keyed by medium fingerprint."""

from .capture_store import CaptureStore
from .layout import SNAPSHOT_EXTENSION, CaptureLayout

__all__ = ["CaptureLayout", "CaptureStore", "SNAPSHOT_EXTENSION"]
