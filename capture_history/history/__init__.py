"""Capture records and their bounded histories."""

from .bounded import THIN_MIN_ITEMS, BoundedHistory, thin_out
from .captures import SCREENSHOT, SNAPSHOT, Capture, Screenshot, Snapshot
from .snapshot_format import SNAPSHOT_VERSION, Thumbnail, build_snapshot_blob, parse_snapshot_blob

__all__ = [
    "SCREENSHOT",
    "SNAPSHOT",
    "SNAPSHOT_VERSION",
    "THIN_MIN_ITEMS",
    "BoundedHistory",
    "Capture",
    "Screenshot",
    "Snapshot",
    "Thumbnail",
    "build_snapshot_blob",
    "parse_snapshot_blob",
    "thin_out",
]
