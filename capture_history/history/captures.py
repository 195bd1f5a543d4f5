"""Capture records: screenshots and machine snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal, Union

from capture_history.imaging.codec import EncodedImage

from .snapshot_format import SnapshotContents, Thumbnail, build_snapshot_blob, parse_snapshot_blob

SCREENSHOT = "screenshot"
SNAPSHOT = "snapshot"
CAPTURE_KINDS = (SCREENSHOT, SNAPSHOT)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class Screenshot:
    image: EncodedImage
    fingerprint: int
    ts_utc: str = field(default_factory=_utc_now_iso)
    kind: Literal["screenshot"] = SCREENSHOT


@dataclass(frozen=True)
class Snapshot:
    blob: bytes
    fingerprint: int
    ts_utc: str = field(default_factory=_utc_now_iso)
    kind: Literal["snapshot"] = SNAPSHOT

    @classmethod
    def create(cls, state: bytes, fingerprint: int, *, thumbnail: Thumbnail | None = None) -> "Snapshot":
        return cls(blob=build_snapshot_blob(state, thumbnail), fingerprint=int(fingerprint))

    def contents(self) -> SnapshotContents:
        return parse_snapshot_blob(self.blob)


Capture = Union[Screenshot, Snapshot]


def capture_kind(kind: str) -> str:
    key = str(kind or "").strip().lower()
    if key not in CAPTURE_KINDS:
        raise ValueError(f"unknown capture kind: {kind!r}")
    return key
