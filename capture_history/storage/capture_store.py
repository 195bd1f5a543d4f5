"""Durable per-fingerprint storage of user captures.

Persist writes every entry into a hidden staging folder and swaps it in place
of the fingerprint's folder, so readers see either the old or the new set.
Reload skips entries that fail to decode instead of failing as a whole.
"""

from __future__ import annotations

import os
import shutil
import tempfile
import uuid
from datetime import datetime, timezone
from pathlib import Path

from capture_history.core.atomic_write import atomic_write_bytes, fsync_dir
from capture_history.core.errors import DecodeFailure, StorageIOFailure, UnsupportedFormat
from capture_history.core.hashing import format_fingerprint
from capture_history.core.logging import JsonlLogger, log_event
from capture_history.history.bounded import BoundedHistory
from capture_history.history.captures import SCREENSHOT, SNAPSHOT, Capture, Screenshot, Snapshot, capture_kind
from capture_history.history.snapshot_format import parse_snapshot_blob
from capture_history.imaging.codec import CaptureCodec

from .layout import SNAPSHOT_EXTENSION, CaptureLayout


def _mtime_iso(path: Path) -> str:
    return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc).isoformat()


class CaptureStore:
    def __init__(
        self,
        root: str | Path,
        *,
        codec: CaptureCodec | None = None,
        fsync: bool = True,
        logger: JsonlLogger | None = None,
    ) -> None:
        self.layout = CaptureLayout(Path(root).expanduser())
        self.codec = codec or CaptureCodec()
        self.fsync = bool(fsync)
        self._logger = logger

    @property
    def root(self) -> Path:
        return self.layout.root

    # Encoding

    def _encode_entry(self, capture: Capture) -> tuple[bytes, str]:
        if capture.kind == SCREENSHOT:
            return capture.image.data, capture.image.extension
        if capture.kind == SNAPSHOT:
            return capture.blob, SNAPSHOT_EXTENSION
        raise ValueError(f"unknown capture kind: {capture.kind!r}")

    def _decode_entry(self, kind: str, path: Path, fingerprint: int) -> Capture:
        data = path.read_bytes()
        ts_utc = _mtime_iso(path)
        if kind == SCREENSHOT:
            image = self.codec.describe(data)
            return Screenshot(image=image, fingerprint=fingerprint, ts_utc=ts_utc)
        if kind == SNAPSHOT:
            parse_snapshot_blob(data)
            return Snapshot(blob=data, fingerprint=fingerprint, ts_utc=ts_utc)
        raise ValueError(f"unknown capture kind: {kind!r}")

    # Persistence

    def persist(self, history: BoundedHistory[Capture], fingerprint: int, kind: str = SCREENSHOT) -> bool:
        """Replace the stored captures of `fingerprint` with the history's items.

        Returns False when the history has no unsaved changes.
        """
        kind = capture_kind(kind)
        if not history.modified:
            return False
        items = history.items()
        for capture in items:
            if capture.kind != kind:
                raise ValueError(f"cannot persist {capture.kind} into {kind} storage")
        folder = self.layout.folder(kind, fingerprint)
        try:
            folder.parent.mkdir(parents=True, exist_ok=True)
            if items:
                self._write_all(kind, items, folder)
            else:
                self._remove_folder(folder)
        except OSError as exc:
            log_event(
                self._logger,
                "store.persist_failed",
                level="error",
                kind=kind,
                fingerprint=format_fingerprint(fingerprint),
                error=str(exc),
            )
            raise StorageIOFailure(f"unable to persist {kind}s for {format_fingerprint(fingerprint)}: {exc}") from exc
        history.mark_persisted()
        log_event(
            self._logger,
            "store.persisted",
            kind=kind,
            fingerprint=format_fingerprint(fingerprint),
            count=len(items),
        )
        return True

    def _write_all(self, kind: str, items: list[Capture], folder: Path) -> None:
        staging = Path(tempfile.mkdtemp(prefix=f".{folder.name}.", suffix=".staging", dir=str(folder.parent)))
        try:
            for index, capture in enumerate(items):
                payload, extension = self._encode_entry(capture)
                target = staging / self.layout.entry_name(kind, index, extension)
                atomic_write_bytes(target, payload, fsync=self.fsync)
            self._swap_in(staging, folder)
        finally:
            if staging.exists():
                shutil.rmtree(staging, ignore_errors=True)

    def _swap_in(self, staging: Path, folder: Path) -> None:
        backup = None
        if folder.exists():
            backup = folder.with_name(f".{folder.name}.{uuid.uuid4().hex}.old")
            os.replace(str(folder), str(backup))
        try:
            os.replace(str(staging), str(folder))
        except OSError:
            if backup is not None:
                os.replace(str(backup), str(folder))
            raise
        if self.fsync:
            fsync_dir(folder.parent)
        if backup is not None:
            shutil.rmtree(backup, ignore_errors=True)

    def _remove_folder(self, folder: Path) -> None:
        if folder.exists():
            shutil.rmtree(folder)

    def load(self, fingerprint: int, kind: str = SCREENSHOT) -> list[Capture]:
        """Read the captures stored for `fingerprint` in sequence order.

        Undecodable entries are skipped. A listing failure raises
        StorageIOFailure before anything has been read.
        """
        kind = capture_kind(kind)
        try:
            paths = self.layout.collect_files(kind, fingerprint)
        except OSError as exc:
            raise StorageIOFailure(f"unable to list {kind}s for {format_fingerprint(fingerprint)}: {exc}") from exc
        captures: list[Capture] = []
        skipped = 0
        for path in paths:
            try:
                capture = self._decode_entry(kind, path, fingerprint)
            except (OSError, DecodeFailure, UnsupportedFormat) as exc:
                skipped += 1
                log_event(
                    self._logger,
                    "store.entry_skipped",
                    level="warning",
                    kind=kind,
                    path=str(path),
                    error=str(exc),
                )
                continue
            captures.append(capture)
        log_event(
            self._logger,
            "store.reloaded",
            kind=kind,
            fingerprint=format_fingerprint(fingerprint),
            count=len(captures),
            skipped=skipped,
        )
        return captures

    def reload(self, history: BoundedHistory[Capture], fingerprint: int, kind: str = SCREENSHOT) -> int:
        """Replace the history's items with the captures stored for `fingerprint`.

        On failure the history is left untouched.
        """
        history.restore(self.load(fingerprint, kind))
        return len(history)

    # Tooling

    def entries(self, fingerprint: int, kind: str = SCREENSHOT) -> list[Path]:
        try:
            return self.layout.collect_files(kind, fingerprint)
        except OSError as exc:
            raise StorageIOFailure(str(exc)) from exc

    def fingerprints(self, kind: str = SCREENSHOT) -> list[int]:
        try:
            return self.layout.fingerprints(kind)
        except OSError as exc:
            raise StorageIOFailure(str(exc)) from exc

    def purge(self, fingerprint: int, kind: str = SCREENSHOT) -> int:
        """Delete every stored capture of `fingerprint`; returns the number removed."""
        paths = self.entries(fingerprint, kind)
        try:
            self._remove_folder(self.layout.folder(kind, fingerprint))
        except OSError as exc:
            raise StorageIOFailure(f"unable to purge {kind}s for {format_fingerprint(fingerprint)}: {exc}") from exc
        log_event(self._logger, "store.purged", kind=kind, fingerprint=format_fingerprint(fingerprint), count=len(paths))
        return len(paths)

