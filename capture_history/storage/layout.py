"""On-disk layout: one folder per (kind, fingerprint), one file per capture.

    <root>/screenshots/<fingerprint:016x>/screenshot<index>.<ext>
    <root>/snapshots/<fingerprint:016x>/snapshot<index>.vasnap

Hidden entries (leading ".") are staging or backup folders and never listed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from capture_history.core.hashing import format_fingerprint
from capture_history.history.captures import SNAPSHOT, capture_kind

SNAPSHOT_EXTENSION = "vasnap"
_FINGERPRINT_RE = re.compile(r"^[0-9a-f]{16}$")


def _entry_re(kind: str) -> re.Pattern[str]:
    return re.compile(rf"^{kind}(\d+)\.([A-Za-z0-9]+)$")


@dataclass(frozen=True)
class CaptureLayout:
    root: Path

    def kind_dir(self, kind: str) -> Path:
        return self.root / f"{capture_kind(kind)}s"

    def folder(self, kind: str, fingerprint: int) -> Path:
        return self.kind_dir(kind) / format_fingerprint(fingerprint)

    def entry_name(self, kind: str, index: int, extension: str) -> str:
        kind = capture_kind(kind)
        if kind == SNAPSHOT:
            extension = SNAPSHOT_EXTENSION
        return f"{kind}{int(index)}.{extension.lstrip('.')}"

    def entry_index(self, kind: str, path: Path) -> int | None:
        match = _entry_re(capture_kind(kind)).match(path.name)
        if match is None:
            return None
        return int(match.group(1))

    def collect_files(self, kind: str, fingerprint: int) -> list[Path]:
        folder = self.folder(kind, fingerprint)
        if not folder.is_dir():
            return []
        indexed: list[tuple[int, str, Path]] = []
        for path in folder.iterdir():
            if path.name.startswith(".") or not path.is_file():
                continue
            index = self.entry_index(kind, path)
            if index is None:
                continue
            indexed.append((index, path.name, path))
        indexed.sort(key=lambda item: (item[0], item[1]))
        return [path for _index, _name, path in indexed]

    def fingerprints(self, kind: str) -> list[int]:
        base = self.kind_dir(kind)
        if not base.is_dir():
            return []
        found = [int(p.name, 16) for p in base.iterdir() if p.is_dir() and _FINGERPRINT_RE.match(p.name)]
        return sorted(found)
