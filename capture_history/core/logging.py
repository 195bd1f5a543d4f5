"""Structured JSONL event logging.

- One JSON object per line with stable key ordering.
- Archive-only rotation: a full log file is renamed into logs/archive/.
- Logging failures never propagate into capture or storage callers.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _safe_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return int(default)


@dataclass(frozen=True)
class JsonlLoggerConfig:
    path: Path
    rotate_max_bytes: int


class JsonlLogger:
    def __init__(self, cfg: JsonlLoggerConfig) -> None:
        self._cfg = cfg
        self._cfg.path.parent.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_config(cls, config: dict[str, Any], *, name: str = "capture_history") -> "JsonlLogger":
        logging_cfg = config.get("logging", {}) if isinstance(config, dict) else {}
        logging_cfg = logging_cfg if isinstance(logging_cfg, dict) else {}
        storage = config.get("storage", {}) if isinstance(config, dict) else {}
        storage = storage if isinstance(storage, dict) else {}
        raw_path = logging_cfg.get("path")
        if raw_path:
            path = Path(str(raw_path)).expanduser()
        else:
            root = Path(str(storage.get("root_dir", "~/.capture_history"))).expanduser()
            path = root / "logs" / f"{name}.jsonl"
        rotate_max_bytes = _safe_int(logging_cfg.get("rotate_max_bytes", 5_000_000), 5_000_000)
        return cls(JsonlLoggerConfig(path=path, rotate_max_bytes=max(1024, rotate_max_bytes)))

    @property
    def path(self) -> str:
        return str(self._cfg.path)

    def _rotate_if_needed(self) -> None:
        try:
            if not self._cfg.path.exists():
                return
            size = self._cfg.path.stat().st_size
            if size < self._cfg.rotate_max_bytes:
                return
        except OSError:
            return
        try:
            archive_dir = self._cfg.path.parent / "archive"
            archive_dir.mkdir(parents=True, exist_ok=True)
            ts = _utc_now_iso().replace(":", "").replace("-", "").replace(".", "")
            archived = archive_dir / f"{self._cfg.path.stem}.{ts}{self._cfg.path.suffix}"
            if not archived.exists():
                self._cfg.path.replace(archived)
        except OSError:
            return

    def event(
        self,
        *,
        event: str,
        level: str = "info",
        ts_utc: str | None = None,
        **fields: Any,
    ) -> None:
        payload: dict[str, Any] = {
            "ts_utc": str(ts_utc or _utc_now_iso()),
            "level": str(level or "info"),
            "event": str(event or "event"),
        }
        for k, v in fields.items():
            if k in payload:
                continue
            payload[str(k)] = v
        line = json.dumps(payload, sort_keys=True, default=str)
        self._rotate_if_needed()
        try:
            with self._cfg.path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")
        except OSError:
            return


def log_event(logger: JsonlLogger | None, event: str, **fields: Any) -> None:
    """Emit an event when a logger is attached."""
    if logger is None:
        return
    logger.event(event=event, **fields)
