from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from capture_history.core.errors import ConfigError, UnsupportedFormat
from capture_history.imaging.codec import normalize_format

DEFAULT_CONFIG_PATH = Path("config/capture_history.yaml")


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name, {})
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{name}: expected a mapping, got {type(value).__name__}")
    return value


def _int(section: dict[str, Any], key: str, default: int, *, path: str) -> int:
    value = section.get(key, default)
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{path}.{key}: expected an integer, got {value!r}") from exc


@dataclass(frozen=True)
class HistoryConfig:
    raw: dict[str, Any]

    @property
    def storage_root(self) -> Path:
        return Path(str(_section(self.raw, "storage").get("root_dir", "~/.capture_history"))).expanduser()

    @property
    def fsync(self) -> bool:
        return bool(_section(self.raw, "storage").get("fsync", True))

    @property
    def auto_capacity(self) -> int:
        value = _int(_section(self.raw, "history"), "auto_capacity", 32, path="history")
        if value < 1:
            raise ConfigError(f"history.auto_capacity must be positive, got {value}")
        return value

    @property
    def user_capacity(self) -> int | None:
        section = _section(self.raw, "history")
        if section.get("user_capacity") is None:
            return None
        value = _int(section, "user_capacity", 0, path="history")
        if value < 1:
            raise ConfigError(f"history.user_capacity must be positive or null, got {value}")
        return value

    @property
    def thin_counter_start(self) -> int:
        return max(0, _int(_section(self.raw, "history"), "thin_counter_start", 0, path="history"))

    @property
    def screenshot_format(self) -> str:
        value = _section(self.raw, "screenshots").get("format", "png")
        try:
            return normalize_format(str(value))
        except UnsupportedFormat as exc:
            raise ConfigError(f"screenshots.format: {exc}") from exc

    @property
    def flip_vertical(self) -> bool:
        return bool(_section(self.raw, "screenshots").get("flip_vertical", False))

    @property
    def png_compress_level(self) -> int:
        value = _int(_section(self.raw, "screenshots"), "png_compress_level", 3, path="screenshots")
        return max(0, min(9, value))

    @property
    def jpeg_quality(self) -> int:
        value = _int(_section(self.raw, "screenshots"), "jpeg_quality", 90, path="screenshots")
        return max(1, min(95, value))

    @property
    def persist_snapshots(self) -> bool:
        return bool(_section(self.raw, "snapshots").get("persist", True))

    @property
    def thumbnail_dx(self) -> int:
        return max(1, _int(_section(self.raw, "snapshots"), "thumbnail_dx", 2, path="snapshots"))

    @property
    def thumbnail_dy(self) -> int:
        return max(1, _int(_section(self.raw, "snapshots"), "thumbnail_dy", 1, path="snapshots"))

    @property
    def max_buffer_bytes(self) -> int:
        return max(0, _int(_section(self.raw, "buffers"), "max_bytes", 256 * 1024 * 1024, path="buffers"))

    @property
    def logging_enabled(self) -> bool:
        return bool(_section(self.raw, "logging").get("enabled", True))


def load_history_config(path: str | Path | None = None) -> HistoryConfig:
    cfg_path = Path(path).expanduser() if path else DEFAULT_CONFIG_PATH
    payload: dict[str, Any] = {}
    if cfg_path.exists():
        try:
            loaded = yaml.safe_load(cfg_path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ConfigError(f"{cfg_path}: invalid YAML: {exc}") from exc
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"{cfg_path}: expected a mapping at the top level")
        payload = loaded
    return HistoryConfig(raw=payload)
