from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from capture_history.config import load_history_config
from capture_history.core.errors import CaptureHistoryError
from capture_history.core.hashing import fingerprint_file, format_fingerprint, normalize_fingerprint, sha256_bytes
from capture_history.core.logging import JsonlLogger
from capture_history.history.captures import CAPTURE_KINDS, SCREENSHOT
from capture_history.imaging.codec import CaptureCodec, IMAGE_FORMATS, format_for_extension, normalize_format
from capture_history.imaging.color import quantize_image
from capture_history.storage.capture_store import CaptureStore


def _emit(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True))


def _store(args: argparse.Namespace) -> CaptureStore:
    cfg = load_history_config(args.config)
    root = Path(args.root).expanduser() if args.root else cfg.storage_root
    logger = JsonlLogger.from_config(cfg.raw) if cfg.logging_enabled and not args.root else None
    codec = CaptureCodec(image_format=cfg.screenshot_format, max_bytes=cfg.max_buffer_bytes)
    return CaptureStore(root, codec=codec, fsync=cfg.fsync, logger=logger)


def cmd_list(args: argparse.Namespace) -> int:
    store = _store(args)
    if args.fingerprint is None:
        rows = []
        for fp in store.fingerprints(args.kind):
            rows.append({"fingerprint": format_fingerprint(fp), "count": len(store.entries(fp, args.kind))})
        _emit({"ok": True, "kind": args.kind, "fingerprints": rows})
        return 0
    fingerprint = normalize_fingerprint(args.fingerprint)
    entries = []
    for path in store.entries(fingerprint, args.kind):
        data = path.read_bytes()
        entries.append(
            {
                "index": store.layout.entry_index(args.kind, path),
                "name": path.name,
                "bytes": len(data),
                "sha256": sha256_bytes(data),
            }
        )
    _emit({"ok": True, "kind": args.kind, "fingerprint": format_fingerprint(fingerprint), "entries": entries})
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    store = _store(args)
    fingerprint = normalize_fingerprint(args.fingerprint)
    paths = store.entries(fingerprint, SCREENSHOT)
    match = [p for p in paths if store.layout.entry_index(SCREENSHOT, p) == args.index]
    if not match:
        _emit({"ok": False, "error": f"no screenshot {args.index} for {format_fingerprint(fingerprint)}"})
        return 1
    out = Path(args.out).expanduser()
    image_format = normalize_format(args.format) if args.format else format_for_extension(out.suffix)
    image = store.codec.decode(match[0].read_bytes())
    if args.quantize:
        image = quantize_image(image)
    exporter = CaptureCodec(image_format=image_format)
    pixels = image.convert("RGBA").tobytes()
    encoded = exporter.encode_pixels(pixels, image.width, image.height)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(encoded.data)
    _emit({"ok": True, "out": str(out), "format": image_format, "width": encoded.width, "height": encoded.height})
    return 0


def cmd_purge(args: argparse.Namespace) -> int:
    store = _store(args)
    fingerprint = normalize_fingerprint(args.fingerprint)
    removed = store.purge(fingerprint, args.kind)
    _emit({"ok": True, "kind": args.kind, "fingerprint": format_fingerprint(fingerprint), "removed": removed})
    return 0


def cmd_fingerprint(args: argparse.Namespace) -> int:
    fingerprint = fingerprint_file(args.path)
    _emit({"ok": True, "path": str(args.path), "fingerprint": format_fingerprint(fingerprint)})
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="capture-history")
    parser.add_argument("--config", default="config/capture_history.yaml")
    parser.add_argument("--root", default="", help="override storage.root_dir")
    sub = parser.add_subparsers(dest="command", required=True)

    list_cmd = sub.add_parser("list")
    list_cmd.add_argument("--fingerprint", default=None)
    list_cmd.add_argument("--kind", choices=CAPTURE_KINDS, default=SCREENSHOT)
    list_cmd.set_defaults(func=cmd_list)

    export = sub.add_parser("export")
    export.add_argument("--fingerprint", required=True)
    export.add_argument("--index", type=int, required=True)
    export.add_argument("--out", required=True)
    export.add_argument("--format", choices=sorted(IMAGE_FORMATS), default="")
    export.add_argument("--quantize", action="store_true", help="reduce to 4-bit hardware colors")
    export.set_defaults(func=cmd_export)

    purge = sub.add_parser("purge")
    purge.add_argument("--fingerprint", required=True)
    purge.add_argument("--kind", choices=CAPTURE_KINDS, default=SCREENSHOT)
    purge.set_defaults(func=cmd_purge)

    fingerprint = sub.add_parser("fingerprint")
    fingerprint.add_argument("path")
    fingerprint.set_defaults(func=cmd_fingerprint)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return int(args.func(args))
    except (CaptureHistoryError, OSError, ValueError) as exc:
        print(json.dumps({"ok": False, "error": str(exc)}, sort_keys=True), file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
