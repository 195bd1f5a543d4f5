"""Medium fingerprints and content hashes."""

from __future__ import annotations

import hashlib
from pathlib import Path

FINGERPRINT_MASK = (1 << 64) - 1


def fingerprint_bytes(data: bytes) -> int:
    """Return the 64-bit fingerprint of a medium's content."""
    digest = hashlib.blake2b(data, digest_size=8)
    return int.from_bytes(digest.digest(), "big")


def fingerprint_file(path: str | Path) -> int:
    digest = hashlib.blake2b(digest_size=8)
    with open(path, "rb") as handle:
        for chunk in iter(lambda: handle.read(65536), b""):
            digest.update(chunk)
    return int.from_bytes(digest.digest(), "big")


def normalize_fingerprint(value: int | str) -> int:
    """Accept an int or a hex string and return an unsigned 64-bit fingerprint."""
    if isinstance(value, str):
        text = value.strip().lower()
        if text.startswith("0x"):
            text = text[2:]
        number = int(text, 16)
    else:
        number = int(value)
    if number < 0 or number > FINGERPRINT_MASK:
        raise ValueError(f"fingerprint out of 64-bit range: {value!r}")
    return number


def format_fingerprint(value: int) -> str:
    return f"{normalize_fingerprint(value):016x}"


def sha256_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()
