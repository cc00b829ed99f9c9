from __future__ import annotations

import hashlib
import sys
from pathlib import Path


def hash_text(value: str) -> str:
    return hashlib.sha1(value.encode("utf-8")).hexdigest()


def ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def write_text(path: Path, value: str) -> None:
    ensure_parent(path)
    path.write_text(value, encoding="utf-8")


def read_patch_text(path: Path) -> str:
    if str(path) == "-":
        return sys.stdin.buffer.read().decode("utf-8")
    # newline="" keeps CRLF content intact
    with path.open(encoding="utf-8", newline="") as handle:
        return handle.read()
