"""File-based cache and artifact helpers.

Provides:
- atomic JSON, text and binary writes (temp file + rename)
- tolerant JSON reads
- a ``{"_meta": ..., "data": ...}`` envelope for cached upstream payloads,
  expired by ``_meta.fetched_at`` age
"""

import json
import os
import tempfile
from datetime import datetime, timedelta, timezone
from typing import Any, Optional


def ensure_dir(path: str) -> None:
    """Create a directory (and parents) if missing."""
    if path:
        os.makedirs(path, exist_ok=True)


def read_json(path: str) -> Optional[Any]:
    """Read JSON from disk; return None if missing or invalid."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        return None


def atomic_write_bytes(path: str, data: bytes) -> None:
    """Atomically write ``data`` to ``path``.

    A crash mid-write leaves either the previous file or nothing, never a
    truncated file that a later skip-if-present check would accept.
    """
    ensure_dir(os.path.dirname(path))
    fd, tmp_path = tempfile.mkstemp(
        prefix=os.path.basename(path) + ".",
        suffix=".tmp",
        dir=os.path.dirname(path) or ".",
    )
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_path, path)
    finally:
        try:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
        except OSError:
            pass


def atomic_write_json(path: str, obj: Any) -> None:
    """Atomically write a JSON file (2-space indent, UTF-8, trailing newline)."""
    text = json.dumps(obj, ensure_ascii=False, indent=2) + "\n"
    atomic_write_bytes(path, text.encode("utf-8"))


def atomic_write_text(path: str, text: str) -> None:
    atomic_write_bytes(path, text.encode("utf-8"))


def cache_age(envelope: Any) -> Optional[timedelta]:
    """Age of a cache envelope by its ``_meta.fetched_at``; None if unreadable."""
    if not isinstance(envelope, dict):
        return None
    fetched_at = (envelope.get("_meta") or {}).get("fetched_at")
    if not isinstance(fetched_at, str):
        return None
    try:
        fetched = datetime.fromisoformat(fetched_at.replace("Z", "+00:00"))
    except ValueError:
        return None
    if fetched.tzinfo is None:
        fetched = fetched.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc) - fetched


def read_cached(path: str, ttl_days: float) -> Optional[Any]:
    """Return the cached payload at ``path`` if younger than ``ttl_days``."""
    envelope = read_json(path)
    age = cache_age(envelope)
    if age is None or age > timedelta(days=ttl_days):
        return None
    return envelope.get("data")


def write_cached(
    path: str,
    url: str,
    payload: Any,
    *,
    etag: Optional[str] = None,
    status: Optional[int] = None,
) -> None:
    """Store an unmodified upstream payload with its fetch metadata."""
    meta = {"fetched_at": datetime.now(timezone.utc).isoformat(), "url": url}
    if etag:
        meta["etag"] = etag
    if status is not None:
        meta["status"] = status
    atomic_write_json(path, {"_meta": meta, "data": payload})
