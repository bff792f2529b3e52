"""Tests for the JSON/bytes cache helpers."""

import json
from datetime import datetime, timedelta, timezone

from pogo_icons.cache.io import (
    atomic_write_bytes,
    atomic_write_json,
    cache_age,
    read_cached,
    read_json,
    write_cached,
)


class TestAtomicWrites:
    def test_bytes_creates_parents(self, tmp_path):
        path = tmp_path / "a" / "b" / "pm1.icon.png"
        atomic_write_bytes(str(path), b"data")
        assert path.read_bytes() == b"data"
        assert [p.name for p in path.parent.iterdir()] == ["pm1.icon.png"]

    def test_json_roundtrip_list(self, tmp_path):
        path = str(tmp_path / "map.json")
        atomic_write_json(path, [{"name": "Flabébé"}])
        assert read_json(path) == [{"name": "Flabébé"}]

    def test_read_json_invalid(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")
        assert read_json(str(path)) is None
        assert read_json(str(tmp_path / "missing.json")) is None


def _envelope(path, fetched_at, data):
    path.write_text(
        json.dumps({"_meta": {"fetched_at": fetched_at}, "data": data}), encoding="utf-8"
    )


class TestCachedPayload:
    """Upstream payloads are served from disk only while inside the TTL."""

    def test_fresh_payload_returned(self, tmp_path):
        path = str(tmp_path / "raw.json")
        write_cached(path, "http://x", [1, 2], etag='"etag"', status=200)
        assert read_cached(path, 1) == [1, 2]

    def test_expired_payload_ignored(self, tmp_path):
        path = tmp_path / "raw.json"
        old = (datetime.now(timezone.utc) - timedelta(days=3)).isoformat()
        _envelope(path, old, [1])
        assert read_cached(str(path), 1) is None
        assert read_cached(str(path), 7) == [1]

    def test_naive_and_zulu_timestamps(self, tmp_path):
        path = tmp_path / "raw.json"
        now = datetime.now(timezone.utc)
        _envelope(path, now.strftime("%Y-%m-%dT%H:%M:%SZ"), [1])
        assert read_cached(str(path), 1) == [1]
        _envelope(path, now.replace(tzinfo=None).isoformat(), [2])
        assert read_cached(str(path), 1) == [2]

    def test_unwrapped_or_missing_file(self, tmp_path):
        path = tmp_path / "raw.json"
        path.write_text("[]", encoding="utf-8")
        assert read_cached(str(path), 1) is None
        assert read_cached(str(tmp_path / "missing.json"), 1) is None

    def test_unparseable_timestamp(self, tmp_path):
        path = tmp_path / "raw.json"
        _envelope(path, "yesterday", [1])
        assert read_cached(str(path), 1) is None
        assert cache_age({"_meta": {"fetched_at": 5}}) is None

    def test_metadata_written(self, tmp_path):
        path = str(tmp_path / "raw.json")
        write_cached(path, "http://x", [1])
        stored = read_json(path)
        assert stored["data"] == [1]
        assert set(stored["_meta"]) == {"fetched_at", "url"}
        write_cached(path, "http://x", [1], etag='"e"', status=200)
        assert read_json(path)["_meta"]["etag"] == '"e"'
        assert read_json(path)["_meta"]["status"] == 200
        assert cache_age(read_json(path)) < timedelta(minutes=1)
