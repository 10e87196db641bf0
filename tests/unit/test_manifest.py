from __future__ import annotations

import json
from pathlib import Path

from mediasync.media.manifest import JsonManifestStore
from mediasync.models import CacheEntry


def _entry(etag: str | None = '"abc"', checked_at: str = "2026-01-01T00:00:00+00:00") -> CacheEntry:
    return CacheEntry(
        etag=etag,
        last_modified="Wed, 21 Oct 2025 07:28:00 GMT",
        size=12,
        downloaded_at="2026-01-01T00:00:00+00:00",
        checked_at=checked_at,
    )


def test_load_missing_manifest_returns_empty(tmp_path: Path) -> None:
    store = JsonManifestStore(tmp_path / "cache" / "manifest.json")
    assert store.load() == {}


def test_load_corrupt_manifest_returns_empty(tmp_path: Path) -> None:
    path = tmp_path / "manifest.json"
    path.write_text("{oops", encoding="utf-8")
    assert JsonManifestStore(path).load() == {}

    path.write_text(json.dumps(["not", "a", "mapping"]), encoding="utf-8")
    assert JsonManifestStore(path).load() == {}


def test_load_ignores_malformed_entries(tmp_path: Path) -> None:
    path = tmp_path / "manifest.json"
    path.write_text(
        json.dumps(
            {
                "version": 1,
                "entries": {
                    "media/a.jpg": _entry().as_dict(),
                    "media/b.jpg": {"etag": "x"},
                    "media/c.jpg": "nope",
                },
            }
        ),
        encoding="utf-8",
    )

    loaded = JsonManifestStore(path).load()

    assert list(loaded) == ["media/a.jpg"]
    assert loaded["media/a.jpg"] == _entry()


def test_save_creates_parents_and_round_trips(tmp_path: Path) -> None:
    path = tmp_path / "deep" / "cache" / "manifest.json"
    store = JsonManifestStore(path)
    store.load()

    changed = store.save({"media/a.jpg": _entry()}, set())

    assert changed is True
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["version"] == 1
    assert payload["entries"]["media/a.jpg"]["etag"] == '"abc"'
    assert JsonManifestStore(path).load() == {"media/a.jpg": _entry()}


def test_save_removes_failed_keys(tmp_path: Path) -> None:
    path = tmp_path / "manifest.json"
    store = JsonManifestStore(path)
    store.load()
    store.save({"media/a.jpg": _entry(), "media/b.jpg": _entry(etag='"b"')}, set())

    changed = store.save({}, {"media/b.jpg", "media/never-seen.jpg"})

    assert changed is True
    assert set(JsonManifestStore(path).load()) == {"media/a.jpg"}


def test_save_skips_write_when_nothing_changed(tmp_path: Path) -> None:
    path = tmp_path / "manifest.json"
    store = JsonManifestStore(path)
    store.load()

    assert store.save({}, {"media/unknown.jpg"}) is False
    assert not path.exists()

    store.save({"media/a.jpg": _entry()}, set())
    before = path.read_bytes()
    assert store.save({"media/a.jpg": _entry()}, set()) is False
    assert path.read_bytes() == before
