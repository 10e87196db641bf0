from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Protocol

from mediasync.logs import get_logger
from mediasync.models import CacheEntry
from mediasync.utils import dump_json, write_text_atomic

logger = get_logger(__name__)

MANIFEST_VERSION = 1


class ManifestStore(Protocol):
    def load(self) -> dict[str, CacheEntry]: ...

    def save(self, upserts: Mapping[str, CacheEntry], removals: Iterable[str]) -> bool: ...


class JsonManifestStore:
    """Cache validators for downloaded media, kept outside the published site."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._entries: dict[str, CacheEntry] = {}

    @property
    def entries(self) -> dict[str, CacheEntry]:
        return dict(self._entries)

    def load(self) -> dict[str, CacheEntry]:
        self._entries = {}
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as exc:
            logger.warning("Ignoring unreadable cache manifest %s: %s", self.path, exc)
            return {}
        raw_entries = payload.get("entries") if isinstance(payload, dict) else None
        if not isinstance(raw_entries, dict):
            logger.warning("Ignoring cache manifest with unexpected shape: %s", self.path)
            return {}
        for key, item in raw_entries.items():
            entry = CacheEntry.from_dict(item)
            if not isinstance(key, str) or entry is None:
                continue
            self._entries[key] = entry
        return dict(self._entries)

    def save(self, upserts: Mapping[str, CacheEntry], removals: Iterable[str]) -> bool:
        changed = False
        for key, entry in upserts.items():
            if self._entries.get(key) != entry:
                self._entries[key] = entry
                changed = True
        for key in removals:
            if self._entries.pop(key, None) is not None:
                changed = True
        if not changed:
            return False
        payload = {
            "version": MANIFEST_VERSION,
            "entries": {
                key: self._entries[key].as_dict() for key in sorted(self._entries)
            },
        }
        write_text_atomic(self.path, dump_json(payload))
        return True
