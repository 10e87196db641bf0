from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


@dataclass(slots=True)
class AssetRef:
    cache_key: str
    remote_url: str
    download_url: str
    file_path: Path
    public_path: str
    public_path_with_query: str


@dataclass(slots=True)
class CacheEntry:
    etag: str | None
    last_modified: str | None
    size: int
    downloaded_at: str
    checked_at: str

    def as_dict(self) -> dict[str, str | int | None]:
        return {
            "etag": self.etag,
            "last_modified": self.last_modified,
            "size": self.size,
            "downloaded_at": self.downloaded_at,
            "checked_at": self.checked_at,
        }

    @classmethod
    def from_dict(cls, item: object) -> CacheEntry | None:
        if not isinstance(item, dict):
            return None
        downloaded_at = item.get("downloaded_at")
        checked_at = item.get("checked_at")
        if not isinstance(downloaded_at, str) or not isinstance(checked_at, str):
            return None
        etag = item.get("etag")
        last_modified = item.get("last_modified")
        size = item.get("size")
        return cls(
            etag=etag if isinstance(etag, str) else None,
            last_modified=last_modified if isinstance(last_modified, str) else None,
            size=size if isinstance(size, int) and not isinstance(size, bool) else 0,
            downloaded_at=downloaded_at,
            checked_at=checked_at,
        )


@dataclass(slots=True)
class ContentDocument:
    path: Path
    data: Any


class DownloadStatus(str, Enum):
    DOWNLOADED = "downloaded"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(slots=True)
class FetchResult:
    asset: AssetRef
    status: DownloadStatus
    entry: CacheEntry | None = None
    attempts: int = 0
    error: str | None = None


@dataclass(slots=True)
class ScanResult:
    assets: dict[str, AssetRef] = field(default_factory=dict)
    documents: list[ContentDocument] = field(default_factory=list)
    files_scanned: int = 0
    skipped_files: list[Path] = field(default_factory=list)


@dataclass(slots=True)
class DownloadSummary:
    downloaded: int = 0
    skipped: int = 0
    failed: int = 0
    upserts: dict[str, CacheEntry] = field(default_factory=dict)
    removals: set[str] = field(default_factory=set)
    failed_urls: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.downloaded + self.skipped + self.failed


class SyncState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    RESOLVING_CACHE = "resolving-cache"
    DOWNLOADING = "downloading"
    REWRITING = "rewriting"
    ABORTED = "aborted"
    DONE = "done"


@dataclass(slots=True)
class SyncReport:
    state: SyncState = SyncState.IDLE
    transitions: list[SyncState] = field(default_factory=lambda: [SyncState.IDLE])
    files_scanned: int = 0
    assets_found: int = 0
    downloaded: int = 0
    skipped: int = 0
    failed: int = 0
    failed_urls: list[str] = field(default_factory=list)
    rewritten_files: list[Path] = field(default_factory=list)
    manifest_changed: bool = False
    error: str | None = None

    def move_to(self, state: SyncState) -> None:
        self.state = state
        self.transitions.append(state)


@dataclass(slots=True)
class FontFile:
    name: str
    woff: str | None
    woff2: str | None

    def as_dict(self) -> dict[str, str | None]:
        return {"name": self.name, "woff": self.woff, "woff2": self.woff2}


@dataclass(slots=True)
class FontReport:
    fonts: list[FontFile] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    metadata_path: Path | None = None
    error: str | None = None
