from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import httpx
from platformdirs import user_cache_dir

from mediasync.media.fetch import RetryPolicy
from mediasync.media.pathing import MediaContext
from mediasync.utils import is_within, project_key

DEFAULT_USER_AGENT = "mediasync/0.1 (+build)"


@dataclass(slots=True)
class SyncConfig:
    kirby_url: str | None
    project_root: Path = Path(".")
    public_dir: str = "public"
    content_dir: str = "content"
    media_dir: str = "media"
    fonts_dir: str = "fonts"
    concurrency: int = 4
    max_retries: int = 3
    base_delay_ms: int = 1000
    timeout_ms: int = 30000
    skip_unchanged: bool = True
    rewrite_content: bool = True
    enabled: bool = True
    cache_dir: Path = Path(user_cache_dir("mediasync"))
    manifest_path: Path | None = None
    hosted: bool = False
    user_agent: str = DEFAULT_USER_AGENT
    log_level: str = "info"

    def __post_init__(self) -> None:
        if self.kirby_url is not None:
            self.kirby_url = self.kirby_url.strip().rstrip("/") or None
        self.media_dir = self.media_dir.strip("/")
        if not self.media_dir:
            raise ValueError("media_dir must not be empty")
        if self.concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be > 0")

    @property
    def public_path(self) -> Path:
        return (self.project_root / self.public_dir).resolve()

    @property
    def content_path(self) -> Path:
        return self.public_path / self.content_dir

    @property
    def media_output_dir(self) -> Path:
        return self.public_path / self.media_dir

    @property
    def fonts_output_dir(self) -> Path:
        return self.public_path / self.fonts_dir

    @property
    def media_prefix(self) -> str:
        if not self.kirby_url:
            raise ValueError("kirby_url is not configured")
        return f"{self.kirby_url}/media/"

    def media_context(self) -> MediaContext:
        return MediaContext(
            media_prefix=self.media_prefix,
            media_dir=self.media_dir,
            media_output_dir=self.media_output_dir,
        )

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            base_delay_ms=self.base_delay_ms,
            timeout_ms=self.timeout_ms,
            skip_unchanged=self.skip_unchanged,
        )

    def http_client(self, transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
        # httpx defaults to 5s per phase; the per-attempt bound must be timeout_ms.
        return httpx.AsyncClient(
            follow_redirects=True,
            headers={"User-Agent": self.user_agent},
            timeout=httpx.Timeout(self.timeout_ms / 1000),
            transport=transport,
        )

    def manifest_location(self) -> Path:
        if self.manifest_path is not None:
            location = self.manifest_path
        else:
            location = self.cache_dir / "manifests" / f"{project_key(self.public_path)}.json"
        if is_within(location, self.public_path):
            raise ValueError(
                f"manifest path {location} is inside the public directory {self.public_path}"
            )
        return location
