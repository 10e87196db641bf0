from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

import httpx

from mediasync.logs import get_logger, log_success
from mediasync.models import AssetRef, CacheEntry, DownloadStatus, FetchResult
from mediasync.utils import utc_now, write_bytes_atomic

logger = get_logger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    max_retries: int = 3
    base_delay_ms: int = 1000
    timeout_ms: int = 30000
    skip_unchanged: bool = True
    honor_retry_after: bool = True
    max_retry_after_s: float = 60.0

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000.0

    def delay_for(self, attempt: int) -> float:
        """Linear backoff: the n-th failed attempt waits n * base delay."""
        return self.base_delay_ms * attempt / 1000.0


@dataclass(slots=True)
class RetryOutcome:
    response: httpx.Response | None
    attempts: int
    error: str | None = None


def is_retriable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


def parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    raw = value.strip()
    if raw.isdigit():
        return float(raw)
    try:
        when = parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


def build_conditional_headers(entry: CacheEntry) -> dict[str, str]:
    headers: dict[str, str] = {}
    if entry.etag:
        headers["If-None-Match"] = entry.etag
    if entry.last_modified:
        headers["If-Modified-Since"] = entry.last_modified
    return headers


async def request_with_retry(
    client: httpx.AsyncClient,
    url: str,
    policy: RetryPolicy,
    *,
    headers: dict[str, str] | None = None,
    sleep: SleepFn = asyncio.sleep,
) -> RetryOutcome:
    """GET ``url`` until it returns a non-retriable response or attempts run out.

    Any response that is not 429/5xx is handed back to the caller, which
    decides whether it is a success. ``response`` is ``None`` only when every
    attempt failed with a retriable condition.
    """
    error: str | None = None
    for attempt in range(1, policy.max_attempts + 1):
        retry_after: float | None = None
        try:
            response = await asyncio.wait_for(
                client.get(url, headers=headers), timeout=policy.timeout_s
            )
        except asyncio.TimeoutError:
            error = f"timed out after {policy.timeout_ms}ms"
        except httpx.TimeoutException as exc:
            error = f"{type(exc).__name__}: {str(exc) or 'timed out'}"
        except httpx.TransportError as exc:
            error = f"{type(exc).__name__}: {exc}"
        else:
            if not is_retriable_status(response.status_code):
                return RetryOutcome(response=response, attempts=attempt)
            error = f"HTTP {response.status_code}"
            if response.status_code == 429 and policy.honor_retry_after:
                retry_after = parse_retry_after(response.headers.get("retry-after"))

        if attempt >= policy.max_attempts:
            break
        delay = policy.delay_for(attempt)
        if retry_after is not None:
            delay = max(delay, min(retry_after, policy.max_retry_after_s))
        logger.warning(
            "Attempt %d/%d for %s failed (%s); retrying in %.1fs",
            attempt,
            policy.max_attempts,
            url,
            error,
            delay,
        )
        await sleep(delay)

    return RetryOutcome(response=None, attempts=policy.max_attempts, error=error)


async def fetch_asset(
    client: httpx.AsyncClient,
    asset: AssetRef,
    cached: CacheEntry | None,
    policy: RetryPolicy,
    *,
    sleep: SleepFn = asyncio.sleep,
) -> FetchResult:
    conditional: dict[str, str] = {}
    if policy.skip_unchanged and cached is not None and asset.file_path.exists():
        conditional = build_conditional_headers(cached)

    outcome = await request_with_retry(
        client,
        asset.download_url,
        policy,
        headers=conditional or None,
        sleep=sleep,
    )
    response = outcome.response
    if response is None:
        logger.error(
            "Failed to cache %s after %d attempts: %s",
            asset.download_url,
            outcome.attempts,
            outcome.error,
        )
        return FetchResult(
            asset=asset,
            status=DownloadStatus.FAILED,
            attempts=outcome.attempts,
            error=outcome.error,
        )

    status = response.status_code
    if status == 304 and conditional and cached is not None:
        logger.debug("Unchanged %s", asset.public_path)
        return FetchResult(
            asset=asset,
            status=DownloadStatus.SKIPPED,
            entry=CacheEntry(
                etag=cached.etag,
                last_modified=cached.last_modified,
                size=cached.size,
                downloaded_at=cached.downloaded_at,
                checked_at=utc_now(),
            ),
            attempts=outcome.attempts,
        )

    if 200 <= status < 300:
        data = response.content
        write_bytes_atomic(asset.file_path, data)
        now = utc_now()
        log_success(logger, "Cached %s", asset.public_path)
        return FetchResult(
            asset=asset,
            status=DownloadStatus.DOWNLOADED,
            entry=CacheEntry(
                etag=response.headers.get("etag"),
                last_modified=response.headers.get("last-modified"),
                size=len(data),
                downloaded_at=now,
                checked_at=now,
            ),
            attempts=outcome.attempts,
        )

    error = f"HTTP {status}"
    logger.error("Failed to cache %s: %s", asset.download_url, error)
    return FetchResult(
        asset=asset,
        status=DownloadStatus.FAILED,
        attempts=outcome.attempts,
        error=error,
    )
