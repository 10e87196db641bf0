from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence

import httpx

from mediasync.media.fetch import RetryPolicy, SleepFn, fetch_asset
from mediasync.models import AssetRef, CacheEntry, DownloadStatus, DownloadSummary, FetchResult


def _record(summary: DownloadSummary, result: FetchResult) -> None:
    key = result.asset.cache_key
    if result.status is DownloadStatus.FAILED or result.entry is None:
        summary.failed += 1
        summary.removals.add(key)
        summary.failed_urls.append(result.asset.download_url)
        return
    if result.status is DownloadStatus.SKIPPED:
        summary.skipped += 1
    else:
        summary.downloaded += 1
    summary.upserts[key] = result.entry


async def download_assets(
    assets: Sequence[AssetRef],
    cached_entries: Mapping[str, CacheEntry],
    policy: RetryPolicy,
    *,
    client: httpx.AsyncClient,
    concurrency: int,
    sleep: SleepFn = asyncio.sleep,
) -> DownloadSummary:
    """Fetch every asset once using at most ``concurrency`` workers."""
    summary = DownloadSummary()
    if not assets:
        return summary

    pending = iter(assets)

    async def worker() -> None:
        # The iterator is shared, so each asset is claimed by exactly one worker.
        for asset in pending:
            result = await fetch_asset(
                client,
                asset,
                cached_entries.get(asset.cache_key),
                policy,
                sleep=sleep,
            )
            _record(summary, result)

    worker_count = min(max(1, concurrency), len(assets))
    tasks = [asyncio.create_task(worker()) for _ in range(worker_count)]
    try:
        await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
    return summary
