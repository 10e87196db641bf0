"""Build-time caching of Kirby media for the Netlify image CDN.

The hook downloads every media file referenced by the synced JSON content into
``<public>/<media_dir>`` and, when all downloads succeed, rewrites the JSON so
pages reference the local copies. A single failed asset leaves every document
untouched.
"""

from __future__ import annotations

import asyncio

import httpx

from mediasync.config import SyncConfig
from mediasync.logs import get_logger, log_success
from mediasync.media.fetch import SleepFn
from mediasync.media.manifest import JsonManifestStore, ManifestStore
from mediasync.media.rewrite import rewrite_documents
from mediasync.media.scan import scan_content
from mediasync.media.scheduler import download_assets
from mediasync.models import SyncReport, SyncState
from mediasync.pipeline.errors import handle_build_error
from mediasync.utils import plural

logger = get_logger(__name__)


class HybridImageSync:
    def __init__(
        self,
        config: SyncConfig,
        *,
        store: ManifestStore | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.config = config
        self._store = store
        self._client = client
        self._sleep = sleep
        self.report = SyncReport()

    def _move(self, state: SyncState) -> None:
        logger.debug("hybrid images: %s -> %s", self.report.state.value, state.value)
        self.report.move_to(state)

    async def run(self) -> SyncReport:
        cfg = self.config
        if not cfg.enabled:
            logger.info("Hybrid images disabled via configuration")
            self._move(SyncState.DONE)
            return self.report
        if not cfg.kirby_url:
            logger.warning("KIRBY_URL is not defined. Skipping hybrid image caching.")
            self._move(SyncState.DONE)
            return self.report

        try:
            await self._run()
        except Exception as exc:
            self.report.error = f"{type(exc).__name__}: {exc}"
            if not handle_build_error(logger, exc, hosted=cfg.hosted):
                raise
            self._move(SyncState.ABORTED)
        return self.report

    async def _run(self) -> None:
        cfg = self.config
        context = cfg.media_context()
        self._move(SyncState.SCANNING)

        if not cfg.content_path.is_dir():
            logger.info("Content directory not found at %s. Nothing to process.", cfg.content_path)
            self._move(SyncState.DONE)
            return

        scan = scan_content(cfg.content_path, context)
        self.report.files_scanned = scan.files_scanned
        self.report.assets_found = len(scan.assets)
        if not scan.files_scanned:
            logger.info("No Kirby JSON cache files found. Skipping hybrid image caching.")
            self._move(SyncState.DONE)
            return
        logger.info("Scanned %s for Kirby media references", plural(scan.files_scanned, "JSON file"))
        if not scan.assets:
            logger.info("No Kirby media URLs detected in content. Skipping downloads.")
            self._move(SyncState.DONE)
            return

        self._move(SyncState.RESOLVING_CACHE)
        store = self._store or JsonManifestStore(cfg.manifest_location())
        cached = store.load()
        logger.info(
            "Preparing to cache %s locally (%d known from previous builds)",
            plural(len(scan.assets), "media asset"),
            sum(1 for key in scan.assets if key in cached),
        )

        self._move(SyncState.DOWNLOADING)
        cfg.media_output_dir.mkdir(parents=True, exist_ok=True)
        assets = list(scan.assets.values())
        if self._client is not None:
            summary = await download_assets(
                assets,
                cached,
                cfg.retry_policy(),
                client=self._client,
                concurrency=cfg.concurrency,
                sleep=self._sleep,
            )
        else:
            async with cfg.http_client() as client:
                summary = await download_assets(
                    assets,
                    cached,
                    cfg.retry_policy(),
                    client=client,
                    concurrency=cfg.concurrency,
                    sleep=self._sleep,
                )
        self.report.downloaded = summary.downloaded
        self.report.skipped = summary.skipped
        self.report.failed = summary.failed
        self.report.failed_urls = sorted(summary.failed_urls)
        self.report.manifest_changed = store.save(summary.upserts, summary.removals)

        if summary.downloaded:
            logger.info(
                "Cached %s to /%s", plural(summary.downloaded, "media asset"), cfg.media_dir
            )
        if summary.skipped:
            logger.info("%s unchanged since the last build", plural(summary.skipped, "media asset"))

        if summary.failed:
            logger.warning(
                "Skipped URL rewriting because %s failed to cache",
                plural(summary.failed, "asset"),
            )
            self._move(SyncState.ABORTED)
            return

        if cfg.rewrite_content:
            self._move(SyncState.REWRITING)
            written = rewrite_documents(scan.documents, context)
            self.report.rewritten_files = written
            log_success(logger, "Rewrote media URLs in %s", plural(len(written), "JSON file"))

        self._move(SyncState.DONE)
        log_success(logger, "Hybrid image caching completed")


def run_hybrid_images(
    config: SyncConfig,
    *,
    store: ManifestStore | None = None,
    client: httpx.AsyncClient | None = None,
    sleep: SleepFn = asyncio.sleep,
) -> SyncReport:
    return asyncio.run(HybridImageSync(config, store=store, client=client, sleep=sleep).run())
