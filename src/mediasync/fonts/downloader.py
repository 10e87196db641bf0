"""Download the web fonts configured in Kirby's ``global.json``.

Fonts land in ``<public>/fonts`` next to a ``fonts.json`` index that the page
templates read to emit ``@font-face`` rules.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path, PurePosixPath
from typing import Any
from urllib.parse import unquote, urlsplit

import httpx

from mediasync.config import SyncConfig
from mediasync.logs import get_logger, log_success
from mediasync.media.fetch import RetryPolicy, SleepFn, request_with_retry
from mediasync.models import FontFile, FontReport
from mediasync.pipeline.errors import handle_build_error
from mediasync.utils import dump_json, plural, write_bytes_atomic, write_text_atomic

logger = get_logger(__name__)

FONTS_INDEX = "fonts.json"
PAUSE_BETWEEN_FONTS_S = 0.1


def font_filename(url: str) -> str | None:
    name = PurePosixPath(unquote(urlsplit(url).path)).name
    if not name or name in {".", "..", FONTS_INDEX} or "\\" in name:
        return None
    return name


def clean_fonts_dir(fonts_dir: Path) -> int:
    removed = 0
    for entry in fonts_dir.iterdir():
        if entry.is_file() and entry.name != FONTS_INDEX:
            entry.unlink()
            removed += 1
    return removed


async def _fetch_bytes(
    client: httpx.AsyncClient, url: str, policy: RetryPolicy, sleep: SleepFn
) -> bytes | None:
    outcome = await request_with_retry(client, url, policy, sleep=sleep)
    response = outcome.response
    if response is None:
        logger.warning("Failed to fetch %s: %s", url, outcome.error)
        return None
    if not 200 <= response.status_code < 300:
        logger.warning("Failed to fetch %s: HTTP %d", url, response.status_code)
        return None
    return response.content


class FontDownloader:
    def __init__(
        self,
        config: SyncConfig,
        *,
        client: httpx.AsyncClient,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.config = config
        self.client = client
        self.sleep = sleep
        # Fonts always go through the full GET; there is no manifest for them.
        self.policy = RetryPolicy(
            max_retries=config.max_retries,
            base_delay_ms=config.base_delay_ms,
            timeout_ms=config.timeout_ms,
            skip_unchanged=False,
        )

    async def _download_format(self, name: str, label: str, url: Any) -> str | None:
        if not isinstance(url, str) or not url:
            return None
        filename = font_filename(url)
        if filename is None:
            logger.warning("Ignoring %s for %s: no usable file name in %s", label, name, url)
            return None
        logger.info("Downloading %s: %s", label, name)
        data = await _fetch_bytes(self.client, url, self.policy, self.sleep)
        if data is None:
            logger.warning("Failed %s for %s", label, name)
            return None
        write_bytes_atomic(self.config.fonts_output_dir / filename, data)
        logger.info("Downloaded %s: %s (%.1fKB)", label, name, len(data) / 1024)
        return f"/{self.config.fonts_dir}/{filename}"

    async def run(self, report: FontReport) -> None:
        cfg = self.config
        fonts_dir = cfg.fonts_output_dir
        fonts_dir.mkdir(parents=True, exist_ok=True)
        removed = clean_fonts_dir(fonts_dir)
        logger.info("Cleaned %s from %s", plural(removed, "old font file"), fonts_dir)

        index_path = fonts_dir / FONTS_INDEX
        report.metadata_path = index_path
        global_url = f"{cfg.kirby_url}/global.json"
        logger.info("Fetching font data from %s", global_url)
        payload = await _fetch_bytes(self.client, global_url, self.policy, self.sleep)
        if payload is None:
            raise RuntimeError(f"could not load {global_url}")
        global_data = json.loads(payload.decode("utf-8"))
        fonts = global_data.get("font") if isinstance(global_data, dict) else None

        if not isinstance(fonts, list) or not fonts:
            write_text_atomic(index_path, dump_json({"fonts": []}))
            logger.info("No fonts found in configuration")
            return

        logger.info("Found %s to download", plural(len(fonts), "font"))
        for position, font in enumerate(fonts):
            if not isinstance(font, dict):
                continue
            name = str(font.get("name") or f"font-{position + 1}")
            woff = await self._download_format(name, "WOFF", font.get("url1"))
            woff2 = await self._download_format(name, "WOFF2", font.get("url2"))
            if woff or woff2:
                report.fonts.append(FontFile(name=name, woff=woff, woff2=woff2))
            else:
                logger.warning("Skipping %s - no valid font files downloaded", name)
                report.skipped.append(name)
            if position < len(fonts) - 1:
                await self.sleep(PAUSE_BETWEEN_FONTS_S)

        write_text_atomic(
            index_path, dump_json({"fonts": [item.as_dict() for item in report.fonts]})
        )
        log_success(logger, "Successfully downloaded %s", plural(len(report.fonts), "font"))
        if report.skipped:
            logger.warning(
                "Skipped %s due to download failures", plural(len(report.skipped), "font")
            )


async def download_fonts(
    config: SyncConfig,
    *,
    client: httpx.AsyncClient | None = None,
    sleep: SleepFn = asyncio.sleep,
) -> FontReport:
    report = FontReport()
    if not config.kirby_url:
        logger.warning("KIRBY_URL is not defined. Skipping font download.")
        return report
    try:
        if client is not None:
            await FontDownloader(config, client=client, sleep=sleep).run(report)
        else:
            async with config.http_client() as own_client:
                await FontDownloader(config, client=own_client, sleep=sleep).run(report)
    except Exception as exc:
        report.error = f"{type(exc).__name__}: {exc}"
        if not handle_build_error(logger, exc, hosted=config.hosted):
            raise
    return report


def run_font_download(
    config: SyncConfig,
    *,
    client: httpx.AsyncClient | None = None,
    sleep: SleepFn = asyncio.sleep,
) -> FontReport:
    return asyncio.run(download_fonts(config, client=client, sleep=sleep))
