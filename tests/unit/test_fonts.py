from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from pathlib import Path

import httpx
import pytest

from mediasync.config import SyncConfig
from mediasync.fonts.downloader import download_fonts, font_filename
from mediasync.models import FontReport

KIRBY = "https://cms.example"


async def _no_sleep(seconds: float) -> None:
    return None


def _config(tmp_path: Path, **overrides: object) -> SyncConfig:
    return SyncConfig(
        kirby_url=KIRBY,
        project_root=tmp_path,
        cache_dir=tmp_path / "cache",
        max_retries=1,
        base_delay_ms=1,
        **overrides,  # type: ignore[arg-type]
    )


def _run(config: SyncConfig, handler: Callable[[httpx.Request], httpx.Response]) -> FontReport:
    async def go() -> FontReport:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await download_fonts(config, client=client, sleep=_no_sleep)

    return asyncio.run(go())


def test_font_filename_uses_basename_only() -> None:
    assert font_filename(f"{KIRBY}/media/site/abc/inter.woff2") == "inter.woff2"
    assert font_filename(f"{KIRBY}/media/site/My%20Font.woff") == "My Font.woff"
    assert font_filename(f"{KIRBY}/media/site/..") is None
    assert font_filename(f"{KIRBY}/media/site/fonts.json") is None
    assert font_filename(f"{KIRBY}/") is None


def test_download_fonts_writes_files_and_index(tmp_path: Path) -> None:
    cfg = _config(tmp_path)
    fonts_dir = cfg.fonts_output_dir
    fonts_dir.mkdir(parents=True)
    (fonts_dir / "stale.woff").write_bytes(b"old")
    (fonts_dir / "fonts.json").write_text('{"fonts": []}', encoding="utf-8")

    global_json = {
        "font": [
            {"name": "Inter", "url1": f"{KIRBY}/media/site/inter.woff", "url2": f"{KIRBY}/media/site/inter.woff2"},
            {"name": "Mono", "url1": "", "url2": f"{KIRBY}/media/site/mono.woff2"},
            {"name": "Broken", "url1": f"{KIRBY}/media/site/broken.woff"},
        ]
    }

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/global.json":
            return httpx.Response(200, json=global_json)
        if path.endswith("broken.woff"):
            return httpx.Response(404)
        return httpx.Response(200, content=path.encode("utf-8"))

    report = _run(cfg, handler)

    assert report.error is None
    assert [font.name for font in report.fonts] == ["Inter", "Mono"]
    assert report.skipped == ["Broken"]
    assert not (fonts_dir / "stale.woff").exists()
    assert (fonts_dir / "inter.woff2").read_bytes() == b"/media/site/inter.woff2"
    index = json.loads((fonts_dir / "fonts.json").read_text(encoding="utf-8"))
    assert index == {
        "fonts": [
            {"name": "Inter", "woff": "/fonts/inter.woff", "woff2": "/fonts/inter.woff2"},
            {"name": "Mono", "woff": None, "woff2": "/fonts/mono.woff2"},
        ]
    }


def test_download_fonts_without_fonts_writes_empty_index(tmp_path: Path) -> None:
    cfg = _config(tmp_path)

    report = _run(cfg, lambda request: httpx.Response(200, json={"title": "Site"}))

    assert report.fonts == []
    index = json.loads((cfg.fonts_output_dir / "fonts.json").read_text(encoding="utf-8"))
    assert index == {"fonts": []}


def test_download_fonts_skips_without_kirby_url(tmp_path: Path) -> None:
    cfg = SyncConfig(kirby_url=None, project_root=tmp_path)

    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    report = _run(cfg, handler)

    assert report.fonts == []
    assert not cfg.fonts_output_dir.exists()


def test_download_fonts_raises_locally_when_global_json_fails(tmp_path: Path) -> None:
    cfg = _config(tmp_path, hosted=False)

    with pytest.raises(RuntimeError, match="global.json"):
        _run(cfg, lambda request: httpx.Response(500))


def test_download_fonts_continues_on_hosted_builds(tmp_path: Path) -> None:
    cfg = _config(tmp_path, hosted=True)

    report = _run(cfg, lambda request: httpx.Response(500))

    assert report.error is not None
    assert "global.json" in report.error
