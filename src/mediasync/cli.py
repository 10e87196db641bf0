from __future__ import annotations

import os
from contextlib import suppress
from pathlib import Path

import typer

from mediasync.checks.netlify import check_cache_headers, validate_netlify_toml
from mediasync.config import SyncConfig
from mediasync.env import is_hosted_build, kirby_url_from_env, load_env_chain
from mediasync.fonts.downloader import run_font_download
from mediasync.logs import configure_logging
from mediasync.pipeline.hybrid_images import run_hybrid_images
from mediasync.report.builder import build_font_report, build_sync_report, write_report

app = typer.Typer(
    add_completion=False,
    help="Build hooks that cache Kirby media and fonts for a static site.",
    pretty_exceptions_show_locals=False,
)


def _env_or(default: str, *keys: str) -> str:
    for key in keys:
        value = os.getenv(key)
        if value:
            return value
    return default


def _int_env_or(default: int, *keys: str) -> int:
    for key in keys:
        value = os.getenv(key)
        if not value:
            continue
        with suppress(ValueError):
            return int(value)
    return default


def _bool_from_on_off(value: str) -> bool:
    return value.strip().lower() == "on"


def _build_config(
    *,
    project_root: str,
    kirby_url: str | None,
    public_dir: str | None,
    media_dir: str | None,
    concurrency: int | None = None,
    max_retries: int | None = None,
    base_delay_ms: int | None = None,
    timeout_ms: int | None = None,
    skip_unchanged: str | None = None,
    rewrite_content: str | None = None,
    enabled: str | None = None,
    cache_dir: str | None = None,
    manifest: str | None = None,
    log_level: str = "info",
) -> SyncConfig:
    root = Path(project_root).resolve()
    load_env_chain(root)
    manifest_raw = manifest or os.getenv("MEDIASYNC_MANIFEST")
    cache_raw = cache_dir or os.getenv("MEDIASYNC_CACHE_DIR")
    try:
        configure_logging(log_level)
        cfg = SyncConfig(
            kirby_url=kirby_url or kirby_url_from_env(),
            project_root=root,
            public_dir=public_dir or _env_or("public", "MEDIASYNC_PUBLIC_DIR"),
            media_dir=media_dir or _env_or("media", "MEDIASYNC_MEDIA_DIR"),
            concurrency=(
                concurrency
                if concurrency is not None
                else _int_env_or(4, "MEDIASYNC_CONCURRENCY")
            ),
            max_retries=(
                max_retries
                if max_retries is not None
                else _int_env_or(3, "MEDIASYNC_MAX_RETRIES")
            ),
            base_delay_ms=(
                base_delay_ms
                if base_delay_ms is not None
                else _int_env_or(1000, "MEDIASYNC_BASE_DELAY_MS")
            ),
            timeout_ms=(
                timeout_ms if timeout_ms is not None else _int_env_or(30000, "MEDIASYNC_TIMEOUT_MS")
            ),
            skip_unchanged=_bool_from_on_off(
                skip_unchanged or _env_or("on", "MEDIASYNC_SKIP_UNCHANGED")
            ),
            rewrite_content=_bool_from_on_off(
                rewrite_content or _env_or("on", "MEDIASYNC_REWRITE_CONTENT")
            ),
            enabled=_bool_from_on_off(enabled or _env_or("on", "MEDIASYNC_ENABLED")),
            manifest_path=Path(manifest_raw) if manifest_raw else None,
            hosted=is_hosted_build(),
            log_level=log_level,
        )
        if cache_raw:
            cfg.cache_dir = Path(cache_raw)
        if cfg.enabled and cfg.kirby_url:
            cfg.manifest_location()
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    return cfg


@app.command()
def images(
    project_root: str = typer.Option(".", "--project-root", help="Site project root"),
    kirby_url: str = typer.Option(None, "--kirby-url", help="Kirby base URL (default: KIRBY_URL)"),
    public_dir: str = typer.Option(None, "--public-dir"),
    media_dir: str = typer.Option(None, "--media-dir"),
    concurrency: int = typer.Option(None, "--concurrency"),
    max_retries: int = typer.Option(None, "--max-retries"),
    base_delay_ms: int = typer.Option(None, "--base-delay-ms"),
    timeout_ms: int = typer.Option(None, "--timeout-ms"),
    skip_unchanged: str = typer.Option(None, "--skip-unchanged", help="on|off"),
    rewrite_content: str = typer.Option(None, "--rewrite-content", help="on|off"),
    enabled: str = typer.Option(None, "--enabled", help="on|off"),
    cache_dir: str = typer.Option(None, "--cache-dir"),
    manifest: str = typer.Option(None, "--manifest", help="Cache manifest path"),
    report_path: str = typer.Option(None, "--report", help="Write a JSON run report"),
    log_level: str = typer.Option("info", "--log-level"),
) -> None:
    """Cache Kirby media locally and rewrite content JSON to use it."""
    cfg = _build_config(
        project_root=project_root,
        kirby_url=kirby_url,
        public_dir=public_dir,
        media_dir=media_dir,
        concurrency=concurrency,
        max_retries=max_retries,
        base_delay_ms=base_delay_ms,
        timeout_ms=timeout_ms,
        skip_unchanged=skip_unchanged,
        rewrite_content=rewrite_content,
        enabled=enabled,
        cache_dir=cache_dir,
        manifest=manifest,
        log_level=log_level,
    )
    report = run_hybrid_images(cfg)
    typer.echo(
        f"Hybrid images: {report.state.value} "
        f"(downloaded={report.downloaded} skipped={report.skipped} failed={report.failed} "
        f"rewritten={len(report.rewritten_files)})"
    )
    if report_path:
        write_report(build_sync_report(report, cfg), Path(report_path))
        typer.echo(f"Report: {report_path}")


@app.command()
def fonts(
    project_root: str = typer.Option(".", "--project-root", help="Site project root"),
    kirby_url: str = typer.Option(None, "--kirby-url", help="Kirby base URL (default: KIRBY_URL)"),
    public_dir: str = typer.Option(None, "--public-dir"),
    max_retries: int = typer.Option(None, "--max-retries"),
    base_delay_ms: int = typer.Option(None, "--base-delay-ms"),
    timeout_ms: int = typer.Option(None, "--timeout-ms"),
    report_path: str = typer.Option(None, "--report", help="Write a JSON run report"),
    log_level: str = typer.Option("info", "--log-level"),
) -> None:
    """Download the fonts listed in Kirby's global.json."""
    cfg = _build_config(
        project_root=project_root,
        kirby_url=kirby_url,
        public_dir=public_dir,
        media_dir=None,
        max_retries=max_retries,
        base_delay_ms=base_delay_ms,
        timeout_ms=timeout_ms,
        enabled="on",
        log_level=log_level,
    )
    report = run_font_download(cfg)
    typer.echo(f"Fonts: {len(report.fonts)} downloaded, {len(report.skipped)} skipped")
    if report_path:
        write_report(build_font_report(report, cfg), Path(report_path))
        typer.echo(f"Report: {report_path}")


@app.command()
def check(
    project_root: str = typer.Option(".", "--project-root", help="Site project root"),
    kirby_url: str = typer.Option(None, "--kirby-url", help="Kirby base URL (default: KIRBY_URL)"),
    public_dir: str = typer.Option(None, "--public-dir"),
    media_dir: str = typer.Option(None, "--media-dir"),
    strict: bool = typer.Option(False, "--strict", help="Exit non-zero when a check fails"),
    log_level: str = typer.Option("info", "--log-level"),
) -> None:
    """Check netlify.toml and cache headers for the media directory."""
    cfg = _build_config(
        project_root=project_root,
        kirby_url=kirby_url,
        public_dir=public_dir,
        media_dir=media_dir,
        enabled="off",
        log_level=log_level,
    )
    if not cfg.kirby_url:
        raise typer.BadParameter("KIRBY_URL is not defined; pass --kirby-url.")
    try:
        toml_ok = validate_netlify_toml(cfg.kirby_url, cfg.project_root)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    headers_ok = check_cache_headers(cfg.project_root, cfg.public_dir, cfg.media_dir)
    typer.echo(f"netlify.toml remote_images: {'ok' if toml_ok else 'missing'}")
    typer.echo(f"media cache headers: {'ok' if headers_ok else 'missing'}")
    if strict and not (toml_ok and headers_ok):
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
