from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from mediasync.config import SyncConfig
from mediasync.models import FontReport, SyncReport


def _run_params(config: SyncConfig) -> dict[str, Any]:
    return {
        "kirby_url": config.kirby_url,
        "public_dir": str(config.public_path),
        "media_dir": config.media_dir,
        "concurrency": config.concurrency,
        "max_retries": config.max_retries,
        "base_delay_ms": config.base_delay_ms,
        "timeout_ms": config.timeout_ms,
        "skip_unchanged": config.skip_unchanged,
        "rewrite_content": config.rewrite_content,
        "hosted": config.hosted,
    }


def build_sync_report(report: SyncReport, config: SyncConfig) -> dict[str, Any]:
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "params": _run_params(config),
        "state": report.state.value,
        "transitions": [state.value for state in report.transitions],
        "stats": {
            "files_scanned": report.files_scanned,
            "assets_found": report.assets_found,
            "downloaded": report.downloaded,
            "skipped": report.skipped,
            "failed": report.failed,
            "rewritten_files": len(report.rewritten_files),
        },
        "failed_urls": list(report.failed_urls),
        "rewritten_files": [str(path) for path in report.rewritten_files],
        "manifest_changed": report.manifest_changed,
        "errors": [report.error] if report.error else [],
    }


def build_font_report(report: FontReport, config: SyncConfig) -> dict[str, Any]:
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "params": _run_params(config),
        "fonts": [item.as_dict() for item in report.fonts],
        "skipped": list(report.skipped),
        "metadata_path": str(report.metadata_path) if report.metadata_path else None,
        "errors": [report.error] if report.error else [],
    }


def write_report(report: dict[str, Any], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report, ensure_ascii=False, indent=2), encoding="utf-8")
