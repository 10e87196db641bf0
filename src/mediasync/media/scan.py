from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

from mediasync.logs import get_logger
from mediasync.media.pathing import MediaContext, resolve_media_path
from mediasync.models import ContentDocument, ScanResult

logger = get_logger(__name__)


def collect_json_files(directory: Path) -> list[Path]:
    if not directory.is_dir():
        return []
    files: list[Path] = []
    for entry in sorted(directory.iterdir(), key=lambda item: item.name):
        if entry.is_dir():
            files.extend(collect_json_files(entry))
            continue
        if entry.is_file() and entry.name.endswith(".json"):
            files.append(entry)
    return files


def transform_content(value: Any, transformer: Callable[[str], str]) -> tuple[Any, bool]:
    """Visit every string inside a JSON value.

    Lists and dicts are updated in place when a child string changes. Returns
    the (possibly replaced) value and whether anything changed.
    """
    if isinstance(value, list):
        modified = False
        for index, item in enumerate(value):
            new_item, changed = transform_content(item, transformer)
            if changed:
                value[index] = new_item
                modified = True
        return value, modified

    if isinstance(value, dict):
        modified = False
        for key, item in list(value.items()):
            new_item, changed = transform_content(item, transformer)
            if changed:
                value[key] = new_item
                modified = True
        return value, modified

    if isinstance(value, str):
        transformed = transformer(value)
        if transformed != value:
            return transformed, True

    return value, False


def load_document(path: Path) -> ContentDocument | None:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError, OSError) as exc:
        logger.warning("Skipping unreadable JSON file %s: %s", path, exc)
        return None
    return ContentDocument(path=path, data=data)


def scan_content(content_dir: Path, context: MediaContext) -> ScanResult:
    result = ScanResult()
    files = collect_json_files(content_dir)
    result.files_scanned = len(files)

    def register(value: str) -> str:
        match = resolve_media_path(value, context)
        if match is not None and match.cache_key not in result.assets:
            result.assets[match.cache_key] = match
        return value

    for path in files:
        document = load_document(path)
        if document is None:
            result.skipped_files.append(path)
            continue
        transform_content(document.data, register)
        result.documents.append(document)

    return result
