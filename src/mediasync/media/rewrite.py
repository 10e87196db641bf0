from __future__ import annotations

from pathlib import Path

from mediasync.logs import get_logger
from mediasync.media.pathing import MediaContext, resolve_media_path
from mediasync.media.scan import transform_content
from mediasync.models import ContentDocument
from mediasync.utils import dump_json, write_text_atomic

logger = get_logger(__name__)


def localize_url(value: str, context: MediaContext) -> str:
    match = resolve_media_path(value, context)
    if match is None:
        return value
    return match.public_path_with_query


def rewrite_documents(documents: list[ContentDocument], context: MediaContext) -> list[Path]:
    """Point media URLs at their local copies, writing only changed files."""
    written: list[Path] = []
    for document in documents:
        data, modified = transform_content(
            document.data, lambda value: localize_url(value, context)
        )
        if not modified:
            continue
        document.data = data
        write_text_atomic(document.path, dump_json(data))
        logger.debug("Rewrote %s", document.path)
        written.append(document.path)
    return written
