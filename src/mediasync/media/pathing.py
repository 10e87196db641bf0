from __future__ import annotations

import posixpath
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote

from mediasync.models import AssetRef


@dataclass(frozen=True, slots=True)
class MediaContext:
    media_prefix: str
    media_dir: str
    media_output_dir: Path


def _is_traversal(normalized: str) -> bool:
    return normalized == ".." or normalized.startswith("../")


def resolve_media_path(url: object, context: MediaContext) -> AssetRef | None:
    """Map a Kirby media URL to its cache key and local/public paths.

    Returns ``None`` for anything outside ``context.media_prefix`` and for
    paths that would escape the media directory once decoded.
    """
    if not isinstance(url, str) or not url.startswith(context.media_prefix):
        return None

    remainder = url[len(context.media_prefix) :]
    raw_path, _, query = remainder.partition("?")
    if not raw_path:
        return None

    decoded = unquote(raw_path)
    if "\x00" in decoded or "..\\" in decoded:
        return None
    normalized = posixpath.normpath(decoded)
    if _is_traversal(normalized):
        return None

    segments = [seg for seg in normalized.split("/") if seg and seg != "."]
    if not segments:
        return None

    public_path = "/" + "/".join([context.media_dir, *segments])
    return AssetRef(
        cache_key="/".join([context.media_dir, *segments]),
        remote_url=url,
        download_url=f"{context.media_prefix}{raw_path}",
        file_path=context.media_output_dir.joinpath(*segments),
        public_path=public_path,
        public_path_with_query=f"{public_path}?{query}" if query else public_path,
    )
