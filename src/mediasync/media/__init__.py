from __future__ import annotations

from mediasync.media.fetch import RetryPolicy, fetch_asset, request_with_retry
from mediasync.media.manifest import JsonManifestStore, ManifestStore
from mediasync.media.pathing import MediaContext, resolve_media_path
from mediasync.media.rewrite import rewrite_documents
from mediasync.media.scan import collect_json_files, scan_content, transform_content
from mediasync.media.scheduler import download_assets

__all__ = [
    "JsonManifestStore",
    "ManifestStore",
    "MediaContext",
    "RetryPolicy",
    "collect_json_files",
    "download_assets",
    "fetch_asset",
    "request_with_retry",
    "resolve_media_path",
    "rewrite_documents",
    "scan_content",
    "transform_content",
]
