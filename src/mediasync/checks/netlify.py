from __future__ import annotations

import re
import tomllib
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

from mediasync.logs import get_logger

logger = get_logger(__name__)

NETLIFY_TOML = "netlify.toml"
HEADERS_FILE = "_headers"


def kirby_origin(kirby_url: str) -> str:
    parts = urlsplit(kirby_url)
    if not parts.scheme or not parts.netloc:
        raise ValueError(f"not an absolute URL: {kirby_url}")
    return f"{parts.scheme}://{parts.netloc}"


def load_netlify_toml(project_root: Path) -> dict[str, Any] | None:
    path = project_root / NETLIFY_TOML
    if not path.exists():
        return None
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Unable to read %s: %s", path, exc)
        return None


def _pattern_matches(pattern: str, probe: str) -> bool:
    try:
        return re.search(pattern, probe) is not None
    except re.error:
        return False


def validate_netlify_toml(kirby_url: str, project_root: Path) -> bool:
    """Check that Netlify's image CDN is allowed to fetch Kirby media."""
    if not (project_root / NETLIFY_TOML).exists():
        logger.warning("netlify.toml not found. If using remote images, ensure it is configured.")
        return False
    config = load_netlify_toml(project_root)
    if config is None:
        return False

    origin = kirby_origin(kirby_url)
    images = config.get("images")
    patterns = images.get("remote_images") if isinstance(images, dict) else None
    if not isinstance(patterns, list) or not patterns:
        logger.warning(
            "No [images] remote_images configuration found in netlify.toml. Add:\n"
            '  [images]\n  remote_images = ["%s/.*"]',
            origin,
        )
        return False

    probe = f"{origin}/media/test.jpg"
    if not any(isinstance(item, str) and _pattern_matches(item, probe) for item in patterns):
        logger.warning(
            "Kirby CMS domain not found in netlify.toml remote_images (current: %s). "
            'Expected a pattern matching %s/.*, e.g. remote_images = ["%s/.*"]',
            ", ".join(str(item) for item in patterns),
            origin,
            origin,
        )
        return False

    logger.info("Kirby domain properly configured in netlify.toml")
    return True


def check_cache_headers(project_root: Path, public_dir: str, media_dir: str) -> bool:
    """Look for a Cache-Control rule covering ``/<media_dir>/``."""
    prefix = f"/{media_dir.strip('/')}/"
    has_headers = False

    config = load_netlify_toml(project_root)
    if config is not None:
        rules = config.get("headers")
        if isinstance(rules, list):
            has_headers = any(
                isinstance(rule, dict) and str(rule.get("for", "")).startswith(prefix)
                for rule in rules
            )

    headers_path = project_root / public_dir / HEADERS_FILE
    if not has_headers and headers_path.exists():
        has_headers = prefix in headers_path.read_text(encoding="utf-8")

    if not has_headers:
        logger.info(
            "Tip: add Cache-Control headers for %s* in netlify.toml ([[headers]] for = \"%s*\") "
            "or %s/_headers, e.g. Cache-Control: public, max-age=604800, must-revalidate",
            prefix,
            prefix,
            public_dir,
        )
    return has_headers
