from __future__ import annotations

import os
from pathlib import Path

from dotenv import dotenv_values


def load_env_chain(project_root: Path) -> None:
    """
    Load env in this order:
    1) existing environment variables,
    2) .env in cwd,
    3) .env in the project root.
    Non-empty variables are never overwritten.
    """
    for env_path in [Path.cwd() / ".env", project_root / ".env"]:
        if not env_path.exists():
            continue
        values = dotenv_values(env_path)
        for key, value in values.items():
            if value is None:
                continue
            current = os.environ.get(key)
            if current is None or current.strip() == "":
                os.environ[key] = value


def kirby_url_from_env() -> str | None:
    value = os.getenv("KIRBY_URL", "").strip()
    return value or None


TRUTHY = {"1", "true", "yes", "on"}


def is_hosted_build() -> bool:
    """Netlify sets ``NETLIFY=true`` for every build it runs."""
    return os.getenv("NETLIFY", "").strip().lower() in TRUTHY
