from __future__ import annotations

import logging


def handle_build_error(logger: logging.Logger, exc: BaseException, *, hosted: bool) -> bool:
    """Log a hook failure and report whether the build may continue.

    Hosted builds keep going with remote URLs left in place; local builds
    should re-raise so the failure is visible immediately.
    """
    logger.error("%s: %s", type(exc).__name__, exc)
    if hosted:
        logger.warning("Continuing build despite error on Netlify")
        return True
    return False
