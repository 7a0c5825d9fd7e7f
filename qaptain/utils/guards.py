"""
Input guards for test runs.

Rejects run requests that could never reach a real page before a browser
session is spent on them.
"""

import logging
from typing import Optional
from urllib.parse import urlparse

from qaptain.errors import GuardError

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = ("http", "https")


def check_url_guard(url: Optional[str]) -> str:
    """
    Check that a run target is an absolute http(s) URL.

    Args:
        url: Target URL supplied by the caller

    Returns:
        The stripped URL

    Raises:
        GuardError: If the URL is missing, relative or uses another scheme
    """
    if not url or not url.strip():
        raise GuardError("URL is required")

    url = url.strip()
    parsed = urlparse(url)

    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        logger.warning(f"URL_GUARD: rejected scheme '{parsed.scheme}' for {url}")
        raise GuardError(
            "Only http and https URLs can be tested",
            details=f"Unsupported URL scheme in '{url}'"
        )

    if not parsed.netloc or not parsed.hostname:
        logger.warning(f"URL_GUARD: rejected URL without host: {url}")
        raise GuardError(
            "URL must be absolute",
            details=f"No host found in '{url}'"
        )

    logger.debug(f"URL_GUARD: allowed {url}")
    return url
