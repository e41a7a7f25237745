"""
Single-GET JSON helper shared by the upstream adapters.
"""
import logging
from typing import Any, Dict, Optional

import requests

from courtside.errors import (
    MalformedPayloadError,
    UpstreamUnavailableError,
    error_for_status,
)

logger = logging.getLogger("http")


def get_json(
    http: Any,
    url: str,
    provider: str,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: Optional[float] = None,
) -> Any:
    """
    Issue one GET and decode the JSON body.

    Args:
        http: ``requests`` module or a ``requests.Session``
        url: Absolute URL
        provider: Name used in errors and logs ("espn", "reddit")

    Raises:
        UpstreamUnavailableError: connection failure or timeout
        RateLimitedError: HTTP 403 or 429
        UpstreamHTTPError: any other non-2xx status
        MalformedPayloadError: 2xx body that is not JSON
    """
    try:
        response = http.get(url, params=params, headers=headers, timeout=timeout)
    except requests.RequestException as e:
        logger.warning(f"{provider} request failed: {url} - {e}")
        raise UpstreamUnavailableError(str(e), provider=provider, url=url) from e

    if not 200 <= response.status_code < 300:
        logger.warning(f"{provider} returned {response.status_code}: {url}")
        raise error_for_status(response.status_code, provider, url)

    try:
        return response.json()
    except ValueError as e:
        raise MalformedPayloadError(
            f"{provider} returned a non-JSON body", provider=provider, url=url
        ) from e
