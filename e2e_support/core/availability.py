"""Reachability probe for backing services."""
from __future__ import annotations
import logging

import requests

logger = logging.getLogger(__name__)

PROBE_TIMEOUT = 5


def is_service_available(url: str, timeout: float = PROBE_TIMEOUT) -> bool:
    """Return True when ``url`` answers with anything below a server error.

    Connection failures and timeouts count as unavailable.
    """
    try:
        resp = requests.get(url, timeout=timeout)
    except requests.RequestException as exc:
        logger.debug("Probe of %s failed: %s", url, exc)
        return False
    return resp.ok or resp.status_code < 500
