"""Reachability probe for the remote authority."""

import logging
from typing import Optional

import requests

logger = logging.getLogger(__name__)


class ConnectivityProber:
    """Issues a bounded-timeout health check against the remote authority."""

    DEFAULT_TIMEOUT = 5.0  # seconds

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None
    ):
        self.health_url = base_url.rstrip('/') + '/health'
        self.timeout = timeout
        self.session = session or requests.Session()

    def is_reachable(self) -> bool:
        """
        Test if the remote authority is reachable.

        Returns:
            True if the health endpoint answered with a 2xx status, False on any failure
        """
        try:
            response = self.session.get(self.health_url, timeout=self.timeout)
            if 200 <= response.status_code < 300:
                return True
            logger.debug(f"Health check returned status {response.status_code}")
            return False
        except Exception as e:
            logger.debug(f"Health check failed: {e}")
            return False
