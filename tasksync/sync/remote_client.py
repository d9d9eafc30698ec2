"""
Remote authority client for submitting mutation batches.

One call submits one batch and returns the positionally aligned outcomes.
Transport failures raise ``ConnectivityError``; non-2xx replies raise
``RemoteRejectionError``; unreadable replies raise ``ProtocolError``. The
coordinator turns each of these into an error for every item in the batch.
"""

import json
import logging
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import requests

from ..models.mutation import QueuedMutation
from ..models.sync_result import ItemOutcome, OutcomeStatus
from ..models.task import Task
from ..models.timestamps import to_iso, utc_now
from .exceptions import ConnectivityError, ProtocolError, RemoteRejectionError

logger = logging.getLogger(__name__)

CHECKSUM_HEADER = "X-Batch-Checksum"


class RemoteAuthorityClient:
    """HTTP client for the remote authority's batch endpoint."""

    DEFAULT_BASE_URL = "http://localhost:3000/api"
    DEFAULT_TIMEOUT = 30.0  # seconds

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the remote authority client.

        Args:
            base_url: Base URL of the remote API (the batch endpoint is ``/batch``)
            api_key: API key for authentication
            timeout: Seconds to wait for a batch reply before giving up
            session: Optional shared requests session
        """
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip('/')
        self.batch_url = f"{self.base_url}/batch"
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    @staticmethod
    def json_serialize_fallback(obj: Any) -> Any:
        """
        JSON serialization fallback for non-standard types.

        Raises:
            TypeError: If object is not serializable
        """
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, date):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        raise TypeError(f"Object of type {obj.__class__.__name__} is not JSON serializable")

    def _build_headers(self, batch_checksum: str) -> Dict[str, str]:
        """Build HTTP headers for a batch submission."""
        headers = {
            "Content-Type": "application/json",
            "User-Agent": "TaskSync/0.1",
            CHECKSUM_HEADER: batch_checksum,
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def submit_batch(
        self,
        batch: Sequence[QueuedMutation],
        batch_checksum: str
    ) -> List[Optional[ItemOutcome]]:
        """
        Submit a batch and return one outcome slot per submitted mutation.

        Args:
            batch: Mutations in dispatch order
            batch_checksum: Checksum of the batch, sent as a header

        Returns:
            A list the same length as ``batch``. A slot is None when the
            reply had no entry at that position, and an ``ItemOutcome`` with
            ERROR status when that entry was malformed.

        Raises:
            ConnectivityError: Connection refused, DNS failure or timeout
            RemoteRejectionError: The remote authority replied with a non-2xx status
            ProtocolError: The reply body could not be interpreted
        """
        body = {
            "items": [m.to_wire() for m in batch],
            "client_timestamp": to_iso(utc_now()),
        }
        data = json.dumps(body, default=self.json_serialize_fallback)

        try:
            response = self.session.post(
                self.batch_url,
                data=data,
                headers=self._build_headers(batch_checksum),
                timeout=self.timeout
            )
        except requests.Timeout as e:
            raise ConnectivityError(f"Batch dispatch timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise ConnectivityError(f"Batch dispatch failed: {e}") from e

        if not 200 <= response.status_code < 300:
            logger.error(f"HTTP error sending batch: {response.status_code} {response.reason}")
            raise RemoteRejectionError(
                f"Remote authority returned HTTP {response.status_code}",
                status_code=response.status_code
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ProtocolError("Response body is not valid JSON") from e

        processed = payload.get("processed_items") if isinstance(payload, dict) else None
        if not isinstance(processed, list):
            raise ProtocolError("Response is missing the processed_items array")

        outcomes: List[Optional[ItemOutcome]] = []
        for position in range(len(batch)):
            if position >= len(processed) or processed[position] is None:
                outcomes.append(None)
            else:
                outcomes.append(self.parse_outcome(processed[position]))

        if len(processed) > len(batch):
            logger.warning(
                f"Remote authority returned {len(processed)} outcomes for a batch of {len(batch)}"
            )
        return outcomes

    @staticmethod
    def parse_outcome(raw: Any) -> ItemOutcome:
        """
        Interpret one entry of ``processed_items``.

        Malformed entries become ERROR outcomes so they are charged against
        the retry budget like any other rejection.
        """
        if not isinstance(raw, dict):
            return ItemOutcome(status=OutcomeStatus.ERROR, error="Malformed outcome in response")

        try:
            status = OutcomeStatus(raw.get("status"))
        except ValueError:
            return ItemOutcome(
                status=OutcomeStatus.ERROR,
                client_id=raw.get("client_id"),
                error=f"Unknown outcome status: {raw.get('status')!r}"
            )

        resolved = raw.get("resolved_data")
        if resolved is not None and not isinstance(resolved, dict):
            return ItemOutcome(
                status=OutcomeStatus.ERROR,
                client_id=raw.get("client_id"),
                error="Malformed resolved_data in response"
            )
        if status == OutcomeStatus.CONFLICT and resolved is None:
            return ItemOutcome(
                status=OutcomeStatus.ERROR,
                client_id=raw.get("client_id"),
                error="Conflict outcome without remote state"
            )

        try:
            Task.check_field_types({"server_id": raw.get("server_id")})
            if resolved is not None:
                Task.check_field_types(resolved)
        except TypeError as e:
            return ItemOutcome(
                status=OutcomeStatus.ERROR,
                client_id=raw.get("client_id"),
                error=f"Malformed outcome in response: {e}"
            )

        return ItemOutcome(
            status=status,
            client_id=raw.get("client_id"),
            server_id=raw.get("server_id"),
            resolved_data=resolved,
            error=raw.get("error") or (None if status != OutcomeStatus.ERROR else "Unknown error"),
        )
