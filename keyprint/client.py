# ABOUTME: HTTP client for storing and verifying keyprints on the remote service
import logging
import math
import os
import threading
from collections.abc import Mapping, Sequence
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Dict, Optional, Union

import requests

try:
    from .utils import ConfigManager, KeyprintSnapshot, VerificationResult
except ImportError:
    from utils import ConfigManager, KeyprintSnapshot, VerificationResult  # type: ignore


DEFAULT_BASE_URL = "http://127.0.0.1:8080"
DEFAULT_TIMEOUT_SECONDS = 10
STORE_PATH = "/api/store-keyprint"
VERIFY_PATH = "/api/verify-keyprint"

SnapshotLike = Union[KeyprintSnapshot, Mapping]


class KeyprintError(Exception):
    """Base class for keyprint client failures."""


class KeyprintValidationError(KeyprintError, ValueError):
    """Input rejected before any request was sent."""


class KeyprintTimeoutError(KeyprintError):
    """The service did not answer within the timeout."""


class KeyprintAPIError(KeyprintError):
    """Transport failure, error status or unusable response body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class KeyprintClient:
    """Client for the keyprint storage and verification API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        config: Optional[ConfigManager] = None,
        session: Optional[requests.Session] = None,
    ):
        api_base = (
            base_url
            or os.getenv("KEYPRINT_API_BASE")
            or (config.get("api.base_url") if config else None)
            or DEFAULT_BASE_URL
        )
        self.base_url = api_base.rstrip("/")
        if timeout is None:
            timeout = (
                config.get("api.timeout_seconds", DEFAULT_TIMEOUT_SECONDS)
                if config
                else DEFAULT_TIMEOUT_SECONDS
            )
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})

    def __enter__(self) -> "KeyprintClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    def store(self, user_id: str, snapshot: SnapshotLike) -> Dict[str, Any]:
        """Store a keyprint for ``user_id`` and return the service's reply."""
        logging.info(f"Storing keyprint for user {user_id!r}")
        try:
            data = self._post(STORE_PATH, self._build_request(user_id, snapshot))
        except KeyprintError as e:
            logging.error(f"Failed to store keyprint: {e}")
            raise
        logging.debug(f"Store response data: {data}")
        return data

    def verify(self, user_id: str, snapshot: SnapshotLike) -> VerificationResult:
        """Verify a keyprint against the data stored for ``user_id``."""
        logging.info(f"Verifying keyprint for user {user_id!r}")
        try:
            data = self._post(VERIFY_PATH, self._build_request(user_id, snapshot))
        except KeyprintError as e:
            logging.error(f"Failed to verify keyprint: {e}")
            raise
        result = normalize_verification(data)
        logging.info(f"Normalized verification result: {result}")
        return result

    def _build_request(self, user_id: str, snapshot: SnapshotLike) -> Dict[str, Any]:
        if not user_id:
            raise KeyprintValidationError("User ID is required")

        if isinstance(snapshot, KeyprintSnapshot):
            keyprint = snapshot
        elif isinstance(snapshot, Mapping):
            intervals = snapshot.get("intervals")
            if not _is_interval_sequence(intervals):
                raise KeyprintValidationError("Valid keyprint data is required")
            keyprint = KeyprintSnapshot.from_dict(dict(snapshot))
        else:
            raise KeyprintValidationError("Valid keyprint data is required")

        if not keyprint.intervals:
            raise KeyprintValidationError("Valid keyprint data is required")

        return {"user_id": user_id, "keyprint": keyprint.to_payload()}

    def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        logging.debug(f"POST {url} body={body}")

        # requests' timeout bounds each socket wait; the future bounds the whole call
        future: Future = Future()
        abandoned = threading.Event()
        worker = threading.Thread(
            target=self._send, args=(url, body, future, abandoned), daemon=True
        )
        worker.start()

        try:
            response = future.result(timeout=self.timeout)
        except (FutureTimeoutError, requests.exceptions.Timeout):
            abandoned.set()
            logging.warning(f"Keyprint request timed out after {self.timeout}s")
            raise KeyprintTimeoutError("Request timed out")
        except requests.exceptions.RequestException as e:
            raise KeyprintAPIError(f"Request failed: {e}") from e

        logging.debug(f"Response status: {response.status_code}")
        if not response.ok:
            logging.error(f"Response not OK: {response.status_code} {response.reason}")
            raise KeyprintAPIError(
                f"API error: {response.status_code}", status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise KeyprintAPIError(
                "Response body is not valid JSON", status_code=response.status_code
            ) from e

        if not isinstance(data, dict):
            raise KeyprintAPIError(
                "Unexpected response format", status_code=response.status_code
            )
        return data

    def _send(
        self, url: str, body: Dict[str, Any], future: Future, abandoned: threading.Event
    ) -> None:
        """Run one POST on the worker thread and hand the outcome to ``future``."""
        try:
            response = self.session.post(url, json=body, timeout=self.timeout)
        except Exception as e:
            future.set_exception(e)
            return

        if abandoned.is_set():
            logging.debug(f"Discarding late response from {url}")
            response.close()
            return
        future.set_result(response)


def normalize_verification(data: Dict[str, Any]) -> VerificationResult:
    """Reduce a verify response to match flag and similarity score."""
    payload = data.get("data") or data
    if not isinstance(payload, Mapping):
        payload = {}

    similarity = payload.get("similarity")
    if not _is_number(similarity) or math.isnan(similarity):
        similarity = 0

    return VerificationResult(is_match=payload.get("match_") is True, similarity=similarity)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_interval_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes)) and len(value) > 0
