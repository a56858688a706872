"""
Payload reporter for Server Agent.

Serializes collection payloads, logs them and transmits them to the
configured collector endpoint.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from typing import TYPE_CHECKING, Any

import requests

from server_agent.errors import SerializationError, TransmissionError

if TYPE_CHECKING:
    from server_agent.config import Config
    from server_agent.core import Payload

logger = logging.getLogger(__name__)


def serialize(payload: Payload, indent: int | None = None) -> str:
    """
    Serialize a payload to JSON.

    Args:
        payload: The payload to serialize.
        indent: Indentation for human-readable output; None for compact.

    Raises:
        SerializationError: If the payload holds values JSON cannot encode.
    """
    separators = None if indent is not None else (",", ":")
    try:
        return json.dumps(payload.to_dict(), indent=indent, separators=separators, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Error marshalling data to JSON: {e}") from e


class Reporter:
    """
    Logs payloads locally and sends them to a remote collector.

    A send is a single POST; failures are raised to the caller and the
    payload for that cycle is dropped. Report cycles may overlap, so use of
    the shared session is serialized.
    """

    def __init__(self, config: Config):
        self.config = config
        self.session = requests.Session()
        self._lock = threading.Lock()
        self.session.headers.update(
            {
                "User-Agent": f"server-agent/{self._get_version()}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            }
        )

    def log_payload(self, payload: Payload) -> str:
        """Log the payload as indented JSON and return the text."""
        text = serialize(payload, indent=2)
        logger.info("Collected Stats (formatted as JSON):")
        logger.info(text)
        return text

    def send(self, payload: Payload, endpoint: str | None = None) -> dict[str, Any]:
        """
        POST the payload as compact JSON.

        Args:
            payload: The payload to send.
            endpoint: Optional override for the collector URL.

        Returns:
            Server response data.

        Raises:
            ValueError: If no collector URL is configured.
            SerializationError: If the payload cannot be serialized.
            TransmissionError: On a network error or a non-2xx response.
        """
        url = endpoint or self.config.transmission_url
        if not url:
            raise ValueError("No transmission URL configured")

        data = serialize(payload).encode("utf-8")
        start_time = time.perf_counter()

        try:
            with self._lock:
                response = self.session.post(
                    url,
                    data=data,
                    timeout=self.config.transmission_timeout,
                )
        except requests.exceptions.Timeout as e:
            raise TransmissionError(f"Request to {url} timed out") from e
        except requests.exceptions.ConnectionError as e:
            raise TransmissionError(f"Connection error: {e}") from e
        except requests.exceptions.RequestException as e:
            raise TransmissionError(f"Request error: {e}") from e

        duration = (time.perf_counter() - start_time) * 1000

        if not 200 <= response.status_code < 300:
            raise TransmissionError(
                f"failed to send data, status code: {response.status_code} {response.text[:200]}"
            )

        logger.info(f"Stats sent to {url} in {duration:.0f}ms")

        try:
            return response.json()
        except ValueError:
            return {"status": "ok", "raw": response.text[:500]}

    def test_connection(self) -> bool:
        """
        Test connection to the collector server.

        Returns:
            True if server is reachable, False otherwise.
        """
        if not self.config.transmission_url:
            return False

        try:
            base_url = self.config.transmission_url.rsplit("/", 1)[0]
            with self._lock:
                response = self.session.head(
                    base_url,
                    timeout=10,
                    allow_redirects=True,
                )
            return bool(response.status_code < 500)
        except requests.exceptions.RequestException:
            return False

    def _get_version(self) -> str:
        """Get server-agent version."""
        from server_agent import __version__

        return __version__

    def close(self) -> None:
        """Close the HTTP session."""
        with self._lock:
            self.session.close()
