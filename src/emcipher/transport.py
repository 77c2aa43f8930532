"""
HTTP client for the relay service.

Wraps the three relay endpoints. Any ``httpx.Client`` can be injected,
which lets tests drive an in-process app through ``fastapi.testclient``.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

import httpx

from .envelope import Envelope, decode_envelope, encode_envelope
from .types import MailboxNotFound, MalformedEnvelopeError, RelayError, RELAY_API_PREFIX

logger = logging.getLogger(__name__)


@dataclass
class RelayClientConfig:
    """Configuration for connecting to a relay."""

    base_url: str
    """Relay base URL, e.g. http://localhost:3001."""

    timeout: float = 10.0
    """Per-request timeout in seconds."""

    @classmethod
    def localhost(cls, port: int = 3001) -> "RelayClientConfig":
        """Creates configuration for a relay on this machine."""
        return cls(base_url=f"http://localhost:{port}")


def _segment(value: str) -> str:
    return quote(value, safe="")


class RelayClient:
    """
    Client for posting, listing and acknowledging envelopes on a relay.

    Example usage:
        ```python
        with RelayClient(RelayClientConfig.localhost()) as relay:
            relay.post_envelope(envelope)
            for env in relay.fetch_envelopes("demo"):
                ...
            relay.ack("demo", env.msg_id)
        ```
    """

    def __init__(
        self,
        config: Optional[RelayClientConfig] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        """
        Initialize the relay client.

        Args:
            config: Relay location (required unless http_client is given).
            http_client: Preconfigured client; its base_url is used as is.
        """
        if http_client is None:
            if config is None:
                raise ValueError("Either config or http_client is required")
            http_client = httpx.Client(base_url=config.base_url, timeout=config.timeout)
            self._owns_client = True
        else:
            self._owns_client = False
        self._http = http_client

    def __enter__(self) -> "RelayClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            self._http.close()

    def _messages_path(self, conv_id: str) -> str:
        return f"{RELAY_API_PREFIX}/{_segment(conv_id)}/messages"

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise RelayError(f"{method} {path} failed: {e}") from e

    def post_envelope(self, envelope: Envelope) -> None:
        """
        Post an envelope to its conversation.

        Re-posting the same envelope after a network failure is safe only
        with the original msg_id.

        Raises:
            RelayError: If the relay does not accept the envelope.
        """
        response = self._request(
            "POST",
            self._messages_path(envelope.conv_id),
            json=encode_envelope(envelope),
        )
        if response.status_code != 201:
            raise RelayError(
                f"postMessage failed: {response.status_code}",
                status_code=response.status_code,
            )
        logger.debug("Posted %s to %s", envelope.msg_id, envelope.conv_id)

    def fetch_raw(self, conv_id: str) -> list:
        """
        Fetch pending wire objects without decoding them.

        Raises:
            RelayError: If the relay request fails.
        """
        response = self._request("GET", self._messages_path(conv_id))
        if response.status_code != 200:
            raise RelayError(
                f"fetchMessages failed: {response.status_code}",
                status_code=response.status_code,
            )
        try:
            msgs = response.json().get("msgs", [])
        except (ValueError, AttributeError) as e:
            raise RelayError("fetchMessages returned an invalid body") from e
        if not isinstance(msgs, list):
            raise RelayError("fetchMessages returned an invalid body")
        return msgs

    def fetch_envelopes(self, conv_id: str) -> list[Envelope]:
        """
        Fetch and decode pending envelopes in insertion order.

        Entries that do not decode are logged and skipped.

        Raises:
            RelayError: If the relay request fails.
        """
        envelopes = []
        for raw in self.fetch_raw(conv_id):
            try:
                envelopes.append(decode_envelope(raw))
            except MalformedEnvelopeError as e:
                msg_id = raw.get("msg_id") if isinstance(raw, dict) else None
                logger.warning("Skipping malformed envelope %s in %s: %s", msg_id, conv_id, e)
        return envelopes

    def ack(self, conv_id: str, msg_id: str) -> None:
        """
        Acknowledge (delete) an envelope.

        Raises:
            MailboxNotFound: If the relay no longer holds the envelope.
            RelayError: If the relay request fails.
        """
        response = self._request(
            "POST",
            f"{self._messages_path(conv_id)}/{_segment(msg_id)}/ack",
        )
        if response.status_code == 404:
            raise MailboxNotFound(conv_id, msg_id)
        if response.status_code != 200:
            raise RelayError(
                f"ackMessage failed: {response.status_code}",
                status_code=response.status_code,
            )
        logger.debug("Acknowledged %s in %s", msg_id, conv_id)
