"""Tests for the relay HTTP client."""

import httpx
import pytest
from fastapi.testclient import TestClient

from emcipher.envelope import Envelope
from emcipher.mailbox import RelayMailbox
from emcipher.relay import create_app
from emcipher.transport import RelayClient, RelayClientConfig
from emcipher.types import MailboxNotFound, RelayError


@pytest.fixture
def mailbox() -> RelayMailbox:
    return RelayMailbox()


@pytest.fixture
def relay(mailbox: RelayMailbox) -> RelayClient:
    return RelayClient(http_client=TestClient(create_app(mailbox)))


def _envelope(msg_id: str = "m1", conv_id: str = "demo") -> Envelope:
    return Envelope(conv_id=conv_id, msg_id=msg_id, nonce=bytes(24), aad="v=1;ctr=0", ciphertext=bytes(18))


def _mock_client(handler) -> httpx.Client:
    return httpx.Client(base_url="http://relay.test", transport=httpx.MockTransport(handler))


class TestRelayClient:
    def test_post_fetch_ack(self, relay: RelayClient) -> None:
        relay.post_envelope(_envelope("m1"))
        relay.post_envelope(_envelope("m2"))

        assert relay.fetch_envelopes("demo") == [_envelope("m1"), _envelope("m2")]

        relay.ack("demo", "m1")
        assert relay.fetch_envelopes("demo") == [_envelope("m2")]

    def test_ack_not_found(self, relay: RelayClient) -> None:
        with pytest.raises(MailboxNotFound) as exc_info:
            relay.ack("demo", "missing")
        assert exc_info.value.msg_id == "missing"

    def test_fetch_unknown_conversation(self, relay: RelayClient) -> None:
        assert relay.fetch_envelopes("nobody") == []

    def test_fetch_skips_malformed(self, relay: RelayClient, mailbox: RelayMailbox) -> None:
        mailbox.append("demo", {"msg_id": "broken", "nonce_b64": "%%"})
        relay.post_envelope(_envelope("m1"))

        assert [e.msg_id for e in relay.fetch_envelopes("demo")] == ["m1"]
        assert len(relay.fetch_raw("demo")) == 2

    def test_ids_are_percent_encoded(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.raw_path)
            return httpx.Response(200, json={"ok": True})

        RelayClient(http_client=_mock_client(handler)).ack("a/b", "x?y")
        assert seen == [b"/v1/conversations/a%2Fb/messages/x%3Fy/ack"]

    def test_post_server_error(self) -> None:
        client = RelayClient(http_client=_mock_client(lambda request: httpx.Response(500)))

        with pytest.raises(RelayError) as exc_info:
            client.post_envelope(_envelope())
        assert exc_info.value.status_code == 500

    def test_fetch_invalid_body(self) -> None:
        client = RelayClient(http_client=_mock_client(lambda request: httpx.Response(200, json={"msgs": "nope"})))

        with pytest.raises(RelayError, match="invalid body"):
            client.fetch_envelopes("demo")

    def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(RelayError, match="failed"):
            RelayClient(http_client=_mock_client(handler)).fetch_envelopes("demo")

    def test_requires_config_or_client(self) -> None:
        with pytest.raises(ValueError):
            RelayClient()

    def test_owned_client_from_config(self) -> None:
        with RelayClient(RelayClientConfig.localhost(3001)) as client:
            assert client._http.base_url.host == "localhost"
            assert client._http.base_url.port == 3001
