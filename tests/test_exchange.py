"""Tests for sharing conversation parameters."""

import base64
import json

import pytest

from emcipher.exchange import (
    create_exchange_uri,
    create_join_payload,
    new_conversation,
    parse_exchange_uri,
    parse_join_payload,
)
from emcipher.models import ConversationParameters
from emcipher.params import Profile

SALT = bytes([7] * 16)


@pytest.fixture
def params() -> ConversationParameters:
    return ConversationParameters(conv_id="demo-conv-uuid", salt=SALT, profile=Profile.MOBILE)


class TestNewConversation:
    """Test creating conversation parameters."""

    def test_random_salt_and_id(self) -> None:
        first = new_conversation()
        second = new_conversation()

        assert len(first.salt) == 16
        assert first.salt != second.salt
        assert first.conv_id != second.conv_id
        assert first.profile is Profile.DESKTOP

    def test_explicit_id_and_profile(self) -> None:
        params = new_conversation("mobile", conv_id="demo")
        assert params.conv_id == "demo"
        assert params.profile is Profile.MOBILE

    def test_parameters_validate(self) -> None:
        with pytest.raises(ValueError, match="16 bytes"):
            ConversationParameters(conv_id="c", salt=bytes(8), profile=Profile.DESKTOP)
        with pytest.raises(ValueError, match="conv_id"):
            ConversationParameters(conv_id="", salt=SALT, profile=Profile.DESKTOP)
        with pytest.raises(ValueError, match="profile"):
            ConversationParameters(conv_id="c", salt=SALT, profile="desktop")

    def test_parameters_require_types(self) -> None:
        with pytest.raises(ValueError, match="conv_id"):
            ConversationParameters(conv_id=5, salt=SALT, profile=Profile.DESKTOP)
        with pytest.raises(ValueError, match="Salt must be bytes"):
            ConversationParameters(conv_id="c", salt="x" * 16, profile=Profile.DESKTOP)


class TestJoinPayload:
    """Test the pasted JSON join payload."""

    def test_create(self, params: ConversationParameters) -> None:
        payload = json.loads(create_join_payload(params))
        assert payload == {
            "convId": "demo-conv-uuid",
            "saltB64": base64.b64encode(SALT).decode("ascii"),
            "profile": "mobile",
        }

    def test_round_trip(self, params: ConversationParameters) -> None:
        assert parse_join_payload(create_join_payload(params)) == params

    def test_parse_app_payload(self) -> None:
        text = '{"convId":"abc","saltB64":"AAAAAAAAAAAAAAAAAAAAAA==","profile":"desktop"}'
        params = parse_join_payload(text)

        assert params.conv_id == "abc"
        assert params.salt == bytes(16)
        assert params.profile is Profile.DESKTOP

    def test_invalid_json(self) -> None:
        with pytest.raises(ValueError, match="Invalid JSON"):
            parse_join_payload("{not json")

    @pytest.mark.parametrize("key", ["convId", "saltB64", "profile"])
    def test_missing_key(self, params: ConversationParameters, key: str) -> None:
        payload = json.loads(create_join_payload(params))
        del payload[key]
        with pytest.raises(ValueError, match=key):
            parse_join_payload(json.dumps(payload))

    def test_non_string_conv_id(self) -> None:
        text = json.dumps({"convId": 5, "saltB64": base64.b64encode(SALT).decode(), "profile": "mobile"})
        with pytest.raises(ValueError, match="conv_id"):
            parse_join_payload(text)

    def test_wrong_salt_length(self) -> None:
        text = json.dumps({"convId": "c", "saltB64": base64.b64encode(bytes(8)).decode(), "profile": "mobile"})
        with pytest.raises(ValueError, match="16 bytes"):
            parse_join_payload(text)

    def test_unknown_profile(self) -> None:
        text = json.dumps({"convId": "c", "saltB64": base64.b64encode(SALT).decode(), "profile": "tv"})
        with pytest.raises(ValueError, match="Unknown profile"):
            parse_join_payload(text)


class TestExchangeURI:
    """Test the QR exchange URI."""

    def test_create(self, params: ConversationParameters) -> None:
        uri = create_exchange_uri(params)

        assert uri.startswith("emcipher://v1?")
        assert "conv=demo-conv-uuid" in uri
        assert "profile=mobile" in uri
        assert "=" not in uri.split("salt=")[1].split("&")[0]

    def test_round_trip(self, params: ConversationParameters) -> None:
        assert parse_exchange_uri(create_exchange_uri(params)) == params

    def test_round_trip_special_conv_id(self) -> None:
        params = ConversationParameters(conv_id="team chat & more", salt=bytes(range(16)), profile=Profile.DESKTOP)
        assert parse_exchange_uri(create_exchange_uri(params)) == params

    def test_invalid_scheme(self) -> None:
        with pytest.raises(ValueError, match="Invalid scheme"):
            parse_exchange_uri("https://v1?conv=a&salt=AAAAAAAAAAAAAAAAAAAAAA&profile=mobile")

    def test_invalid_version(self) -> None:
        with pytest.raises(ValueError, match="Invalid version"):
            parse_exchange_uri("emcipher://v2?conv=a&salt=AAAAAAAAAAAAAAAAAAAAAA&profile=mobile")

    @pytest.mark.parametrize("key", ["conv", "salt", "profile"])
    def test_missing_parameter(self, params: ConversationParameters, key: str) -> None:
        query = {"conv": "conv=a", "salt": "salt=AAAAAAAAAAAAAAAAAAAAAA", "profile": "profile=mobile"}
        del query[key]
        with pytest.raises(ValueError, match=f"Missing {key}"):
            parse_exchange_uri("emcipher://v1?" + "&".join(query.values()))
