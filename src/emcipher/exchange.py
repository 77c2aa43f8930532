"""Sharing conversation parameters between participants.

Two formats carry the same public parameters:
    - Join payload (pasted text): {"convId": ..., "saltB64": ..., "profile": ...}
    - Exchange URI (QR codes): emcipher://v1?conv=...&salt=<base64url>&profile=...
"""

import base64
import binascii
import json
import os
import uuid
from typing import Optional, Union
from urllib.parse import urlencode, urlparse, parse_qs

from .models import ConversationParameters
from .params import Profile, parse_profile
from .types import SALT_SIZE

URI_SCHEME = "emcipher"
URI_VERSION = "v1"


def new_conversation(
    profile: Union[Profile, str] = Profile.DESKTOP,
    conv_id: Optional[str] = None,
) -> ConversationParameters:
    """Create parameters for a new conversation with a random salt.

    Args:
        profile: Device profile for key derivation.
        conv_id: Conversation id (default: random UUID).

    Returns:
        New ConversationParameters.
    """
    return ConversationParameters(
        conv_id=conv_id or str(uuid.uuid4()),
        salt=os.urandom(SALT_SIZE),
        profile=parse_profile(profile),
    )


def _build(conv_id, salt: bytes, profile) -> ConversationParameters:
    # ConversationParameters validates types, lengths and emptiness
    return ConversationParameters(conv_id=conv_id, salt=salt, profile=parse_profile(profile))


def create_join_payload(params: ConversationParameters) -> str:
    """Serialize parameters into the JSON join payload."""
    return json.dumps(
        {
            "convId": params.conv_id,
            "saltB64": base64.b64encode(params.salt).decode("ascii"),
            "profile": params.profile.value,
        }
    )


def parse_join_payload(text: str) -> ConversationParameters:
    """Parse a JSON join payload.

    Raises:
        ValueError: If the payload is not valid.
    """
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise ValueError("Join payload must be a JSON object")

    for key in ("convId", "saltB64", "profile"):
        if not payload.get(key):
            raise ValueError(f"Missing {key}")

    try:
        salt = base64.b64decode(payload["saltB64"], validate=True)
    except (binascii.Error, TypeError) as e:
        raise ValueError("saltB64 is not valid base64") from e

    return _build(payload["convId"], salt, payload["profile"])


def create_exchange_uri(params: ConversationParameters) -> str:
    """Create an exchange URI for sharing conversation parameters.

    Format: emcipher://v1?conv=...&salt=<base64url>&profile=...
    """
    salt_b64 = base64.urlsafe_b64encode(params.salt).rstrip(b"=").decode("ascii")
    query = urlencode(
        {"conv": params.conv_id, "salt": salt_b64, "profile": params.profile.value}
    )
    return f"{URI_SCHEME}://{URI_VERSION}?{query}"


def parse_exchange_uri(uri: str) -> ConversationParameters:
    """Parse an exchange URI.

    Raises:
        ValueError: If the URI is invalid.
    """
    parsed = urlparse(uri)

    if parsed.scheme != URI_SCHEME:
        raise ValueError(f"Invalid scheme: {parsed.scheme}")

    if parsed.netloc != URI_VERSION:
        raise ValueError(f"Invalid version: {parsed.netloc}")

    params = parse_qs(parsed.query)

    for key in ("conv", "salt", "profile"):
        if key not in params:
            raise ValueError(f"Missing {key} parameter")

    # Decode base64url salt (add padding back)
    salt_b64 = params["salt"][0]
    padding = 4 - len(salt_b64) % 4
    if padding != 4:
        salt_b64 += "=" * padding
    try:
        salt = base64.urlsafe_b64decode(salt_b64)
    except binascii.Error as e:
        raise ValueError("salt is not valid base64url") from e

    return _build(params["conv"][0], salt, params["profile"][0])
