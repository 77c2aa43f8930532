"""Envelope encoding and decoding for the EmCipher relay wire format."""

import base64
import binascii
from dataclasses import dataclass
from typing import Any, Mapping

from .types import MalformedEnvelopeError


# Field names are fixed by existing clients
WIRE_FIELDS = ("conv_id", "msg_id", "nonce_b64", "aad", "ciphertext")


@dataclass
class Envelope:
    """Encrypted message unit exchanged through the relay."""
    conv_id: str
    msg_id: str  # unique within the conversation
    nonce: bytes  # 24 bytes
    aad: str  # UTF-8 metadata, authenticated but not encrypted
    ciphertext: bytes  # message + 16-byte tag


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _b64decode(value: Any, field_name: str) -> bytes:
    if not isinstance(value, str):
        raise MalformedEnvelopeError(f"Field {field_name} must be a string")
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedEnvelopeError(f"Field {field_name} is not valid base64") from e


def encode_envelope(envelope: Envelope) -> dict:
    """
    Encode an envelope into its JSON wire object.

    Format:
        conv_id     opaque string
        msg_id      opaque string
        nonce_b64   base64(nonce)
        aad         base64(UTF-8 aad)
        ciphertext  base64(ciphertext)

    Args:
        envelope: Envelope to encode

    Returns:
        JSON-serializable dict
    """
    return {
        "conv_id": envelope.conv_id,
        "msg_id": envelope.msg_id,
        "nonce_b64": _b64encode(envelope.nonce),
        "aad": _b64encode(envelope.aad.encode("utf-8")),
        "ciphertext": _b64encode(envelope.ciphertext),
    }


def decode_envelope(data: Mapping[str, Any]) -> Envelope:
    """
    Decode a JSON wire object into an envelope.

    Args:
        data: Wire object as produced by encode_envelope()

    Returns:
        Decoded Envelope

    Raises:
        MalformedEnvelopeError: If a field is missing, not valid base64,
            or an identifier is empty
    """
    if not isinstance(data, Mapping):
        raise MalformedEnvelopeError("Envelope must be a JSON object")

    missing = [name for name in WIRE_FIELDS if name not in data]
    if missing:
        raise MalformedEnvelopeError(f"Missing fields: {', '.join(missing)}")

    conv_id = data["conv_id"]
    msg_id = data["msg_id"]

    if not isinstance(conv_id, str) or not conv_id:
        raise MalformedEnvelopeError("conv_id must be a non-empty string")

    if not isinstance(msg_id, str) or not msg_id:
        raise MalformedEnvelopeError("msg_id must be a non-empty string")

    nonce = _b64decode(data["nonce_b64"], "nonce_b64")
    aad_bytes = _b64decode(data["aad"], "aad")
    ciphertext = _b64decode(data["ciphertext"], "ciphertext")

    try:
        aad = aad_bytes.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedEnvelopeError("Field aad is not UTF-8") from e

    return Envelope(
        conv_id=conv_id,
        msg_id=msg_id,
        nonce=nonce,
        aad=aad,
        ciphertext=ciphertext,
    )


def is_envelope(data: Any) -> bool:
    """
    Check if an object looks like a wire envelope.

    Args:
        data: Object to check

    Returns:
        True if data decodes as an envelope
    """
    try:
        decode_envelope(data)
    except MalformedEnvelopeError:
        return False
    return True
