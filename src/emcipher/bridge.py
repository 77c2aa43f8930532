"""Collaborator interface exposed to UI and session code.

Applications call the core through one fixed set of functions using
base64 strings for all binary values.
"""

import base64
import binascii
from abc import ABC, abstractmethod
from typing import Optional, Union

from .crypto import decrypt, encrypt
from .keys import derive_master_key, derive_message_key
from .params import KdfParams, Profile
from .types import MalformedInputError, KeyDerivationError


class CryptoBridge(ABC):
    """Interface for the application-facing crypto functions."""

    @abstractmethod
    def derive_master_key_b64(
        self,
        seed: str,
        conv_id: str,
        salt_b64: str,
        profile: Union[Profile, str],
    ) -> str:
        """Derive a conversation master key, returned as base64."""
        ...

    @abstractmethod
    def derive_message_key_b64(self, master_key_b64: str, counter: int) -> str:
        """Derive a message key for a counter, returned as base64."""
        ...

    @abstractmethod
    def encrypt_b64(self, message_key_b64: str, plaintext: str, aad: str) -> dict:
        """Encrypt UTF-8 text, returning {"nonce_b64", "ct_b64"}."""
        ...

    @abstractmethod
    def decrypt_b64(
        self,
        message_key_b64: str,
        nonce_b64: str,
        ct_b64: str,
        aad: str,
    ) -> str:
        """Decrypt to UTF-8 text."""
        ...


def _decode(value: str, name: str, error=MalformedInputError) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise error(f"{name} is not valid base64") from e


def _encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class DefaultCryptoBridge(CryptoBridge):
    """CryptoBridge backed by this package's key derivation and AEAD."""

    def __init__(self, kdf_params: Optional[KdfParams] = None) -> None:
        """
        Create a bridge.

        Args:
            kdf_params: Argon2id override (default: per-profile presets)
        """
        self._kdf_params = kdf_params

    def derive_master_key_b64(
        self,
        seed: str,
        conv_id: str,
        salt_b64: str,
        profile: Union[Profile, str],
    ) -> str:
        salt = _decode(salt_b64, "salt", KeyDerivationError)
        master_key = derive_master_key(seed, conv_id, salt, profile, self._kdf_params)
        return _encode(master_key)

    def derive_message_key_b64(self, master_key_b64: str, counter: int) -> str:
        master_key = _decode(master_key_b64, "master key", KeyDerivationError)
        return _encode(derive_message_key(master_key, counter))

    def encrypt_b64(self, message_key_b64: str, plaintext: str, aad: str) -> dict:
        key = _decode(message_key_b64, "message key")
        nonce, ciphertext = encrypt(key, plaintext.encode("utf-8"), aad.encode("utf-8"))
        return {"nonce_b64": _encode(nonce), "ct_b64": _encode(ciphertext)}

    def decrypt_b64(
        self,
        message_key_b64: str,
        nonce_b64: str,
        ct_b64: str,
        aad: str,
    ) -> str:
        key = _decode(message_key_b64, "message key")
        nonce = _decode(nonce_b64, "nonce")
        ciphertext = _decode(ct_b64, "ciphertext")
        plaintext = decrypt(key, nonce, ciphertext, aad.encode("utf-8"))
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedInputError("Plaintext is not UTF-8") from e
