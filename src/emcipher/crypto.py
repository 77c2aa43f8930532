"""Authenticated encryption for EmCipher messages (XChaCha20-Poly1305)."""

import os
from typing import Tuple

from nacl.bindings import (
    crypto_aead_xchacha20poly1305_ietf_decrypt,
    crypto_aead_xchacha20poly1305_ietf_encrypt,
)
from nacl.exceptions import CryptoError

from .types import (
    KEY_SIZE,
    NONCE_SIZE,
    TAG_SIZE,
    AuthenticationError,
    MalformedInputError,
)


def _check_key(message_key: bytes) -> bytes:
    if not isinstance(message_key, (bytes, bytearray)) or len(message_key) != KEY_SIZE:
        raise MalformedInputError(f"Message key must be {KEY_SIZE} bytes")
    return bytes(message_key)


def encrypt(message_key: bytes, plaintext: bytes, aad: bytes) -> Tuple[bytes, bytes]:
    """
    Encrypt a plaintext under a message key.

    A fresh random 24-byte nonce is drawn for every call. Each message key
    must be used for at most one call.

    Args:
        message_key: 32-byte message key
        plaintext: Bytes to encrypt
        aad: Associated data bound into the authentication tag

    Returns:
        Tuple of (nonce, ciphertext), ciphertext including the 16-byte tag
    """
    key = _check_key(message_key)
    nonce = os.urandom(NONCE_SIZE)
    ciphertext = crypto_aead_xchacha20poly1305_ietf_encrypt(
        bytes(plaintext), bytes(aad), nonce, key
    )
    return nonce, ciphertext


def decrypt(message_key: bytes, nonce: bytes, ciphertext: bytes, aad: bytes) -> bytes:
    """
    Decrypt and authenticate a ciphertext.

    Tag verification is done by libsodium in constant time.

    Args:
        message_key: 32-byte message key
        nonce: 24-byte nonce from encrypt()
        ciphertext: Ciphertext including the tag
        aad: Associated data used at encryption

    Returns:
        Plaintext bytes

    Raises:
        MalformedInputError: If key, nonce or ciphertext lengths are invalid
        AuthenticationError: If the tag does not verify
    """
    key = _check_key(message_key)

    if not isinstance(nonce, (bytes, bytearray)) or len(nonce) != NONCE_SIZE:
        raise MalformedInputError(f"Nonce must be {NONCE_SIZE} bytes")

    if not isinstance(ciphertext, (bytes, bytearray)) or len(ciphertext) < TAG_SIZE:
        raise MalformedInputError(f"Ciphertext must be at least {TAG_SIZE} bytes")

    try:
        return crypto_aead_xchacha20poly1305_ietf_decrypt(
            bytes(ciphertext), bytes(aad), bytes(nonce), key
        )
    except CryptoError as e:
        raise AuthenticationError("Message authentication failed") from e
