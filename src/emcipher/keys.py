"""Key derivation for EmCipher conversations.

Two levels:
    - Master key (KM): Argon2id over the user's seed, salted with the
      conversation salt and bound to the conversation id and profile.
    - Message key (K_msg): HKDF-Expand of KM with the message counter.
"""

from typing import Optional, Union

from cryptography.hazmat.primitives.kdf.argon2 import Argon2id
from cryptography.hazmat.primitives.kdf.hkdf import HKDFExpand
from cryptography.hazmat.primitives.hashes import SHA256

from .params import KdfParams, Profile, kdf_params_for, parse_profile
from .types import (
    KEY_SIZE,
    SALT_SIZE,
    COUNTER_SIZE,
    MAX_COUNTER,
    MASTER_KEY_INFO_PREFIX,
    MESSAGE_KEY_INFO_PREFIX,
    KeyDerivationError,
)


def master_key_context(conv_id: str, profile: Profile) -> bytes:
    """Build the domain-separation context for a conversation master key."""
    return f"{MASTER_KEY_INFO_PREFIX}:{conv_id}:{profile.value}".encode("utf-8")


def derive_master_key(
    seed: Union[str, bytes],
    conv_id: str,
    salt: bytes,
    profile: Union[Profile, str],
    params: Optional[KdfParams] = None,
) -> bytes:
    """
    Derive a conversation master key from the user's seed.

    Deterministic: the same seed, conversation id, salt, profile and
    parameters always yield the same key, so both participants derive it
    independently. Argon2id makes this CPU and memory heavy.

    Args:
        seed: The user's secret passphrase
        conv_id: Public conversation identifier
        salt: 16-byte public conversation salt
        profile: Device profile of the conversation
        params: Argon2id parameters (default: the profile's preset)

    Returns:
        32-byte master key

    Raises:
        KeyDerivationError: If any input is malformed
    """
    if isinstance(seed, str):
        seed = seed.encode("utf-8")
    if not isinstance(seed, bytes) or not seed:
        raise KeyDerivationError("Seed must be a non-empty string")

    if not isinstance(conv_id, str) or not conv_id:
        raise KeyDerivationError("Conversation id must be a non-empty string")

    if not isinstance(salt, (bytes, bytearray)) or len(salt) != SALT_SIZE:
        length = len(salt) if isinstance(salt, (bytes, bytearray)) else type(salt).__name__
        raise KeyDerivationError(f"Salt must be {SALT_SIZE} bytes, got {length}")

    try:
        profile = parse_profile(profile)
    except ValueError as e:
        raise KeyDerivationError(str(e)) from e

    if params is None:
        params = kdf_params_for(profile)

    try:
        kdf = Argon2id(
            salt=bytes(salt),
            length=KEY_SIZE,
            iterations=params.t_cost,
            lanes=params.p_cost,
            memory_cost=params.m_cost_kib,
            ad=master_key_context(conv_id, profile),
        )
    except ValueError as e:
        raise KeyDerivationError(f"Invalid Argon2id parameters: {e}") from e

    return kdf.derive(seed)


def derive_message_key(master_key: bytes, counter: int) -> bytes:
    """
    Derive a single-use message key for a counter.

    Args:
        master_key: 32-byte conversation master key
        counter: Non-negative message counter (fits in 64 bits)

    Returns:
        32-byte message key

    Raises:
        KeyDerivationError: If the master key or counter is malformed
    """
    if not isinstance(master_key, (bytes, bytearray)) or len(master_key) != KEY_SIZE:
        raise KeyDerivationError(f"Master key must be {KEY_SIZE} bytes")

    if isinstance(counter, bool) or not isinstance(counter, int):
        raise KeyDerivationError("Counter must be an integer")

    if counter < 0 or counter > MAX_COUNTER:
        raise KeyDerivationError(f"Counter out of range: {counter}")

    hkdf = HKDFExpand(
        algorithm=SHA256(),
        length=KEY_SIZE,
        info=MESSAGE_KEY_INFO_PREFIX + counter.to_bytes(COUNTER_SIZE, byteorder="big"),
    )
    return hkdf.derive(bytes(master_key))
