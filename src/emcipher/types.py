"""Type definitions for EmCipher."""

# Key material sizes
KEY_SIZE = 32
SALT_SIZE = 16
NONCE_SIZE = 24  # XChaCha20-Poly1305
TAG_SIZE = 16

# Message counters are encoded as 8-byte big-endian integers
COUNTER_SIZE = 8
MAX_COUNTER = 2 ** (8 * COUNTER_SIZE) - 1

# Key derivation context prefixes
MASTER_KEY_INFO_PREFIX = "emcipher:km"
MESSAGE_KEY_INFO_PREFIX = b"emcipher:kmsg:"

# Wire protocol
PROTOCOL_VERSION = 1
RELAY_API_PREFIX = "/v1/conversations"


# Exception types
class EmCipherError(Exception):
    """Base exception for EmCipher errors."""
    pass


class KeyDerivationError(EmCipherError):
    """Key derivation inputs are malformed."""
    pass


class AuthenticationError(EmCipherError):
    """AEAD tag did not verify (tampering, wrong key or wrong AAD)."""
    pass


class MalformedInputError(EmCipherError):
    """Key, nonce or ciphertext has an invalid length."""
    pass


class MalformedEnvelopeError(EmCipherError):
    """Wire envelope is missing fields or carries invalid data."""
    pass


class MailboxNotFound(EmCipherError):
    """No pending envelope with this msg_id in the conversation."""

    def __init__(self, conv_id: str, msg_id: str) -> None:
        super().__init__(f"Message not found: {conv_id}/{msg_id}")
        self.conv_id = conv_id
        self.msg_id = msg_id


class RelayError(EmCipherError):
    """Relay request failed."""

    def __init__(self, message: str, status_code: int = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ReplayError(EmCipherError):
    """Counter was already consumed or falls outside the receive window."""

    def __init__(self, counter: int) -> None:
        super().__init__(f"Counter rejected: {counter}")
        self.counter = counter


class StorageError(EmCipherError):
    """Storage operation failed."""
    pass


class CounterExhaustedError(EmCipherError):
    """No counters left for this sender in the conversation."""
    pass
