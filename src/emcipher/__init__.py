"""
EmCipher - End-to-end encrypted messaging through a content-blind relay

Python implementation of the EmCipher protocol using Argon2id + HKDF-SHA256 +
XChaCha20-Poly1305.
"""

from .params import (
    Profile,
    KdfParams,
    DESKTOP_STRONG,
    MOBILE_STRONG,
    LOW_POWER,
    kdf_params_for,
)
from .keys import derive_master_key, derive_message_key
from .crypto import encrypt, decrypt
from .envelope import Envelope, encode_envelope, decode_envelope, is_envelope
from .bridge import CryptoBridge, DefaultCryptoBridge
from .types import (
    KEY_SIZE,
    SALT_SIZE,
    NONCE_SIZE,
    TAG_SIZE,
    MAX_COUNTER,
    PROTOCOL_VERSION,
    EmCipherError,
    KeyDerivationError,
    AuthenticationError,
    MalformedInputError,
    MalformedEnvelopeError,
    MailboxNotFound,
    RelayError,
    ReplayError,
    StorageError,
    CounterExhaustedError,
)
from .models import (
    ConversationParameters,
    Role,
    SendResult,
    ReceivedMessage,
    ReceiveFailure,
    PollResult,
)
from .exchange import (
    new_conversation,
    create_join_payload,
    parse_join_payload,
    create_exchange_uri,
    parse_exchange_uri,
)
from .state import (
    CounterState,
    COUNTER_WINDOW,
    validate_counter,
    record_receive,
    advance_send_counter,
)
from .storage import (
    CounterStore,
    InMemoryCounterStore,
    FileCounterStore,
)
from .mailbox import RelayMailbox
from .transport import RelayClientConfig, RelayClient
from .session import ClientSession

__version__ = "0.1.0"

__all__ = [
    # Params
    "Profile",
    "KdfParams",
    "DESKTOP_STRONG",
    "MOBILE_STRONG",
    "LOW_POWER",
    "kdf_params_for",
    # Keys
    "derive_master_key",
    "derive_message_key",
    # Crypto
    "encrypt",
    "decrypt",
    # Envelope
    "Envelope",
    "encode_envelope",
    "decode_envelope",
    "is_envelope",
    # Bridge
    "CryptoBridge",
    "DefaultCryptoBridge",
    # Constants
    "KEY_SIZE",
    "SALT_SIZE",
    "NONCE_SIZE",
    "TAG_SIZE",
    "MAX_COUNTER",
    "PROTOCOL_VERSION",
    # Errors
    "EmCipherError",
    "KeyDerivationError",
    "AuthenticationError",
    "MalformedInputError",
    "MalformedEnvelopeError",
    "MailboxNotFound",
    "RelayError",
    "ReplayError",
    "StorageError",
    "CounterExhaustedError",
    # Models
    "ConversationParameters",
    "Role",
    "SendResult",
    "ReceivedMessage",
    "ReceiveFailure",
    "PollResult",
    # Exchange
    "new_conversation",
    "create_join_payload",
    "parse_join_payload",
    "create_exchange_uri",
    "parse_exchange_uri",
    # State
    "CounterState",
    "COUNTER_WINDOW",
    "validate_counter",
    "record_receive",
    "advance_send_counter",
    # Storage
    "CounterStore",
    "InMemoryCounterStore",
    "FileCounterStore",
    # Mailbox
    "RelayMailbox",
    # Transport
    "RelayClientConfig",
    "RelayClient",
    # Session
    "ClientSession",
]
