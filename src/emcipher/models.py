"""Models for EmCipher conversations and messages."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .envelope import Envelope
from .params import Profile
from .types import EmCipherError, SALT_SIZE


@dataclass(frozen=True)
class ConversationParameters:
    """Public parameters shared by all participants of a conversation."""
    conv_id: str
    salt: bytes  # 16 bytes
    profile: Profile

    def __post_init__(self) -> None:
        if not isinstance(self.conv_id, str) or not self.conv_id:
            raise ValueError("conv_id must be a non-empty string")
        if not isinstance(self.salt, (bytes, bytearray)):
            raise ValueError(f"Salt must be bytes, got {type(self.salt).__name__}")
        if len(self.salt) != SALT_SIZE:
            raise ValueError(f"Salt must be {SALT_SIZE} bytes, got {len(self.salt)}")
        if not isinstance(self.profile, Profile):
            raise ValueError(f"Unknown profile: {self.profile!r}")


class Role(Enum):
    """Which side of the conversation a session sends as.

    Each role owns a disjoint lane of message counters so the two
    participants never derive the same message key for encryption.
    """
    CREATOR = 0
    JOINER = 1

    @property
    def lane(self) -> int:
        """Counter residue modulo the number of lanes."""
        return self.value


LANE_COUNT = len(Role)


@dataclass
class SendResult:
    """Result of sending a message."""
    envelope: Envelope
    counter: int

    @property
    def msg_id(self) -> str:
        """The relay id of the sent envelope."""
        return self.envelope.msg_id


@dataclass
class ReceivedMessage:
    """A decrypted incoming message."""
    msg_id: str
    counter: int
    text: str
    aad: str
    acknowledged: bool = False


@dataclass
class ReceiveFailure:
    """An envelope that could not be opened."""
    msg_id: str
    error: EmCipherError


@dataclass
class PollResult:
    """Messages and failures from one poll of the relay."""
    messages: list[ReceivedMessage] = field(default_factory=list)
    failures: list[ReceiveFailure] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        """Whether any envelope failed to open."""
        return len(self.failures) > 0

    def first_failure(self) -> Optional[ReceiveFailure]:
        """Returns the first failure, if any."""
        return self.failures[0] if self.failures else None
