"""
Client session for one EmCipher conversation.

The ClientSession binds key derivation, AEAD and the envelope codec to the
conversation's message counters and talks to the relay through a
RelayClient.

Counters:
    Both participants derive the same master key, so each sends on its own
    lane of counters (``Role``): the creator uses even counters, the joiner
    odd ones. The counter of every message is carried in its authenticated
    AAD as ``v=1;ctr=<counter>``.

    The advanced send counter is saved to the CounterStore before a message
    is encrypted. A crash can skip a counter but never reuse one, provided
    the store outlives the process.
"""

import logging
import threading
import uuid
from typing import Optional, Union

from .crypto import decrypt, encrypt
from .envelope import Envelope
from .keys import derive_master_key, derive_message_key
from .models import (
    ConversationParameters,
    LANE_COUNT,
    PollResult,
    ReceiveFailure,
    ReceivedMessage,
    Role,
    SendResult,
)
from .params import KdfParams
from .state import CounterState, advance_send_counter, record_receive, validate_counter
from .storage import CounterStore, InMemoryCounterStore
from .transport import RelayClient
from .types import (
    MAX_COUNTER,
    PROTOCOL_VERSION,
    AuthenticationError,
    KeyDerivationError,
    MailboxNotFound,
    MalformedEnvelopeError,
    MalformedInputError,
    ReplayError,
)

logger = logging.getLogger(__name__)

_MAX_COUNTER_DIGITS = len(str(MAX_COUNTER))


def build_aad(counter: int) -> str:
    """Build the AAD string for a message counter."""
    return f"v={PROTOCOL_VERSION};ctr={counter}"


def parse_aad(aad: str) -> dict:
    """Parse a ``key=value;key=value`` AAD string."""
    fields = {}
    for part in aad.split(";"):
        key, sep, value = part.partition("=")
        if sep:
            fields[key.strip()] = value.strip()
    return fields


def counter_from_aad(aad: str) -> int:
    """
    Extract the message counter from an AAD string.

    Raises:
        MalformedEnvelopeError: If the AAD has no valid counter or an
            unsupported version.
    """
    fields = parse_aad(aad)

    if fields.get("v") != str(PROTOCOL_VERSION):
        raise MalformedEnvelopeError(f"Unsupported AAD version: {fields.get('v')!r}")

    value = fields.get("ctr", "")
    if not (value.isascii() and value.isdigit()):
        raise MalformedEnvelopeError(f"AAD carries no counter: {aad!r}")

    if len(value) > _MAX_COUNTER_DIGITS or int(value) > MAX_COUNTER:
        raise MalformedEnvelopeError("AAD counter exceeds 64 bits")

    return int(value)


class ClientSession:
    """
    Send and receive encrypted messages in one conversation.

    Example usage:
        ```python
        params = parse_join_payload(pasted_text)
        relay = RelayClient(RelayClientConfig.localhost())
        session = ClientSession(params, seed, relay, role=Role.JOINER)

        session.send("hi")
        result = session.poll()
        for msg in result.messages:
            print(msg.text)
        ```
    """

    def __init__(
        self,
        params: ConversationParameters,
        seed: Union[str, bytes],
        relay: RelayClient,
        role: Role = Role.CREATOR,
        store: Optional[CounterStore] = None,
        kdf_params: Optional[KdfParams] = None,
    ) -> None:
        """
        Create a session, deriving the conversation master key.

        Key derivation is deliberately slow (Argon2id); construct sessions
        off latency-critical paths.

        Args:
            params: Public conversation parameters.
            seed: The user's secret passphrase.
            relay: Client for the relay service.
            role: Which counter lane this participant sends on.
            store: Counter persistence (default: in-memory).
            kdf_params: Argon2id override; must match the peer's.
        """
        self.params = params
        self.role = role
        self._relay = relay
        self._store = store if store is not None else InMemoryCounterStore()
        self._master_key = derive_master_key(
            seed, params.conv_id, params.salt, params.profile, kdf_params
        )
        self._lock = threading.Lock()

        state = self._store.load(params.conv_id)
        if state is None:
            state = CounterState(send_counter=role.lane)
        elif state.send_counter % LANE_COUNT != role.lane:
            raise ValueError(
                f"Stored send counter {state.send_counter} is not on the {role.name} lane"
            )
        self._state = state

    @property
    def conv_id(self) -> str:
        """The conversation id."""
        return self.params.conv_id

    @property
    def next_counter(self) -> int:
        """The counter the next sent message will use."""
        with self._lock:
            return self._state.send_counter

    def _reserve_counter(self) -> int:
        with self._lock:
            counter, new_state = advance_send_counter(self._state, LANE_COUNT)
            self._store.save(self.conv_id, new_state)
            self._state = new_state
        return counter

    def _seal(self, text: str) -> tuple:
        counter = self._reserve_counter()
        aad = build_aad(counter)
        nonce, ciphertext = encrypt(
            derive_message_key(self._master_key, counter),
            text.encode("utf-8"),
            aad.encode("utf-8"),
        )
        envelope = Envelope(
            conv_id=self.conv_id,
            msg_id=str(uuid.uuid4()),
            nonce=nonce,
            aad=aad,
            ciphertext=ciphertext,
        )
        return envelope, counter

    def seal(self, text: str) -> Envelope:
        """
        Encrypt a message into an envelope without sending it.

        Consumes one send counter.
        """
        envelope, _ = self._seal(text)
        return envelope

    def send(self, text: str) -> SendResult:
        """
        Encrypt a message and post it to the relay.

        If posting fails the counter stays consumed; retry with
        ``resend(result.envelope)`` rather than sending the text again.

        Raises:
            RelayError: If the relay rejects the envelope.
        """
        envelope, counter = self._seal(text)
        self._relay.post_envelope(envelope)
        logger.info("Sent %s in %s (counter %d)", envelope.msg_id, self.conv_id, counter)
        return SendResult(envelope=envelope, counter=counter)

    def resend(self, envelope: Envelope) -> None:
        """Post an already sealed envelope again, keeping its msg_id."""
        self._relay.post_envelope(envelope)
        logger.info("Re-sent %s in %s", envelope.msg_id, self.conv_id)

    def open(self, envelope: Envelope) -> ReceivedMessage:
        """
        Decrypt an envelope and record its counter.

        Raises:
            MalformedEnvelopeError: If the envelope belongs to another
                conversation or carries no counter.
            ReplayError: If the counter was already accepted.
            AuthenticationError: If the envelope fails authentication.
            MalformedInputError: If nonce or ciphertext are malformed.
        """
        if envelope.conv_id != self.conv_id:
            raise MalformedEnvelopeError(
                f"Envelope belongs to {envelope.conv_id}, not {self.conv_id}"
            )

        counter = counter_from_aad(envelope.aad)

        with self._lock:
            if not validate_counter(self._state, counter):
                raise ReplayError(counter)

        plaintext = decrypt(
            derive_message_key(self._master_key, counter),
            envelope.nonce,
            envelope.ciphertext,
            envelope.aad.encode("utf-8"),
        )
        try:
            text = plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedInputError("Plaintext is not UTF-8") from e

        with self._lock:
            # Another thread may have accepted the same counter meanwhile
            if not validate_counter(self._state, counter):
                raise ReplayError(counter)
            new_state = record_receive(self._state, counter)
            self._store.save(self.conv_id, new_state)
            self._state = new_state

        return ReceivedMessage(
            msg_id=envelope.msg_id,
            counter=counter,
            text=text,
            aad=envelope.aad,
        )

    def poll(self, ack: bool = True) -> PollResult:
        """
        Fetch, decrypt and (optionally) acknowledge pending peer messages.

        Envelopes on this session's own counter lane are left untouched.
        Envelopes that fail are reported in ``PollResult.failures``;
        authentication failures stay on the relay, replays are acknowledged
        away since they can never be accepted.

        Raises:
            RelayError: If the relay cannot be reached.
        """
        result = PollResult()

        for envelope in self._relay.fetch_envelopes(self.conv_id):
            try:
                counter = counter_from_aad(envelope.aad)
            except MalformedEnvelopeError as e:
                logger.warning("Envelope %s in %s has no counter", envelope.msg_id, self.conv_id)
                result.failures.append(ReceiveFailure(msg_id=envelope.msg_id, error=e))
                continue

            if counter % LANE_COUNT == self.role.lane:
                continue

            try:
                message = self.open(envelope)
            except ReplayError as e:
                logger.warning("Replayed counter %d in %s (%s)", counter, self.conv_id, envelope.msg_id)
                result.failures.append(ReceiveFailure(msg_id=envelope.msg_id, error=e))
                if ack:
                    self._ack_quietly(envelope.msg_id)
                continue
            except (AuthenticationError, MalformedInputError, MalformedEnvelopeError, KeyDerivationError) as e:
                logger.warning("Cannot open %s in %s: %s", envelope.msg_id, self.conv_id, e)
                result.failures.append(ReceiveFailure(msg_id=envelope.msg_id, error=e))
                continue

            if ack:
                message.acknowledged = self._ack_quietly(envelope.msg_id)

            result.messages.append(message)

        logger.debug(
            "Polled %s: %d message(s), %d failure(s)",
            self.conv_id,
            len(result.messages),
            len(result.failures),
        )
        return result

    def _ack_quietly(self, msg_id: str) -> bool:
        """Acknowledge an envelope, returning False if it was already gone."""
        try:
            self._relay.ack(self.conv_id, msg_id)
        except MailboxNotFound:
            logger.info("Envelope %s in %s was already acknowledged", msg_id, self.conv_id)
            return False
        return True
