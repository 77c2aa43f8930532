"""
Relay mailbox: per-conversation queues of opaque envelopes.

The mailbox is content-blind. Envelopes are stored as the JSON objects the
relay received and are only ever inspected for their ``msg_id`` when
acknowledged. It never holds or needs key material.

Operations on one conversation are serialized by that conversation's lock.
Lock entries are created lazily, reference counted while callers use them,
and dropped together with the queue once it is empty.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from .types import MailboxNotFound

logger = logging.getLogger(__name__)


class _Slot:
    """Pending envelopes and lock for one conversation."""

    __slots__ = ("lock", "envelopes", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.envelopes: list[dict] = []
        self.users = 0


class RelayMailbox:
    """
    In-memory store of pending envelopes, keyed by conversation id.

    Example usage:
        ```python
        mailbox = RelayMailbox()
        mailbox.append("demo", {"msg_id": "m1", ...})
        pending = mailbox.list("demo")
        mailbox.acknowledge("demo", "m1")
        ```
    """

    def __init__(self) -> None:
        self._slots: dict[str, _Slot] = {}
        self._registry_lock = threading.Lock()

    @contextmanager
    def _conversation(self, conv_id: str, create: bool) -> Iterator[Optional[_Slot]]:
        """Hold the lock of one conversation, yielding None if it does not exist."""
        with self._registry_lock:
            slot = self._slots.get(conv_id)
            if slot is None and create:
                slot = self._slots[conv_id] = _Slot()
            if slot is not None:
                slot.users += 1

        if slot is None:
            yield None
            return

        try:
            with slot.lock:
                yield slot
        finally:
            with self._registry_lock:
                slot.users -= 1
                if slot.users == 0 and not slot.envelopes:
                    # Only drop the entry if it is still the registered one
                    if self._slots.get(conv_id) is slot:
                        del self._slots[conv_id]

    def append(self, conv_id: str, envelope: dict) -> None:
        """
        Append an envelope to the tail of a conversation's queue.

        A copy of the envelope is stored. Duplicate msg_ids are not detected.

        Args:
            conv_id: Conversation id
            envelope: Wire envelope object
        """
        with self._conversation(conv_id, create=True) as slot:
            slot.envelopes.append(dict(envelope))
            pending = len(slot.envelopes)

        logger.debug("Appended %s to %s (%d pending)", _msg_id(envelope), conv_id, pending)

    def list(self, conv_id: str) -> list[dict]:
        """
        Return copies of the pending envelopes in insertion order.

        Unknown conversations yield an empty list.

        Args:
            conv_id: Conversation id

        Returns:
            List of wire envelope objects
        """
        with self._conversation(conv_id, create=False) as slot:
            if slot is None:
                return []
            return [dict(envelope) for envelope in slot.envelopes]

    def acknowledge(self, conv_id: str, msg_id: str) -> dict:
        """
        Remove the first pending envelope with a msg_id.

        Each envelope can be acknowledged once; afterwards it is neither
        listed nor acknowledgeable again.

        Args:
            conv_id: Conversation id
            msg_id: Id of the envelope to remove

        Returns:
            The removed envelope

        Raises:
            MailboxNotFound: If no pending envelope has this msg_id
        """
        with self._conversation(conv_id, create=False) as slot:
            if slot is not None:
                for i, envelope in enumerate(slot.envelopes):
                    if _msg_id(envelope) == msg_id:
                        del slot.envelopes[i]
                        logger.debug("Acknowledged %s in %s", msg_id, conv_id)
                        return envelope

        logger.info("Acknowledge for unknown message %s in %s", msg_id, conv_id)
        raise MailboxNotFound(conv_id, msg_id)

    def pending_count(self, conv_id: str) -> int:
        """Returns the number of pending envelopes in a conversation."""
        with self._conversation(conv_id, create=False) as slot:
            return len(slot.envelopes) if slot is not None else 0

    def conversation_count(self) -> int:
        """Returns the number of conversations currently held."""
        with self._registry_lock:
            return len(self._slots)


def _msg_id(envelope: Any) -> Optional[str]:
    if isinstance(envelope, dict):
        return envelope.get("msg_id")
    return None
