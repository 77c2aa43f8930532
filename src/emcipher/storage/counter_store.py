"""Counter store interface and in-memory implementation."""

from abc import ABC, abstractmethod
from typing import Optional

from ..state import CounterState


class CounterStore(ABC):
    """Interface for persisting per-conversation counter state.

    The session saves an advanced send counter before it encrypts with the
    reserved one, so a restored state never hands out a used counter.
    """

    @abstractmethod
    def load(self, conv_id: str) -> Optional[CounterState]:
        """Load the state for a conversation, or None if nothing is stored."""
        ...

    @abstractmethod
    def save(self, conv_id: str, state: CounterState) -> None:
        """Persist the state for a conversation."""
        ...

    @abstractmethod
    def delete(self, conv_id: str) -> None:
        """Delete the state for a conversation."""
        ...

    @abstractmethod
    def list_conversations(self) -> list[str]:
        """List all conversations with stored state."""
        ...


class InMemoryCounterStore(CounterStore):
    """
    In-memory implementation of CounterStore.

    State is lost when the process exits, so counters may be reused after a
    restart. Use FileCounterStore when sessions outlive the process.
    """

    def __init__(self) -> None:
        self._states: dict[str, dict] = {}

    def load(self, conv_id: str) -> Optional[CounterState]:
        """Load the state for a conversation."""
        data = self._states.get(conv_id)
        if data is None:
            return None
        return CounterState.from_dict(data)

    def save(self, conv_id: str, state: CounterState) -> None:
        """Persist the state for a conversation."""
        self._states[conv_id] = state.to_dict()

    def delete(self, conv_id: str) -> None:
        """Delete the state for a conversation."""
        self._states.pop(conv_id, None)

    def list_conversations(self) -> list[str]:
        """List all conversations with stored state."""
        return list(self._states.keys())
