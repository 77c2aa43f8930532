"""Message counter state for sending and replay protection."""

from dataclasses import dataclass, field

from .types import MAX_COUNTER, CounterExhaustedError

# How far behind the highest received counter a message may still arrive
COUNTER_WINDOW = 200


@dataclass
class CounterState:
    """Counters of one participant in one conversation.

    Attributes:
        send_counter: Counter the next sealed message is encrypted under.
        peer_last_counter: Highest counter accepted from the peer, -1 before any.
        seen_counters: Accepted counters still inside the receive window.
    """

    send_counter: int = 0
    peer_last_counter: int = -1
    seen_counters: set = field(default_factory=set)

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict."""
        return {
            "send_counter": self.send_counter,
            "peer_last_counter": self.peer_last_counter,
            "seen_counters": sorted(self.seen_counters),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CounterState":
        """Create state from a dict produced by to_dict()."""
        return cls(
            send_counter=int(data["send_counter"]),
            peer_last_counter=int(data["peer_last_counter"]),
            seen_counters={int(c) for c in data.get("seen_counters", [])},
        )


def validate_counter(state: CounterState, counter: int) -> bool:
    """Check whether a counter read from an envelope AAD may be accepted.

    A counter is refused when it lies outside 0..MAX_COUNTER, when a message
    with that counter was already opened, or when it trails the highest
    accepted counter by more than COUNTER_WINDOW.
    """
    if counter < 0 or counter > MAX_COUNTER:
        return False

    if counter in state.seen_counters:
        return False

    if state.peer_last_counter >= 0:
        lower_bound = max(0, state.peer_last_counter - COUNTER_WINDOW)
        if counter < lower_bound:
            return False

    return True


def record_receive(state: CounterState, counter: int) -> CounterState:
    """Return the state after a message with this counter was opened.

    Counters that fall out of the window are forgotten; validate_counter
    rejects them by position instead.
    """
    highest = max(state.peer_last_counter, counter)
    oldest_kept = max(0, highest - COUNTER_WINDOW)
    seen = {c for c in state.seen_counters | {counter} if c >= oldest_kept}

    return CounterState(
        send_counter=state.send_counter,
        peer_last_counter=highest,
        seen_counters=seen,
    )


def advance_send_counter(state: CounterState, step: int = 1) -> tuple:
    """Hand out the next send counter.

    Args:
        state: Current counters of the sender.
        step: Lane stride; LANE_COUNT for sessions.

    Returns:
        Tuple of (counter, state to persist before encrypting).

    Raises:
        CounterExhaustedError: If the counter would not fit in 64 bits.
    """
    counter = state.send_counter
    if counter > MAX_COUNTER:
        raise CounterExhaustedError("Send counter space exhausted")

    new_state = CounterState(
        send_counter=state.send_counter + step,
        peer_last_counter=state.peer_last_counter,
        seen_counters=set(state.seen_counters),
    )
    return counter, new_state
