"""Conversation profiles and Argon2id cost parameters."""

from dataclasses import dataclass
from enum import Enum


class Profile(Enum):
    """Device class a conversation was created for."""
    DESKTOP = "desktop"
    MOBILE = "mobile"


@dataclass(frozen=True)
class KdfParams:
    """Argon2id cost parameters.

    Every participant of a conversation must use identical values, otherwise
    the derived master keys differ and every message fails authentication.
    """
    m_cost_kib: int  # memory, e.g. 262_144 = 256 MiB
    t_cost: int  # iterations
    p_cost: int  # parallelism (lanes)


DESKTOP_STRONG = KdfParams(m_cost_kib=262_144, t_cost=3, p_cost=1)
MOBILE_STRONG = KdfParams(m_cost_kib=65_536, t_cost=4, p_cost=1)
LOW_POWER = KdfParams(m_cost_kib=32_768, t_cost=4, p_cost=1)


def parse_profile(value) -> Profile:
    """Coerce a Profile or its string value into a Profile.

    Raises:
        ValueError: If the value names no known profile.
    """
    if isinstance(value, Profile):
        return value
    try:
        return Profile(value)
    except ValueError:
        raise ValueError(f"Unknown profile: {value!r}") from None


def kdf_params_for(profile) -> KdfParams:
    """Return the default Argon2id parameters for a profile."""
    profile = parse_profile(profile)
    if profile is Profile.DESKTOP:
        return DESKTOP_STRONG
    return MOBILE_STRONG
