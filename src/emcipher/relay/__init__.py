"""EmCipher relay service."""

from .app import create_app
from .config import RelayConfig

__all__ = [
    "create_app",
    "RelayConfig",
]
