"""Configuration for the relay service."""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional


@dataclass
class RelayConfig:
    """Configuration for the relay HTTP service."""

    host: str = "0.0.0.0"
    """Interface to bind."""

    port: int = 3001
    """Port to listen on."""

    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    """Origins allowed to call the relay from browsers."""

    log_level: str = "info"
    """Log level for the relay and uvicorn."""

    @classmethod
    def localhost(cls, port: int = 3001) -> "RelayConfig":
        """Creates configuration bound to the loopback interface."""
        return cls(host="127.0.0.1", port=port)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RelayConfig":
        """Creates configuration from environment variables.

        Reads ``PORT``, ``EMCIPHER_RELAY_HOST``, ``EMCIPHER_RELAY_CORS_ORIGINS``
        (comma separated) and ``EMCIPHER_RELAY_LOG_LEVEL``.
        """
        environ = os.environ if environ is None else environ
        config = cls()

        if environ.get("PORT"):
            config.port = int(environ["PORT"])
        if environ.get("EMCIPHER_RELAY_HOST"):
            config.host = environ["EMCIPHER_RELAY_HOST"]
        if environ.get("EMCIPHER_RELAY_CORS_ORIGINS"):
            config.cors_origins = [
                origin.strip()
                for origin in environ["EMCIPHER_RELAY_CORS_ORIGINS"].split(",")
                if origin.strip()
            ]
        if environ.get("EMCIPHER_RELAY_LOG_LEVEL"):
            config.log_level = environ["EMCIPHER_RELAY_LOG_LEVEL"].lower()

        return config
