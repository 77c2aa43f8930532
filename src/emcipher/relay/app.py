"""FastAPI application for the relay service."""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..mailbox import RelayMailbox
from .config import RelayConfig
from .routes import router

logger = logging.getLogger(__name__)


def create_app(
    mailbox: Optional[RelayMailbox] = None,
    config: Optional[RelayConfig] = None,
) -> FastAPI:
    """
    Build the relay application.

    Args:
        mailbox: Store for pending envelopes (default: a new empty one)
        config: Relay configuration (default: RelayConfig())

    Returns:
        FastAPI app with the mailbox on ``app.state.mailbox``
    """
    config = config or RelayConfig()

    app = FastAPI(
        title="EmCipher Relay",
        description="Content-blind mailbox for end-to-end encrypted envelopes",
        version="0.1.0",
    )
    app.state.mailbox = mailbox if mailbox is not None else RelayMailbox()
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )
    app.include_router(router)

    @app.get("/healthz")
    def healthz():
        return {"ok": True}

    logger.debug("Relay app created (CORS origins: %s)", config.cors_origins)
    return app
