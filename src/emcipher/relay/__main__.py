# Relay entry point
#
# Usage: emcipher-relay [--host HOST] [--port PORT] [--log-level LEVEL]
# Defaults come from the environment (PORT, EMCIPHER_RELAY_*), then RelayConfig.

import argparse
import logging
import sys

import uvicorn

from .app import create_app
from .config import RelayConfig

logger = logging.getLogger("emcipher.relay")


def main(argv=None):
    """Run the relay server."""
    config = RelayConfig.from_env()

    parser = argparse.ArgumentParser(
        prog="emcipher-relay",
        description="EmCipher relay - content-blind mailbox for encrypted envelopes",
    )
    parser.add_argument("--host", default=config.host, help=f"Bind address (default: {config.host})")
    parser.add_argument("--port", type=int, default=config.port, help=f"Port (default: {config.port})")
    parser.add_argument(
        "--log-level",
        default=config.log_level,
        choices=["critical", "error", "warning", "info", "debug"],
        help=f"Log level (default: {config.log_level})",
    )
    args = parser.parse_args(argv)

    config.host = args.host
    config.port = args.port
    config.log_level = args.log_level

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Relay server listening on %s:%d", config.host, config.port)

    uvicorn.run(create_app(config=config), host=config.host, port=config.port, log_level=config.log_level)
    return 0


if __name__ == "__main__":
    sys.exit(main())
