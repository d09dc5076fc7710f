"""
Run the mint oracle HTTP server.
"""
import argparse
import logging
import sys

import uvicorn
from dotenv import load_dotenv

from .config import OracleSettings
from .exceptions import ConfigurationError, SigningUnavailableError
from .server import create_app

logger = logging.getLogger("mint_oracle")


def main(argv=None) -> int:
    """Run the server."""
    parser = argparse.ArgumentParser(
        description="Verify voucher payments and sign mint authorizations.")
    parser.add_argument(
        "--env-file",
        help="Path to a .env file to load before reading settings",
        default=".env"
    )
    parser.add_argument(
        "--host",
        help="Bind address (overrides ORACLE_HOST)"
    )
    parser.add_argument(
        "--port",
        help="Bind port (overrides ORACLE_PORT)",
        type=int
    )
    parser.add_argument(
        "--debug",
        help="Enable debug logging",
        action="store_true"
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    load_dotenv(args.env_file)

    try:
        settings = OracleSettings.from_env()
        app = create_app(settings)
    except (ConfigurationError, SigningUnavailableError) as e:
        logger.error(f"Cannot start mint oracle: {e}")
        return 1

    uvicorn.run(app, host=args.host or settings.host, port=args.port or settings.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
