"""Main application entry point."""

import argparse
import logging

import uvicorn
from dotenv import load_dotenv

from leasebill.services.config import load_config
from leasebill.services.logging import setup_server_logging

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def main():
    """Main entry point."""
    config = load_config()

    parser = argparse.ArgumentParser(description="leasebill billing API")
    parser.add_argument("--host", default=config.host, help="Host to bind to")
    parser.add_argument("--port", type=int, default=config.port, help="Port to bind to")
    args = parser.parse_args()

    # Configure logging (with file logging)
    setup_server_logging(config.log_file)
    logger.info(
        "Starting billing API on %s:%d (total policy: %s, reopen policy: %s)",
        args.host,
        args.port,
        config.total_policy.value,
        config.reopen_policy.value,
    )

    from leasebill.api.app import app

    uvicorn.run(app, host=args.host, port=args.port, log_config=None)


if __name__ == "__main__":
    main()
