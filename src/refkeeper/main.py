"""Application entry point for the refkeeper server."""

import structlog

from refkeeper.app import App
from refkeeper.config import Config
from refkeeper.logging import setup_logging
from refkeeper.web.runner import run_server

logger = structlog.get_logger(__name__)


def main() -> None:
    config = Config()
    setup_logging(config.debug)
    logger.info(
        "refkeeper_starting",
        host=config.host,
        port=config.port,
        batch_size=config.batch_size,
        use_transactions=config.use_transactions,
    )
    app = App(config)
    run_server(app, config)


if __name__ == "__main__":
    main()
