"""Run the form service with uvicorn: ``python -m stepform``."""

from __future__ import annotations

import logging

import uvicorn

from stepform.config import load_config
from stepform.logging_setup import configure_logging
from stepform.main import create_app

logger = logging.getLogger(__name__)


def main() -> None:
    configure_logging()
    cfg = load_config()
    logger.info("Starting server on http://%s:%s", cfg.server.host, cfg.server.port)
    uvicorn.run(create_app(cfg), host=cfg.server.host, port=cfg.server.port, log_config=None)


if __name__ == "__main__":
    main()
