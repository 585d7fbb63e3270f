# Overview: Process logging setup shared by the web app and the CLI.

from __future__ import annotations

import logging

from flask import Flask

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"


def configure_logging(app: Flask) -> None:
    """
    Attach one stream handler to the ``app`` logger namespace.

    Service modules log through ``logging.getLogger(__name__)`` (``app.services.*``),
    so configuring the package logger covers them and Flask's own ``app.logger``.
    """
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)

    package_logger = logging.getLogger("app")
    package_logger.setLevel(level)
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
        package_logger.addHandler(handler)

    app.logger.setLevel(level)
