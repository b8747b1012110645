"""Process-wide logging setup for the CLI entry point."""

import logging
from typing import Optional

DEV_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
PROD_FORMAT = "%(levelname)s | %(message)s"


def configure_logging(env: str = "dev", level: Optional[str] = None) -> None:
    """
    Configure root logging.

    ENV=dev: INFO level with detailed format (default)
    ENV=prod/staging: WARNING level, minimal logs

    An explicit ``level`` (e.g. "DEBUG") wins over the ENV-derived one.
    """
    is_dev = (env or "dev").lower() == "dev"
    log_level = logging.INFO if is_dev else logging.WARNING
    if level:
        log_level = logging.getLevelName(level.upper())
        if not isinstance(log_level, int):
            raise ValueError(f"Unknown log level: {level}")

    logging.basicConfig(
        level=log_level,
        format=DEV_FORMAT if is_dev else PROD_FORMAT,
        datefmt="%H:%M:%S",
        force=True,
    )

    # Per-request transport logs are noise unless explicitly asked for
    if log_level > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("urllib3").setLevel(logging.WARNING)
