import logging
import os

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def configure_logging(level: str | None = None):
    """Configure basic logging for the API, the poller and the CLI.

    Uses a simple format including level, module, and message. Calling it more
    than once is harmless: an already configured root logger is left alone.
    """
    if logging.getLogger().handlers:
        # Already configured (avoid duplicate handlers in reload / dev)
        return
    fmt = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    logging.basicConfig(level=(level or LOG_LEVEL).upper(), format=fmt)


def get_logger(name: str):
    configure_logging()
    return logging.getLogger(name)
