"""Logging setup for the server process."""
import logging

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger"""
    root = logging.getLogger()
    root.setLevel(level.upper())
    if not any(getattr(h, "_estatemap", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._estatemap = True
        root.addHandler(handler)
    # SQL echo is noisy at INFO; DEBUG turns it back on through the engine
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
