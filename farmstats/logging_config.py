"""Logging setup for the API process and the provisioning CLI."""
import logging
import sys

FORMAT = "%(asctime)s %(levelname)-8s %(name)s | %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Route everything through one stderr handler. Safe to call twice."""
    root = logging.getLogger()
    if not any(getattr(h, "_farmstats", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(FORMAT))
        handler._farmstats = True
        root.addHandler(handler)
    root.setLevel(level.upper())

    # Quiet noisy third-party loggers
    for noisy in ("httpx", "httpcore", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
