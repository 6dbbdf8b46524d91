"""
Logging helpers shared by every checklist module.
"""
import logging
import sys

from checklist.core import config


_configured = False


def _configure_root() -> None:
    global _configured
    if _configured:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
    root = logging.getLogger("checklist")
    root.addHandler(handler)
    root.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))
    root.propagate = False
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the "checklist" hierarchy.

    Usage:
        log = get_logger(__name__)
        log.info("Creating submission %s", submission_id)
    """
    _configure_root()
    if name == "__main__" or not name.startswith("checklist"):
        name = f"checklist.{name}"
    return logging.getLogger(name)
