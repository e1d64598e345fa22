"""
Logging helpers.
"""

import logging
import sys

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_configured = False


def configure_logging(level: str = "INFO") -> None:
    """Install a stream handler on the ``triage`` logger tree once."""
    global _configured
    root = logging.getLogger("triage")
    root.setLevel(level.upper())
    if _configured:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT))
    root.addHandler(handler)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``triage`` namespace."""
    if not name.startswith("triage"):
        name = f"triage.{name}"
    return logging.getLogger(name)
