import logging
from typing import Optional

LOGGER_NAME = "fastreq"

_configured = False


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Return the package logger, or a child of it when ``name`` is given.

    A NullHandler is attached to the root package logger once so that
    applications which never configure logging see no output.
    """
    global _configured
    root = logging.getLogger(LOGGER_NAME)
    if not _configured:
        root.addHandler(logging.NullHandler())
        _configured = True
    if name:
        return root.getChild(name)
    return root
