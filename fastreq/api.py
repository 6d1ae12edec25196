"""
Module-level shortcuts.

Each call builds a short-lived :class:`~fastreq.session.Session` from the
current process-wide defaults, sends one request and closes the session,
so cookies never carry over from one call to the next.
"""
from typing import Any

from .body import BodyInput
from .response import Response
from .session import Session


def request(method: str, url: str, body: BodyInput = None, **kwargs: Any) -> Response:
    """Send one request with a temporary :class:`Session`."""
    with Session() as session:
        return session.request(method, url, body, **kwargs)


def get(url: str, **kwargs: Any) -> Response:
    """Perform a single GET request using a short-lived Session."""
    return request("GET", url, **kwargs)


def post(url: str, body: BodyInput = None, **kwargs: Any) -> Response:
    """Perform a POST request; pass ``json=``, ``data=`` or a body variant."""
    return request("POST", url, body, **kwargs)


def put(url: str, body: BodyInput = None, **kwargs: Any) -> Response:
    """Send a PUT request using a temporary Session."""
    return request("PUT", url, body, **kwargs)


def delete(url: str, body: BodyInput = None, **kwargs: Any) -> Response:
    """Issue a DELETE request and return the resulting Response."""
    return request("DELETE", url, body, **kwargs)
