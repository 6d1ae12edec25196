from typing import Optional


class FastReqError(Exception):
    """Base exception for the fastreq package."""


class RequestError(FastReqError):
    """Raised when request building or sending fails."""


class TransportError(RequestError):
    """
    Network-level failure (DNS, refused connection, TLS, timeout).

    These are never raised by the dispatcher; they are attached to the
    returned Response as ``Response.error``.
    """


class ConnectError(TransportError):
    """The TCP or TLS connection could not be established."""


class RequestTimeout(TransportError):
    """The configured timeout elapsed before the exchange completed."""


class ProxyError(TransportError):
    """The proxy refused or failed to tunnel the request."""


class ProtocolError(TransportError):
    """The peer sent something that is not valid HTTP/1.1."""


class TooManyRedirects(TransportError):
    """The redirect chain exceeded ``Config.max_redirects``."""


class ResponseError(FastReqError):
    """Raised when response handling fails."""


class HTTPStatusError(ResponseError):
    """Raised when a response status is outside the 2xx range."""

    def __init__(self, status_code: int, message: str, response: Optional[object] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class SaveError(ResponseError):
    """Raised when a response body cannot be written to disk."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
