"""fastreq: a small, synchronous convenience HTTP client built on h11."""
from ._version import __version__ as __version__
from .api import delete, get, post, put, request
from .body import Body, Form, Json, Raw, Text
from .config import Config, configure, get_defaults, reset_defaults, set_header, set_proxy, set_timeout
from .cookies import Cookie, CookieJar
from .errors import (
    ConnectError,
    FastReqError,
    HTTPStatusError,
    ProtocolError,
    ProxyError,
    RequestError,
    RequestTimeout,
    ResponseError,
    SaveError,
    TooManyRedirects,
    TransportError,
)
from .jsonpath import JSONResult
from .request import Request
from .response import Response
from .session import Session
from .timeouts import Timeout

__all__ = [
    "Session",
    "Response",
    "Request",
    "Config",
    "Timeout",
    "Cookie",
    "CookieJar",
    "JSONResult",
    "Body",
    "Json",
    "Form",
    "Text",
    "Raw",
    "get",
    "post",
    "put",
    "delete",
    "request",
    "configure",
    "get_defaults",
    "reset_defaults",
    "set_header",
    "set_proxy",
    "set_timeout",
    "FastReqError",
    "RequestError",
    "TransportError",
    "ConnectError",
    "RequestTimeout",
    "ProxyError",
    "ProtocolError",
    "TooManyRedirects",
    "ResponseError",
    "HTTPStatusError",
    "SaveError",
    "__version__",
]
