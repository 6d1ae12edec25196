import time
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional, Union
from urllib.parse import urljoin, urlsplit

from ._version import __version__
from .body import BodyInput, coerce_body, encode_body
from .config import Config, get_defaults
from .connection import Proxy
from .cookies import CookieJar
from .errors import ProtocolError, RequestTimeout, TooManyRedirects, TransportError
from .headers import has_header, merge_headers, remove_header, set_header
from .logging import get_logger
from .pool import ConnectionPool
from .request import Request, append_params
from .response import Response
from .timeouts import Timeout

SUPPORTED_METHODS = frozenset({"GET", "POST", "PUT", "DELETE"})
REDIRECT_CODES = frozenset({301, 302, 303, 307, 308})
# Redirects that turn the follow-up request into a body-less GET.
METHOD_CHANGING_REDIRECTS = frozenset({301, 302, 303})
CROSS_HOST_STRIPPED_HEADERS = ("Authorization", "Cookie")

ParamsType = Optional[Mapping[str, Any]]
HeadersType = Optional[Mapping[str, str]]
TimeoutType = Union[Timeout, float, int, None]


class Session:
    """
    HTTP session with a persistent cookie jar and default headers.

    The session snapshots its configuration at construction; changing the
    process-wide defaults afterwards does not affect it. Sessions are meant
    to be used from one thread at a time.

    Transport failures never raise: the returned Response carries them in
    ``error`` with ``status_code == 0``. Invalid arguments (bad URL, bad
    method, conflicting body arguments) raise ValueError.

    Example:
        with Session() as session:
            session.set_header("Authorization", "Bearer token")
            resp = session.post("https://api.example.com/items", json={"name": "x"})
            resp.raise_for_status()
            print(resp.json().get("id").as_int())
    """

    def __init__(self, config: Optional[Config] = None, *, cookies: Optional[CookieJar] = None) -> None:
        self.config = config.copy() if config is not None else get_defaults()
        self._headers: Dict[str, str] = dict(self.config.headers)
        self.cookies = cookies if cookies is not None else CookieJar()
        self.user_agent = self.config.user_agent or f"fastreq/{__version__}"
        self.logger = get_logger()
        self.pool = ConnectionPool(
            max_per_host=self.config.max_per_host,
            keepalive_timeout=self.config.keepalive_timeout,
            verify=self.config.verify,
            proxy=Proxy.from_url(self.config.proxy) if self.config.proxy else None,
        )

    @property
    def headers(self) -> Dict[str, str]:
        """A copy of the session's default headers."""
        return dict(self._headers)

    def set_header(self, key: str, value: str) -> None:
        """Set a header sent with every later request of this session."""
        set_header(self._headers, key, str(value))

    def request(
        self,
        method: str,
        url: str,
        body: BodyInput = None,
        *,
        json: Any = None,
        data: Optional[Mapping[str, Any]] = None,
        content: Union[str, bytes, None] = None,
        params: ParamsType = None,
        headers: HeadersType = None,
        timeout: TimeoutType = None,
    ) -> Response:
        method = method.upper()
        if method not in SUPPORTED_METHODS:
            raise ValueError(f"Unsupported method {method!r}; expected one of {sorted(SUPPORTED_METHODS)}")
        payload, content_type = encode_body(coerce_body(body, json=json, data=data, content=content))

        current_url = append_params(url, params)
        current_headers = merge_headers(self._headers, headers)
        if content_type and not has_header(current_headers, "content-type"):
            current_headers["Content-Type"] = content_type
        resolved_timeout = self.config.timeout
        if timeout is not None:
            resolved_timeout = Timeout.from_value(timeout).merge(self.config.timeout)

        # Validates the URL before anything touches the network.
        req = self._build_request(method, current_url, current_headers, payload, resolved_timeout)
        deadline = resolved_timeout.deadline()
        start_time = time.monotonic()
        history: List[Response] = []

        while True:
            self.logger.debug("%s %s", req.method, req.url)
            try:
                resp = self._send(req, deadline)
            except TransportError as exc:
                self.logger.warning("%s %s failed: %s", req.method, req.url, exc)
                return replace(
                    Response.from_error(exc, request=req, elapsed=time.monotonic() - start_time),
                    history=history,
                )

            self.cookies.add_from_response(resp)

            location = resp.header("Location")
            if not (self.config.follow_redirects and resp.status_code in REDIRECT_CODES and location):
                return replace(resp, history=history, elapsed=time.monotonic() - start_time)

            if len(history) >= self.config.max_redirects:
                error = TooManyRedirects(f"Stopped after {len(history)} redirects")
                self.logger.warning("%s %s failed: %s", req.method, req.url, error)
                return replace(
                    Response.from_error(error, request=req, elapsed=time.monotonic() - start_time),
                    history=history + [resp],
                )

            history.append(resp)
            next_url = urljoin(req.url, location)
            if resp.status_code in METHOD_CHANGING_REDIRECTS:
                method = "GET"
                payload = None
                remove_header(current_headers, "Content-Type")
                remove_header(current_headers, "Content-Length")
            if urlsplit(next_url).hostname != req.host:
                for name in CROSS_HOST_STRIPPED_HEADERS:
                    remove_header(current_headers, name)
            self.logger.debug("Redirect %s: %s -> %s", resp.status_code, req.url, next_url)
            try:
                req = self._build_request(method, next_url, current_headers, payload, resolved_timeout)
            except ValueError as exc:
                error = ProtocolError(f"Cannot follow redirect to {next_url!r}: {exc}")
                self.logger.warning("%s %s failed: %s", req.method, req.url, error)
                return replace(
                    Response.from_error(error, request=req, elapsed=time.monotonic() - start_time),
                    history=history,
                )

    def _build_request(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        payload: Optional[bytes],
        timeout: Timeout,
    ) -> Request:
        hdrs = dict(headers)
        cookie_header = self.cookies.get_cookie_header(url)
        if cookie_header and not has_header(hdrs, "cookie"):
            hdrs["Cookie"] = cookie_header
        if not has_header(hdrs, "user-agent"):
            hdrs["User-Agent"] = self.user_agent
        return Request(method=method, url=url, headers=hdrs, content=payload, timeout=timeout)

    def _send(self, request: Request, deadline: Optional[float]) -> Response:
        conn = self.pool.acquire(request.scheme, request.host, request.port)
        try:
            resp = conn.send_request(request, deadline)
        except TransportError as exc:
            # A kept-alive connection the server dropped while idle fails
            # before any response bytes; that is worth one fresh attempt.
            if not conn.reused or conn.response_started or isinstance(exc, RequestTimeout):
                raise
            self.logger.debug("Stale connection to %s (%s), reconnecting", request.host, exc)
            conn = self.pool.new_connection(request.scheme, request.host, request.port)
            resp = conn.send_request(request, deadline)
        self.pool.release(conn)
        return resp

    def get(
        self,
        url: str,
        *,
        params: ParamsType = None,
        headers: HeadersType = None,
        timeout: TimeoutType = None,
    ) -> Response:
        return self.request("GET", url, params=params, headers=headers, timeout=timeout)

    def post(self, url: str, body: BodyInput = None, **kwargs: Any) -> Response:
        return self.request("POST", url, body, **kwargs)

    def put(self, url: str, body: BodyInput = None, **kwargs: Any) -> Response:
        return self.request("PUT", url, body, **kwargs)

    def delete(self, url: str, body: BodyInput = None, **kwargs: Any) -> Response:
        return self.request("DELETE", url, body, **kwargs)

    def close(self) -> None:
        self.pool.close()

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
