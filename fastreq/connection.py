import base64
import select
import socket
import ssl
import time
import zlib
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Dict, List, Optional, Tuple
from urllib.parse import unquote, urlsplit

import h11

from .errors import ConnectError, ProtocolError, ProxyError, RequestError, RequestTimeout, TransportError
from .headers import fold_headers, get_header, remove_header
from .logging import get_logger
from .request import Request
from .response import Response
from .timeouts import Timeout

logger = get_logger("connection")

READ_BUFFER_SIZE = 65536


@lru_cache(maxsize=2)
def _get_ssl_context(verify: bool = True) -> ssl.SSLContext:
    """Shared default SSL contexts, one per verification mode."""
    context = ssl.create_default_context()
    if not verify:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def _decode_gzip(payload: bytes) -> bytes:
    return zlib.decompress(payload, 16 + zlib.MAX_WBITS)


def _decode_deflate(payload: bytes) -> bytes:
    """Decode deflate with automatic zlib/raw fallback."""
    try:
        return zlib.decompress(payload)
    except zlib.error:
        return zlib.decompress(payload, -zlib.MAX_WBITS)


_DECOMPRESS_HANDLERS: Dict[str, Callable[[bytes], bytes]] = {
    "gzip": _decode_gzip,
    "x-gzip": _decode_gzip,
    "deflate": _decode_deflate,
}


def decode_content(headers: Dict[str, str], body: bytes) -> bytes:
    """
    Undo Content-Encoding in place of the caller.

    On success the Content-Encoding and Content-Length headers are dropped,
    since they no longer describe the body. Unknown or corrupt encodings
    leave body and headers untouched.
    """
    encoding = (get_header(headers, "Content-Encoding") or "").lower()
    codings = [c.strip() for c in encoding.split(",") if c.strip() and c.strip() != "identity"]
    if not codings or not body:
        return body
    data = body
    # Codings are listed in the order they were applied.
    for coding in reversed(codings):
        handler = _DECOMPRESS_HANDLERS.get(coding)
        if handler is None:
            return body
        try:
            data = handler(data)
        except zlib.error:
            logger.debug("Failed to decode %s body, keeping raw bytes", coding)
            return body
    remove_header(headers, "Content-Encoding")
    remove_header(headers, "Content-Length")
    return data


def remaining(deadline: Optional[float], cap: Optional[float] = None) -> Optional[float]:
    """Seconds left for one socket operation, bounded by ``cap``."""
    if deadline is None:
        return cap
    left = deadline - time.monotonic()
    if left <= 0:
        raise RequestTimeout("Request timed out")
    return left if cap is None else min(left, cap)


@dataclass(frozen=True)
class Proxy:
    """An HTTP forward proxy, parsed from ``http://[user:pass@]host:port``."""

    host: str
    port: int
    auth: Optional[str] = None

    @classmethod
    def from_url(cls, url: str) -> "Proxy":
        parsed = urlsplit(url)
        auth = None
        if parsed.username is not None:
            credentials = f"{unquote(parsed.username)}:{unquote(parsed.password or '')}"
            auth = "Basic " + base64.b64encode(credentials.encode("utf-8")).decode("ascii")
        return cls(host=parsed.hostname or "", port=parsed.port or 80, auth=auth)


class Connection:
    """
    Blocking HTTP/1.1 connection built on a socket and h11.

    With a proxy, plain-http requests go to the proxy in absolute-form and
    https requests are tunnelled through CONNECT before the TLS handshake.
    """

    def __init__(
        self,
        scheme: str,
        host: str,
        port: int,
        *,
        verify: bool = True,
        ssl_context: Optional[ssl.SSLContext] = None,
        proxy: Optional[Proxy] = None,
    ) -> None:
        self.scheme = scheme
        self.host = host
        self.port = port
        self.proxy = proxy
        self.use_ssl = scheme == "https"
        self.ssl_context = (ssl_context or _get_ssl_context(verify)) if self.use_ssl else None
        self.h11_conn = h11.Connection(h11.CLIENT)
        self.sock: Optional[socket.socket] = None
        self.closed = False
        self.last_used = time.monotonic()
        self.requests_sent = 0
        self.response_started = False

    @property
    def key(self) -> Tuple[str, str, int]:
        return (self.scheme, self.host, self.port)

    @property
    def reused(self) -> bool:
        return self.requests_sent > 1

    def connect(self, timeout: Timeout, deadline: Optional[float]) -> None:
        if self.sock is not None:
            return
        address = (self.proxy.host, self.proxy.port) if self.proxy else (self.host, self.port)
        try:
            sock = socket.create_connection(address, timeout=remaining(deadline, timeout.connect))
        except socket.timeout as exc:
            raise RequestTimeout(f"Timed out connecting to {address[0]}:{address[1]}") from exc
        except socket.gaierror as exc:
            raise ConnectError(f"Cannot resolve {address[0]}: {exc}") from exc
        except OSError as exc:
            raise ConnectError(f"Cannot connect to {address[0]}:{address[1]}: {exc}") from exc
        self.sock = sock
        try:
            if self.proxy and self.use_ssl:
                self._open_tunnel(timeout, deadline)
            if self.use_ssl:
                assert self.ssl_context is not None
                self.sock.settimeout(remaining(deadline, timeout.connect))
                self.sock = self.ssl_context.wrap_socket(self.sock, server_hostname=self.host)
        except socket.timeout as exc:
            self.close()
            raise RequestTimeout(f"Timed out setting up the connection to {self.host}") from exc
        except ssl.SSLError as exc:
            self.close()
            raise ConnectError(f"TLS handshake with {self.host} failed: {exc}") from exc
        except TransportError:
            self.close()
            raise
        except OSError as exc:
            self.close()
            raise ConnectError(f"Connection to {self.host} failed: {exc}") from exc

    def _open_tunnel(self, timeout: Timeout, deadline: Optional[float]) -> None:
        """Ask the proxy for a raw tunnel to host:port."""
        assert self.sock is not None and self.proxy is not None
        authority = f"{self.host}:{self.port}"
        headers = [("Host", authority)]
        if self.proxy.auth:
            headers.append(("Proxy-Authorization", self.proxy.auth))
        tunnel = h11.Connection(h11.CLIENT)
        try:
            self._write(tunnel.send(h11.Request(method="CONNECT", target=authority, headers=headers)), timeout, deadline)
            self._write(tunnel.send(h11.EndOfMessage()), timeout, deadline)
            while True:
                event = tunnel.next_event()
                if event is h11.NEED_DATA:
                    tunnel.receive_data(self._read(timeout, deadline))
                    continue
                if isinstance(event, h11.InformationalResponse):
                    continue
                if isinstance(event, h11.Response):
                    if not 200 <= event.status_code < 300:
                        raise ProxyError(f"Proxy refused CONNECT to {authority}: {event.status_code}")
                    break
                if isinstance(event, h11.ConnectionClosed):
                    raise ProxyError(f"Proxy closed the connection during CONNECT to {authority}")
        except h11.RemoteProtocolError as exc:
            raise ProxyError(f"Invalid proxy response: {exc}") from exc
        leftover, _ = tunnel.trailing_data
        if leftover:
            raise ProxyError("Proxy sent data before the tunnel was established")

    def _write(self, data: Optional[bytes], timeout: Timeout, deadline: Optional[float]) -> None:
        if not data:
            return
        assert self.sock is not None
        self.sock.settimeout(remaining(deadline, timeout.write))
        self.sock.sendall(data)

    def _read(self, timeout: Timeout, deadline: Optional[float]) -> bytes:
        assert self.sock is not None
        self.sock.settimeout(remaining(deadline, timeout.read))
        return self.sock.recv(READ_BUFFER_SIZE)

    def _encode_headers(self, headers: Dict[str, str]) -> List[Tuple[bytes, bytes]]:
        encoded = []
        for name, value in headers.items():
            try:
                encoded.append((name.encode("ascii"), str(value).encode("latin-1")))
            except UnicodeEncodeError as exc:
                raise RequestError(f"Header {name!r} cannot be encoded: {exc}") from exc
        return encoded

    def send_request(self, request: Request, deadline: Optional[float] = None) -> Response:
        """
        Send ``request`` and read the whole response into memory.

        Network failures raise a TransportError subclass and close the
        connection. Malformed requests raise RequestError, which closes
        it as well.
        """
        if self.closed:
            raise RequestError("Connection already closed")
        self.requests_sent += 1
        self.response_started = False
        timeout = request.timeout
        headers = dict(request.headers)
        target = request.target
        if self.proxy and not self.use_ssl:
            target = request.absolute_target()
            if self.proxy.auth:
                headers.setdefault("Proxy-Authorization", self.proxy.auth)
        try:
            self.connect(timeout, deadline)
            self._write(
                self.h11_conn.send(
                    h11.Request(
                        method=request.method.encode("ascii"),
                        target=target.encode("ascii"),
                        headers=self._encode_headers(headers),
                    )
                ),
                timeout,
                deadline,
            )
            if request.content:
                self._write(self.h11_conn.send(h11.Data(data=request.content)), timeout, deadline)
            self._write(self.h11_conn.send(h11.EndOfMessage()), timeout, deadline)
            return self._read_response(request, timeout, deadline)
        except h11.LocalProtocolError as exc:
            self.close()
            raise RequestError(f"Cannot send request: {exc}") from exc
        except RequestError:
            self.close()
            raise
        except socket.timeout as exc:
            self.close()
            raise RequestTimeout(f"Request to {request.host} timed out") from exc
        except h11.RemoteProtocolError as exc:
            self.close()
            raise ProtocolError(f"Invalid response from {request.host}: {exc}") from exc
        except OSError as exc:
            self.close()
            raise TransportError(f"Connection to {request.host} failed: {exc}") from exc
        finally:
            self.last_used = time.monotonic()

    def _next_event(self, timeout: Timeout, deadline: Optional[float]):
        while True:
            event = self.h11_conn.next_event()
            if event is h11.NEED_DATA:
                # An empty read tells h11 the peer closed; it decides whether
                # that ends the body or is an error.
                self.h11_conn.receive_data(self._read(timeout, deadline))
                continue
            return event

    def _read_response(self, request: Request, timeout: Timeout, deadline: Optional[float]) -> Response:
        while True:
            event = self._next_event(timeout, deadline)
            if isinstance(event, h11.InformationalResponse):
                continue
            if isinstance(event, h11.Response):
                break
            if isinstance(event, h11.ConnectionClosed):
                raise ProtocolError(f"{request.host} closed the connection before responding")
        self.response_started = True

        raw_headers = [
            (name.decode("latin-1"), value.decode("latin-1"))
            for name, value in event.headers.raw_items()
        ]
        body = bytearray()
        while True:
            part = self._next_event(timeout, deadline)
            if isinstance(part, h11.Data):
                body.extend(part.data)
            elif isinstance(part, (h11.EndOfMessage, h11.ConnectionClosed)):
                break

        headers = fold_headers(raw_headers)
        content = decode_content(headers, bytes(body))
        self._finish_cycle()
        return Response(
            status_code=event.status_code,
            headers=headers,
            content=content,
            reason=event.reason.decode("latin-1"),
            request=request,
            raw_headers=raw_headers,
        )

    def _finish_cycle(self) -> None:
        if self.h11_conn.our_state is h11.DONE and self.h11_conn.their_state is h11.DONE:
            self.h11_conn.start_next_cycle()
        else:
            self.close()

    def is_idle_alive(self) -> bool:
        """False if the peer closed (or sent stray bytes on) an idle connection."""
        if self.closed or self.sock is None or self.h11_conn.our_state is not h11.IDLE:
            return False
        try:
            readable, _, _ = select.select([self.sock], [], [], 0)
        except (OSError, ValueError):
            return False
        return not readable

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self.sock is not None:
            try:
                self.sock.close()
            except OSError:
                logger.debug("Error closing socket to %s:%s", self.host, self.port, exc_info=True)
            self.sock = None
