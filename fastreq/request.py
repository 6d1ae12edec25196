from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote, urlsplit

from .body import encode_pairs
from .headers import has_header
from .timeouts import Timeout

DEFAULT_PORTS = {"http": 80, "https": 443}
ACCEPT_ENCODING = "gzip, deflate"
# "%" is safe so already-escaped targets pass through unchanged.
PATH_SAFE = "/%:@!$&'()*+,;=~"
QUERY_SAFE = PATH_SAFE + "?"


def append_params(url: str, params: Optional[Mapping[str, Any]]) -> str:
    """
    Append encoded query parameters to ``url``.

    Parameters are joined with ``&`` when the URL already has a query
    string, otherwise with ``?``. Existing parameters are left untouched.
    """
    if not params:
        return url
    query = encode_pairs(params)
    if not query:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{query}"


@dataclass
class Request:
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    content: Optional[bytes] = None
    timeout: Timeout = field(default_factory=Timeout)

    def __post_init__(self) -> None:
        self.method = self.method.upper()
        parsed = urlsplit(self.url)
        if parsed.scheme not in DEFAULT_PORTS or not parsed.hostname:
            raise ValueError(f"Invalid URL: {self.url}")
        try:
            port = parsed.port
        except ValueError as exc:
            raise ValueError(f"Invalid URL: {self.url}") from exc
        self.scheme = parsed.scheme
        self.host = parsed.hostname
        self.port = port or DEFAULT_PORTS[parsed.scheme]
        self.target = quote(parsed.path or "/", safe=PATH_SAFE)
        if parsed.query:
            self.target += "?" + quote(parsed.query, safe=QUERY_SAFE)
        self._normalize_headers()

    @property
    def secure(self) -> bool:
        return self.scheme == "https"

    @property
    def origin(self) -> str:
        return f"{self.scheme}://{self.host_header}"

    @property
    def host_header(self) -> str:
        host = self.host
        if ":" in host:
            host = f"[{host}]"
        if self.port != DEFAULT_PORTS[self.scheme]:
            host = f"{host}:{self.port}"
        return host

    def absolute_target(self) -> str:
        """Request target in absolute-form, as sent to a forward proxy."""
        return f"{self.origin}{self.target}"

    def _normalize_headers(self) -> None:
        if not has_header(self.headers, "host"):
            self.headers["Host"] = self.host_header
        if not has_header(self.headers, "accept-encoding"):
            self.headers["Accept-Encoding"] = ACCEPT_ENCODING
        if self.content is not None and not has_header(self.headers, "content-length"):
            self.headers["Content-Length"] = str(len(self.content))
