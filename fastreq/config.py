"""
Client configuration and the process-wide defaults.

Every :class:`~fastreq.session.Session` takes a snapshot of a :class:`Config`
when it is created. The module-level defaults live behind a single lock;
concurrent writers are last-writer-wins, and sessions that already exist
keep the snapshot they were built with.
"""
import threading
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Union
from urllib.parse import urlparse

from .timeouts import Timeout
from .headers import set_header as _set_header

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_REDIRECTS = 10

_PROXY_SCHEMES = ("http",)


def validate_proxy(proxy: Optional[str]) -> Optional[str]:
    """Return ``proxy`` unchanged if it is usable, else raise ValueError."""
    if proxy is None or proxy == "":
        return None
    parsed = urlparse(proxy)
    if parsed.scheme not in _PROXY_SCHEMES or not parsed.hostname:
        raise ValueError(f"Unsupported proxy URL: {proxy!r} (expected http://host:port)")
    return proxy


@dataclass
class Config:
    timeout: Timeout = field(default_factory=lambda: Timeout(total=DEFAULT_TIMEOUT))
    proxy: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    follow_redirects: bool = True
    max_redirects: int = DEFAULT_MAX_REDIRECTS
    verify: bool = True
    user_agent: Optional[str] = None
    max_per_host: int = 10
    keepalive_timeout: float = 30.0

    def __post_init__(self) -> None:
        self.timeout = Timeout.from_value(self.timeout)
        self.proxy = validate_proxy(self.proxy)
        if self.max_redirects < 0:
            raise ValueError("max_redirects must be >= 0")

    def copy(self, **changes: Any) -> "Config":
        """Return an independent copy; the header dict is never shared."""
        changes["headers"] = dict(changes.get("headers", self.headers))
        return replace(self, **changes)


_lock = threading.Lock()
_defaults = Config()


def get_defaults() -> Config:
    """Snapshot of the process-wide defaults."""
    with _lock:
        return _defaults.copy()


def configure(**changes: Any) -> None:
    """Replace fields of the process-wide defaults, e.g. ``configure(proxy=...)``."""
    global _defaults
    with _lock:
        _defaults = _defaults.copy(**changes)


def set_timeout(value: Union[Timeout, float, int, None]) -> None:
    configure(timeout=Timeout.from_value(value))


def set_proxy(proxy: Optional[str]) -> None:
    configure(proxy=proxy)


def set_header(key: str, value: str) -> None:
    """Add or replace a default header sent by every new session."""
    with _lock:
        _set_header(_defaults.headers, key, value)


def reset_defaults() -> None:
    global _defaults
    with _lock:
        _defaults = Config()
