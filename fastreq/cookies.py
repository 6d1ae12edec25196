import re
import time
from dataclasses import dataclass
from email.utils import parsedate_to_datetime
from functools import lru_cache
from typing import Dict, Iterable, Iterator, List, Optional, Tuple
from urllib.parse import urlsplit

from .logging import get_logger

logger = get_logger("cookies")

_IP_REGEX = re.compile(r"^\d{1,3}(\.\d{1,3}){3}$")


@lru_cache(maxsize=128)
def _parse_date(date_str: str) -> Optional[float]:
    """Parse an HTTP date into a UNIX timestamp."""
    try:
        dt = parsedate_to_datetime(date_str)
    except (TypeError, ValueError, IndexError):
        return None
    return dt.timestamp() if dt else None


def _is_ip(host: str) -> bool:
    return ":" in host or bool(_IP_REGEX.match(host))


def domain_match(host: str, domain: str) -> bool:
    """RFC 6265 section 5.1.3."""
    if host == domain:
        return True
    return host.endswith("." + domain) and not _is_ip(host)


def path_match(request_path: str, cookie_path: str) -> bool:
    """RFC 6265 section 5.1.4."""
    if request_path == cookie_path:
        return True
    if not request_path.startswith(cookie_path):
        return False
    return cookie_path.endswith("/") or request_path[len(cookie_path)] == "/"


def default_path(request_path: str) -> str:
    """RFC 6265 section 5.1.4: the directory of the request path."""
    if not request_path.startswith("/") or request_path.count("/") == 1:
        return "/"
    return request_path[: request_path.rindex("/")]


@dataclass
class Cookie:
    """A single stored cookie."""

    name: str
    value: str
    domain: str
    path: str = "/"
    expires: Optional[float] = None
    secure: bool = False
    httponly: bool = False
    samesite: Optional[str] = None
    host_only: bool = True

    def is_expired(self, now: Optional[float] = None) -> bool:
        if self.expires is None:
            return False
        return (now if now is not None else time.time()) >= self.expires

    def matches(self, host: str, path: str, secure: bool) -> bool:
        if self.is_expired():
            return False
        if self.host_only:
            if host != self.domain:
                return False
        elif not domain_match(host, self.domain):
            return False
        if not path_match(path, self.path):
            return False
        if self.secure and not secure:
            return False
        return True


class CookieJar:
    """
    Cookie jar with RFC 6265 domain, path, expiry and secure scoping.

    Cookies are stored in a nested dictionary:
        domain -> path -> name -> Cookie
    so a new Set-Cookie with the same (domain, path, name) replaces the old one.
    """

    def __init__(self) -> None:
        self._store: Dict[str, Dict[str, Dict[str, Cookie]]] = {}

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __iter__(self) -> Iterator[Cookie]:
        for paths in self._store.values():
            for names in paths.values():
                yield from names.values()

    def __contains__(self, name: object) -> bool:
        return any(cookie.name == name for cookie in self)

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Value of the first live cookie called ``name``."""
        for cookie in self:
            if cookie.name == name and not cookie.is_expired():
                return cookie.value
        return default

    def set(
        self,
        name: str,
        value: str,
        domain: str,
        path: str = "/",
        expires: Optional[float] = None,
        secure: bool = False,
        httponly: bool = False,
        samesite: Optional[str] = None,
    ) -> None:
        """Store a cookie directly. A leading dot on ``domain`` makes it a domain cookie."""
        host_only = not domain.startswith(".")
        self._upsert(
            Cookie(
                name=name,
                value=value,
                domain=domain.lstrip(".").lower(),
                path=path if path.startswith("/") else "/",
                expires=expires,
                secure=secure,
                httponly=httponly,
                samesite=samesite,
                host_only=host_only,
            )
        )

    def _upsert(self, cookie: Cookie) -> None:
        names = self._store.setdefault(cookie.domain, {}).setdefault(cookie.path, {})
        names[cookie.name] = cookie

    def _delete(self, domain: str, path: str, name: str) -> bool:
        paths = self._store.get(domain)
        if not paths:
            return False
        names = paths.get(path)
        if not names or name not in names:
            return False
        del names[name]
        if not names:
            del paths[path]
        if not paths:
            del self._store[domain]
        return True

    def _parse_set_cookie(self, header_value: str, host: str, request_path: str) -> Optional[Cookie]:
        """Parse one Set-Cookie value in the context of the request it answered."""
        parts = [part.strip() for part in header_value.split(";")]
        name, sep, value = parts[0].partition("=")
        name = name.strip()
        if not sep or not name:
            return None
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] == '"':
            value = value[1:-1]

        domain_attr: Optional[str] = None
        path_attr: Optional[str] = None
        expires: Optional[float] = None
        max_age: Optional[int] = None
        secure = False
        httponly = False
        samesite: Optional[str] = None

        for part in parts[1:]:
            attr, _, attr_value = part.partition("=")
            attr = attr.strip().lower()
            attr_value = attr_value.strip()
            if attr == "domain" and attr_value:
                domain_attr = attr_value.lstrip(".").lower()
            elif attr == "path":
                path_attr = attr_value if attr_value.startswith("/") else None
            elif attr == "expires":
                expires = _parse_date(attr_value)
            elif attr == "max-age":
                try:
                    max_age = int(attr_value)
                except ValueError:
                    continue
            elif attr == "secure":
                secure = True
            elif attr == "httponly":
                httponly = True
            elif attr == "samesite":
                samesite = attr_value.lower() or None

        # Max-Age takes precedence over Expires.
        if max_age is not None:
            expires = time.time() + max_age if max_age > 0 else 0.0

        if domain_attr:
            if not domain_match(host, domain_attr):
                logger.debug("Rejected cookie %s for %s: domain %s does not match", name, host, domain_attr)
                return None
            domain, host_only = domain_attr, False
        else:
            domain, host_only = host, True

        return Cookie(
            name=name,
            value=value,
            domain=domain,
            path=path_attr or default_path(request_path),
            expires=expires,
            secure=secure,
            httponly=httponly,
            samesite=samesite,
            host_only=host_only,
        )

    def extract(self, url: str, set_cookie_values: Iterable[str]) -> None:
        """Store cookies from Set-Cookie values received for ``url``."""
        parsed = urlsplit(url)
        host = (parsed.hostname or "").lower()
        if not host:
            return
        for header_value in set_cookie_values:
            cookie = self._parse_set_cookie(header_value, host, parsed.path or "/")
            if cookie is None:
                continue
            if cookie.is_expired():
                self._delete(cookie.domain, cookie.path, cookie.name)
                continue
            self._upsert(cookie)
        self.clear_expired()

    def add_from_response(self, response) -> None:
        """Store every Set-Cookie header of ``response``."""
        url = response.url
        if not url:
            return
        values = [value for name, value in response.raw_headers if name.lower() == "set-cookie"]
        if values:
            self.extract(url, values)

    def cookies_for(self, url: str) -> List[Cookie]:
        parsed = urlsplit(url)
        host = (parsed.hostname or "").lower()
        if not host:
            return []
        path = parsed.path or "/"
        secure = parsed.scheme == "https"
        matches = [cookie for cookie in self if cookie.matches(host, path, secure)]
        # Longer paths first, as RFC 6265 section 5.4 recommends.
        matches.sort(key=lambda c: (-len(c.path), c.name))
        return matches

    def get_cookie_header(self, url: str) -> Optional[str]:
        """Cookie header value for ``url``, or None when nothing matches."""
        matches = self.cookies_for(url)
        if not matches:
            return None
        return "; ".join(f"{c.name}={c.value}" for c in matches)

    def clear_expired(self) -> None:
        now = time.time()
        expired: List[Tuple[str, str, str]] = [
            (c.domain, c.path, c.name) for c in self if c.is_expired(now)
        ]
        for domain, path, name in expired:
            self._delete(domain, path, name)

    def remove(self, name: str, domain: Optional[str] = None, path: Optional[str] = None) -> None:
        """Remove cookies called ``name``, optionally narrowed by domain and path."""
        targets = [
            (c.domain, c.path, c.name)
            for c in self
            if c.name == name
            and (domain is None or c.domain == domain.lstrip(".").lower())
            and (path is None or c.path == path)
        ]
        for key in targets:
            self._delete(*key)

    def clear(self) -> None:
        self._store.clear()
