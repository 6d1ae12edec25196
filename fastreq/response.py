import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from .errors import HTTPStatusError, SaveError, TransportError
from .headers import get_header
from .jsonpath import JSONResult
from .request import Request

_CHARSET_REGEX = re.compile(r"charset=([^;,\s]+)", re.IGNORECASE)

# rwxr-xr-x for directories created by save_to
DIR_MODE = 0o755


@dataclass(frozen=True)
class Response:
    """
    A fully buffered HTTP response.

    A response either carries a status line from the server or, when the
    exchange failed at the transport level, ``status_code == 0`` and the
    failure in ``error``. A 404 is not a transport error: use ``ok`` or
    ``raise_for_status()`` for status handling.
    """

    status_code: int = 0
    headers: Dict[str, str] = field(default_factory=dict)
    content: bytes = b""
    reason: Optional[str] = None
    request: Optional[Request] = None
    raw_headers: List[Tuple[str, str]] = field(default_factory=list, repr=False)
    history: List["Response"] = field(default_factory=list, repr=False)
    elapsed: float = 0.0
    error: Optional[TransportError] = None

    @classmethod
    def from_error(cls, error: TransportError, request: Optional[Request] = None, elapsed: float = 0.0) -> "Response":
        return cls(request=request, error=error, elapsed=elapsed)

    @property
    def ok(self) -> bool:
        """True if status code is in the 200-299 range."""
        return 200 <= self.status_code < 300

    @property
    def failed(self) -> bool:
        """True if the request never produced a response."""
        return self.error is not None

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status_code < 400 and self.header("Location") is not None

    @property
    def url(self) -> Optional[str]:
        """The final URL after redirects."""
        return self.request.url if self.request else None

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive header lookup."""
        return get_header(self.headers, name, default)

    @property
    def content_type(self) -> Optional[str]:
        return self.header("Content-Type")

    @property
    def encoding(self) -> str:
        """Charset from the Content-Type header, default utf-8."""
        match = _CHARSET_REGEX.search(self.content_type or "")
        if match:
            charset = match.group(1).strip("\"'").strip()
            if charset:
                return charset
        return "utf-8"

    def text(self, encoding: Optional[str] = None) -> str:
        """Decode the body. Undecodable bytes are replaced, never raised."""
        if not self.content:
            return ""
        try:
            return self.content.decode(encoding or self.encoding)
        except (UnicodeDecodeError, LookupError):
            return self.content.decode("utf-8", errors="replace")

    def json(self) -> JSONResult:
        """
        Parse the body as JSON on every call.

        An empty or malformed body gives an empty JSONResult instead of an
        exception; use ``.exists`` to tell the two apart.
        """
        return JSONResult.parse(self.content)

    def raise_for_status(self) -> None:
        """
        Raise HTTPStatusError unless the status code is 2xx.

        A response carrying a transport error raises with status 0, chained
        from that error.
        """
        if self.ok:
            return
        if self.error is not None:
            raise HTTPStatusError(0, f"HTTP 0: {self.error}", self) from self.error
        raise HTTPStatusError(self.status_code, f"HTTP {self.status_code}: {self.text()}", self)

    def save_to(self, path: Union[str, "os.PathLike[str]"]) -> Path:
        """
        Write the body to ``path``, creating missing parent directories.

        The file is always overwritten. Raises SaveError when the status is
        not 2xx or the filesystem refuses the write.
        """
        if not self.ok:
            raise SaveError(f"bad status {self.status_code}, cannot save", status_code=self.status_code)
        target = Path(path)
        try:
            target.parent.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
            target.write_bytes(self.content)
        except OSError as exc:
            raise SaveError(f"cannot save response to {target}: {exc}") from exc
        return target

    def __repr__(self) -> str:
        if self.error is not None:
            return f"<Response [error] url={self.url!r} error={self.error!r}>"
        return f"<Response [{self.status_code}] url={self.url!r} reason={self.reason!r}>"
