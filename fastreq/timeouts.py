import time
from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class Timeout:
    """
    Timeout settings in seconds.

    ``total`` bounds the whole exchange, redirects included. The other
    fields cap a single connect, read or write socket operation.
    """

    total: Optional[float] = None
    connect: Optional[float] = None
    read: Optional[float] = None
    write: Optional[float] = None

    @classmethod
    def from_value(cls, value: Union["Timeout", float, int, None]) -> "Timeout":
        if isinstance(value, cls):
            return value
        if value is None:
            return cls()
        float_value = float(value)
        if float_value <= 0:
            raise ValueError(f"Timeout must be positive, got {value!r}")
        return cls(total=float_value)

    def merge(self, default: Optional["Timeout"]) -> "Timeout":
        default = default or Timeout()
        return Timeout(
            total=self.total if self.total is not None else default.total,
            connect=self.connect if self.connect is not None else default.connect,
            read=self.read if self.read is not None else default.read,
            write=self.write if self.write is not None else default.write,
        )

    def deadline(self) -> Optional[float]:
        """Monotonic deadline for ``total``, or None when unbounded."""
        if self.total is None:
            return None
        return time.monotonic() + self.total
