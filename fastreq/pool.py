import ssl
import threading
import time
from collections import deque
from typing import Deque, Dict, List, Optional, Tuple

from .connection import Connection, Proxy
from .logging import get_logger

logger = get_logger("pool")

PoolKey = Tuple[str, str, int]


class ConnectionPool:
    """
    Keep-alive connection pool keyed by (scheme, host, port).

    Idle connections sit in per-key deques guarded by one lock. A connection
    idle for longer than ``keepalive_timeout``, or one the peer has closed,
    is discarded on the next acquire.
    """

    def __init__(
        self,
        max_per_host: int = 10,
        keepalive_timeout: float = 30.0,
        *,
        verify: bool = True,
        ssl_context: Optional[ssl.SSLContext] = None,
        proxy: Optional[Proxy] = None,
    ) -> None:
        self.max_per_host = max_per_host
        self.keepalive_timeout = keepalive_timeout
        self.verify = verify
        self.ssl_context = ssl_context
        self.proxy = proxy
        self._pools: Dict[PoolKey, Deque[Connection]] = {}
        self._lock = threading.Lock()
        self._closed = False

    def _is_healthy(self, conn: Connection) -> bool:
        if time.monotonic() - conn.last_used > self.keepalive_timeout:
            return False
        return conn.is_idle_alive()

    def acquire(self, scheme: str, host: str, port: int) -> Connection:
        """Return an idle connection for the key, or a new unconnected one."""
        key = (scheme, host, port)
        stale: List[Connection] = []
        selected: Optional[Connection] = None
        with self._lock:
            queue = self._pools.get(key)
            while queue:
                candidate = queue.pop()
                if self._is_healthy(candidate):
                    selected = candidate
                    break
                stale.append(candidate)
        for dead in stale:
            dead.close()
        if selected is not None:
            logger.debug("Reusing connection to %s://%s:%s", scheme, host, port)
            return selected
        return self.new_connection(scheme, host, port)

    def new_connection(self, scheme: str, host: str, port: int) -> Connection:
        return Connection(
            scheme,
            host,
            port,
            verify=self.verify,
            ssl_context=self.ssl_context,
            proxy=self.proxy,
        )

    def release(self, conn: Connection) -> None:
        """Return a connection after a complete exchange."""
        if conn.closed or self._closed:
            conn.close()
            return
        with self._lock:
            queue = self._pools.setdefault(conn.key, deque())
            if len(queue) < self.max_per_host:
                queue.append(conn)
                return
        conn.close()

    def idle_count(self) -> int:
        with self._lock:
            return sum(len(queue) for queue in self._pools.values())

    def close(self) -> None:
        """Close every idle connection; later releases are closed immediately."""
        with self._lock:
            self._closed = True
            pools = list(self._pools.values())
            self._pools.clear()
        for queue in pools:
            while queue:
                queue.pop().close()
