"""A pool of reusable byte buffers."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class PoolStats:
    """Snapshot of a pool's state."""

    available_buffers: int
    buffer_size: int
    max_pool_size: int


class PooledBuffer:
    """A byte buffer that goes back to its pool when released.

    Use it as a context manager or call :meth:`release`; a buffer that is
    dropped without being released is returned when it is collected.
    """

    def __init__(self, pool: "BufferPool", storage: bytearray, capacity: int) -> None:
        self._pool = pool
        self._buffer: Optional[bytearray] = storage
        self._capacity = capacity

    def _live(self) -> bytearray:
        if self._buffer is None:
            raise ValueError("buffer has already been released")
        return self._buffer

    @property
    def data(self) -> bytes:
        """The current contents."""
        return bytes(self._live())

    @property
    def capacity(self) -> int:
        """Bytes the buffer holds room for; 0 once released."""
        if self._buffer is None:
            return 0
        return max(self._capacity, len(self._buffer))

    def extend(self, data: bytes) -> None:
        """Append bytes to the buffer."""
        buffer = self._live()
        buffer.extend(data)
        self._capacity = max(self._capacity, len(buffer))

    def clear(self) -> None:
        """Empty the buffer, keeping its capacity."""
        if self._buffer is not None:
            self._buffer.clear()

    def freeze(self) -> bytes:
        """Take the contents as bytes; the buffer does not return to the pool."""
        buffer = self._live()
        self._buffer = None
        return bytes(buffer)

    def release(self) -> None:
        """Clear the buffer and hand it back to the pool if there is room."""
        buffer, self._buffer = self._buffer, None
        if buffer is not None:
            buffer.clear()
            self._pool._give_back(buffer, self._capacity)

    def __bytes__(self) -> bytes:
        return self.data

    def __len__(self) -> int:
        return 0 if self._buffer is None else len(self._buffer)

    def __enter__(self) -> "PooledBuffer":
        return self

    def __exit__(self, *args: Any) -> None:
        self.release()

    def __del__(self) -> None:
        if getattr(self, "_buffer", None) is not None:
            self.release()


class BufferPool:
    """Hands out buffers of ``buffer_size`` and keeps up to ``max_pool_size`` idle."""

    def __init__(self, buffer_size: int, max_pool_size: int) -> None:
        self.buffer_size = buffer_size
        self.max_pool_size = max_pool_size
        self._available: deque[tuple[bytearray, int]] = deque()
        self._lock = threading.Lock()

    def get(self) -> PooledBuffer:
        """Take an idle buffer from the pool or make a new one."""
        with self._lock:
            if self._available:
                storage, capacity = self._available.popleft()
            else:
                storage, capacity = bytearray(), self.buffer_size
        return PooledBuffer(self, storage, capacity)

    def stats(self) -> PoolStats:
        with self._lock:
            available = len(self._available)
        return PoolStats(available, self.buffer_size, self.max_pool_size)

    def _give_back(self, storage: bytearray, capacity: int) -> None:
        with self._lock:
            if len(self._available) < self.max_pool_size:
                self._available.append((storage, capacity))


_global_pool: Optional[BufferPool] = None
_global_lock = threading.Lock()


def global_pool() -> BufferPool:
    """The shared pool: 8 KiB buffers, up to 100 kept idle unless set otherwise."""
    global _global_pool
    with _global_lock:
        if _global_pool is None:
            _global_pool = BufferPool(8192, 100)
        return _global_pool


def init_global_pool(buffer_size: int, max_pool_size: int) -> None:
    """Create the shared pool with custom settings; only possible once."""
    global _global_pool
    with _global_lock:
        if _global_pool is not None:
            raise RuntimeError("Global pool already initialized")
        _global_pool = BufferPool(buffer_size, max_pool_size)