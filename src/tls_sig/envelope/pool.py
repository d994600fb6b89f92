"""CompressorPool — bounded pool of reusable zlib compressors.

A compressor is checked out for exactly one pack operation, reset and
bound to a fresh output buffer, and handed back when the ``with`` block
exits, whether or not it raised. Checkout never blocks: when the pool is
empty a new compressor is created, and compressors returned to a full
pool are dropped.
"""
from __future__ import annotations

import io
import logging
import threading
import zlib
from collections.abc import Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class Compressor:
    """A zlib stream writer that can be reset between uses.

    ``zlib.compressobj`` objects cannot be rewound once flushed, so each
    :class:`Compressor` keeps a pristine template and resets by copying it.
    """

    def __init__(self, level: int) -> None:
        self.level = level
        self._template = zlib.compressobj(level)
        self._stream = self._template.copy()
        self._output = io.BytesIO()

    def reset(self) -> None:
        """Discard any previous stream state and bind a fresh output buffer."""
        self._stream = self._template.copy()
        self._output = io.BytesIO()

    def write(self, data: bytes) -> None:
        self._output.write(self._stream.compress(data))

    def finish(self) -> bytes:
        """Flush the stream and return the complete zlib payload."""
        self._output.write(self._stream.flush(zlib.Z_FINISH))
        return self._output.getvalue()


class CompressorPool:
    """Thread-safe pool of :class:`Compressor` instances for one level.

    Parameters
    ----------
    level:
        zlib compression level (``-1`` to ``9``).
    max_idle:
        Maximum number of idle compressors retained between checkouts.
    """

    def __init__(self, level: int = zlib.Z_NO_COMPRESSION, max_idle: int = 16) -> None:
        if not -1 <= level <= 9:
            raise ValueError(f"compression level must be between -1 and 9, got {level}")
        if max_idle < 0:
            raise ValueError(f"max_idle must be >= 0, got {max_idle}")
        self.level = level
        self.max_idle = max_idle
        self._idle: list[Compressor] = []
        self._lock = threading.Lock()

    @contextmanager
    def checkout(self) -> Iterator[Compressor]:
        """Yield a reset compressor owned exclusively by the caller."""
        compressor = self._acquire()
        try:
            compressor.reset()
            yield compressor
        finally:
            self._release(compressor)

    def idle_count(self) -> int:
        with self._lock:
            return len(self._idle)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _acquire(self) -> Compressor:
        with self._lock:
            if self._idle:
                return self._idle.pop()
        logger.debug("Creating zlib compressor (level=%d)", self.level)
        return Compressor(self.level)

    def _release(self, compressor: Compressor) -> None:
        with self._lock:
            if len(self._idle) < self.max_idle:
                self._idle.append(compressor)


_default_pools: dict[tuple[int, int], CompressorPool] = {}
_default_pools_lock = threading.Lock()


def get_pool(level: int, max_idle: int = 16) -> CompressorPool:
    """Return the shared pool for *level*, creating it on first use."""
    key = (level, max_idle)
    with _default_pools_lock:
        pool = _default_pools.get(key)
        if pool is None:
            pool = CompressorPool(level, max_idle)
            _default_pools[key] = pool
        return pool
