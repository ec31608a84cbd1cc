"""Single-flight TTL cache around one asynchronous producer (one slot per instance)."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
import time
from typing import Any, Awaitable, Callable, Generic, TypeVar

T = TypeVar("T")

logger = logging.getLogger("flight-cache")

DEFAULT_EVENT = "UNKNOWN"


@dataclass(frozen=True)
class CacheConfig(Generic[T]):
    produce: Callable[[], Awaitable[T]]
    expiry_ms: int = 0
    event: str = DEFAULT_EVENT
    logger: logging.Logger | None = field(default=logger, compare=False)

    def __post_init__(self) -> None:
        if self.expiry_ms < 0:
            raise ValueError("CacheConfig.expiry_ms must be >= 0")


@dataclass
class _Slot(Generic[T]):
    pending: asyncio.Future[T]
    # None: no time-based expiry
    expires_at: float | None


class SingleFlightCache(Generic[T]):
    """Cache the outcome of ``config.produce`` for ``config.expiry_ms``.

    Concurrent ``get()`` calls share a single producer call. Failures are
    never cached: a failed call clears the slot so the next ``get()`` starts
    over. Expiry is checked lazily on ``get()``; ``expiry_ms == 0`` keeps the
    value until ``clear()`` is called.

    Each ``get()`` logs one DEBUG record once the slot settles. The message
    starts with ``config.event`` exactly as given, without a ``Cache.``
    prefix: ``"users succeeded cache hit in 3 ms"``.
    """

    def __init__(self, config: CacheConfig[T], *, now: Callable[[], float] | None = None) -> None:
        self._config = config
        self._now = now or time.monotonic
        self._slot: _Slot[T] | None = None

    @property
    def config(self) -> CacheConfig[T]:
        return self._config

    @property
    def event(self) -> str:
        return self._config.event

    @property
    def expiry_ms(self) -> int:
        return self._config.expiry_ms

    @property
    def cached(self) -> bool:
        return self._usable(self._now(), None)

    def clear(self) -> None:
        self._slot = None

    def get(self) -> asyncio.Future[T]:
        """Return a handle to the cached or freshly produced value.

        Must be called with a running event loop. Producer failures are
        delivered through the handle, never raised here. A slot created on
        another (closed) event loop counts as a miss.
        """
        loop = asyncio.get_running_loop()
        now = self._now()
        hit = self._usable(now, loop)
        slot = self._slot if hit else None
        if slot is None:
            slot = self._populate(loop, now)
            self._slot = slot

        slot.pending.add_done_callback(lambda fut: self._log(hit, fut, now))
        return asyncio.shield(slot.pending)

    def _usable(self, now: float, loop: asyncio.AbstractEventLoop | None) -> bool:
        slot = self._slot
        if slot is None:
            return False
        if loop is not None and slot.pending.get_loop() is not loop:
            return False
        if not slot.pending.done():
            # in flight: keep coalescing even past the TTL
            return True
        if slot.pending.cancelled() or slot.pending.exception() is not None:
            return False
        return slot.expires_at is None or now < slot.expires_at

    def _populate(self, loop: asyncio.AbstractEventLoop, now: float) -> _Slot[T]:
        try:
            pending = asyncio.ensure_future(self._config.produce(), loop=loop)
        except Exception as exc:
            pending = loop.create_future()
            pending.set_exception(exc)

        expires_at = None
        if self._config.expiry_ms > 0:
            expires_at = now + self._config.expiry_ms / 1000.0
        slot = _Slot(pending=pending, expires_at=expires_at)
        pending.add_done_callback(lambda fut: self._settled(slot, fut))
        return slot

    def _settled(self, slot: _Slot[T], fut: asyncio.Future[T]) -> None:
        if fut.cancelled() or fut.exception() is not None:
            # clear() or a newer miss may have replaced the slot already
            if self._slot is slot:
                self._slot = None

    def _log(self, hit: bool, fut: asyncio.Future[Any], started: float) -> None:
        log = self._config.logger
        if log is None:
            return
        try:
            success = not fut.cancelled() and fut.exception() is None
            duration_ms = int(round((self._now() - started) * 1000))
            log.debug(
                "%s %s cache %s in %d ms",
                self._config.event,
                "succeeded" if success else "failed",
                "hit" if hit else "miss",
                duration_ms,
                extra={
                    "event": self._config.event,
                    "hit": hit,
                    "success": success,
                    "duration_ms": duration_ms,
                },
            )
        except Exception:
            return
