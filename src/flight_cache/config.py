"""Configuration helpers for flight-cache."""

from dataclasses import dataclass
import os
from typing import Awaitable, Callable, TypeVar

from .cache import DEFAULT_EVENT, CacheConfig, logger

T = TypeVar("T")


@dataclass(frozen=True)
class AppConfig:
    expiry_ms: int
    event: str
    log_enabled: bool

    def cache_config(self, produce: Callable[[], Awaitable[T]]) -> CacheConfig[T]:
        return CacheConfig(
            produce=produce,
            expiry_ms=self.expiry_ms,
            event=self.event,
            logger=logger if self.log_enabled else None,
        )


def _parse_expiry_ms(value: str | None) -> int:
    if not value or not value.strip():
        return 0
    expiry_ms = int(value.strip())
    if expiry_ms < 0:
        raise ValueError(f"FLIGHT_CACHE_EXPIRY_MS must be >= 0, got {expiry_ms}")
    return expiry_ms


def load_config() -> AppConfig:
    return AppConfig(
        expiry_ms=_parse_expiry_ms(os.getenv("FLIGHT_CACHE_EXPIRY_MS")),
        event=(os.getenv("FLIGHT_CACHE_EVENT") or DEFAULT_EVENT).strip() or DEFAULT_EVENT,
        log_enabled=os.getenv("FLIGHT_CACHE_LOG_ENABLED", "true").lower() in {"1", "true", "yes"},
    )
