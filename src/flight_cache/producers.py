"""Producer adapters for blocking functions and external commands."""

from __future__ import annotations

import functools
from typing import Any, Awaitable, Callable, Sequence, TypeVar

import anyio

T = TypeVar("T")


def from_sync(func: Callable[..., T], *args: Any) -> Callable[[], Awaitable[T]]:
    """Run a blocking callable in a worker thread on every miss."""

    async def produce() -> T:
        return await anyio.to_thread.run_sync(functools.partial(func, *args))

    return produce


def from_command(argv: Sequence[str]) -> Callable[[], Awaitable[str]]:
    """Run ``argv`` on every miss and resolve to its stripped stdout.

    A non-zero exit fails with ``subprocess.CalledProcessError``.
    """
    if not argv:
        raise ValueError("Command is required")
    command = [str(part) for part in argv]

    async def produce() -> str:
        result = await anyio.run_process(command, check=True)
        return result.stdout.decode("utf-8", errors="replace").strip()

    return produce
