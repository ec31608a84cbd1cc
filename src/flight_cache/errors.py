"""Error normalization for printing producer failures."""

from __future__ import annotations

import subprocess
from typing import Any

HINT_CONFIG = "Check FLIGHT_CACHE_* environment variables and command options."
HINT_COMMAND = "Command exited with a non-zero status; the next call retries it."


def _decode(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    text = str(value).strip()
    return text or None


def normalize_error(event: str, exc: BaseException) -> dict[str, Any]:
    payload: dict[str, Any] = {"event": event, "type": exc.__class__.__name__}

    if isinstance(exc, subprocess.CalledProcessError):
        payload["message"] = f"Command failed with exit code {exc.returncode}"
        payload["returncode"] = exc.returncode
        stderr = _decode(exc.stderr)
        if stderr:
            payload["stderr"] = stderr
        payload["hint"] = HINT_COMMAND
    elif isinstance(exc, FileNotFoundError):
        payload["message"] = str(exc)
        payload["hint"] = HINT_CONFIG
    elif isinstance(exc, ValueError):
        payload["message"] = str(exc)
        payload["hint"] = HINT_CONFIG
    else:
        payload["message"] = str(exc)

    return {"error": payload}
