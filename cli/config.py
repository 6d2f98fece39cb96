from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_TIMEOUT = 30.0
DEFAULT_IDENTITY_HEADER = "X-Authenticated-User"

_BASE_URL_ENV = "API_BASE_URL"
_USER_ENV = "TELEMETRY_USER"
_IDENTITY_HEADER_ENV = "IDENTITY_HEADER"
_TIMEOUT_ENV = "CLI_REQUEST_TIMEOUT"


@dataclass(frozen=True)
class CLIConfig:
    base_url: str = DEFAULT_BASE_URL
    user: Optional[str] = None
    identity_header: str = DEFAULT_IDENTITY_HEADER
    timeout: float = DEFAULT_TIMEOUT


def _read_float(value: Optional[str], default: float) -> float:
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def load_config(
    base_url: Optional[str] = None,
    user: Optional[str] = None,
    timeout: Optional[float] = None,
) -> CLIConfig:
    url = base_url or os.getenv(_BASE_URL_ENV) or DEFAULT_BASE_URL
    identity = user or os.getenv(_USER_ENV) or None
    header = (os.getenv(_IDENTITY_HEADER_ENV) or "").strip() or DEFAULT_IDENTITY_HEADER
    if timeout is None:
        timeout = _read_float(os.getenv(_TIMEOUT_ENV), DEFAULT_TIMEOUT)
    return CLIConfig(
        base_url=url.rstrip("/"),
        user=identity,
        identity_header=header,
        timeout=timeout,
    )
