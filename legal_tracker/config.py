from __future__ import annotations

import os
from dataclasses import dataclass
from typing import FrozenSet


PDF_CONTENT_TYPE = "application/pdf"


@dataclass(frozen=True)
class AppSettings:
    api_url: str
    api_timeout: float
    api_connect_timeout: float
    status_poll_interval: float
    accepted_content_types: FrozenSet[str]
    notification_history: int
    frontend_origin: str
    port: int
    log_level: str


def _int_env(name: str, default: str) -> int:
    return int(os.environ.get(name, default) or default)


def _float_env(name: str, default: str) -> float:
    raw = os.environ.get(name, default)
    try:
        return float(raw or default)
    except (TypeError, ValueError):
        return float(default)


def _str_env(name: str, default: str = "") -> str:
    return (os.environ.get(name, default) or default).strip()


def load_settings() -> AppSettings:
    api_url = _str_env("PIPELINE_API_URL", "http://localhost:8000").rstrip("/")
    poll_interval = max(0.01, _float_env("STATUS_POLL_INTERVAL", "3"))

    return AppSettings(
        api_url=api_url,
        api_timeout=_float_env("PIPELINE_API_TIMEOUT", "120"),
        api_connect_timeout=_float_env("PIPELINE_CONNECT_TIMEOUT", "10"),
        status_poll_interval=poll_interval,
        accepted_content_types=frozenset({PDF_CONTENT_TYPE}),
        notification_history=max(1, _int_env("NOTIFICATION_HISTORY", "50")),
        frontend_origin=_str_env("FRONTEND_ORIGIN", f"http://localhost:{os.environ.get('FRONTEND_PORT', '5173')}"),
        port=_int_env("TRACKER_PORT", "8080"),
        log_level=_str_env("LOG_LEVEL", "INFO").upper(),
    )
