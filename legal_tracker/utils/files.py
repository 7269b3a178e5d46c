from __future__ import annotations

from typing import AbstractSet, Optional


def is_accepted_type(content_type: Optional[str], accepted: AbstractSet[str]) -> bool:
    cleaned = (content_type or "").split(";", 1)[0].strip().lower()
    return bool(cleaned) and cleaned in accepted


def format_size_mb(size: int) -> str:
    return f"{(size or 0) / 1024 / 1024:.2f} MB"
