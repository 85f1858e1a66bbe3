from __future__ import annotations

import logging
import os
from typing import Iterable, Optional, Sequence

from dotenv import load_dotenv


def env_first(names: Sequence[str], default: str = "") -> str:
    """Return the first non-empty value among ``names``, else ``default``."""
    for name in names:
        val = os.getenv(name)
        if val is not None and val.strip():
            return val.strip()
    return default


def env_int(names: Sequence[str], default: int) -> int:
    for name in names:
        raw = os.getenv(name)
        if raw is None or not raw.strip():
            continue
        try:
            return int(raw.strip())
        except ValueError as exc:
            raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    return default


def pick(explicit: Optional[str], names: Sequence[str], default: str = "") -> str:
    """Explicit argument first, then the env chain, then the default."""
    if explicit is not None and str(explicit).strip():
        return str(explicit).strip()
    return env_first(names, default)


def first_present(*values: Optional[str]) -> str:
    for val in values:
        if val is not None and str(val).strip():
            return str(val).strip()
    return ""


def parse_log_level(value: Optional[str], default: int = logging.WARNING) -> int:
    if not value:
        return default
    level = logging.getLevelName(value.strip().upper())
    return level if isinstance(level, int) else default


def load_env_config(*, use_dotenv: bool = True) -> None:
    """Populate ``os.environ`` from a local .env file when present."""
    if use_dotenv:
        load_dotenv()


def strip_slash(url: Optional[str]) -> str:
    return (url or "").strip().rstrip("/")


def require(values: Iterable[tuple[str, str]]) -> None:
    """Raise ValueError naming the first empty required field."""
    for label, value in values:
        if not value:
            raise ValueError(f"{label} must be provided.")


__all__ = [
    "env_first",
    "env_int",
    "pick",
    "first_present",
    "parse_log_level",
    "load_env_config",
    "strip_slash",
    "require",
]
