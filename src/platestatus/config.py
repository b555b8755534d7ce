# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Runtime settings read from ``PLATESTATUS_*`` environment variables.

Leaf module. CLI flags override values after ``Settings.from_env()``
via ``dataclasses.replace``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from .errors import ConfigError

ENV_PREFIX = "PLATESTATUS_"

DEFAULT_TARGET_URL = "https://estado-integraciones.dev.tracktec.cl/"
DEFAULT_CACHE_TTL_MS = 10 * 60 * 1000
DEFAULT_ALLOWED_ORIGINS = ("https://assermind.cl", "https://www.assermind.cl")

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


def _get(env: Mapping[str, str], name: str) -> str:
    return env.get(ENV_PREFIX + name, "").strip()


def _int(env: Mapping[str, str], name: str, default: int, *, minimum: int = 0) -> int:
    raw = _get(env, name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ConfigError(f"{ENV_PREFIX}{name} must be >= {minimum}, got {value}")
    return value


def _bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = _get(env, name).lower()
    if not raw:
        return default
    return raw in _TRUE_VALUES


def parse_origins(raw: str) -> tuple[str, ...]:
    """Split a comma-separated origin list, dropping blanks."""
    return tuple(o.strip() for o in raw.split(",") if o.strip())


@dataclass(frozen=True)
class Settings:
    """Process configuration consumed by the scraper, server and CLI."""

    target_url: str = DEFAULT_TARGET_URL
    cache_ttl_ms: int = DEFAULT_CACHE_TTL_MS
    max_concurrency: int = 1
    restart_every: int = 50
    allowed_origins: tuple[str, ...] = field(default=DEFAULT_ALLOWED_ORIGINS)
    host: str = "0.0.0.0"
    port: int = 3000
    debug_dir: str = "."
    headless: bool = True
    log_json: bool = False
    log_level: str = "INFO"

    @property
    def cache_ttl(self) -> float:
        """Cache TTL in seconds."""
        return self.cache_ttl_ms / 1000

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        """Build settings from the environment (``os.environ`` by default)."""
        env = os.environ if env is None else env
        origins = _get(env, "ALLOWED_ORIGINS")
        return cls(
            target_url=_get(env, "TARGET_URL") or DEFAULT_TARGET_URL,
            cache_ttl_ms=_int(env, "CACHE_TTL_MS", DEFAULT_CACHE_TTL_MS),
            max_concurrency=_int(env, "MAX_CONCURRENCY", 1, minimum=1),
            restart_every=_int(env, "RESTART_EVERY", 50, minimum=1),
            allowed_origins=parse_origins(origins) if origins else DEFAULT_ALLOWED_ORIGINS,
            host=_get(env, "HOST") or "0.0.0.0",
            port=_int(env, "PORT", 3000, minimum=1),
            debug_dir=_get(env, "DEBUG_DIR") or ".",
            headless=_bool(env, "HEADLESS", True),
            log_json=_bool(env, "LOG_JSON", False),
            log_level=_get(env, "LOG_LEVEL") or "INFO",
        )
