# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""StatusScraper: the core facade consumed by the HTTP server and the CLI.

Control flow of one lookup::

    cache ─hit─▶ return
      │miss
      ▼
    TaskQueue ▶ BrowserPool.acquire_session ▶ new_workspace
      ▶ navigator.run_lookup ▶ extract_page ▶ normalize_record
      ▶ release_workspace ▶ recycle_if_due ▶ cache write

Automation failures propagate as typed AutomationErrors; anything else
raised below this layer is wrapped in UnexpectedAutomationError. The core
never retries.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType

from playwright.async_api import Page

from . import normalize_identifier
from .browser_pool import BrowserPool
from .browser_session import BrowserConfig
from .cache import ResultCache
from .config import Settings
from .errors import AutomationError, UnexpectedAutomationError
from .extraction import extract_page
from .logging_config import lookup_context
from .navigator import run_lookup
from .normalize import has_data, normalize_record
from .step_timer import StepTimer
from .task_queue import TaskQueue

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_RE = re.compile(r"[^A-Z0-9_-]")


@dataclass(frozen=True, slots=True)
class LookupResult:
    """Outcome of a cache-aware lookup."""

    identifier: str
    record: dict
    cached: bool
    has_data: bool


class StatusScraper:
    """Cache-fronted, queue-serialized plate status scraper.

    Use as an async context manager so the shared browser is shut down::

        async with StatusScraper(Settings.from_env()) as scraper:
            result = await scraper.lookup("ab12cd")
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        pool: BrowserPool | None = None,
        queue: TaskQueue | None = None,
        cache: ResultCache | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._pool = pool or BrowserPool(
            restart_every=self._settings.restart_every,
            config=BrowserConfig(headless=self._settings.headless),
        )
        self._queue = queue or TaskQueue(max_concurrency=self._settings.max_concurrency)
        self._cache = cache or ResultCache(ttl=self._settings.cache_ttl)

    async def __aenter__(self) -> StatusScraper:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.shutdown()

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def pool(self) -> BrowserPool:
        return self._pool

    @property
    def queue(self) -> TaskQueue:
        return self._queue

    # ── Cache ────────────────────────────────────────────────────────

    def get_cached(self, identifier: str) -> dict | None:
        return self._cache.get(normalize_identifier(identifier))

    def put_cached(self, identifier: str, record: dict) -> None:
        self._cache.put(normalize_identifier(identifier), record)

    # ── Scraping ─────────────────────────────────────────────────────

    async def scrape(self, identifier: str, debug: bool = False) -> dict:
        """Run one browser lookup for *identifier* and return its normalized record."""
        identifier = normalize_identifier(identifier)
        return await self._queue.submit(lambda: self._run(identifier, debug))

    async def lookup(self, identifier: str, debug: bool = False) -> LookupResult:
        """Cache-aware scrape. Only records with page data are cached."""
        key = normalize_identifier(identifier)
        hit = self._cache.get(key)
        if hit is not None:
            logger.info("Cache hit: %s", key)
            return LookupResult(identifier=key, record=hit, cached=True, has_data=True)
        record = await self.scrape(key, debug)
        found = has_data(record)
        if found:
            self._cache.put(key, record)
        else:
            logger.info("No data detected for %s", key)
        return LookupResult(identifier=key, record=record, cached=False, has_data=found)

    async def _run(self, identifier: str, debug: bool) -> dict:
        with lookup_context(identifier):
            return await self._run_timed(identifier, debug)

    async def _run_timed(self, identifier: str, debug: bool) -> dict:
        timer = StepTimer()
        timer.step("acquire")
        try:
            session = await self._pool.acquire_session()
        except AutomationError:
            raise
        except Exception as exc:
            raise UnexpectedAutomationError(f"Browser unavailable: {exc}", step="acquire") from exc

        try:
            record = await self._run_in_workspace(session, identifier, debug, timer)
        except AutomationError as exc:
            timer.finalize()
            logger.warning("Lookup failed for %s at %s: %s", identifier, exc.step or timer.last_step, exc)
            logger.debug("Lookup failure report: %s", timer.failure_report())
            raise
        except Exception as exc:
            timer.finalize()
            step = timer.last_step or ""
            logger.error("Unexpected lookup failure for %s at %s", identifier, step, exc_info=True)
            raise UnexpectedAutomationError(f"{type(exc).__name__}: {exc}", step=step) from exc
        finally:
            await self._pool.recycle_if_due()

        timer.finalize()
        logger.info(
            "Lookup done for %s: %d fields in %.0fms",
            identifier,
            len(record),
            timer.total_ms(),
        )
        logger.debug("Lookup step timings: %s", timer.elapsed_per_step())
        return record

    async def _run_in_workspace(self, session, identifier: str, debug: bool, timer: StepTimer) -> dict:
        timer.step("workspace")
        workspace = await self._pool.new_workspace(session)
        try:
            await run_lookup(workspace.page, self._settings.target_url, identifier, timer)
            timer.step("extract")
            extraction = await extract_page(workspace.page)
            if debug:
                await self._save_debug_snapshot(workspace.page, identifier)
        finally:
            await self._pool.release_workspace(workspace)
        timer.step("normalize")
        return normalize_record(extraction, identifier)

    async def _save_debug_snapshot(self, page: Page, identifier: str) -> None:
        """Full-page screenshot for diagnostics. Best-effort."""
        name = _UNSAFE_FILENAME_RE.sub("_", identifier)
        path = Path(self._settings.debug_dir) / f"debug-{name}.png"
        try:
            await page.screenshot(path=str(path), full_page=True)
            logger.info("Debug snapshot saved: %s", path)
        except Exception:
            logger.warning("Debug snapshot failed for %s", identifier, exc_info=True)

    # ── Lifecycle ────────────────────────────────────────────────────

    def health(self) -> dict:
        h = self._pool.health()
        stats = self._cache.stats
        return {
            "browser": {
                "state": h.state.value,
                "generation": h.generation,
                "uses": h.uses,
                "restart_every": h.restart_every,
                "connected": h.browser_connected,
            },
            "queue": {
                "active": self._queue.active,
                "pending": self._queue.pending,
                "max_concurrency": self._queue.max_concurrency,
            },
            "cache": {
                "entries": len(self._cache),
                "hits": stats.hits,
                "misses": stats.misses,
                "stores": stats.stores,
                "ttl_expirations": stats.ttl_expirations,
                "hit_rate": round(stats.hit_rate, 3),
            },
        }

    async def shutdown(self) -> None:
        await self._pool.shutdown()
