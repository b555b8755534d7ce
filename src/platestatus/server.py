# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""HTTP front door: a thin Starlette app over StatusScraper.

Routes:
- GET /health: liveness
- GET /ready: browser/queue/cache snapshot
- GET /api/estado?patente=AB12CD[&debug=1]: plate status lookup

All logging goes to stderr.
"""

from __future__ import annotations

import contextlib
import logging

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from . import IDENTIFIER_FIELD
from .config import Settings
from .errors import AutomationError, InvalidIdentifierError
from .http_middleware import AccessLogMiddleware, CorsMiddleware
from .logging_config import configure
from .scraper import StatusScraper

logger = logging.getLogger("platestatus.server")

NO_DATA_MESSAGE = "Sin datos detectados. Ajustar selectores."


async def _health(request: Request) -> JSONResponse:
    return JSONResponse({"ok": True})


async def _ready(request: Request) -> JSONResponse:
    scraper: StatusScraper = request.app.state.scraper
    return JSONResponse({"ok": True, **scraper.health()})


async def _estado(request: Request) -> JSONResponse:
    scraper: StatusScraper = request.app.state.scraper
    patente = (request.query_params.get("patente") or "").strip().upper()
    debug = (request.query_params.get("debug") or "").strip().lower() == "1"
    if not patente:
        return JSONResponse({"error": "Patente requerida"}, status_code=400)

    try:
        result = await scraper.lookup(patente, debug=debug)
    except InvalidIdentifierError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    except AutomationError as exc:
        logger.error("Scrape error for %s: %s", patente, exc)
        return JSONResponse({"error": "Fallo de scraping", "detalle": str(exc)}, status_code=500)

    if not result.has_data:
        return JSONResponse({IDENTIFIER_FIELD: patente, "mensaje": NO_DATA_MESSAGE})
    return JSONResponse(result.record)


def create_app(settings: Settings | None = None, scraper: StatusScraper | None = None):
    """Build the ASGI app. *scraper* is injectable for tests."""
    settings = settings or Settings()
    scraper = scraper or StatusScraper(settings)

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette):
        logger.info("Scraper listening on %s:%d (target=%s)", settings.host, settings.port, settings.target_url)
        try:
            yield
        finally:
            await scraper.shutdown()

    app = Starlette(
        routes=[
            Route("/health", _health, methods=["GET"]),
            Route("/ready", _ready, methods=["GET"]),
            Route("/api/estado", _estado, methods=["GET"]),
        ],
        lifespan=lifespan,
    )
    app.state.scraper = scraper
    app.state.settings = settings

    wrapped = CorsMiddleware(app, allowed_origins=settings.allowed_origins)
    return AccessLogMiddleware(wrapped)


def serve(settings: Settings) -> None:
    """Run the app under uvicorn until interrupted."""
    import uvicorn

    configure(json_output=settings.log_json, level=settings.log_level)
    app = create_app(settings)
    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_config=None,
        access_log=False,
    )
    uvicorn.Server(config).run()


def main() -> None:
    serve(Settings.from_env())


if __name__ == "__main__":
    main()
