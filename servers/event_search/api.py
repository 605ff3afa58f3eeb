"""
HTTP surface for event search.

Run with: uvicorn servers.event_search.api:app
"""

from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import load_settings
from .errors import FieldError, RequestValidationError
from .log import configure_logging
from .service import EventSearchService, error_body


def create_app(service: Optional[EventSearchService] = None) -> FastAPI:
    """Build the app around a service; a default one is created from the environment."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        svc = service
        if svc is None:
            settings = load_settings()
            configure_logging(settings.log_level, settings.log_json)
            svc = EventSearchService(settings=settings)
        app.state.service = svc
        await svc.start()
        try:
            yield
        finally:
            await svc.aclose()

    app = FastAPI(title="Event Search", version="2.0.0", lifespan=lifespan)

    @app.post("/search-events")
    async def search_events(request: Request) -> JSONResponse:
        try:
            payload: Any = await request.json()
        except ValueError:
            error = RequestValidationError([FieldError(field="body", message="Body is not valid JSON")])
            return JSONResponse(status_code=400, content=error_body(error))
        status, body = await request.app.state.service.handle_request(payload)
        return JSONResponse(status_code=status, content=body)

    @app.get("/health")
    async def health(request: Request) -> dict:
        return request.app.state.service.health_report()

    return app


app = create_app()
