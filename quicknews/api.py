"""FastAPI application exposing the news, ranking and click tracking operations."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .errors import (
    LedgerWriteError,
    MissingTargetError,
    NotificationDeliveryError,
    ValidationError,
)
from .service import NewsService

logger = logging.getLogger(__name__)

APP_NAME = "Quick NewsGPT"
FORWARDED_SCHEMES = ("http", "https")


class ProxyHeadersMiddleware(BaseHTTPMiddleware):
    """Respect X-Forwarded-Proto so generated track links use the public scheme."""

    async def dispatch(self, request: Request, call_next):
        proto = request.headers.get("x-forwarded-proto", "")
        scheme = proto.split(",")[0].strip().lower()
        if scheme in FORWARDED_SCHEMES:
            request.scope["scheme"] = scheme
        elif scheme:
            logger.debug("Ignoring X-Forwarded-Proto %r", proto)
        return await call_next(request)


async def json_object(request: Request) -> Dict[str, Any]:
    """Return the request body as a dict; anything else reads as empty."""
    try:
        payload = await request.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def create_app(service: NewsService) -> FastAPI:
    """Build the HTTP app around an already wired service."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Starting %s with %d feeds", APP_NAME, len(service.cache.feeds)
        )
        yield
        logger.info("Shutting down %s", APP_NAME)

    app = FastAPI(title=APP_NAME, lifespan=lifespan)
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.add_middleware(ProxyHeadersMiddleware)

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(LedgerWriteError)
    async def handle_ledger_write_error(request: Request, exc: LedgerWriteError):
        logger.error("Ledger write failed for %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to record click", "details": str(exc)},
        )

    @app.get("/", response_class=PlainTextResponse)
    def index() -> str:
        return f"{APP_NAME} backend running with free RSS mode"

    @app.get("/news")
    def news() -> Dict[str, Any]:
        return service.list_news()

    @app.post("/ask")
    def ask(payload: Dict[str, Any] = Depends(json_object)):
        question = payload.get("question")
        try:
            return service.ask(question)
        except ValidationError:
            raise
        except Exception:  # noqa: BLE001
            logger.exception("Error /ask")
            return JSONResponse(status_code=500, content={"error": "Internal error"})

    @app.get("/r/{tracking_id}")
    def follow(tracking_id: str, to: Optional[str] = None):
        try:
            target = service.redirect(tracking_id, to)
        except MissingTargetError as exc:
            return PlainTextResponse(str(exc), status_code=400)
        return RedirectResponse(target, status_code=302)

    @app.post("/create-link")
    def create_link(
        request: Request, payload: Dict[str, Any] = Depends(json_object)
    ) -> Dict[str, str]:
        target = payload.get("target")
        base_url = f"{request.url.scheme}://{request.url.netloc}"
        return service.create_link(target, base_url)

    @app.get("/stats")
    def stats(uptime: bool = False) -> Dict[str, Any]:
        return service.stats(include_uptime=uptime)

    @app.get("/send-summary")
    def send_summary():
        try:
            return service.send_summary()
        except NotificationDeliveryError as exc:
            logger.error("Email send error: %s", exc)
            return JSONResponse(
                status_code=500,
                content={"error": "Failed to send email", "details": str(exc)},
            )

    return app
