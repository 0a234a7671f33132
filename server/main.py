"""FastAPI application entrypoint (webhook mode).

Responsibilities:
- Create the FastAPI app with lifespan context
- Attach middleware: request id, GitHub delivery id, basic security headers
- Include the webhook / health / metrics routes

Notes:
- Logging is configured by suggester.bootstrap when the context is created.
- The context is initialised in lifespan so routes can rely on it.
"""
from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, Response
from structlog import contextvars as struct_contextvars

from suggester.bootstrap import get_context

from .routes import router as core_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:  # noqa: D401
    ctx = await get_context()
    log_method = ctx.logger.debug if ctx.settings.quiet_startup else ctx.logger.info
    log_method("api_startup", trigger_actions=ctx.settings.trigger_actions)
    try:
        yield
    finally:
        log_method("api_shutdown")


app = FastAPI(title="Changelog Suggester", version="0.1.0", lifespan=lifespan)


@app.middleware("http")
async def security_headers(request: Request, call_next):  # noqa: D401
    rid = str(uuid.uuid4())
    bound = {"request_id": rid}
    delivery = request.headers.get("X-GitHub-Delivery")
    if delivery:
        bound["delivery_id"] = delivery
    struct_contextvars.bind_contextvars(**bound)
    try:
        response: Response = await call_next(request)
    finally:
        struct_contextvars.clear_contextvars()
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("Referrer-Policy", "no-referrer")
    response.headers.setdefault("X-Request-ID", rid)
    return response


app.include_router(core_router)

# For local dev run: uvicorn server.main:app --reload
