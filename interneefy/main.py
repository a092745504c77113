from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import Response
from fastapi.staticfiles import StaticFiles

from interneefy.api.routers import admin, auth, dashboard, intern, supervisor
from interneefy.infra.context import AppContext
from interneefy.infra.logging import RequestIDMiddleware, init_logging
from interneefy.infra.redis_state import check_redis_ready
from interneefy.infra.session_store import RedisSessionStorage
from interneefy.services.cancellation import FetchCancelled

logger = logging.getLogger(__name__)

CLIENT_CLOSED_REQUEST = 499

static_dir = Path(__file__).resolve().parent / "web" / "static"


async def check_api_ready(context: AppContext) -> bool:
    async with context.api_client() as client:
        return await client.ping()


def check_session_backend_ready(context: AppContext) -> bool | None:
    storage = context.storage
    if not isinstance(storage, RedisSessionStorage):
        return None
    return check_redis_ready(storage.redis)


async def fetch_cancelled_handler(request: Request, exc: FetchCancelled) -> Response:
    logger.info("dropped response for %s after the client went away", request.url.path)
    return Response(status_code=CLIENT_CLOSED_REQUEST)


def create_app(context: AppContext | None = None) -> FastAPI:
    context = context or AppContext()
    init_logging(context.settings.log_level)
    # Session storage is built up front so readiness can see the Redis client.
    context.credential_store()

    app = FastAPI(
        title="interneefy",
        description="Role-aware console for the Interneefy internship management API.",
        version="0.1.0",
    )
    app.state.context = context
    app.add_middleware(RequestIDMiddleware)
    app.add_exception_handler(FetchCancelled, fetch_cancelled_handler)

    app.include_router(auth.router, tags=["auth"])
    app.include_router(dashboard.router, tags=["dashboard"])
    app.include_router(admin.router, tags=["admin"])
    app.include_router(supervisor.router, tags=["supervisor"])
    app.include_router(intern.router, tags=["intern"])

    app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

    @app.get("/healthz")
    def healthz() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/readyz")
    async def readyz() -> dict[str, object]:
        api_ok = await check_api_ready(context)
        checks = {"api": "ok" if api_ok else "fail"}
        redis_ok = check_session_backend_ready(context)
        if redis_ok is not None:
            checks["redis"] = "ok" if redis_ok else "fail"
        if not api_ok or redis_ok is False:
            raise HTTPException(
                status_code=503,
                detail={"status": "not_ready", "checks": checks},
            )
        return {"status": "ready", "checks": checks}

    return app


app = create_app()
