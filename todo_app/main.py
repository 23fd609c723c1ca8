import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from todo_app.config import Settings, get_settings
from todo_app.database import LazyPool, Pool, acquire_pool
from todo_app.middleware import CompressionMiddleware, RequestTracingMiddleware, cors_options
from todo_app.migrations import run_migrations
from todo_app.rendering import Renderer
from todo_app.routers import todo_router

logger = logging.getLogger(__name__)


def create_app(pool: Optional[Pool] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application.

    With no `pool`, the shared pool is built on first use: connect to
    `settings.database_url`, then run the migrations. The lifespan does this
    eagerly under a regular server, so a failure aborts startup, and closes
    the pool on shutdown. Under Lambda the lifespan is off and the first
    request of a container builds it. A pool passed in is used as-is and
    left open.
    """
    settings = settings or get_settings()

    async def build_pool() -> Pool:
        logger.info("initializing...", extra={"commit_sha": settings.commit_sha})
        new_pool = await acquire_pool(
            settings.database_url,
            max_connections=settings.max_connections,
            acquire_timeout=settings.acquire_timeout,
        )
        try:
            await run_migrations(new_pool)
        except BaseException:
            await new_pool.dispose()
            raise
        return new_pool

    lazy_pool = LazyPool(build_pool, pool=pool)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if pool is not None:
            yield
            return
        await lazy_pool.get()
        try:
            yield
        finally:
            await lazy_pool.dispose()

    app = FastAPI(title="Todo Service", lifespan=lifespan)
    app.state.renderer = Renderer()
    app.state.lazy_pool = lazy_pool

    app.include_router(todo_router.router)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={
                "error": "ValidationError",
                "message": "Request validation failed",
                "detail": jsonable_encoder(exc.errors()),
            },
        )

    # add_middleware wraps the current stack, so the last one added runs first.
    app.add_middleware(CompressionMiddleware, minimum_size=settings.compression_min_size)
    app.add_middleware(CORSMiddleware, **cors_options())
    app.add_middleware(RequestTracingMiddleware)
    return app


app = create_app()
