"""FastAPI entrypoint for product transaction query endpoints."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import Depends, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import JSONResponse

from backend.factory import build_query_engine
from backend.services.query_engine import QueryEngine
from backend.services.seeding import seed_transactions
from shared import config as _config
from shared.models import (
    CategoryCount,
    CombinedResult,
    PriceBandCount,
    ProductTransaction,
    StatisticsResult,
    ToolError,
)


logger = logging.getLogger(__name__)


_INTERNAL_ERROR_BODY = {"error": "Internal server error"}


def _internal_error_response() -> JSONResponse:
    return JSONResponse(status_code=500, content=_INTERNAL_ERROR_BODY)


def _tool_error_response(error: ToolError) -> JSONResponse:
    logger.error(
        "query_failed code=%s message=%s details=%s",
        error.code.value,
        error.message,
        error.details,
    )
    return _internal_error_response()


async def _seed_store(engine: QueryEngine) -> None:
    """Seed the store once; failures are logged and the app keeps serving."""

    url = _config.seed_data_url()
    try:
        await asyncio.to_thread(
            seed_transactions,
            engine.repository,
            url,
            timeout=_config.seed_timeout_seconds(),
        )
    except Exception:
        logger.exception("seed_failed url=%s", url)


def create_app(engine: QueryEngine | None = None, *, seed: bool | None = None) -> FastAPI:
    """Build the API around an explicit query engine.

    When `engine` is omitted the lifespan builds one from configuration and
    closes its repository at shutdown. `seed` defaults to `SEED_ON_STARTUP`.
    """

    should_seed = _config.seed_on_startup() if seed is None else seed

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owns_engine = getattr(app.state, "query_engine", None) is None
        if owns_engine:
            app.state.query_engine = build_query_engine()
        if should_seed:
            await _seed_store(app.state.query_engine)
        try:
            yield
        finally:
            if owns_engine:
                app.state.query_engine.repository.close()
                app.state.query_engine = None
                logger.info("transactions_repository_closed")

    app = FastAPI(title="Product Transactions API", lifespan=lifespan)
    app.state.query_engine = engine

    @app.middleware("http")
    async def log_http_requests(request: Request, call_next):
        """Log incoming requests, HTTP status codes and unexpected errors."""

        logger.info("http_request_received method=%s path=%s", request.method, request.url.path)
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "http_request_failed method=%s path=%s",
                request.method,
                request.url.path,
            )
            raise

        logger.info(
            "http_response_sent method=%s path=%s status_code=%s",
            request.method,
            request.url.path,
            response.status_code,
        )
        return response

    allow_origins = _config.cors_allow_origins()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    logger.info("cors_allow_origins=%s", allow_origins)

    @app.exception_handler(Exception)
    async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
        """Return a JSON 500 response for unhandled exceptions."""

        logger.exception(
            "unhandled_exception method=%s path=%s exception_type=%s message=%s",
            request.method,
            request.url.path,
            type(exc).__name__,
            str(exc),
            exc_info=exc,
        )
        return _internal_error_response()

    _register_routes(app)
    return app


def get_query_engine(request: Request) -> QueryEngine:
    engine = getattr(request.app.state, "query_engine", None)
    if engine is None:
        raise RuntimeError("Query engine is not initialized")
    return engine


def _register_routes(app: FastAPI) -> None:
    @app.get("/health")
    def health() -> dict[str, str]:
        """Healthcheck endpoint."""

        return {"status": "ok"}

    @app.get("/transactions", response_model=list[ProductTransaction])
    def list_transactions(
        month: str | None = None,
        search: str | None = None,
        page: str | None = None,
        per_page: str | None = Query(default=None, alias="perPage"),
        engine: QueryEngine = Depends(get_query_engine),
    ):
        """List transactions matching month and search, one page at a time."""

        result = engine.list_transactions(month=month, search=search, page=page, per_page=per_page)
        if isinstance(result, ToolError):
            return _tool_error_response(result)
        return result.items

    @app.get("/statistics", response_model=StatisticsResult)
    def statistics(month: str | None = None, engine: QueryEngine = Depends(get_query_engine)):
        result = engine.statistics(month=month)
        if isinstance(result, ToolError):
            return _tool_error_response(result)
        return result

    @app.get("/bar-chart", response_model=list[PriceBandCount])
    def bar_chart(month: str | None = None, engine: QueryEngine = Depends(get_query_engine)):
        result = engine.bar_chart(month=month)
        if isinstance(result, ToolError):
            return _tool_error_response(result)
        return result

    @app.get("/pie-chart", response_model=list[CategoryCount])
    def pie_chart(month: str | None = None, engine: QueryEngine = Depends(get_query_engine)):
        result = engine.pie_chart(month=month)
        if isinstance(result, ToolError):
            return _tool_error_response(result)
        return result

    @app.get("/combined-data", response_model=CombinedResult)
    async def combined_data(month: str | None = None, engine: QueryEngine = Depends(get_query_engine)):
        """Return transactions, statistics, bar chart and pie chart for one month."""

        result = await engine.combined(month=month)
        if isinstance(result, ToolError):
            return _tool_error_response(result)
        return result


app = create_app()
