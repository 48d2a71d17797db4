"""Sales tracker HTTP API using FastAPI."""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from sales_tracker.config import Settings
from sales_tracker.database import Database
from sales_tracker.errors import ErrorCategory, LedgerError, MissingParameter, UnsupportedFormat
from sales_tracker.reports import render_csv, report_filename
from sales_tracker.retry import RetryPolicy
from sales_tracker.schemas import (
    AnalyticsRead,
    ItemCreate,
    ItemCreated,
    ItemRead,
    ItemsPage,
    ItemUpdate,
)
from sales_tracker.services import AnalyticsService, ItemService
from sales_tracker.stores import SqlAnalyticsStore, SqlItemStore

logger = logging.getLogger(__name__)

STATUS_BY_CATEGORY = {
    ErrorCategory.MISSING_PARAMETER: 400,
    ErrorCategory.INVALID_DATE_RANGE: 400,
    ErrorCategory.PERIOD_TOO_LARGE: 400,
    ErrorCategory.UNSUPPORTED_FORMAT: 400,
    ErrorCategory.INVALID_INPUT: 400,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.CANCELLED: 499,
    ErrorCategory.STORAGE: 500,
    ErrorCategory.INTERNAL: 500,
    ErrorCategory.TIMEOUT: 504,
}


def parse_timestamp(raw: str, name: str) -> datetime:
    """Parse an RFC3339 timestamp; an explicit offset or ``Z`` is required."""
    value = raw.strip()
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise UnsupportedFormat(f"'{name}' must be an RFC3339 timestamp", cause=exc) from exc
    if parsed.tzinfo is None:
        raise UnsupportedFormat(f"'{name}' must include a UTC offset")
    return parsed


def _error_response(category: ErrorCategory, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=STATUS_BY_CATEGORY.get(category, 500),
        content={"error": category.value, "message": message},
    )


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """Wire the database, stores and services into a FastAPI application."""
    settings = settings or Settings()
    if database is None:
        database = Database.from_settings(settings)
    database.init_db()

    retry_policy = RetryPolicy.from_settings(settings)
    item_service = ItemService(
        SqlItemStore(database, retry_policy),
        default_page_size=settings.default_page_size,
        max_page_size=settings.max_page_size,
    )
    analytics_service = AnalyticsService(
        SqlAnalyticsStore(database),
        max_range=settings.max_range,
        retry_policy=retry_policy,
        default_timeout=settings.query_timeout,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        database.dispose()
        logger.info("Database connections closed")

    app = FastAPI(title="sales-tracker", version="1.0.0", lifespan=lifespan)
    app.state.database = database
    app.state.item_service = item_service
    app.state.analytics_service = analytics_service

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.info(
                "%s %s -> 500 (%.1f ms)",
                request.method,
                request.url.path,
                (time.perf_counter() - started) * 1000,
            )
            raise
        logger.info(
            "%s %s -> %d (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response

    @app.exception_handler(LedgerError)
    async def handle_ledger_error(request: Request, exc: LedgerError):
        if exc.client_error:
            logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
            return _error_response(exc.category, exc.message)
        logger.error(
            "%s %s failed: %s (cause: %r)", request.method, request.url.path, exc, exc.cause
        )
        # Server-side causes stay in the logs
        return _error_response(exc.category, exc.default_message)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        details = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        logger.warning("%s %s rejected: %s", request.method, request.url.path, details)
        return _error_response(ErrorCategory.INVALID_INPUT, details or "invalid input")

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("%s %s crashed", request.method, request.url.path, exc_info=exc)
        return _error_response(ErrorCategory.INTERNAL, "internal error")

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.post("/items", status_code=201, response_model=ItemCreated)
    def create_item(payload: ItemCreate):
        item = item_service.create_item(payload)
        return ItemCreated(id=item.id)

    @app.get("/items", response_model=ItemsPage)
    def list_items(page: int = Query(1), limit: Optional[int] = Query(None)):
        return item_service.list_items(page=page, limit=limit)

    # Registered before /items/{item_id} so "export" is not read as an id
    @app.get("/items/export")
    def export_items(
        start_raw: Optional[str] = Query(None, alias="from"),
        end_raw: Optional[str] = Query(None, alias="to"),
    ):
        if start_raw and end_raw:
            start = parse_timestamp(start_raw, "from")
            end = parse_timestamp(end_raw, "to")
        elif start_raw or end_raw:
            raise MissingParameter("provide both 'from' and 'to', or neither")
        else:
            end = datetime.now(timezone.utc)
            start = end - analytics_service.max_range

        result = analytics_service.get_analytics(start, end)
        body = render_csv(result, start, end)
        logger.info("Report exported: %d rows", len(result.details))
        return Response(
            content=body.encode("utf-8"),
            media_type="text/csv; charset=utf-8",
            headers={
                "Content-Disposition": f"attachment; filename={report_filename(start, end)}"
            },
        )

    @app.get("/items/{item_id}", response_model=ItemRead)
    def get_item(item_id: int):
        return item_service.get_item(item_id)

    @app.put("/items/{item_id}", response_model=ItemRead)
    def update_item(item_id: int, payload: ItemUpdate):
        return item_service.update_item(item_id, payload)

    @app.delete("/items/{item_id}", status_code=204)
    def delete_item(item_id: int):
        item_service.delete_item(item_id)
        return Response(status_code=204)

    @app.get("/analytics", response_model=AnalyticsRead)
    def get_analytics(
        start_raw: Optional[str] = Query(None, alias="from"),
        end_raw: Optional[str] = Query(None, alias="to"),
    ):
        if not start_raw or not end_raw:
            raise MissingParameter("both 'from' and 'to' are required")
        start = parse_timestamp(start_raw, "from")
        end = parse_timestamp(end_raw, "to")
        result = analytics_service.get_analytics(start, end)
        return AnalyticsRead.from_result(result)

    return app
