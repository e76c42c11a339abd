"""FastAPI application factory."""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from zoneinfo import ZoneInfo

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from salary_engine.api.routes import health_router, salaries_router
from salary_engine.config import Settings, get_settings
from salary_engine.database import dispose_db, init_db
from salary_engine.errors import (
    ArithmeticFaultError,
    InvalidStateError,
    NotFoundError,
    PayrollError,
)
from salary_engine.services.job_queue import SalaryJobQueue
from salary_engine.services.scheduler import MonthEndSchedule, SalaryScheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Start the job workers and month-end scheduler for the process lifetime."""
    settings: Settings = app.state.settings
    owns_db = app.state.session_factory is None
    if owns_db:
        _, app.state.session_factory = init_db()

    queue = SalaryJobQueue.from_settings(app.state.session_factory, settings)
    await queue.start()
    app.state.job_queue = queue

    stop = asyncio.Event()
    scheduler_task = None
    if settings.scheduler_enabled:
        scheduler = SalaryScheduler(
            app.state.session_factory,
            queue,
            MonthEndSchedule(hour=settings.schedule_hour, timezone=settings.business_timezone),
            tick_seconds=settings.scheduler_tick_seconds,
        )
        scheduler_task = asyncio.create_task(scheduler.run_forever(stop))

    yield

    stop.set()
    if scheduler_task is not None:
        await scheduler_task
    await queue.stop()
    if owns_db:
        await dispose_db()


def _error_response(status_code: int, exc: PayrollError | ValueError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "detail": str(exc),
            "code": getattr(exc, "code", "INVALID_ARGUMENT"),
        },
    )


def create_app(
    settings: Settings | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    app = FastAPI(
        title="Salary Engine API",
        description="Monthly salary calculation and payroll ledger",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.session_factory = session_factory
    # Fail fast on an unknown business timezone
    ZoneInfo(settings.business_timezone)

    # Exception handlers
    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return _error_response(status.HTTP_404_NOT_FOUND, exc)

    @app.exception_handler(InvalidStateError)
    async def invalid_state_handler(request: Request, exc: InvalidStateError) -> JSONResponse:
        return _error_response(status.HTTP_409_CONFLICT, exc)

    @app.exception_handler(ArithmeticFaultError)
    async def arithmetic_fault_handler(
        request: Request, exc: ArithmeticFaultError
    ) -> JSONResponse:
        logger.error("Arithmetic fault on %s: %s", request.url.path, exc)
        return _error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, exc)

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return _error_response(status.HTTP_400_BAD_REQUEST, exc)

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(salaries_router, prefix="/api/v1")

    return app
