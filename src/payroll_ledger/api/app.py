"""FastAPI application factory."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from payroll_ledger.api.routes import health_router, payroll_router, salary_router
from payroll_ledger.clock import Clock, SystemClock
from payroll_ledger.config import settings
from payroll_ledger.database import create_schema, dispose_db, init_db
from payroll_ledger.errors import (
    ConflictError,
    ImmutableRecordError,
    InvalidInputError,
    InvalidStatusTransitionError,
    NotFoundError,
    PayrollLedgerError,
    ValidationError,
)
from payroll_ledger.services.locking_service import LockingService
from payroll_ledger.services.sync_service import SyncPropagator

logger = logging.getLogger(__name__)

# Most specific first; the first isinstance match wins
ERROR_STATUS: tuple[tuple[type[PayrollLedgerError], int], ...] = (
    (InvalidInputError, status.HTTP_400_BAD_REQUEST),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (InvalidStatusTransitionError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (ImmutableRecordError, status.HTTP_409_CONFLICT),
)


def status_for(exc: PayrollLedgerError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if app.state.engine is not None:
        await create_schema(app.state.engine)
    yield
    # Shutdown
    await app.state.propagator.drain()
    if app.state.engine is not None:
        await dispose_db()


def create_app(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    clock: Clock | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Without a session factory the global engine from DATABASE_URL is used
    and its tables are created at startup.
    """
    app = FastAPI(
        title="Payroll Ledger API",
        description="Monthly payroll ledger with historical snapshots",
        version="0.1.0",
        lifespan=lifespan,
    )

    engine = None
    if session_factory is None:
        engine, session_factory = init_db()
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.clock = clock or SystemClock()
    app.state.locks = LockingService()
    app.state.propagator = SyncPropagator(
        session_factory, clock=app.state.clock, locks=app.state.locks
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(PayrollLedgerError)
    async def payroll_error_handler(
        request: Request, exc: PayrollLedgerError
    ) -> JSONResponse:
        """Map domain errors to HTTP responses."""
        status_code = status_for(exc)
        if status_code >= 500:
            logger.error("Unmapped payroll error on %s", request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=status_code,
            content={"detail": str(exc), "code": exc.code},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.error("Unhandled error on %s", request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(salary_router, prefix="/api/v1")
    app.include_router(payroll_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
