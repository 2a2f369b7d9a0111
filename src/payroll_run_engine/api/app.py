"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from payroll_run_engine import __version__
from payroll_run_engine.api.routes import health_router, payroll_runs_router
from payroll_run_engine.calculators import InvalidLineItemError
from payroll_run_engine.collaborators import (
    Collaborators,
    in_memory_collaborators,
    load_collaborators_fixture,
)
from payroll_run_engine.config import settings
from payroll_run_engine.database import create_schema, dispose_db, init_db
from payroll_run_engine.events import EventEmitter
from payroll_run_engine.services import (
    DuplicateRunError,
    InvalidTransitionError,
    MissingEmployeeDataError,
    PayrollRunNotFoundError,
    RejectionReasonRequiredError,
    RunLockedError,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    owns_db = app.state.session_factory is None
    if owns_db:
        engine, app.state.session_factory = init_db()
        if engine.url.get_backend_name() == "sqlite":
            await create_schema(engine)
    yield
    if owns_db:
        await dispose_db()


def _default_collaborators() -> Collaborators:
    if settings.collaborators_fixture:
        logger.info("Loading collaborators from %s", settings.collaborators_fixture)
        return load_collaborators_fixture(settings.collaborators_fixture)
    return in_memory_collaborators()


def _error(status_code: int, detail: str, code: str, context: dict[str, Any] | None = None) -> JSONResponse:
    content: dict[str, Any] = {"detail": detail, "code": code}
    if context:
        content["context"] = context
    return JSONResponse(status_code=status_code, content=content)


def create_app(
    collaborators: Collaborators | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    emitter: EventEmitter | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``session_factory`` and ``collaborators`` are injectable for tests;
    by default the database comes from ``DATABASE_URL`` and collaborators
    are in-memory (optionally seeded from ``COLLABORATORS_FIXTURE``).
    """
    app = FastAPI(
        title="Payroll Run Engine API",
        description="Monthly payroll drafts, payslips, exceptions and approvals",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.session_factory = session_factory
    app.state.collaborators = collaborators or _default_collaborators()
    app.state.emitter = emitter or EventEmitter()

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(DuplicateRunError)
    async def duplicate_run_handler(request: Request, exc: DuplicateRunError) -> JSONResponse:
        return _error(
            status.HTTP_409_CONFLICT,
            str(exc),
            "DUPLICATE_RUN",
            {
                "existing_run_id": str(exc.existing_run_id) if exc.existing_run_id else None,
                "existing_status": exc.existing_status,
            },
        )

    @app.exception_handler(PayrollRunNotFoundError)
    async def not_found_handler(request: Request, exc: PayrollRunNotFoundError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, str(exc), "NOT_FOUND")

    @app.exception_handler(RunLockedError)
    async def run_locked_handler(request: Request, exc: RunLockedError) -> JSONResponse:
        return _error(status.HTTP_409_CONFLICT, str(exc), "RUN_LOCKED")

    @app.exception_handler(InvalidTransitionError)
    async def invalid_transition_handler(
        request: Request, exc: InvalidTransitionError
    ) -> JSONResponse:
        return _error(
            status.HTTP_409_CONFLICT,
            str(exc),
            "INVALID_TRANSITION",
            {"status": exc.status, "action": exc.action, "role": exc.role},
        )

    @app.exception_handler(RejectionReasonRequiredError)
    async def rejection_reason_handler(
        request: Request, exc: RejectionReasonRequiredError
    ) -> JSONResponse:
        return _error(
            status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc), "REJECTION_REASON_REQUIRED"
        )

    @app.exception_handler(MissingEmployeeDataError)
    async def missing_employee_data_handler(
        request: Request, exc: MissingEmployeeDataError
    ) -> JSONResponse:
        return _error(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            str(exc),
            "MISSING_EMPLOYEE_DATA",
            {"employee_id": exc.employee_id},
        )

    @app.exception_handler(InvalidLineItemError)
    async def invalid_line_item_handler(
        request: Request, exc: InvalidLineItemError
    ) -> JSONResponse:
        return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc), "INVALID_COMPENSATION_DATA")

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An unexpected error occurred",
            "INTERNAL_ERROR",
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(payroll_runs_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
