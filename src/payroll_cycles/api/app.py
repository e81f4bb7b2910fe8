"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from payroll_cycles import __version__
from payroll_cycles.api.routes import (
    health_router,
    payroll_cycles_router,
    payroll_details_router,
)
from payroll_cycles.config import get_settings
from payroll_cycles.database import dispose_db, init_db
from payroll_cycles.errors import (
    AlreadyFinalizedError,
    ConcurrentModificationError,
    FinalizedCycleError,
    NotFoundError,
    PayrollError,
    ValidationError,
    ValidationFailedError,
)
from payroll_cycles.logging_config import configure_logging
from payroll_cycles.services.state_machine import InvalidTransitionError

logger = logging.getLogger(__name__)

# First match wins; order subclasses before their bases
ERROR_STATUS_CODES: list[tuple[type[PayrollError], int]] = [
    (ValidationError, 422),
    (FinalizedCycleError, 423),
    (AlreadyFinalizedError, 409),
    (ValidationFailedError, 409),
    (ConcurrentModificationError, 409),
    (NotFoundError, 404),
]


def status_code_for(exc: PayrollError) -> int:
    """HTTP status for an engine error."""
    for error_type, code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    init_db()
    yield
    # Shutdown
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="Payroll Cycles API",
        description="Payroll cycle calculation, adjustment and finalization",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(PayrollError)
    async def payroll_error_handler(request: Request, exc: PayrollError) -> JSONResponse:
        """Map engine errors to their HTTP status."""
        return JSONResponse(status_code=status_code_for(exc), content=exc.to_dict())

    @app.exception_handler(InvalidTransitionError)
    async def transition_error_handler(
        request: Request, exc: InvalidTransitionError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": str(exc), "code": "INVALID_TRANSITION"},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(payroll_cycles_router, prefix="/api/v1")
    app.include_router(payroll_details_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
