"""Main application entry point for the WageFlow Absence API."""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from wageflow.api.absences import absence_router
from wageflow.api.ssp import ssp_router
from wageflow.config.settings import get_settings
from wageflow.database import DatabaseConfig, dispose_engine, get_engine
from wageflow.utils.errors import APIError


# =============================================================================
# Logging Configuration
# =============================================================================

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# Application Lifespan
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown events."""
    settings = get_settings()
    logger.info(f"Starting {settings.app_name}...")
    logger.info(
        f"Overlap pre-check failure policy: "
        f"{settings.absence.overlap_check_failure_policy.value}"
    )

    config = DatabaseConfig.from_env()
    logger.info(f"Connecting to database at {config.host}:{config.port}/{config.database}")
    get_engine(config)

    logger.info("Application startup complete")

    yield

    logger.info(f"Shutting down {settings.app_name}...")
    dispose_engine()
    logger.info("Application shutdown complete")


# =============================================================================
# Exception Handlers
# =============================================================================

async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle API errors and return structured responses."""
    response = exc.to_response()
    return JSONResponse(
        status_code=response.status_code,
        content=response.to_dict(),
    )


def _validation_response(errors: List[Dict[str, Any]]) -> JSONResponse:
    field_errors = []
    for error in errors:
        loc = ".".join(str(x) for x in error["loc"])
        field_errors.append({
            "field": loc,
            "message": error["msg"],
            "code": error["type"],
        })

    return JSONResponse(
        status_code=400,
        content={
            "ok": False,
            "error": {
                "message": "Request validation failed",
                "code": "VALIDATION_ERROR",
                "field_errors": field_errors,
            },
        },
    )


# =============================================================================
# Application Factory
# =============================================================================

def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description=(
            "Absence recording for UK payroll: leave-type rules, overlap "
            "protection and Statutory Sick Pay day plans."
        ),
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(ssp_router)
    app.include_router(absence_router)

    app.add_exception_handler(APIError, api_error_handler)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        """Convert request body/query validation errors to structured response."""
        return _validation_response(exc.errors())

    @app.exception_handler(PydanticValidationError)
    async def pydantic_validation_handler(
        request: Request,
        exc: PydanticValidationError,
    ) -> JSONResponse:
        """Convert Pydantic validation errors to structured response."""
        return _validation_response(exc.errors())

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unexpected error occurred")
        return JSONResponse(
            status_code=500,
            content={
                "ok": False,
                "error": {
                    "message": "An unexpected error occurred",
                    "code": "INTERNAL_ERROR",
                },
            },
        )

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict:
        """Check application health."""
        return {"status": "healthy", "version": settings.app_version}

    return app


# =============================================================================
# Application Instance
# =============================================================================

app = create_app()


# =============================================================================
# Development Server
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "wageflow.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
