import os
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.router import api_router
from app.core.config import settings
from app.core.exceptions import AppError, RateLimitExceeded
from app.core.logging import logger


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description=settings.DESCRIPTION,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        debug=settings.DEBUG,
    )

    # Set up CORS middleware
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API router
    application.include_router(api_router, prefix=settings.API_V1_STR)

    # Serve uploaded files locally in dev mode only
    if not settings.PRODUCTION:
        from fastapi.staticfiles import StaticFiles

        uploads_dir = os.path.abspath(settings.UPLOAD_DIR)
        os.makedirs(uploads_dir, exist_ok=True)
        application.mount("/uploads", StaticFiles(directory=uploads_dir), name="uploads")
        logger.info(f"Dev mode: serving uploads from {uploads_dir}")

    # Register exception handlers
    register_exception_handlers(application)

    return application


def _error_response(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error, "message": message},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register custom exception handlers."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        """Known failures: status and message come from the error itself."""
        if isinstance(exc, RateLimitExceeded):
            logger.warning(f"{request.method} {request.url.path}: {exc.message}")
        elif exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path}: {exc.__class__.__name__}: {exc.message}")
        else:
            logger.info(f"{request.method} {request.url.path}: {exc.__class__.__name__}: {exc.message}")

        return _error_response(exc.status_code, exc.__class__.__name__, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Bad payloads are client errors; report the first problem only."""
        errors = exc.errors()
        message = "Invalid request"
        if errors:
            first = errors[0]
            location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
        return _error_response(400, "ValidationError", message)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler - logs details to console."""

        # Always log to console
        logger.error(f"Exception: {exc.__class__.__name__}: {exc}")

        if settings.DEBUG:
            # Log detailed info to console in debug mode
            logger.error(
                f"Request: {request.method} {request.url}\n"
                f"   Path Params: {request.path_params}\n"
                f"   Query Params: {dict(request.query_params)}\n"
                f"   Client: {request.client.host if request.client else 'unknown'}\n"
                f"   Traceback:\n{traceback.format_exc()}"
            )

        # Clean response to client
        return _error_response(
            500,
            "Internal server error",
            str(exc) if settings.DEBUG else "An unexpected error occurred",
        )


app = create_application()


@app.on_event("startup")
async def startup_event():
    """Create tables and log startup information."""
    # Import models so they register with Base.metadata
    import app.models  # noqa: F401
    from app.core.database import engine, Base

    async with engine.begin() as conn:
        try:
            await conn.run_sync(Base.metadata.create_all)
        except Exception as e:
            # Ignore "already exists" errors (e.g. ENUM types on restart)
            if "already exists" in str(e):
                logger.warning(f"Some DB objects already exist (safe to ignore): {e}")
            else:
                raise

    logger.info(f"Starting {settings.PROJECT_NAME} v{settings.VERSION}")
    logger.info(f"AI model: {settings.AI_MODEL} via {settings.AI_BASE_URL}")
    logger.info(f"OCR language: {settings.OCR_LANGUAGE}")
    if not settings.AI_API_KEY:
        logger.warning("AI_API_KEY is not set - summary generation will fail")
    if settings.DEBUG:
        logger.warning("DEBUG mode is ON - detailed errors will be logged to console")


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
