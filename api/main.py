"""FastAPI application main entry point

Deployment:
    Single worker with the in-memory catalog:
        uvicorn api.main:app --port 3000

    Several workers need a shared catalog:
        SKINVIEW_CATALOG_BACKEND=redis uvicorn api.main:app --workers 4
"""

import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.config import get_settings, setup_logging
from core.identity import SkinResolver
from core.skins import SkinIntake, create_catalog
from core.utils.exceptions import BaseAPIException, NoFileProvidedError

from .routers import skins

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


# Configure CORS
def configure_cors(app: FastAPI, settings):
    """Configure CORS middleware"""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )


def configure_uploads(app: FastAPI, settings):
    """
    Serve stored skin files under the public upload prefix.

    The directory itself is created at startup by the upload storage.
    """
    app.mount(
        settings.upload.public_prefix,
        StaticFiles(directory=settings.upload.upload_dir, check_dir=False),
        name="uploads",
    )


def configure_frontend(app: FastAPI, public_dir: str) -> bool:
    """
    Serve the front-end bundle from ``public_dir``.

    Existing files are served as-is; any other non-API GET path falls back to
    ``index.html``. Must be called after every other route is registered.
    """
    public_root = Path(public_dir).resolve()
    index_file = public_root / "index.html"
    if not index_file.is_file():
        logger.info(f"No front-end bundle at {public_root}, serving API only")
        return False

    @app.get("/{full_path:path}", include_in_schema=False)
    async def serve_frontend(full_path: str):
        if full_path.startswith("api/"):
            raise HTTPException(status_code=404, detail="Not found")

        candidate = (public_root / full_path).resolve()
        if full_path and public_root in candidate.parents and candidate.is_file():
            return FileResponse(candidate)
        return FileResponse(index_file)

    logger.info(f"Serving front-end bundle from {public_root}")
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    catalog = None
    resolver = None

    # Startup
    logger.info("Starting Skin Viewer Backend...")

    try:
        settings = get_settings()
        setup_logging(settings.logging)

        logger.info(f"Environment: {settings.environment}")

        catalog = create_catalog(settings)
        resolver = SkinResolver.from_settings(settings)
        intake = SkinIntake.from_settings(settings, catalog)

        # Store services in app state for dependency injection
        app.state.catalog = catalog
        app.state.resolver = resolver
        app.state.intake = intake

        logger.info(
            f"Uploads: {settings.upload.upload_dir} -> {settings.upload.public_prefix} "
            f"(max {settings.upload.max_size_bytes} bytes)"
        )
        logger.info("Application startup completed successfully")

        yield

    except Exception as e:
        logger.error(f"Failed to start application: {str(e)}")
        raise

    finally:
        # Shutdown
        logger.info("Shutting down Skin Viewer Backend...")

        if resolver:
            resolver.close()
        if catalog:
            await catalog.close()

        logger.info("Application shutdown completed")


# Create FastAPI application
app = FastAPI(
    title="Skin Viewer API",
    description="Minecraft skin lookup, PNG skin uploads and upload catalog",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

settings = get_settings()
configure_cors(app, settings)


# Add middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add processing time header to responses"""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests"""
    start_time = time.time()

    logger.info(f"Request: {request.method} {request.url}")

    response = await call_next(request)

    process_time = time.time() - start_time
    logger.info(
        f"Response: {response.status_code} - "
        f"{request.method} {request.url} - "
        f"Time: {process_time:.3f}s"
    )

    return response


# Exception handlers
@app.exception_handler(BaseAPIException)
async def base_api_exception_handler(request: Request, exc: BaseAPIException):
    """Handle skin lookup and upload errors"""
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.error_code}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "code": exc.error_code},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Render request validation errors as API errors"""
    errors = exc.errors()
    if any(tuple(error.get("loc", ()))[-2:] == ("body", "file") for error in errors):
        # a "file" form field that is not a file part
        return await base_api_exception_handler(request, NoFileProvidedError())

    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=422,
        content={
            "error": f"{location}: {message}" if location else message,
            "code": "VALIDATION_ERROR",
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render framework HTTP errors in the same shape as API errors"""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception):
    """Handle internal server errors"""
    logger.error(f"Internal server error: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "An internal server error occurred"},
    )


# Include routers
app.include_router(skins.router)


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "timestamp": time.time(), "version": VERSION}


@app.get("/api", tags=["Root"])
async def root():
    """API information"""
    return {
        "name": "Skin Viewer API",
        "version": VERSION,
        "docs_url": "/docs",
        "health_url": "/health",
    }


configure_uploads(app, settings)
configure_frontend(app, settings.public_dir)
