"""
FastAPI application for the roster portal.

Wires the upload and student routers under API_PREFIX, sets up logging,
CORS and the JSON error envelope, and prepares the database and the
temporary upload directory on startup.
"""

import os
import time
import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from api.config import settings
from api.dependencies import engine, get_storage
from api.routers import students, upload
from api.schemas.common import ErrorResponse, HealthCheckResponse
from backend.models.schema import Base

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format=settings.LOG_FORMAT,
    handlers=[
        logging.FileHandler(settings.LOG_FILE),
        logging.StreamHandler()
    ]
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tables and sweep stale uploads before serving."""
    logger.info(f"Starting {settings.API_TITLE} v{settings.API_VERSION}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[-1]}")  # Hide credentials

    try:
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        logger.error(f"Could not create roster tables: {e}")

    removed = get_storage().cleanup_temp_files(older_than_hours=settings.STALE_UPLOAD_HOURS)
    logger.info(f"Uploads go to {settings.TEMP_UPLOAD_DIR} ({removed} stale files removed)")

    if not settings.ENABLE_API_KEY_AUTH:
        logger.warning("Admin API key auth is disabled; admin routes are open")

    yield

    logger.info("Roster portal stopping")
    engine.dispose()


app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS
)


def error_response(request: Request, status_code: int, error: str, detail: dict = None) -> JSONResponse:
    """Render the ErrorResponse envelope."""
    body = ErrorResponse(error=error, detail=detail, path=str(request.url))
    return JSONResponse(status_code=status_code, content=body.model_dump(mode='json'))


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        {"message": str(exc)} if settings.DEBUG else None
    )


@app.exception_handler(404)
async def not_found(request: Request, exc):
    # Routes raise 404 with their own detail (e.g. "Student not found")
    detail = getattr(exc, 'detail', None)
    if detail and detail != 'Not Found':
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": detail})

    return error_response(request, status.HTTP_404_NOT_FOUND, "Endpoint not found",
                          {"path": request.url.path})


app.include_router(upload.router, prefix=settings.API_PREFIX)
app.include_router(students.router, prefix=settings.API_PREFIX)


@app.get('/', include_in_schema=False)
async def root():
    return {
        'message': f'Welcome to {settings.API_TITLE}',
        'version': settings.API_VERSION,
        'upload': f'{settings.API_PREFIX}/upload/excel',
        'students': f'{settings.API_PREFIX}/students',
        'docs': '/docs'
    }


@app.get('/health', response_model=HealthCheckResponse, tags=['health'])
async def health_check():
    """
    Report database connectivity and whether uploads can be stored.

    **Example:**
    ```bash
    curl http://localhost:3001/health
    ```
    """
    database = 'connected'
    try:
        with engine.connect() as connection:
            connection.execute(text('SELECT 1'))
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        database = 'disconnected'

    storage = 'writable' if os.access(settings.TEMP_UPLOAD_DIR, os.W_OK) else 'unavailable'

    return HealthCheckResponse(
        status='healthy' if database == 'connected' and storage == 'writable' else 'unhealthy',
        timestamp=datetime.utcnow(),
        version=settings.API_VERSION,
        database=database,
        storage=storage
    )


@app.get('/api/ping', tags=['health'])
async def ping():
    """Liveness probe; does not touch the database."""
    return {'ping': 'pong'}


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log each request with its status and duration."""
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(f"{request.method} {request.url.path} - {response.status_code} ({elapsed_ms:.0f} ms)")
    return response


if __name__ == '__main__':
    import uvicorn

    uvicorn.run(
        'api.main:app',
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        log_level=settings.LOG_LEVEL.lower()
    )
