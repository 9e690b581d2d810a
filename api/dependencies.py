"""
FastAPI dependencies for the roster portal.

Provides database sessions, the upload storage service, the admin
API key guard and the upload checks used by the upload router.
"""

import hmac
import logging
from pathlib import Path
from typing import Generator
from fastapi import Depends, HTTPException, Header, status
from sqlalchemy.orm import Session

from api.config import settings
from backend.database import create_db_engine, create_session_factory
from services.storage_service import StorageService

logger = logging.getLogger(__name__)

engine = create_db_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_pre_ping=settings.DB_POOL_PRE_PING
)

SessionLocal = create_session_factory(engine)


def get_db() -> Generator[Session, None, None]:
    """
    Yield a database session for one request.

    The session is closed when the request finishes; routers commit
    their own work.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_storage() -> StorageService:
    """Storage for uploads waiting to be imported."""
    return StorageService(settings.TEMP_UPLOAD_DIR)


def get_api_key(
    x_api_key: str = Header(None, alias=settings.API_KEY_HEADER)
) -> str:
    """
    Check the admin API key header.

    While ENABLE_API_KEY_AUTH is off every caller is let through as
    "public". Otherwise the header must match ADMIN_API_KEY.

    Raises:
        HTTPException: 401 if the key is missing or wrong
    """
    if not settings.ENABLE_API_KEY_AUTH:
        return "public"

    if not x_api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key required",
            headers={"WWW-Authenticate": "ApiKey"}
        )

    if not settings.ADMIN_API_KEY or not hmac.compare_digest(x_api_key, settings.ADMIN_API_KEY):
        logger.warning("Rejected request with invalid admin API key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"}
        )

    return "admin"


def get_current_user(api_key: str = Depends(get_api_key)) -> str:
    """Caller identity for admin routes ("admin" or "public")."""
    return api_key


def verify_file_extension(filename: str, storage: StorageService):
    """
    Reject uploads whose extension is not an allowed workbook type.

    Raises:
        HTTPException: 400 for a disallowed extension
    """
    if not storage.validate_file_extension(filename, settings.ALLOWED_EXTENSIONS):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File extension '{Path(filename).suffix.lower()}' not allowed. "
                   f"Allowed extensions: {', '.join(settings.ALLOWED_EXTENSIONS)}"
        )


def verify_file_size(file_path: str, storage: StorageService):
    """
    Reject saved uploads larger than MAX_FILE_SIZE_MB.

    Raises:
        HTTPException: 413 if the file is too large
    """
    if not storage.validate_file_size(file_path, settings.MAX_FILE_SIZE_MB):
        size_mb = storage.get_file_size(file_path) / 1024 / 1024
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File size ({size_mb:.1f} MB) exceeds maximum allowed "
                   f"({settings.MAX_FILE_SIZE_MB} MB)"
        )
