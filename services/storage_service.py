"""
Storage Service - Temporary upload storage.

This module saves uploaded spreadsheets to a temporary directory,
checks their extension and size, and removes them once processed.
"""

import os
import shutil
import tempfile
import logging
from pathlib import Path
from typing import BinaryIO, Iterable, Optional
from datetime import datetime

logger = logging.getLogger(__name__)

# Default temporary upload directory
DEFAULT_TEMP_DIR = '/tmp/roster_uploads'
DEFAULT_ALLOWED_EXTENSIONS = ('.xlsx', '.xlsm')


class StorageService:
    """
    Framework-agnostic storage service for uploaded files.

    Used by the upload router and the CLI; the import service calls
    delete_file once a workbook has been processed.
    """

    def __init__(self, temp_dir: str = DEFAULT_TEMP_DIR):
        """
        Initialize storage service.

        Args:
            temp_dir: Directory that receives uploads before processing
        """
        self.temp_dir = temp_dir
        self._ensure_directory_exists()

    def _ensure_directory_exists(self):
        """Ensure the upload directory exists."""
        Path(self.temp_dir).mkdir(parents=True, exist_ok=True)
        logger.debug(f"Upload directory ensured: {self.temp_dir}")

    def save_upload(self, fileobj: BinaryIO, original_name: str) -> str:
        """
        Copy an uploaded stream into a new temporary file.

        Args:
            fileobj: Readable binary stream
            original_name: Filename supplied by the client (used for the suffix)

        Returns:
            Path to the temporary file
        """
        self._ensure_directory_exists()

        fd, temp_path = tempfile.mkstemp(
            prefix='upload-',
            suffix=Path(original_name).suffix.lower(),
            dir=self.temp_dir
        )
        with os.fdopen(fd, 'wb') as tmp:
            shutil.copyfileobj(fileobj, tmp)

        logger.info(f"Saved upload {original_name} to {temp_path}")
        return temp_path

    def delete_file(self, file_path: Optional[str]) -> bool:
        """
        Delete a file.

        Errors are logged rather than raised so cleanup never masks the
        outcome of the import that preceded it.

        Returns:
            True if file was deleted, False otherwise
        """
        if not file_path:
            return False

        path = Path(file_path)
        try:
            if path.exists():
                path.unlink()
                logger.info(f"Cleaned up file: {file_path}")
                return True
        except OSError as e:
            logger.error(f"Error cleaning up file {file_path}: {e}")
            return False

        logger.debug(f"File already gone: {file_path}")
        return False

    def get_file_size(self, file_path: str) -> int:
        """Get file size in bytes (0 if missing)."""
        path = Path(file_path)
        if not path.exists():
            return 0
        return path.stat().st_size

    def validate_file_extension(self, file_name: str,
                                allowed_extensions: Iterable[str] = DEFAULT_ALLOWED_EXTENSIONS) -> bool:
        """
        Validate file extension.

        Args:
            file_name: Name or path of the file
            allowed_extensions: Allowed extensions (e.g., ['.xlsx', '.xlsm'])

        Returns:
            True if extension is allowed, False otherwise
        """
        ext = Path(file_name).suffix.lower()
        is_valid = ext in [e.lower() for e in allowed_extensions]

        if not is_valid:
            logger.warning(f"Invalid file extension: {ext!r} (allowed: {list(allowed_extensions)})")

        return is_valid

    def validate_file_size(self, file_path: str, max_size_mb: int) -> bool:
        """
        Validate that file size is within limit.

        Args:
            file_path: Path to file
            max_size_mb: Maximum allowed size in MB

        Returns:
            True if size is within limit, False otherwise
        """
        size_bytes = self.get_file_size(file_path)
        is_valid = size_bytes <= max_size_mb * 1024 * 1024

        if not is_valid:
            logger.warning(f"File size {size_bytes / 1024 / 1024:.2f} MB exceeds limit of {max_size_mb} MB")

        return is_valid

    def cleanup_temp_files(self, older_than_hours: int = 24) -> int:
        """
        Remove stale uploads left behind by crashed processes.

        Args:
            older_than_hours: Remove files older than this many hours

        Returns:
            Number of files deleted
        """
        temp_path = Path(self.temp_dir)

        if not temp_path.exists():
            return 0

        cutoff_time = datetime.now().timestamp() - (older_than_hours * 3600)
        deleted_count = 0

        for file_path in temp_path.glob("*"):
            if file_path.is_file() and file_path.stat().st_mtime < cutoff_time:
                if self.delete_file(str(file_path)):
                    deleted_count += 1

        if deleted_count > 0:
            logger.info(f"Cleaned up {deleted_count} stale uploads")

        return deleted_count
