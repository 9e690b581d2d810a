"""
Upload router - Handle spreadsheet uploads and import history.

This module provides the endpoint that imports a roster workbook, plus
read-only listings of upload history and imported worksheets.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, UploadFile, File, Depends, HTTPException, status
from sqlalchemy.orm import Session

from api.config import settings
from api.dependencies import (
    get_db, get_current_user, get_storage, verify_file_extension, verify_file_size
)
from api.schemas.import_schema import (
    ImportResultResponse, ImportResults, UploadHistoryResponse, WorksheetResponse
)
from backend.models.schema import Worksheet
from backend.models.upload import UploadHistory
from services.exceptions import RosterImportError
from services.roster_import_service import RosterImportService
from services.storage_service import StorageService

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix='/upload', tags=['upload'])


@router.post('/excel', response_model=ImportResultResponse)
def upload_excel_file(
    excel_file: Optional[UploadFile] = File(
        None, alias='excelFile', description="Roster workbook (.xlsx or .xlsm)"
    ),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
    current_user: str = Depends(get_current_user)
):
    """
    Upload a roster workbook and import it.

    The import runs to completion inside this request.

    **Workflow:**
    1. Validate file type
    2. Save upload to a temporary file and check its size
    3. Import every worksheet (students and per-column facts)
    4. Record the upload in the history log
    5. Delete the temporary file (also on failure)

    **Returns:**
    - 200 with per-worksheet results and total records
    - 400 if no file was sent or the extension is not allowed
    - 413 if the file is too large
    - 500 if the file cannot be read as a workbook
    """
    if excel_file is None or not excel_file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No file uploaded"
        )

    logger.info(f"Upload request from {current_user}: {excel_file.filename}")

    # Nothing is written for a disallowed extension
    verify_file_extension(excel_file.filename, storage)

    temp_path = None
    try:
        temp_path = storage.save_upload(excel_file.file, excel_file.filename)
        verify_file_size(temp_path, storage)

        logger.info(f"File saved to {temp_path} ({storage.get_file_size(temp_path) / 1024:.1f} KB)")

    except HTTPException:
        # Clean up temp file on validation errors
        storage.delete_file(temp_path)
        raise

    except Exception as e:
        storage.delete_file(temp_path)
        logger.error(f"Upload failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Upload failed: {str(e)}"
        )

    service = RosterImportService(db, storage=storage)

    try:
        results = service.import_file(temp_path, excel_file.filename)
    except RosterImportError as e:
        logger.error(f"Upload processing error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to process uploaded file: {str(e)}"
        )

    return ImportResultResponse(
        message="File processed successfully",
        results=ImportResults(**results)
    )


@router.get('/history', response_model=List[UploadHistoryResponse])
def get_upload_history(
    db: Session = Depends(get_db),
    current_user: str = Depends(get_current_user)
):
    """
    List the most recent uploads, newest first.

    **Example:**
    ```bash
    curl http://localhost:3001/api/upload/history
    ```
    """
    history = db.query(UploadHistory)\
        .order_by(UploadHistory.upload_date.desc(), UploadHistory.id.desc())\
        .limit(settings.HISTORY_LIMIT)\
        .all()

    return [UploadHistoryResponse.model_validate(record) for record in history]


@router.get('/worksheets', response_model=List[WorksheetResponse])
def list_worksheets(
    db: Session = Depends(get_db),
    current_user: str = Depends(get_current_user)
):
    """
    List imported worksheets, most recently imported first.

    **Example:**
    ```bash
    curl http://localhost:3001/api/upload/worksheets
    ```
    """
    worksheets = db.query(Worksheet)\
        .order_by(Worksheet.upload_date.desc(), Worksheet.id.desc())\
        .all()

    return [WorksheetResponse.model_validate(worksheet) for worksheet in worksheets]
