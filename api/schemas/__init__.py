"""
Pydantic schemas for request/response validation.

This package contains all Pydantic models used for API request validation
and response serialization.
"""

from api.schemas.common import ErrorResponse, MessageResponse, HealthCheckResponse
from api.schemas.import_schema import (
    WorksheetResult, ImportResults, ImportResultResponse,
    WorksheetResponse, UploadHistoryResponse
)
from api.schemas.student_schema import (
    StudentResponse, StudentCreateRequest, StudentUpdateRequest,
    StudentDataResponse, StudentExportResponse
)

__all__ = [
    # Common
    'ErrorResponse',
    'MessageResponse',
    'HealthCheckResponse',

    # Import
    'WorksheetResult',
    'ImportResults',
    'ImportResultResponse',
    'WorksheetResponse',
    'UploadHistoryResponse',

    # Student
    'StudentResponse',
    'StudentCreateRequest',
    'StudentUpdateRequest',
    'StudentDataResponse',
    'StudentExportResponse',
]
