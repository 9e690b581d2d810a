"""
Import-related Pydantic schemas.

This module contains schemas for spreadsheet upload results, worksheets
and the upload history.
"""

from typing import List, Optional
from pydantic import BaseModel, Field
from datetime import datetime


class WorksheetResult(BaseModel):
    """Outcome of importing one worksheet."""

    name: str = Field(..., description="Sheet name")
    id: Optional[int] = Field(None, description="Worksheet record ID (None if the sheet failed)")
    status: str = Field(..., description="completed or failed")
    headers: List[str] = Field(default_factory=list, description="Header row text")
    records_processed: int = Field(0, description="Rows imported")
    students_created: int = Field(0, description="New students")
    students_updated: int = Field(0, description="Students whose name or section changed")
    errors: List[str] = Field(default_factory=list, description="Row or structure errors")


class ImportResults(BaseModel):
    """Summary of a whole upload."""

    worksheets: List[WorksheetResult] = Field(default_factory=list, description="Per-worksheet results")
    total_records: int = Field(0, description="Rows imported across all worksheets")
    students_created: int = Field(0, description="New students across all worksheets")
    students_updated: int = Field(0, description="Updated students across all worksheets")
    errors: List[str] = Field(default_factory=list, description="All errors, in processing order")
    upload_id: Optional[int] = Field(None, description="Upload history record ID")


class ImportResultResponse(BaseModel):
    """Response when an upload has been processed."""

    message: str = Field(..., description="Outcome message")
    results: ImportResults = Field(..., description="Import summary")

    class Config:
        json_schema_extra = {
            "example": {
                "message": "File processed successfully",
                "results": {
                    "worksheets": [{
                        "name": "Roster",
                        "id": 1,
                        "status": "completed",
                        "headers": ["Student Number", "Name", "Section"],
                        "records_processed": 30,
                        "students_created": 28,
                        "students_updated": 2,
                        "errors": []
                    }],
                    "total_records": 30,
                    "students_created": 28,
                    "students_updated": 2,
                    "errors": [],
                    "upload_id": 7
                }
            }
        }


class WorksheetResponse(BaseModel):
    """Stored worksheet record."""

    id: int = Field(..., description="Worksheet ID")
    name: str = Field(..., description="Sheet name")
    description: Optional[str] = Field(None, description="Description")
    upload_date: datetime = Field(..., description="Last import timestamp")
    file_name: Optional[str] = Field(None, description="Source workbook filename")
    total_records: int = Field(..., description="Rows contributed on the last import")

    class Config:
        from_attributes = True


class UploadHistoryResponse(BaseModel):
    """Upload audit record."""

    id: int = Field(..., description="Record ID")
    file_name: str = Field(..., description="Stored filename")
    original_name: str = Field(..., description="Filename as uploaded")
    file_size: Optional[int] = Field(None, description="Size in bytes")
    records_processed: Optional[int] = Field(None, description="Rows imported")
    upload_date: datetime = Field(..., description="Processing timestamp")
    status: str = Field(..., description="completed or completed_with_errors")

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": 7,
                "file_name": "upload-k2j3h4.xlsx",
                "original_name": "section-a.xlsx",
                "file_size": 10240,
                "records_processed": 30,
                "upload_date": "2025-10-15T12:00:00Z",
                "status": "completed"
            }
        }
