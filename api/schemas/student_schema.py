"""
Student-related Pydantic schemas.

This module contains schemas for student records and their
per-worksheet facts.
"""

from typing import Dict, Optional
from pydantic import BaseModel, Field
from datetime import datetime

# Empty string or a plausible address
EMAIL_PATTERN = r'^$|^[^@\s]+@[^@\s]+\.[^@\s]+$'


class StudentResponse(BaseModel):
    """Student record."""

    id: int = Field(..., description="Internal student ID")
    student_number: str = Field(..., description="External student identifier")
    name: str = Field(..., description="Display name")
    section: Optional[str] = Field(None, description="Section / class label")
    email: Optional[str] = Field(None, description="Contact email")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": 1,
                "student_number": "S100",
                "name": "Ann Lee",
                "section": "A",
                "email": "",
                "created_at": "2025-10-15T12:00:00Z",
                "updated_at": "2025-10-15T12:00:00Z"
            }
        }


class StudentCreateRequest(BaseModel):
    """Request to create a student."""

    student_number: str = Field(..., min_length=1, max_length=64, description="External student identifier")
    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    section: Optional[str] = Field('', max_length=100, description="Section / class label")
    email: Optional[str] = Field('', max_length=255, pattern=EMAIL_PATTERN, description="Contact email")

    class Config:
        json_schema_extra = {
            "example": {
                "student_number": "S100",
                "name": "Ann Lee",
                "section": "A",
                "email": "ann.lee@example.edu"
            }
        }


class StudentUpdateRequest(BaseModel):
    """Request to update a student's profile fields."""

    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    section: Optional[str] = Field('', max_length=100, description="Section / class label")
    email: Optional[str] = Field('', max_length=255, pattern=EMAIL_PATTERN, description="Contact email")


class StudentDataResponse(BaseModel):
    """One stored fact of a student."""

    id: int = Field(..., description="Fact ID")
    student_id: int = Field(..., description="Student ID")
    worksheet_id: int = Field(..., description="Worksheet ID")
    data_key: str = Field(..., description="Column header the value came from")
    data_value: Optional[str] = Field(None, description="Cell text")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": 10,
                "student_id": 1,
                "worksheet_id": 2,
                "data_key": "Quiz 1",
                "data_value": "18",
                "created_at": "2025-10-15T12:00:00Z"
            }
        }


class StudentExportResponse(BaseModel):
    """Student record with facts grouped by worksheet name."""

    student: StudentResponse = Field(..., description="Student record")
    data: Dict[str, Dict[str, Optional[str]]] = Field(..., description="Facts keyed by worksheet, then column")

    class Config:
        json_schema_extra = {
            "example": {
                "student": {"id": 1, "student_number": "S100", "name": "Ann Lee", "section": "A"},
                "data": {"Grades": {"Quiz 1": "18", "Quiz 2": "20"}}
            }
        }
