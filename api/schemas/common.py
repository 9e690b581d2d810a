"""
Common Pydantic schemas used across the API.

This module contains shared schemas for errors, messages and
health checks.
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field
from datetime import datetime


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str = Field(..., description="Error message")
    detail: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Error timestamp")
    path: Optional[str] = Field(None, description="Request path that caused the error")

    class Config:
        json_schema_extra = {
            "example": {
                "error": "Resource not found",
                "detail": {"path": "/api/nope"},
                "timestamp": "2025-10-15T12:00:00Z",
                "path": "/api/nope"
            }
        }


class MessageResponse(BaseModel):
    """Plain confirmation message."""

    message: str = Field(..., description="Human-readable message")

    class Config:
        json_schema_extra = {
            "example": {"message": "Student updated successfully"}
        }


class HealthCheckResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Health check timestamp")
    version: str = Field(..., description="API version")
    database: str = Field(..., description="Database connection status")
    storage: str = Field(..., description="Upload directory status (writable or unavailable)")

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "timestamp": "2025-10-15T12:00:00Z",
                "version": "1.0.0",
                "database": "connected",
                "storage": "writable"
            }
        }
