"""Models package for the roster portal."""
from backend.models.schema import Base, Student, Worksheet, StudentData, AdminUser
from backend.models.upload import UploadHistory, UploadStatus

__all__ = [
    'Base', 'Student', 'Worksheet', 'StudentData', 'AdminUser',
    'UploadHistory', 'UploadStatus'
]
