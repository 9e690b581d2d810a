"""
Upload audit models.

This module defines the append-only upload history table that records
one row per processed spreadsheet.
"""

from enum import Enum
from sqlalchemy import (
    Column, Integer, String, TIMESTAMP, CheckConstraint, Index, text
)

from backend.models.schema import Base


class UploadStatus(str, Enum):
    """Outcome of a processed upload."""
    COMPLETED = 'completed'
    COMPLETED_WITH_ERRORS = 'completed_with_errors'


class UploadHistory(Base):
    """
    Represents one processed spreadsheet upload.

    Rows are only ever inserted; the table doubles as the audit log
    shown in the admin panel.
    """

    __tablename__ = 'upload_history'
    __table_args__ = (
        CheckConstraint(
            "status IN ('completed', 'completed_with_errors')",
            name='upload_history_status_check'
        ),
        Index('idx_upload_history_upload_date', 'upload_date'),
        {'comment': 'Audit log of processed spreadsheet uploads'}
    )

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        nullable=False
    )
    file_name = Column(
        String(255),
        nullable=False,
        comment='Stored (temporary) filename'
    )
    original_name = Column(
        String(255),
        nullable=False,
        comment='Filename as uploaded'
    )
    file_size = Column(
        Integer,
        nullable=True,
        comment='Size in bytes'
    )
    records_processed = Column(
        Integer,
        nullable=True,
        comment='Rows imported across all worksheets'
    )
    upload_date = Column(
        TIMESTAMP,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False
    )
    status = Column(
        String(30),
        nullable=False,
        server_default=UploadStatus.COMPLETED.value,
        comment='completed or completed_with_errors'
    )

    def __repr__(self):
        return f"<UploadHistory(id={self.id}, original_name='{self.original_name}', status='{self.status}')>"

    def to_dict(self) -> dict:
        """Convert upload record to dictionary representation."""
        return {
            'id': self.id,
            'file_name': self.file_name,
            'original_name': self.original_name,
            'file_size': self.file_size,
            'records_processed': self.records_processed,
            'upload_date': self.upload_date.isoformat() if self.upload_date else None,
            'status': self.status
        }

    def has_errors(self) -> bool:
        """Check if the upload finished with recorded errors."""
        return self.status == UploadStatus.COMPLETED_WITH_ERRORS
