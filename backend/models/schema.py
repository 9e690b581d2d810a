"""
SQLAlchemy models for the roster portal.

This module defines the database schema using SQLAlchemy ORM,
matching the schema defined in Alembic migrations.
"""

from sqlalchemy import (
    Column, Integer, String, Text, TIMESTAMP, ForeignKey, Index,
    UniqueConstraint, text
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class Student(Base):
    """Represents a student known to the portal."""

    __tablename__ = 'students'
    __table_args__ = (
        Index('idx_students_name', 'name'),
        {'comment': 'Students identified by their external student number'}
    )

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        nullable=False
    )
    student_number = Column(
        String(64),
        nullable=False,
        unique=True,
        comment='External student identifier from rosters'
    )
    name = Column(
        String(255),
        nullable=False,
        comment='Display name'
    )
    section = Column(
        String(100),
        nullable=True,
        server_default='',
        comment='Section / class label'
    )
    email = Column(
        String(255),
        nullable=True,
        comment='Optional contact email'
    )
    created_at = Column(
        TIMESTAMP,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False,
        comment='First sighting timestamp'
    )
    updated_at = Column(
        TIMESTAMP,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False,
        comment='Last modification timestamp'
    )

    # Relationships
    data = relationship('StudentData', back_populates='student', cascade='all, delete-orphan')

    def __repr__(self):
        return f"<Student(id={self.id}, student_number='{self.student_number}', name='{self.name}')>"

    def to_dict(self) -> dict:
        """Convert student to dictionary representation."""
        return {
            'id': self.id,
            'student_number': self.student_number,
            'name': self.name,
            'section': self.section,
            'email': self.email,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }


class Worksheet(Base):
    """Represents one imported sheet of an uploaded workbook."""

    __tablename__ = 'worksheets'
    __table_args__ = (
        Index('idx_worksheets_name_file', 'name', 'file_name'),
        Index('idx_worksheets_upload_date', 'upload_date'),
        {'comment': 'One imported sheet of an uploaded workbook'}
    )

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        nullable=False
    )
    name = Column(
        String(255),
        nullable=False,
        comment='Sheet name'
    )
    description = Column(
        Text,
        nullable=True
    )
    upload_date = Column(
        TIMESTAMP,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False,
        comment='Last import timestamp'
    )
    file_name = Column(
        String(255),
        nullable=True,
        comment='Original workbook filename'
    )
    total_records = Column(
        Integer,
        server_default='0',
        nullable=False,
        comment='Rows the sheet contributed on its last import'
    )

    data = relationship('StudentData', back_populates='worksheet', cascade='all, delete-orphan')

    def __repr__(self):
        return f"<Worksheet(id={self.id}, name='{self.name}', file_name='{self.file_name}')>"


class StudentData(Base):
    """A single (student, worksheet, column) -> value fact."""

    __tablename__ = 'student_data'
    __table_args__ = (
        UniqueConstraint('student_id', 'worksheet_id', 'data_key', name='uq_student_data_key'),
        Index('idx_student_data_student', 'student_id'),
        Index('idx_student_data_worksheet', 'worksheet_id'),
        {'comment': 'Flexible key/value storage of roster cells'}
    )

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        nullable=False
    )
    student_id = Column(
        Integer,
        ForeignKey('students.id', ondelete='CASCADE'),
        nullable=False
    )
    worksheet_id = Column(
        Integer,
        ForeignKey('worksheets.id', ondelete='CASCADE'),
        nullable=False
    )
    data_key = Column(
        String(255),
        nullable=False,
        comment='Literal column header text'
    )
    data_value = Column(
        Text,
        nullable=True,
        comment='Cell text'
    )
    created_at = Column(
        TIMESTAMP,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False
    )

    student = relationship('Student', back_populates='data')
    worksheet = relationship('Worksheet', back_populates='data')

    def __repr__(self):
        return (f"<StudentData(student_id={self.student_id}, worksheet_id={self.worksheet_id}, "
                f"key='{self.data_key}')>")


class AdminUser(Base):
    """Administrator credentials."""

    __tablename__ = 'admin_users'

    id = Column(Integer, primary_key=True, autoincrement=True, nullable=False)
    username = Column(String(100), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(
        TIMESTAMP,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False
    )

    def __repr__(self):
        return f"<AdminUser(id={self.id}, username='{self.username}')>"
