"""
Students router - CRUD operations for student records.

This module provides endpoints for listing, searching, creating and
updating students, and for reading the facts imported for them.
"""

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from api.dependencies import get_db, get_current_user, get_storage
from api.schemas.common import MessageResponse
from api.schemas.student_schema import (
    StudentResponse, StudentCreateRequest, StudentUpdateRequest,
    StudentDataResponse, StudentExportResponse
)
from backend.models.schema import Student, StudentData
from services.roster_import_service import RosterImportService
from services.storage_service import StorageService

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix='/students', tags=['students'])


@router.get('', response_model=List[StudentResponse])
def list_students(
    db: Session = Depends(get_db)
):
    """
    List all students ordered by name.

    **Example:**
    ```bash
    curl http://localhost:3001/api/students
    ```
    """
    students = db.query(Student).order_by(Student.name).all()
    return [StudentResponse.model_validate(student) for student in students]


@router.get('/search', response_model=List[StudentResponse])
def search_students(
    q: Optional[str] = Query(None, description="Search text (at least 2 characters)"),
    db: Session = Depends(get_db)
):
    """
    Search students by name, student number or section.

    Matching is a case-insensitive literal substring match; % and _
    in the query are not wildcards.

    **Example:**
    ```bash
    curl "http://localhost:3001/api/students/search?q=lee"
    ```
    """
    if not q or len(q.strip()) < 2:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Search query must be at least 2 characters"
        )

    term = q.strip()
    students = db.query(Student).filter(or_(
        Student.name.icontains(term, autoescape=True),
        Student.student_number.icontains(term, autoescape=True),
        Student.section.icontains(term, autoescape=True)
    )).order_by(Student.name).all()

    return [StudentResponse.model_validate(student) for student in students]


@router.get('/number/{student_number}', response_model=StudentExportResponse)
def get_student_by_number(
    student_number: str,
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage)
):
    """
    Get a student and all imported facts grouped by worksheet.

    This is what the student dashboard shows after sign-in.

    **Example:**
    ```bash
    curl http://localhost:3001/api/students/number/S100
    ```
    """
    export = RosterImportService(db, storage=storage).get_student_export(student_number)

    if export is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Student not found"
        )

    return StudentExportResponse(
        student=StudentResponse.model_validate(export['student']),
        data=export['data']
    )


@router.post('', response_model=StudentResponse, status_code=status.HTTP_201_CREATED)
def create_student(
    payload: StudentCreateRequest,
    db: Session = Depends(get_db),
    current_user: str = Depends(get_current_user)
):
    """
    Create a student (admin only).

    **Returns:**
    - 201 with the new student
    - 409 if the student number is already taken
    """
    existing = db.query(Student).filter_by(student_number=payload.student_number).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Student with this number already exists"
        )

    student = Student(
        student_number=payload.student_number,
        name=payload.name,
        section=payload.section or '',
        email=payload.email or ''
    )
    db.add(student)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Student with this number already exists"
        )

    db.refresh(student)
    logger.info(f"Student {student.student_number} created by {current_user}")

    return StudentResponse.model_validate(student)


@router.put('/{student_id}', response_model=MessageResponse)
def update_student(
    student_id: int,
    payload: StudentUpdateRequest,
    db: Session = Depends(get_db),
    current_user: str = Depends(get_current_user)
):
    """
    Update a student's name, section and email (admin only).

    **Returns:**
    - 200 with a confirmation message
    - 404 if the student does not exist
    """
    student = db.query(Student).filter_by(id=student_id).first()

    if not student:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Student not found"
        )

    student.name = payload.name
    student.section = payload.section or ''
    student.email = payload.email or ''
    student.updated_at = func.current_timestamp()
    db.commit()

    logger.info(f"Student {student_id} updated by {current_user}")

    return MessageResponse(message="Student updated successfully")


@router.get('/{student_id}/data', response_model=List[StudentDataResponse])
def get_student_data(
    student_id: int,
    worksheet_id: Optional[int] = Query(None, description="Only facts from this worksheet"),
    db: Session = Depends(get_db)
):
    """
    Get the facts stored for a student.

    **Example:**
    ```bash
    curl "http://localhost:3001/api/students/1/data?worksheet_id=2"
    ```
    """
    query = db.query(StudentData).filter_by(student_id=student_id)

    if worksheet_id:
        query = query.filter_by(worksheet_id=worksheet_id)

    facts = query.order_by(StudentData.id).all()
    return [StudentDataResponse.model_validate(fact) for fact in facts]
