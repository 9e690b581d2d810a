"""
Roster Import Service - Framework-agnostic business logic.

This module turns uploaded spreadsheets into student records: it reads
each worksheet, matches the header row against known column spellings,
upserts students and stores every cell as a key/value fact.
"""

import os
import logging
from datetime import date, datetime, time
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple

import openpyxl
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.models.schema import Student, Worksheet, StudentData
from backend.models.upload import UploadHistory, UploadStatus
from services.exceptions import RosterImportError, WorksheetStructureError, WorkbookReadError
from services.storage_service import StorageService

logger = logging.getLogger(__name__)

# Accepted header spellings, tried in order
IDENTIFIER_HEADERS = ('student number', 'student_number', 'id', 'student id')
NAME_HEADERS = ('name', 'student name', 'full name')
SECTION_HEADERS = ('section', 'class', 'group')


def cell_text(value: Any) -> str:
    """Render a cell value as trimmed text ('' for empty cells)."""
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'TRUE' if value else 'FALSE'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value).strip()


def is_blank_row(row: Sequence[Any]) -> bool:
    return all(cell_text(value) == '' for value in row)


def header_text(value: Any) -> str:
    """Header cell as written in the sheet; only non-text headers are converted."""
    if isinstance(value, str):
        return value
    return cell_text(value)


class ColumnMap(NamedTuple):
    """Column positions of the roster fields within a header row."""
    identifier: int
    name: int
    section: Optional[int]


class ColumnResolver:
    """Resolve roster fields from a worksheet header row."""

    def __init__(self,
                 identifier_headers: Sequence[str] = IDENTIFIER_HEADERS,
                 name_headers: Sequence[str] = NAME_HEADERS,
                 section_headers: Sequence[str] = SECTION_HEADERS):
        self.identifier_headers = identifier_headers
        self.name_headers = name_headers
        self.section_headers = section_headers

    @staticmethod
    def find_column_index(headers: Sequence[Any], candidates: Sequence[str]) -> Optional[int]:
        """
        Find the first column whose header matches one of the candidates.

        Candidates are tried in order; matching is case-insensitive on
        trimmed text. Returns None when nothing matches.
        """
        normalized = [cell_text(header).lower() for header in headers]

        for candidate in candidates:
            target = candidate.strip().lower()
            for index, header in enumerate(normalized):
                if header and header == target:
                    return index
        return None

    def resolve(self, headers: Sequence[Any], sheet_name: str) -> ColumnMap:
        """
        Map the header row to roster fields.

        Raises:
            WorksheetStructureError: If the identifier or name column is missing
        """
        identifier = self.find_column_index(headers, self.identifier_headers)
        if identifier is None:
            raise WorksheetStructureError(
                sheet_name,
                f'No student identifier column found in worksheet "{sheet_name}". '
                f'Expected one of: {_quoted(self.identifier_headers)}'
            )

        name = self.find_column_index(headers, self.name_headers)
        if name is None:
            raise WorksheetStructureError(
                sheet_name,
                f'No name column found in worksheet "{sheet_name}". '
                f'Expected one of: {_quoted(self.name_headers)}'
            )

        section = self.find_column_index(headers, self.section_headers)

        logger.debug(f"Resolved columns for {sheet_name}: id={identifier}, name={name}, section={section}")
        return ColumnMap(identifier=identifier, name=name, section=section)


def _quoted(spellings: Sequence[str]) -> str:
    return ', '.join(f'"{s}"' for s in spellings)


class WorkbookReader:
    """Read every worksheet of a workbook as rows of raw cell values."""

    def read(self, file_path: str) -> List[Tuple[str, List[List[Any]]]]:
        """
        Load the workbook and return its worksheets in file order.

        Trailing blank rows are dropped, so an empty sheet yields no rows.

        Raises:
            WorkbookReadError: If the file is not a readable workbook
        """
        logger.info(f"Reading workbook: {file_path}")

        try:
            workbook = openpyxl.load_workbook(file_path, data_only=True)
        except Exception as e:
            raise WorkbookReadError(f"Failed to read workbook: {e}") from e

        try:
            sheets = []
            for worksheet in workbook.worksheets:
                rows = [list(row) for row in worksheet.iter_rows(values_only=True)]
                while rows and is_blank_row(rows[-1]):
                    rows.pop()
                sheets.append((worksheet.title, rows))
        finally:
            workbook.close()

        logger.info(f"Read {len(sheets)} worksheets")
        return sheets


class RosterImportService:
    """
    Framework-agnostic roster import service.

    One call to import_file processes a whole workbook synchronously:
    per-row problems are collected, a structurally broken worksheet is
    skipped, and an unreadable file aborts the import.
    """

    def __init__(
        self,
        db_session: Session,
        progress_callback: Optional[Callable[[str, float, str], None]] = None,
        storage: Optional[StorageService] = None,
        column_resolver: Optional[ColumnResolver] = None,
        reader: Optional[WorkbookReader] = None
    ):
        """
        Initialize roster import service.

        Args:
            db_session: SQLAlchemy database session
            progress_callback: Optional callback for progress updates
                              Signature: callback(stage: str, percent: float, message: str)
            storage: Storage service used to size and delete processed files
            column_resolver: Header matcher (default spellings if omitted)
            reader: Workbook reader
        """
        self.session = db_session
        self.progress_callback = progress_callback or (lambda *args: None)
        self._storage = storage
        self.column_resolver = column_resolver or ColumnResolver()
        self.reader = reader or WorkbookReader()

        self.stats = _new_stats()

    @property
    def storage(self) -> StorageService:
        # Created on first use so read-only callers never touch the upload directory
        if self._storage is None:
            self._storage = StorageService()
        return self._storage

    def _emit_progress(self, stage: str, percent: float, message: str):
        """Emit progress update via callback."""
        self.progress_callback(stage, percent, message)
        logger.info(f"Progress: {stage} ({percent:.1f}%) - {message}")

    def import_file(self, file_path: str, original_name: str, cleanup: bool = True) -> Dict[str, Any]:
        """
        Main import workflow.

        Args:
            file_path: Path to the workbook on disk
            original_name: Filename as supplied by the uploader
            cleanup: Delete file_path when done (always, even on failure)

        Returns:
            Dictionary with import results:
            {
                'worksheets': list of per-worksheet results,
                'total_records': int,
                'students_created': int,
                'students_updated': int,
                'errors': list of str,
                'stats': dict,
                'upload_id': int
            }

        Raises:
            WorkbookReadError: If the file cannot be read at all
            RosterImportError: On any other fatal failure
        """
        logger.info(f"Processing Excel file: {original_name}")
        self.stats = _new_stats()

        results = {
            'worksheets': [],
            'total_records': 0,
            'students_created': 0,
            'students_updated': 0,
            'errors': [],
            'stats': self.stats,
            'upload_id': None
        }

        try:
            self._emit_progress('reading', 5, f'Reading {original_name}...')
            sheets = self.reader.read(file_path)
            total_sheets = len(sheets)

            for sheet_idx, (sheet_name, rows) in enumerate(sheets):
                sheet_progress = 10 + (80 * (sheet_idx / max(total_sheets, 1)))
                self._emit_progress('worksheet', sheet_progress, f"Processing worksheet: {sheet_name}")

                if not rows:
                    results['errors'].append(f'Worksheet "{sheet_name}" is empty')
                    continue

                try:
                    sheet_result = self.import_worksheet(sheet_name, rows, original_name)
                except (WorksheetStructureError, SQLAlchemyError) as e:
                    self.session.rollback()
                    logger.error(f"Error processing worksheet \"{sheet_name}\": {e}")
                    message = f'Error in worksheet "{sheet_name}": {e}'
                    results['errors'].append(message)
                    results['worksheets'].append(self._failed_worksheet(sheet_name, rows, message))
                    self.stats['worksheets_failed'] += 1
                    continue

                results['worksheets'].append(sheet_result)
                results['total_records'] += sheet_result['records_processed']
                results['students_created'] += sheet_result['students_created']
                results['students_updated'] += sheet_result['students_updated']
                results['errors'].extend(sheet_result['errors'])
                self.stats['worksheets_processed'] += 1

            self._emit_progress('finalizing', 95, 'Saving upload history...')
            history = self.record_history(file_path, original_name, results)
            results['upload_id'] = history.id

            self._emit_progress('complete', 100, 'Import complete')
            logger.info(f"Import of {original_name} finished: {results['total_records']} records, "
                        f"{len(results['errors'])} errors")
            return results

        except WorkbookReadError as e:
            logger.error(f"Error processing Excel file {original_name}: {e}")
            self.session.rollback()
            raise

        except Exception as e:
            logger.error(f"Import failed: {e}", exc_info=True)
            self.session.rollback()
            raise RosterImportError(f"Failed to process Excel file: {e}") from e

        finally:
            if cleanup:
                self.storage.delete_file(file_path)

    def import_worksheet(self, sheet_name: str, rows: List[List[Any]], file_name: str) -> Dict[str, Any]:
        """
        Import one worksheet whose first row is the header row.

        Raises:
            WorksheetStructureError: If identifier or name column is missing
        """
        headers = [header_text(header) for header in rows[0]]
        data_rows = rows[1:]

        columns = self.column_resolver.resolve(headers, sheet_name)
        worksheet = self._upsert_worksheet(sheet_name, file_name)

        result = self.process_worksheet_rows(worksheet.id, headers, data_rows, columns, sheet_name)

        worksheet.total_records = result['records_processed']
        self.session.commit()

        logger.info(f"Worksheet {sheet_name}: {result['records_processed']} records, "
                    f"{result['students_created']} created, {result['students_updated']} updated")

        return {
            'name': sheet_name,
            'id': worksheet.id,
            'status': 'completed',
            'headers': headers,
            **result
        }

    def process_worksheet_rows(
        self,
        worksheet_id: int,
        headers: List[str],
        data_rows: List[List[Any]],
        columns: ColumnMap,
        sheet_name: str
    ) -> Dict[str, Any]:
        """
        Upsert students and facts for every data row.

        Row problems are recorded in the returned error list and never
        raised; each row runs inside a savepoint so a failing row leaves
        no partial writes behind.
        """
        result = {
            'records_processed': 0,
            'students_created': 0,
            'students_updated': 0,
            'errors': []
        }

        for offset, row in enumerate(data_rows):
            # Header occupies spreadsheet row 1
            row_number = offset + 2
            values = [cell_text(value) for value in row]

            if all(value == '' for value in values):
                continue

            student_number = _value_at(values, columns.identifier)
            name = _value_at(values, columns.name)
            section = _value_at(values, columns.section) if columns.section is not None else None

            if not student_number or not name:
                message = f"Row {row_number}: Missing student number or name"
                logger.warning(f"{sheet_name}: {message}")
                result['errors'].append(message)
                self.stats['rows_skipped'] += 1
                continue

            try:
                with self.session.begin_nested():
                    student, outcome = self._upsert_student(student_number, name, section)

                    facts = {}
                    for index, header in enumerate(headers):
                        value = _value_at(values, index)
                        if header.strip() and value:
                            facts[header] = value

                    for data_key, data_value in facts.items():
                        self._upsert_fact(student.id, worksheet_id, data_key, data_value)

            except Exception as e:
                logger.error(f"Error processing row {row_number} of {sheet_name}: {e}")
                result['errors'].append(f"Row {row_number}: {e}")
                self.stats['rows_skipped'] += 1
                continue

            if outcome == 'created':
                result['students_created'] += 1
            elif outcome == 'updated':
                result['students_updated'] += 1

            self.stats['facts_written'] += len(facts)
            result['records_processed'] += 1

        return result

    def _upsert_worksheet(self, sheet_name: str, file_name: str) -> Worksheet:
        """Find the worksheet imported from the same file, or create it."""
        worksheet = self.session.query(Worksheet).filter_by(name=sheet_name, file_name=file_name).first()

        if worksheet is None:
            worksheet = Worksheet(
                name=sheet_name,
                description=f"Imported from {file_name}",
                file_name=file_name,
                total_records=0
            )
            self.session.add(worksheet)
            self.session.flush()
            logger.info(f"Created worksheet record {worksheet.id} for {sheet_name}")
        else:
            worksheet.upload_date = func.current_timestamp()
            logger.info(f"Reusing worksheet record {worksheet.id} for {sheet_name}")

        return worksheet

    def _upsert_student(self, student_number: str, name: str,
                        section: Optional[str]) -> Tuple[Student, Optional[str]]:
        """
        Create or update a student by student number.

        A section of None means the sheet has no section column; the
        stored section is then left alone.

        Returns:
            (student, outcome) where outcome is 'created', 'updated' or None
        """
        student = self.session.query(Student).filter_by(student_number=student_number).first()

        if student is None:
            student = Student(
                student_number=student_number,
                name=name,
                section=section or '',
                email=''
            )
            self.session.add(student)
            self.session.flush()
            return student, 'created'

        new_section = (student.section or '') if section is None else section

        if student.name != name or (student.section or '') != new_section:
            student.name = name
            student.section = new_section
            student.updated_at = func.current_timestamp()
            return student, 'updated'

        return student, None

    def _upsert_fact(self, student_id: int, worksheet_id: int, data_key: str, data_value: str):
        """Insert or overwrite the fact for (student, worksheet, key)."""
        fact = self.session.query(StudentData).filter_by(
            student_id=student_id,
            worksheet_id=worksheet_id,
            data_key=data_key
        ).first()

        if fact is None:
            self.session.add(StudentData(
                student_id=student_id,
                worksheet_id=worksheet_id,
                data_key=data_key,
                data_value=data_value
            ))
        elif fact.data_value != data_value:
            fact.data_value = data_value

    def _failed_worksheet(self, sheet_name: str, rows: List[List[Any]], message: str) -> Dict[str, Any]:
        return {
            'name': sheet_name,
            'id': None,
            'status': 'failed',
            'headers': [header_text(header) for header in rows[0]],
            'records_processed': 0,
            'students_created': 0,
            'students_updated': 0,
            'errors': [message]
        }

    def record_history(self, file_path: str, original_name: str, results: Dict[str, Any]) -> UploadHistory:
        """Append the audit record for a finished import."""
        status = UploadStatus.COMPLETED_WITH_ERRORS if results['errors'] else UploadStatus.COMPLETED

        history = UploadHistory(
            file_name=os.path.basename(file_path),
            original_name=original_name,
            file_size=self.storage.get_file_size(file_path),
            records_processed=results['total_records'],
            status=status.value
        )
        self.session.add(history)
        self.session.commit()

        logger.info(f"Saved upload history {history.id} ({status.value})")
        return history

    def get_student_export(self, student_number: str) -> Optional[Dict[str, Any]]:
        """
        Collect a student's facts grouped by worksheet name.

        Returns:
            {'student': Student, 'data': {worksheet_name: {key: value}}},
            or None if the student is unknown
        """
        student = self.session.query(Student).filter_by(student_number=student_number).first()
        if student is None:
            return None

        rows = self.session.query(StudentData, Worksheet.name)\
            .outerjoin(Worksheet, StudentData.worksheet_id == Worksheet.id)\
            .filter(StudentData.student_id == student.id)\
            .order_by(StudentData.id)\
            .all()

        grouped: Dict[str, Dict[str, str]] = {}
        for fact, worksheet_name in rows:
            grouped.setdefault(worksheet_name or 'Unknown', {})[fact.data_key] = fact.data_value

        return {'student': student, 'data': grouped}


def _value_at(values: List[str], index: Optional[int]) -> str:
    if index is None or index >= len(values):
        return ''
    return values[index]


def _new_stats() -> Dict[str, int]:
    return {
        'worksheets_processed': 0,
        'worksheets_failed': 0,
        'rows_skipped': 0,
        'facts_written': 0
    }
