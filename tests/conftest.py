"""
Pytest configuration and fixtures for roster import tests.
"""

import os
import tempfile

# Settings are read when api.config is first imported
_TEST_DIR = tempfile.mkdtemp(prefix='roster-tests-')
os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['TEMP_UPLOAD_DIR'] = os.path.join(_TEST_DIR, 'uploads')
os.environ['LOG_FILE'] = os.path.join(_TEST_DIR, 'test.log')
os.environ['ENABLE_API_KEY_AUTH'] = 'false'

import pytest
from fastapi.testclient import TestClient
from openpyxl import Workbook

from backend.database import create_db_engine, create_session_factory
from backend.models.schema import Base
from services.storage_service import StorageService


@pytest.fixture(scope='function')
def engine():
    """Create a fresh in-memory database engine."""
    eng = create_db_engine('sqlite://')
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture(scope='function')
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture(scope='function')
def session(session_factory):
    """Create a new database session for a test."""
    sess = session_factory()
    yield sess
    sess.close()


@pytest.fixture
def storage(tmp_path):
    """Storage service writing into a per-test directory."""
    return StorageService(str(tmp_path / 'uploads'))


@pytest.fixture
def client(session_factory, storage):
    """FastAPI test client bound to the test database and storage."""
    from api.main import app
    from api.dependencies import get_db, get_storage

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def make_workbook(tmp_path):
    """
    Build an .xlsx file from {sheet_name: rows}.

    Sheets are written in dict order; an empty row list gives an empty sheet.
    """

    def _make(sheets, file_name='roster.xlsx'):
        workbook = Workbook()
        workbook.remove(workbook.active)

        for sheet_name, rows in sheets.items():
            worksheet = workbook.create_sheet(title=sheet_name)
            for row in rows:
                worksheet.append(row)

        path = tmp_path / file_name
        workbook.save(path)
        return str(path)

    return _make


@pytest.fixture
def roster_rows():
    """A small valid roster with a quiz score column."""
    return [
        ['Student Number', 'Name', 'Section', 'Quiz 1'],
        ['S100', 'Ann Lee', 'A', 18],
        ['S101', 'Ben Ortiz', 'A', 20],
        ['S102', 'Cara Diaz', 'B', 15.5],
    ]
