"""
Tests for the HTTP API.

Uses the FastAPI test client against an in-memory database.
"""

import inspect
import os
from pathlib import Path

import pytest

from api.config import settings

XLSX_MIME_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def upload(client, path, file_name=None, headers=None):
    """POST a workbook to the upload endpoint."""
    with open(path, 'rb') as f:
        return client.post(
            '/api/upload/excel',
            files={'excelFile': (file_name or Path(path).name, f, XLSX_MIME_TYPE)},
            headers=headers or {}
        )


def create_student(client, **overrides):
    payload = {'student_number': 'S100', 'name': 'Ann Lee', 'section': 'A', 'email': ''}
    payload.update(overrides)
    return client.post('/api/students', json=payload)


class TestUploadEndpoint:
    """Test the spreadsheet upload endpoint."""

    def test_handlers_run_in_threadpool(self):
        """Blocking import and database work must stay off the event loop."""
        from api.routers import students, upload as upload_router

        for route in upload_router.router.routes + students.router.routes:
            assert not inspect.iscoroutinefunction(route.endpoint), route.path

    def test_upload_imports_workbook(self, client, storage, make_workbook, roster_rows):
        path = make_workbook({'Roster': roster_rows})

        response = upload(client, path)

        assert response.status_code == 200
        body = response.json()
        assert body['message'] == 'File processed successfully'
        assert body['results']['total_records'] == 3
        assert body['results']['students_created'] == 3
        assert body['results']['worksheets'][0]['name'] == 'Roster'
        assert body['results']['upload_id'] is not None

        # Temp copy removed, the caller's file untouched
        assert os.listdir(storage.temp_dir) == []
        assert os.path.exists(path)

    def test_upload_reports_row_errors(self, client, make_workbook):
        path = make_workbook({'Roster': [['ID', 'Name'], ['S100', ''], ['S101', 'Ben Ortiz']]})

        response = upload(client, path)

        assert response.status_code == 200
        assert response.json()['results']['errors'] == ['Row 2: Missing student number or name']

    def test_missing_file_rejected(self, client):
        response = client.post('/api/upload/excel', data={'other': 'value'})

        assert response.status_code == 400
        assert response.json()['detail'] == 'No file uploaded'

    def test_disallowed_extension_rejected(self, client, storage, tmp_path):
        path = tmp_path / 'roster.csv'
        path.write_text('ID,Name\nS100,Ann Lee\n')

        response = upload(client, path)

        assert response.status_code == 400
        assert "'.csv' not allowed" in response.json()['detail']
        assert os.listdir(storage.temp_dir) == []

    def test_unreadable_workbook_is_fatal(self, client, storage, tmp_path):
        path = tmp_path / 'fake.xlsx'
        path.write_bytes(b'plain text pretending to be a workbook')

        response = upload(client, path)

        assert response.status_code == 500
        assert response.json()['detail'].startswith('Failed to process uploaded file:')
        assert os.listdir(storage.temp_dir) == []

    def test_oversized_upload_rejected(self, client, storage, make_workbook, roster_rows, monkeypatch):
        monkeypatch.setattr(settings, 'MAX_FILE_SIZE_MB', 0)
        path = make_workbook({'Roster': roster_rows})

        response = upload(client, path)

        assert response.status_code == 413
        assert os.listdir(storage.temp_dir) == []

    def test_history_newest_first(self, client, make_workbook, roster_rows):
        first = make_workbook({'Roster': roster_rows}, file_name='first.xlsx')
        second = make_workbook({'Roster': roster_rows}, file_name='second.xlsx')
        upload(client, first)
        upload(client, second)

        response = client.get('/api/upload/history')

        assert response.status_code == 200
        history = response.json()
        assert [record['original_name'] for record in history] == ['second.xlsx', 'first.xlsx']
        assert history[0]['status'] == 'completed'
        assert history[0]['records_processed'] == 3

    def test_worksheets_listed(self, client, make_workbook, roster_rows):
        upload(client, make_workbook({'Roster': roster_rows, 'Grades': roster_rows}))

        response = client.get('/api/upload/worksheets')

        assert response.status_code == 200
        assert {w['name'] for w in response.json()} == {'Roster', 'Grades'}
        assert all(w['total_records'] == 3 for w in response.json())


class TestStudentEndpoints:
    """Test student CRUD and search."""

    def test_create_and_list(self, client):
        response = create_student(client)
        assert response.status_code == 201
        assert response.json()['student_number'] == 'S100'

        create_student(client, student_number='S101', name='Ben Ortiz')

        names = [s['name'] for s in client.get('/api/students').json()]
        assert names == ['Ann Lee', 'Ben Ortiz']

    def test_duplicate_number_conflicts(self, client):
        create_student(client)

        response = create_student(client, name='Someone Else')

        assert response.status_code == 409
        assert response.json()['detail'] == 'Student with this number already exists'

    def test_invalid_email_rejected(self, client):
        response = create_student(client, email='not-an-email')
        assert response.status_code == 422

    def test_update_student(self, client):
        student_id = create_student(client).json()['id']

        response = client.put(f'/api/students/{student_id}',
                              json={'name': 'Ann Lee-Park', 'section': 'B', 'email': 'ann@example.edu'})

        assert response.status_code == 200
        assert response.json()['message'] == 'Student updated successfully'

        student = client.get('/api/students').json()[0]
        assert student['name'] == 'Ann Lee-Park'
        assert student['section'] == 'B'
        assert student['email'] == 'ann@example.edu'

    def test_update_unknown_student(self, client):
        response = client.put('/api/students/999', json={'name': 'Ghost'})

        assert response.status_code == 404
        assert response.json()['detail'] == 'Student not found'

    def test_search(self, client):
        create_student(client)
        create_student(client, student_number='S200', name='Ben Ortiz', section='B')

        by_name = client.get('/api/students/search', params={'q': 'lee'}).json()
        by_number = client.get('/api/students/search', params={'q': 'S20'}).json()

        assert [s['student_number'] for s in by_name] == ['S100']
        assert [s['student_number'] for s in by_number] == ['S200']

    def test_search_treats_wildcards_literally(self, client):
        create_student(client, student_number='S10', name='Ann Lee')
        create_student(client, student_number='S200', name='Ben Ortiz')
        create_student(client, student_number='S_01', name='Cara Diaz')

        underscore = client.get('/api/students/search', params={'q': 'S_0'}).json()
        percent = client.get('/api/students/search', params={'q': '%%'}).json()

        assert [s['student_number'] for s in underscore] == ['S_01']
        assert percent == []

    @pytest.mark.parametrize('query', ['', 'a', ' b '])
    def test_search_requires_two_characters(self, client, query):
        response = client.get('/api/students/search', params={'q': query})
        assert response.status_code == 400

    def test_export_by_number(self, client, make_workbook, roster_rows):
        upload(client, make_workbook({'Roster': roster_rows}))

        response = client.get('/api/students/number/S102')

        assert response.status_code == 200
        body = response.json()
        assert body['student']['name'] == 'Cara Diaz'
        assert body['data'] == {
            'Roster': {'Student Number': 'S102', 'Name': 'Cara Diaz', 'Section': 'B', 'Quiz 1': '15.5'}
        }

    def test_export_unknown_number(self, client):
        response = client.get('/api/students/number/NOPE')

        assert response.status_code == 404
        assert response.json()['detail'] == 'Student not found'

    def test_student_data_filtered_by_worksheet(self, client, make_workbook, roster_rows):
        upload(client, make_workbook({'Roster': roster_rows, 'Grades': roster_rows}))
        worksheets = {w['name']: w['id'] for w in client.get('/api/upload/worksheets').json()}
        student_id = client.get('/api/students/search', params={'q': 'S100'}).json()[0]['id']

        all_facts = client.get(f'/api/students/{student_id}/data').json()
        roster_facts = client.get(f'/api/students/{student_id}/data',
                                  params={'worksheet_id': worksheets['Roster']}).json()

        assert len(all_facts) == 8
        assert len(roster_facts) == 4
        assert {f['worksheet_id'] for f in roster_facts} == {worksheets['Roster']}


class TestAdminGuard:
    """Test the API key guard on admin routes."""

    @pytest.fixture
    def auth_enabled(self, monkeypatch):
        monkeypatch.setattr(settings, 'ENABLE_API_KEY_AUTH', True)
        monkeypatch.setattr(settings, 'ADMIN_API_KEY', 'letmein')

    def test_missing_key_rejected(self, client, auth_enabled):
        response = client.get('/api/upload/history')
        assert response.status_code == 401

    def test_wrong_key_rejected(self, client, auth_enabled):
        response = client.get('/api/upload/history', headers={'X-API-Key': 'guess'})
        assert response.status_code == 401

    def test_valid_key_accepted(self, client, auth_enabled):
        response = client.get('/api/upload/history', headers={'X-API-Key': 'letmein'})
        assert response.status_code == 200

    def test_public_routes_stay_open(self, client, auth_enabled):
        assert client.get('/api/students').status_code == 200


class TestHealth:
    """Test health and fallback endpoints."""

    def test_ping(self, client):
        assert client.get('/api/ping').json() == {'ping': 'pong'}

    def test_health(self, client):
        body = client.get('/health').json()
        assert body['status'] == 'healthy'
        assert body['database'] == 'connected'
        assert body['storage'] == 'writable'

    def test_unknown_endpoint(self, client):
        response = client.get('/api/nope')

        assert response.status_code == 404
        assert response.json()['error'] == 'Endpoint not found'
