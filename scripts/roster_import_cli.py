#!/usr/bin/env python3
"""
Roster Import CLI - Dual Mode

This script can operate in two modes:
1. Direct mode (default): Direct database access using services
2. API mode: Makes HTTP requests to the FastAPI backend

Usage:
    # Create the database tables
    roster-import init-db

    # Direct mode (uses services directly)
    roster-import import --file roster.xlsx

    # API mode (uses FastAPI backend)
    roster-import import --file roster.xlsx --api-url http://localhost:3001

    # Upload history and a single student's record
    roster-import history [--api-url http://localhost:3001]
    roster-import student S100 [--api-url http://localhost:3001]
"""

import os
import sys
import json
import logging
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv
import requests

# For direct mode
from backend.database import create_db_engine, create_session_factory
from backend.models.schema import Base
from backend.models.upload import UploadHistory
from services.exceptions import RosterImportError
from services.roster_import_service import RosterImportService

# Load environment variables
load_dotenv()

# Configuration
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///./database/students.db')
API_KEY_HEADER = os.getenv('API_KEY_HEADER', 'X-API-Key')
XLSX_MIME_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

logger = logging.getLogger('roster_import_cli')


def configure_logging():
    """Configure file and stdout logging for CLI runs."""
    log_level = os.getenv('LOG_LEVEL', 'INFO')
    log_file = os.getenv('LOG_FILE', 'cli.log')

    logging.basicConfig(
        level=getattr(logging, log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(sys.stdout)
        ]
    )


def open_session(database_url: str = None):
    """Create tables if needed and return a new session."""
    engine = create_db_engine(database_url or DATABASE_URL)
    Base.metadata.create_all(engine)
    return create_session_factory(engine)()


def api_headers(api_key: Optional[str]) -> dict:
    return {API_KEY_HEADER: api_key} if api_key else {}


def print_progress(stage: str, percent: float, message: str):
    """Render a progress callback as a single-line bar."""
    bar_length = 40
    filled = int(bar_length * percent / 100)
    bar = '█' * filled + '░' * (bar_length - filled)
    click.echo(f"\r[{bar}] {percent:.1f}% - {stage}: {message}", nl=False)


def print_import_results(results: dict):
    """Print an import summary (same shape for both modes)."""
    click.echo(f"\n✓ Import finished")
    click.echo(f"Total records: {results.get('total_records', 0)}")
    click.echo(f"Students created: {results.get('students_created', 0)}")
    click.echo(f"Students updated: {results.get('students_updated', 0)}")

    worksheets = results.get('worksheets', [])
    if worksheets:
        click.echo(f"\nWorksheets:")
        for worksheet in worksheets:
            click.echo(f"  {worksheet['name']}: {worksheet.get('records_processed', 0)} records "
                       f"({worksheet.get('status', 'completed')})")

    errors = results.get('errors', [])
    if errors:
        click.echo(f"\n⚠️  {len(errors)} errors:")
        for error in errors[:20]:
            click.echo(f"  {error}")
        if len(errors) > 20:
            click.echo(f"  ... and {len(errors) - 20} more")


@click.group()
def cli():
    """Roster Import CLI - Dual Mode Support"""
    configure_logging()


@cli.command('init-db')
@click.option('--database-url', envvar='DATABASE_URL', help='Database URL (defaults to DATABASE_URL)')
def init_db_cmd(database_url: Optional[str]):
    """Create all database tables."""
    click.echo("🔄 Initializing database...")

    try:
        session = open_session(database_url)
        session.close()
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}", exc_info=True)
        click.echo(f"❌ Failed to initialize database: {e}", err=True)
        sys.exit(1)

    click.echo(f"✅ Database initialized: {database_url or DATABASE_URL}")


@cli.command('import')
@click.option('--file', '-f', 'file_path', required=True, type=click.Path(exists=True, dir_okay=False),
              help='Path to the roster workbook')
@click.option('--api-url', envvar='API_URL', help='FastAPI backend URL (enables API mode)')
@click.option('--api-key', envvar='ADMIN_API_KEY', help='Admin API key for API mode')
def import_cmd(file_path: str, api_url: Optional[str], api_key: Optional[str]):
    """Import a roster workbook."""

    if api_url:
        click.echo(f"🌐 API Mode: Using backend at {api_url}")
        import_via_api(api_url, file_path, api_key)
    else:
        click.echo("💾 Direct Mode: Using local database")
        import_direct(file_path)


@cli.command('history')
@click.option('--limit', '-l', default=50, show_default=True, help='Number of uploads to show')
@click.option('--api-url', envvar='API_URL', help='FastAPI backend URL (enables API mode)')
@click.option('--api-key', envvar='ADMIN_API_KEY', help='Admin API key for API mode')
def history_cmd(limit: int, api_url: Optional[str], api_key: Optional[str]):
    """Show recent uploads."""

    if api_url:
        try:
            response = requests.get(f"{api_url}/api/upload/history",
                                    headers=api_headers(api_key), timeout=10)
        except requests.exceptions.RequestException as e:
            click.echo(f"❌ Network error: {e}", err=True)
            sys.exit(1)

        if response.status_code != 200:
            click.echo(f"❌ Request failed ({response.status_code}): {response.text}", err=True)
            sys.exit(1)
        records = response.json()[:limit]
    else:
        session = open_session()
        try:
            rows = session.query(UploadHistory)\
                .order_by(UploadHistory.upload_date.desc(), UploadHistory.id.desc())\
                .limit(limit)\
                .all()
            records = [row.to_dict() for row in rows]
        finally:
            session.close()

    if not records:
        click.echo("No uploads recorded")
        return

    for record in records:
        click.echo(f"{record['upload_date']}  {record['original_name']}  "
                   f"{record['records_processed']} records  {record['status']}")


@cli.command('student')
@click.argument('student_number')
@click.option('--api-url', envvar='API_URL', help='FastAPI backend URL (enables API mode)')
def student_cmd(student_number: str, api_url: Optional[str]):
    """Print a student's record grouped by worksheet."""

    if api_url:
        try:
            response = requests.get(f"{api_url}/api/students/number/{student_number}", timeout=10)
        except requests.exceptions.RequestException as e:
            click.echo(f"❌ Network error: {e}", err=True)
            sys.exit(1)

        if response.status_code == 404:
            click.echo(f"❌ Student {student_number} not found", err=True)
            sys.exit(1)
        elif response.status_code != 200:
            click.echo(f"❌ Request failed ({response.status_code}): {response.text}", err=True)
            sys.exit(1)
        export = response.json()
    else:
        session = open_session()
        try:
            found = RosterImportService(session).get_student_export(student_number)
            export = None if found is None else {
                'student': found['student'].to_dict(),
                'data': found['data']
            }
        finally:
            session.close()

        if export is None:
            click.echo(f"❌ Student {student_number} not found", err=True)
            sys.exit(1)

    click.echo(json.dumps(export, indent=2, default=str))


# ============================================================================
# Direct Mode Implementation (Uses Services Directly)
# ============================================================================

def import_direct(file_path: str):
    """Import file using direct database access."""
    click.echo(f"\n📁 Importing: {file_path}")

    session = open_session()
    try:
        service = RosterImportService(session, progress_callback=print_progress)
        # The source file belongs to the user; never delete it
        results = service.import_file(file_path, Path(file_path).name, cleanup=False)

        click.echo()  # New line after progress bar
        print_import_results(results)

    except RosterImportError as e:
        click.echo()
        logger.error(f"Import failed: {e}")
        click.echo(f"\n✗ Import failed: {e}", err=True)
        sys.exit(1)

    finally:
        session.close()


# ============================================================================
# API Mode Implementation (Uses FastAPI Backend)
# ============================================================================

def import_via_api(api_url: str, file_path: str, api_key: Optional[str] = None):
    """Import file via FastAPI backend."""

    click.echo(f"\n📤 Uploading {file_path} to {api_url}...")

    try:
        with open(file_path, 'rb') as f:
            files = {
                'excelFile': (Path(file_path).name, f, XLSX_MIME_TYPE)
            }

            response = requests.post(
                f"{api_url}/api/upload/excel",
                files=files,
                headers=api_headers(api_key),
                timeout=300
            )

    except requests.exceptions.RequestException as e:
        click.echo(f"❌ Network error: {e}", err=True)
        sys.exit(1)

    if response.status_code != 200:
        click.echo(f"❌ Upload failed ({response.status_code}): {response.text}", err=True)
        sys.exit(1)

    print_import_results(response.json()['results'])


if __name__ == '__main__':
    cli()
