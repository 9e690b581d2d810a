"""
FastAPI application for the roster portal.

This package contains the REST API used by the admin panel and the
student dashboard: spreadsheet uploads, upload history and student records.
"""

__version__ = "1.0.0"
