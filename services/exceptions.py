"""
Exceptions raised by the roster import pipeline.
"""


class RosterImportError(Exception):
    """Base class for import failures."""


class WorksheetStructureError(RosterImportError):
    """A worksheet is missing a mandatory column; only that sheet is skipped."""

    def __init__(self, sheet_name: str, message: str):
        self.sheet_name = sheet_name
        super().__init__(message)


class WorkbookReadError(RosterImportError):
    """The uploaded file could not be opened as a workbook; the import is aborted."""
