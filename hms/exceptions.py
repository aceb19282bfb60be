from __future__ import annotations

from typing import Any


class HmsError(Exception):
    """
    Base error of the records backend.
    `field` / `value` identify the offending input when there is one.
    """

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        super().__init__(message)
        self.field = field
        self.value = value


class StorageError(HmsError):
    """A CSV file could not be written."""


class RecordNotFoundError(HmsError):
    """Raised when an ID does not match any record of the repository."""


class DuplicateRecordError(HmsError):
    """Raised when adding a record whose ID is already present."""


class InvalidRecordError(HmsError):
    """
    Raised when a record fails validation (e.g. a patient ID that is not
    of the P001 form, or a reference to a patient that does not exist).
    """


class PermissionDeniedError(HmsError):
    """The current role cannot open the requested panel."""
