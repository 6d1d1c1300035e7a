from __future__ import annotations
from typing import Any


class StoreError(Exception):
    """Base exception for all store errors."""


class StoreIOError(StoreError):
    """Reading or writing the store file failed (a missing file is not an error)."""

    def __init__(self, path: Any, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


class IOCorruptionError(StoreIOError):
    """The store file is not a JSON object."""


class SchemaError(StoreError, ValueError):
    """The schema passed to the store is malformed."""


class QueryError(StoreError, ValueError):
    """The query uses an unsupported shape or operator."""


class ValidationError(StoreError, ValueError):
    """
    A document, partial update or query does not conform to the schema.
    Raised before any mutation, so the failing operation has no effect.
    """

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason


class MissingRequiredFieldError(ValidationError):
    pass


class TypeMismatchError(ValidationError):
    pass


class CustomValidationError(ValidationError):
    pass


class ImmutableKeyError(ValidationError):
    pass
