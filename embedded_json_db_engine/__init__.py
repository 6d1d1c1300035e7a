"""Embedded single-file JSON document store with in-memory secondary indexes."""

import logging

from .config import StoreConfig
from .database import Database
from .errors import (
    CustomValidationError,
    ImmutableKeyError,
    IOCorruptionError,
    MissingRequiredFieldError,
    QueryError,
    SchemaError,
    StoreError,
    StoreIOError,
    TypeMismatchError,
    ValidationError,
)
from .keys import AutoIncrementKeys, CallerSuppliedKeys, KeyStrategy, RandomKeys

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Database",
    "StoreConfig",
    "StoreError",
    "StoreIOError",
    "IOCorruptionError",
    "SchemaError",
    "QueryError",
    "ValidationError",
    "MissingRequiredFieldError",
    "TypeMismatchError",
    "CustomValidationError",
    "ImmutableKeyError",
    "KeyStrategy",
    "RandomKeys",
    "AutoIncrementKeys",
    "CallerSuppliedKeys",
]
