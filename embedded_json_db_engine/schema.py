from __future__ import annotations
import copy
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .errors import (
    CustomValidationError,
    MissingRequiredFieldError,
    SchemaError,
    TypeMismatchError,
)

_NUMBER = (int, float)

# type tag -> (python types, exclude bool)
_TYPES: Dict[str, Tuple[Tuple[type, ...], bool]] = {
    "str": ((str,), False),
    "int": ((int,), True),
    "float": (_NUMBER, True),
    "bool": ((bool,), False),
    "list": ((list, tuple), False),
    "object": ((dict,), False),
    "null": ((type(None),), False),
}

_ALIASES = {
    "string": "str",
    "integer": "int",
    "number": "float",
    "boolean": "bool",
    "array": "list",
    "dict": "object",
    "any": "any",
}

_SPEC_KEYS = {"type", "required", "mandatory", "validate", "default", "index"}

_MISSING = object()


@dataclass(frozen=True)
class FieldSpec:
    name: str
    type: str = "any"
    required: bool = False
    validate: Optional[Callable[[Any], bool]] = None
    default: Any = _MISSING
    index: bool = False

    @property
    def has_default(self) -> bool:
        return self.default is not _MISSING

    def type_ok(self, value: Any) -> bool:
        if self.type == "any":
            return True
        types, no_bool = _TYPES[self.type]
        if no_bool and isinstance(value, bool):
            return False
        return isinstance(value, types)

    def check(self, value: Any) -> None:
        """Type check, then custom predicate."""
        if not self.type_ok(value):
            raise TypeMismatchError(
                self.name, f"expected {self.type}, got {type(value).__name__}"
            )
        if self.validate is None:
            return
        try:
            ok = self.validate(value)
        except Exception as e:
            raise CustomValidationError(self.name, f"validator raised {e!r}") from e
        if not ok:
            raise CustomValidationError(self.name, f"custom validation failed for {value!r}")


def _parse_field(name: str, raw: Any) -> FieldSpec:
    if not isinstance(raw, dict):
        raise SchemaError(f"field {name!r}: spec must be a mapping")
    unknown = set(raw) - _SPEC_KEYS
    if unknown:
        raise SchemaError(f"field {name!r}: unknown spec keys {sorted(unknown)}")
    tag = raw.get("type", "any")
    if not isinstance(tag, str):
        raise SchemaError(f"field {name!r}: type must be a tag string")
    tag = _ALIASES.get(tag, tag)
    if tag != "any" and tag not in _TYPES:
        raise SchemaError(f"field {name!r}: unsupported type {raw.get('type')!r}")
    validate = raw.get("validate")
    if validate is not None and not callable(validate):
        raise SchemaError(f"field {name!r}: validate must be callable")
    spec = FieldSpec(
        name=name,
        type=tag,
        required=bool(raw.get("required", raw.get("mandatory", False))),
        validate=validate,
        default=copy.deepcopy(raw["default"]) if "default" in raw else _MISSING,
        index=bool(raw.get("index", False)),
    )
    if spec.has_default:
        try:
            spec.check(spec.default)
        except (TypeMismatchError, CustomValidationError) as e:
            raise SchemaError(f"field {name!r}: invalid default ({e.reason})") from e
    return spec


class Schema:
    """
    Per-field constraints checked on writes and queries.

    Each field maps to {"type": tag, "required": bool, "validate": callable,
    "default": value, "index": bool}; every key is optional. An empty schema
    accepts everything.
    """
    def __init__(self, fields: Optional[Dict[str, Any]] = None) -> None:
        if fields is None:
            fields = {}
        if not isinstance(fields, dict):
            raise SchemaError("schema must be a mapping of field name to spec")
        self._fields: Dict[str, FieldSpec] = {
            name: _parse_field(name, raw) for name, raw in fields.items()
        }

    def __bool__(self) -> bool:
        return bool(self._fields)

    def __contains__(self, name: str) -> bool:
        return name in self._fields

    def field(self, name: str) -> Optional[FieldSpec]:
        return self._fields.get(name)

    @property
    def indexed_fields(self) -> List[str]:
        return [f.name for f in self._fields.values() if f.index]

    def apply_defaults(self, doc: Dict[str, Any]) -> None:
        for f in self._fields.values():
            if f.has_default and f.name not in doc:
                doc[f.name] = copy.deepcopy(f.default)

    def validate(self, doc: Dict[str, Any]) -> None:
        # Required fields are checked before any type or predicate
        for f in self._fields.values():
            if f.required and f.name not in doc:
                raise MissingRequiredFieldError(f.name, "required field is missing")
        for f in self._fields.values():
            if f.name in doc:
                f.check(doc[f.name])

    def validate_partial(self, partial: Dict[str, Any]) -> None:
        for name, value in partial.items():
            f = self._fields.get(name)
            if f is not None:
                f.check(value)

    def validate_query_terms(self, terms: Iterable[Tuple[str, Tuple[Any, ...]]]) -> None:
        for name, alternatives in terms:
            f = self._fields.get(name)
            if f is None:
                continue
            for value in alternatives:
                f.check(value)
