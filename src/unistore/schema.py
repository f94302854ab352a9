"""Per-kind record schemas and validation."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Literal

from unistore.errors import ValidationError

Kind = Literal["department", "professor", "student"]

KINDS: tuple[str, ...] = ("department", "professor", "student")


@dataclass(frozen=True)
class Schema:
    """Required field names plus the expected type name of typed fields."""

    required: tuple[str, ...]
    types: Mapping[str, str]


# NOTE: student requires "major" but type-checks "course". The two never
# overlap, so "major" is untyped and "course" is optional. Kept as-is.
SCHEMAS: Mapping[str, Schema] = MappingProxyType(
    {
        "student": Schema(
            required=("id", "name", "email", "enrollmentYear", "major"),
            types=MappingProxyType(
                {
                    "id": "string",
                    "name": "string",
                    "email": "string",
                    "enrollmentYear": "number",
                    "course": "string",
                }
            ),
        ),
        "professor": Schema(
            required=("id", "name", "email", "department", "specialization"),
            types=MappingProxyType(
                {
                    "id": "string",
                    "name": "string",
                    "email": "string",
                    "department": "string",
                    "specialization": "string",
                }
            ),
        ),
        "department": Schema(
            required=("id", "name", "building", "budget"),
            types=MappingProxyType(
                {
                    "id": "string",
                    "name": "string",
                    "building": "string",
                    "budget": "number",
                }
            ),
        ),
    }
)


def collection_name(kind: str) -> str:
    """Map a kind to its document key (pluralized)."""
    return kind + "s"


def get_schema(kind: str) -> Schema:
    schema = SCHEMAS.get(kind)
    if schema is None:
        raise ValidationError(f"Invalid type: {kind}")
    return schema


def type_name(value: Any) -> str:
    """Name a value's runtime type the way schemas spell it."""
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if value is None:
        return "null"
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, list):
        return "array"
    return type(value).__name__


def validate(record: Any, kind: str) -> None:
    """Check ``record`` against the schema for ``kind``.

    Required fields are checked first, then the type of every field that is
    both present and typed. Fields the schema doesn't mention pass through.
    Raises ValidationError on the first violation.
    """
    schema = get_schema(kind)
    if not isinstance(record, Mapping):
        raise ValidationError("Record must be an object")

    for field in schema.required:
        if field not in record:
            raise ValidationError(f"Missing required field: {field}")

    for field, expected in schema.types.items():
        if field in record and type_name(record[field]) != expected:
            raise ValidationError(f"Invalid type for {field}: expected {expected}")
