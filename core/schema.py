"""Declarative tool parameter schemas and the single validator that interprets them."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from core.tool_errors import ValidationError

_MISSING = object()


class Kind(Enum):
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    STRING_ARRAY = "array<string>"
    STRING_MAP = "map<string,string>"
    ENUM = "enum"


@dataclass(frozen=True)
class FieldSpec:
    name: str
    kind: Kind
    required: bool = False
    default: Any = _MISSING
    allowed: Tuple[str, ...] = ()
    description: str = ""
    minimum: Optional[float] = None
    maximum: Optional[float] = None

    @property
    def has_default(self) -> bool:
        return self.default is not _MISSING

    def json_schema(self) -> Dict[str, Any]:
        if self.kind is Kind.STRING_ARRAY:
            schema: Dict[str, Any] = {"type": "array", "items": {"type": "string"}}
        elif self.kind is Kind.STRING_MAP:
            schema = {"type": "object", "additionalProperties": {"type": "string"}}
        elif self.kind is Kind.ENUM:
            schema = {"type": "string", "enum": list(self.allowed)}
        else:
            schema = {"type": self.kind.value}
        if self.minimum is not None:
            schema["minimum"] = self.minimum
        if self.maximum is not None:
            schema["maximum"] = self.maximum
        if self.has_default:
            schema["default"] = self.default
        if self.description:
            schema["description"] = self.description
        return schema


# Shorthand constructors keep tool declarations on one line each.

def string(name: str, *, required: bool = False, default: Any = _MISSING, description: str = "") -> FieldSpec:
    return FieldSpec(name, Kind.STRING, required=required, default=default, description=description)


def number(
    name: str,
    *,
    required: bool = False,
    default: Any = _MISSING,
    minimum: Optional[float] = None,
    maximum: Optional[float] = None,
    description: str = "",
) -> FieldSpec:
    return FieldSpec(
        name, Kind.NUMBER, required=required, default=default,
        minimum=minimum, maximum=maximum, description=description,
    )


def integer(
    name: str,
    *,
    required: bool = False,
    default: Any = _MISSING,
    minimum: Optional[float] = None,
    maximum: Optional[float] = None,
    description: str = "",
) -> FieldSpec:
    return FieldSpec(
        name, Kind.INTEGER, required=required, default=default,
        minimum=minimum, maximum=maximum, description=description,
    )


def boolean(name: str, *, required: bool = False, default: Any = _MISSING, description: str = "") -> FieldSpec:
    return FieldSpec(name, Kind.BOOLEAN, required=required, default=default, description=description)


def string_array(name: str, *, required: bool = False, description: str = "") -> FieldSpec:
    return FieldSpec(name, Kind.STRING_ARRAY, required=required, description=description)


def string_map(name: str, *, required: bool = False, description: str = "") -> FieldSpec:
    return FieldSpec(name, Kind.STRING_MAP, required=required, description=description)


def enum(
    name: str,
    allowed: Sequence[str],
    *,
    required: bool = False,
    default: Any = _MISSING,
    description: str = "",
) -> FieldSpec:
    return FieldSpec(
        name, Kind.ENUM, required=required, default=default,
        allowed=tuple(allowed), description=description,
    )


def input_schema(fields: Sequence[FieldSpec]) -> Dict[str, Any]:
    """Render a field list as the JSON Schema advertised to MCP clients."""
    return {
        "type": "object",
        "properties": {f.name: f.json_schema() for f in fields},
        "required": [f.name for f in fields if f.required],
    }


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _coerce(spec: FieldSpec, value: Any) -> Any:
    kind = spec.kind

    if kind is Kind.STRING:
        if not isinstance(value, str):
            raise ValidationError("type_mismatch", spec.name)
        return value

    if kind is Kind.BOOLEAN:
        if not isinstance(value, bool):
            raise ValidationError("type_mismatch", spec.name)
        return value

    if kind in (Kind.NUMBER, Kind.INTEGER):
        if not _is_number(value):
            raise ValidationError("type_mismatch", spec.name)
        if kind is Kind.INTEGER:
            if isinstance(value, float):
                if not value.is_integer():
                    raise ValidationError("type_mismatch", spec.name)
                value = int(value)
        if spec.minimum is not None and value < spec.minimum:
            raise ValidationError("out_of_range", spec.name)
        if spec.maximum is not None and value > spec.maximum:
            raise ValidationError("out_of_range", spec.name)
        return value

    if kind is Kind.STRING_ARRAY:
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ValidationError("type_mismatch", spec.name)
        return list(value)

    if kind is Kind.STRING_MAP:
        if not isinstance(value, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in value.items()
        ):
            raise ValidationError("type_mismatch", spec.name)
        return dict(value)

    if kind is Kind.ENUM:
        if value not in spec.allowed:
            raise ValidationError("invalid_enum", spec.name)
        return value

    raise ValidationError("type_mismatch", spec.name)


def validate(fields: Sequence[FieldSpec], raw: Any) -> Dict[str, Any]:
    """
    Validate ``raw`` against ``fields`` and return a fresh parameter map.

    Fields are checked in declaration order and the first failure wins. Undeclared
    keys are dropped. Defaults fill only keys that are absent; an explicit falsy
    value is kept as given. An explicit ``None`` counts as absent for a required
    field and as "not supplied" (no default) for an optional one.

    Raises:
        ValidationError: ``missing_field``, ``type_mismatch``, ``invalid_enum`` or
            ``out_of_range`` with the offending field name.
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ValidationError("type_mismatch", "params")

    params: Dict[str, Any] = {}
    for spec in fields:
        if spec.name not in raw:
            if spec.required:
                raise ValidationError("missing_field", spec.name)
            if spec.has_default:
                params[spec.name] = spec.default
            continue

        value = raw[spec.name]
        if value is None:
            if spec.required:
                raise ValidationError("missing_field", spec.name)
            continue

        params[spec.name] = _coerce(spec, value)
    return params
