"""Input validation against ability schemas.

Schemas are JSON Schema (Draft 7) validated with ``jsonschema``, with two
changes to the stock validator:

- Typing is strict. ``1.0`` is not an integer and booleans are neither
  integers nor numbers.
- ``default`` values are filled in for absent properties before the rest of
  the object is checked, so a defaulted property also satisfies ``required``.

Nothing is coerced or clamped, and a bad enum value never falls back to the
default; an ability that wants that does it in its ``normalize_input`` hook.
Properties the schema does not declare pass through untouched.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable
from typing import Any

from jsonschema import Draft7Validator, validators
from jsonschema.exceptions import SchemaError, ValidationError

from content_abilities.abilities.errors import (
    EnumViolation,
    InputValidationError,
    InvalidDefinition,
    MissingRequiredField,
    RangeViolation,
    TypeMismatch,
)
from content_abilities.abilities.types import AbilityResult, Schema


def _is_integer(checker: Any, instance: Any) -> bool:
    return isinstance(instance, int) and not isinstance(instance, bool)


def _is_number(checker: Any, instance: Any) -> bool:
    return isinstance(instance, int | float) and not isinstance(instance, bool)


_STRICT_TYPES = Draft7Validator.TYPE_CHECKER.redefine_many(
    {"integer": _is_integer, "number": _is_number}
)

_validate_properties = Draft7Validator.VALIDATORS["properties"]
_validate_required = Draft7Validator.VALIDATORS["required"]


def _defaulted(schema: Schema) -> set[str]:
    properties = schema.get("properties")
    if not isinstance(properties, dict):
        return set()
    return {
        name
        for name, prop in properties.items()
        if isinstance(prop, dict) and "default" in prop
    }


def _set_defaults(validator, properties, instance, schema):
    if validator.is_type(instance, "object"):
        for name, prop in properties.items():
            if isinstance(prop, dict) and "default" in prop and name not in instance:
                instance[name] = copy.deepcopy(prop["default"])
    yield from _validate_properties(validator, properties, instance, schema)


def _required(validator, required, instance, schema):
    # "properties" may run after "required"; it fills these in
    defaulted = _defaulted(schema)
    pending = [name for name in required if name not in defaulted]
    yield from _validate_required(validator, pending, instance, schema)


AbilityValidator = validators.extend(
    Draft7Validator,
    validators={"properties": _set_defaults, "required": _required},
    type_checker=_STRICT_TYPES,
)


def _render_path(parts: Iterable[Any]) -> str:
    path = ""
    for part in parts:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path = f"{path}.{part}" if path else str(part)
    return path


def _describe(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _ordering(error: ValidationError) -> tuple[int, bool]:
    # shallowest first; at one location a type error explains the rest
    return len(error.absolute_path), error.validator != "type"


def _to_ability_error(error: ValidationError) -> InputValidationError:
    path = _render_path(error.absolute_path)
    subject = path or "input"
    field = path or None

    if error.validator == "required":
        missing = next(
            (name for name in error.validator_value if name not in error.instance),
            None,
        )
        if missing is not None:
            field = _render_path([*error.absolute_path, missing])
        return MissingRequiredField(f"{field or subject} is required", field=field)

    if error.validator == "type":
        declared = error.validator_value
        expected = " or ".join([declared] if isinstance(declared, str) else declared)
        return TypeMismatch(
            f"{subject} must be of type {expected}, got {_describe(error.instance)}",
            field=field,
        )

    if error.validator == "enum":
        allowed = ", ".join(str(option) for option in error.validator_value)
        return EnumViolation(f"{subject} must be one of: {allowed}", field=field)

    if error.validator == "minimum":
        return RangeViolation(
            f"{subject} must be greater than or equal to {error.validator_value}",
            field=field,
        )

    if error.validator == "maximum":
        return RangeViolation(
            f"{subject} must be less than or equal to {error.validator_value}",
            field=field,
        )

    return InputValidationError(f"{subject}: {error.message}", field=field)


def normalize(schema: Schema, value: Any) -> Any:
    """Validate ``value`` and return a copy of it with defaults applied.

    Raises:
        InputValidationError: One of its subclasses, with ``field`` set to
            the offending path (``meta.key``, ``tags[2]``).
    """
    instance = copy.deepcopy(value)
    declared = schema.get("type")
    if instance is None and (declared == "object" or (
        isinstance(declared, list) and "object" in declared
    )):
        instance = {}

    errors = sorted(AbilityValidator(schema).iter_errors(instance), key=_ordering)
    if errors:
        raise _to_ability_error(errors[0])
    return instance


def validate(schema: Schema, value: Any) -> AbilityResult:
    """Validate input, returning the normalized input or the validation error."""
    try:
        return AbilityResult.success(normalize(schema, value))
    except InputValidationError as e:
        return AbilityResult.failure(e)


def conforms(schema: Schema, value: Any) -> bool:
    return not validate(schema, value).is_error


def check_schema(schema: Any, path: str = "schema") -> None:
    """Reject schemas that are not valid Draft 7 or that leave a type undeclared.

    Every object property and array item must declare a ``type``, and any
    ``default`` must itself validate.

    Raises:
        InvalidDefinition: Describing the first problem found.
    """
    if not isinstance(schema, dict):
        raise InvalidDefinition(f"{path} must be a dict")

    try:
        Draft7Validator.check_schema(schema)
    except SchemaError as e:
        location = _render_path([path, *e.absolute_path])
        raise InvalidDefinition(f"{location}: {e.message}") from None

    _check_node(schema, path)


def _check_node(schema: Schema, path: str) -> None:
    if not isinstance(schema, dict):
        raise InvalidDefinition(f"{path} must be a dict")
    if "type" not in schema:
        raise InvalidDefinition(f"{path} is missing 'type'")

    for name, prop in (schema.get("properties") or {}).items():
        _check_node(prop, f"{path}.properties.{name}")
    if "items" in schema:
        _check_node(schema["items"], f"{path}.items")

    if "default" in schema:
        try:
            normalize(schema, schema["default"])
        except InputValidationError as e:
            raise InvalidDefinition(f"{path} has an invalid default: {e.message}") from None


def shape_output(schema: Schema, value: Any) -> Any:
    """Project an output onto its declared shape.

    Object outputs keep only declared properties; arrays are shaped item by
    item. Conformance is not enforced here.
    """
    if isinstance(value, dict):
        properties = schema.get("properties")
        if not properties:
            return value
        return {
            key: shape_output(properties[key], item)
            for key, item in value.items()
            if key in properties
        }
    if isinstance(value, list) and isinstance(schema.get("items"), dict):
        return [shape_output(schema["items"], item) for item in value]
    return value
