"""Ability error taxonomy.

Every error carries a stable machine-readable ``code`` and a human-readable
message. ``to_dict()`` is what the adapter sends back to the caller, so it
must never include tracebacks or store internals.
"""

from __future__ import annotations

from typing import Any


class AbilityError(Exception):
    """Base error with stable error code."""

    code = "ability_error"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.field = field
        self.details = dict(details) if details else {}

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.field:
            data["field"] = self.field
        if self.details:
            data["details"] = dict(self.details)
        return data

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class AbilityNotFound(AbilityError):
    code = "ability_not_found"


# -----------------------------------------------------------------------------
# Input validation
# -----------------------------------------------------------------------------


class InputValidationError(AbilityError):
    """Input did not satisfy the ability's input schema."""

    code = "invalid_input"


class MissingRequiredField(InputValidationError):
    code = "missing_required_field"


class TypeMismatch(InputValidationError):
    code = "type_mismatch"


class EnumViolation(InputValidationError):
    code = "enum_violation"


class RangeViolation(InputValidationError):
    code = "range_violation"


# -----------------------------------------------------------------------------
# Authorization and execution
# -----------------------------------------------------------------------------


class PermissionDenied(AbilityError):
    code = "permission_denied"


class ResourceNotFound(AbilityError):
    code = "resource_not_found"


class StoreError(AbilityError):
    """Opaque failure reported by the content store."""

    code = "store_error"


class PartialFailure(AbilityError):
    """The primary mutation succeeded but a dependent one failed.

    The resource exists after this error; ``details["resource_id"]`` names it.
    """

    code = "partial_failure"

    def __init__(
        self,
        message: str,
        *,
        resource_id: int | str,
        cause: AbilityError | None = None,
        code: str | None = None,
    ) -> None:
        details: dict[str, Any] = {"resource_id": resource_id}
        if cause is not None:
            details["cause"] = cause.to_dict()
        super().__init__(message, code=code, details=details)
        self.resource_id = resource_id
        self.cause = cause


# -----------------------------------------------------------------------------
# Registration
# -----------------------------------------------------------------------------


class RegistryError(AbilityError):
    code = "registry_error"


class DuplicateAbilityId(RegistryError):
    code = "duplicate_ability_id"


class DuplicateCategory(RegistryError):
    code = "duplicate_category"


class InvalidDefinition(RegistryError):
    code = "invalid_definition"
