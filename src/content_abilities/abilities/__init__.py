"""Ability registry and invocation pipeline.

Public API:
- AbilityRegistry: id -> definition mapping, grouped by category
- AbilityInvoker: validate, authorize and execute abilities

Types:
- AbilityDefinition, AbilityCategory, AbilityAnnotations, Visibility
- CallerContext, AbilityResult, Invocation, InvocationStage
"""

from content_abilities.abilities.errors import (
    AbilityError,
    AbilityNotFound,
    DuplicateAbilityId,
    DuplicateCategory,
    EnumViolation,
    InputValidationError,
    InvalidDefinition,
    MissingRequiredField,
    PartialFailure,
    PermissionDenied,
    RangeViolation,
    RegistryError,
    ResourceNotFound,
    StoreError,
    TypeMismatch,
)
from content_abilities.abilities.gate import authorize
from content_abilities.abilities.invoker import AbilityInvoker
from content_abilities.abilities.registry import AbilityRegistry
from content_abilities.abilities.schema import check_schema, conforms, validate
from content_abilities.abilities.types import (
    AbilityAnnotations,
    AbilityCategory,
    AbilityDefinition,
    AbilityResult,
    CallerContext,
    Invocation,
    InvocationStage,
    Visibility,
)

__all__ = [
    # Registry & Invoker
    "AbilityInvoker",
    "AbilityRegistry",
    "authorize",
    "check_schema",
    "conforms",
    "validate",
    # Types
    "AbilityAnnotations",
    "AbilityCategory",
    "AbilityDefinition",
    "AbilityResult",
    "CallerContext",
    "Invocation",
    "InvocationStage",
    "Visibility",
    # Errors
    "AbilityError",
    "AbilityNotFound",
    "DuplicateAbilityId",
    "DuplicateCategory",
    "EnumViolation",
    "InputValidationError",
    "InvalidDefinition",
    "MissingRequiredField",
    "PartialFailure",
    "PermissionDenied",
    "RangeViolation",
    "RegistryError",
    "ResourceNotFound",
    "StoreError",
    "TypeMismatch",
]
