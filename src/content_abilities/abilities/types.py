"""Ability subsystem public types."""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from content_abilities.abilities.errors import AbilityError

Schema = dict[str, Any]


@dataclass(frozen=True, slots=True)
class CallerContext:
    """Identity of whoever is invoking an ability.

    ``capabilities`` are primitive grants on top of whatever the roles give.
    An anonymous caller has no user id and no roles.
    """

    user_id: int | None = None
    roles: frozenset[str] = frozenset()
    capabilities: frozenset[str] = frozenset()
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def anonymous(cls) -> CallerContext:
        return cls()

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None


class Visibility(Enum):
    """Whether an ability is advertised to external adapters."""

    PUBLIC = "public"
    PRIVATE = "private"


@dataclass(frozen=True, slots=True)
class AbilityAnnotations:
    """Side-effect hints. Informational only, never enforced."""

    read_only: bool = False
    destructive: bool = False
    idempotent: bool = False

    def to_dict(self) -> dict[str, bool]:
        return {
            "readOnlyHint": self.read_only,
            "destructiveHint": self.destructive,
            "idempotentHint": self.idempotent,
        }


@dataclass(frozen=True, slots=True)
class AbilityCategory:
    id: str
    label: str
    description: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "label": self.label, "description": self.description}


class InvocationStage(Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    AUTHORIZED = "authorized"
    EXECUTED = "executed"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class AbilityResult:
    """Tagged result: either ``output`` or ``error``.

    ``stage`` records how far the invocation got before failing.
    """

    output: Any = None
    error: AbilityError | None = None
    stage: InvocationStage | None = None

    @classmethod
    def success(cls, output: Any) -> AbilityResult:
        return cls(output=output)

    @classmethod
    def failure(
        cls, error: AbilityError, stage: InvocationStage | None = None
    ) -> AbilityResult:
        return cls(error=error, stage=stage)

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_dict(self) -> dict[str, Any]:
        if self.error is not None:
            data: dict[str, Any] = {"ok": False, "error": self.error.to_dict()}
            if self.stage is not None:
                data["stage"] = self.stage.value
            return data
        return {"ok": True, "output": self.output}


PermissionPredicate = Callable[[CallerContext, dict[str, Any]], bool | Awaitable[bool]]
ExecuteFunction = Callable[[CallerContext, dict[str, Any]], Awaitable[Any]]
InputNormalizer = Callable[[dict[str, Any]], dict[str, Any]]
# Returns None when the invocation may proceed, or the error to stop with.
Precondition = Callable[[CallerContext, dict[str, Any]], Awaitable[AbilityError | None]]


@dataclass(frozen=True, slots=True)
class AbilityDefinition:
    """A named, schema-described, permission-gated operation.

    ``normalize_input`` runs on the raw input before validation and is where
    an ability applies its own fallback policy for out-of-range values.
    ``precondition`` runs after validation and before the permission check,
    for existence checks the permission predicate depends on.
    """

    id: str
    label: str
    description: str
    category: str
    input_schema: Schema
    output_schema: Schema
    permission: PermissionPredicate
    execute: ExecuteFunction
    annotations: AbilityAnnotations = field(default_factory=AbilityAnnotations)
    visibility: Visibility = Visibility.PUBLIC
    normalize_input: InputNormalizer | None = None
    precondition: Precondition | None = None

    def to_dict(self) -> dict[str, Any]:
        """Describe the ability for adapters (no callables)."""
        return {
            "id": self.id,
            "label": self.label,
            "description": self.description,
            "category": self.category,
            "input_schema": self.input_schema,
            "output_schema": self.output_schema,
            "annotations": self.annotations.to_dict(),
        }


@dataclass(slots=True)
class Invocation:
    """One call through the pipeline. Never persisted."""

    ability_id: str
    input: Any
    caller: CallerContext
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    stage: InvocationStage = InvocationStage.RECEIVED
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    # Last non-terminal stage reached, kept when the invocation fails.
    reached: InvocationStage = InvocationStage.RECEIVED

    def advance(self, stage: InvocationStage) -> None:
        self.stage = stage
        if stage is not InvocationStage.FAILED:
            self.reached = stage

    def fail(self, error: AbilityError) -> AbilityResult:
        self.stage = InvocationStage.FAILED
        return AbilityResult.failure(error, stage=self.reached)
