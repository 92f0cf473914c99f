"""Ability invocation with validation, authorization and logging.

Each invocation walks the same sequence and stops at the first failure:

    lookup -> normalize_input -> validate -> precondition -> authorize
           -> execute -> shape output

Failures come back as ``AbilityResult.failure`` tagged with the last stage
the invocation reached. Domain errors from the execute function are passed
through untouched; anything else is logged and reported generically.
"""

import copy
import logging
import time
from collections.abc import Callable
from typing import Any

from content_abilities.abilities.errors import (
    AbilityError,
    AbilityNotFound,
    InputValidationError,
    PermissionDenied,
)
from content_abilities.abilities.gate import authorize
from content_abilities.abilities.registry import AbilityRegistry
from content_abilities.abilities.schema import shape_output, validate
from content_abilities.abilities.types import (
    AbilityCategory,
    AbilityResult,
    CallerContext,
    Invocation,
    InvocationStage,
    Visibility,
)
from content_abilities.logging import log_context

logger = logging.getLogger(__name__)

# (ability_id, input, result, duration_ms)
InvocationCallback = Callable[[str, Any, AbilityResult, int], None]


class AbilityInvoker:
    """Runs abilities from a registry on behalf of a caller."""

    def __init__(
        self,
        registry: AbilityRegistry,
        on_invocation: InvocationCallback | None = None,
    ):
        self._registry = registry
        self._on_invocation = on_invocation

    @property
    def registry(self) -> AbilityRegistry:
        return self._registry

    def list_categories(self) -> list[AbilityCategory]:
        return self._registry.categories()

    def list_abilities(
        self,
        *,
        category: str | None = None,
        visibility: Visibility | None = Visibility.PUBLIC,
    ) -> list[dict[str, Any]]:
        return [
            definition.to_dict()
            for definition in self._registry.list(category=category, visibility=visibility)
        ]

    async def invoke(
        self,
        ability_id: str,
        raw_input: Any = None,
        caller: CallerContext | None = None,
    ) -> AbilityResult:
        caller = caller or CallerContext.anonymous()
        invocation = Invocation(ability_id=ability_id, input=raw_input, caller=caller)

        with log_context(
            ability_id=ability_id,
            invocation_id=invocation.id,
            user_id=caller.user_id,
        ):
            start_time = time.monotonic()
            result = await self._run(invocation)
            duration_ms = int((time.monotonic() - start_time) * 1000)
            self._log(invocation, result, duration_ms)

            if self._on_invocation:
                try:
                    self._on_invocation(ability_id, raw_input, result, duration_ms)
                except Exception:
                    logger.warning("invocation_callback_failed", exc_info=True)

            return result

    async def _run(self, invocation: Invocation) -> AbilityResult:
        try:
            definition = self._registry.get(invocation.ability_id)
        except AbilityNotFound as e:
            return invocation.fail(e)

        raw_input = copy.deepcopy(invocation.input)
        if definition.normalize_input is not None and isinstance(raw_input, dict):
            raw_input = definition.normalize_input(raw_input)

        validated = validate(definition.input_schema, raw_input)
        if validated.error is not None:
            return invocation.fail(validated.error)
        input_data: dict[str, Any] = validated.output
        invocation.input = input_data
        invocation.advance(InvocationStage.VALIDATED)
        logger.debug(f"Ability {definition.id} input: {input_data}")

        caller = invocation.caller
        if definition.precondition is not None:
            try:
                problem = await definition.precondition(caller, input_data)
            except AbilityError as e:
                problem = e
            except Exception:
                logger.exception("ability_precondition_failed")
                problem = AbilityError("Ability execution failed.", code="execution_failed")
            if problem is not None:
                return invocation.fail(problem)

        if not await authorize(definition.permission, caller, input_data):
            return invocation.fail(
                PermissionDenied(f"You are not allowed to use '{definition.id}'.")
            )
        invocation.advance(InvocationStage.AUTHORIZED)

        try:
            outcome = await definition.execute(caller, input_data)
        except AbilityError as e:
            return invocation.fail(e)
        except Exception:
            logger.exception("ability_execution_failed")
            return invocation.fail(
                AbilityError("Ability execution failed.", code="execution_failed")
            )

        if isinstance(outcome, AbilityResult):
            if outcome.error is not None:
                return invocation.fail(outcome.error)
            outcome = outcome.output
        invocation.advance(InvocationStage.EXECUTED)

        output = shape_output(definition.output_schema, outcome)
        invocation.advance(InvocationStage.COMPLETED)
        return AbilityResult.success(output)

    def _log(self, invocation: Invocation, result: AbilityResult, duration_ms: int) -> None:
        log_extra: dict[str, Any] = {
            "stage": invocation.stage.value,
            "duration_ms": duration_ms,
        }
        error = result.error
        if error is None:
            logger.info("ability_invoked", extra=log_extra)
            return

        log_extra["error.code"] = error.code
        log_extra["error.message"] = error.message[:500]
        if isinstance(error, InputValidationError | PermissionDenied | AbilityNotFound):
            logger.warning("ability_invoked", extra=log_extra)
        else:
            logger.error("ability_invoked", extra=log_extra)
