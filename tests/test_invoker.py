"""Tests for the invocation pipeline."""

import logging
from typing import Any

import pytest

from content_abilities.abilities import (
    AbilityError,
    AbilityInvoker,
    AbilityResult,
    CallerContext,
    InvocationStage,
    ResourceNotFound,
    Visibility,
)
from content_abilities.logging import get_log_context
from tests.conftest import make_definition


class Recorder:
    """Records the order pipeline hooks run in."""

    def __init__(self) -> None:
        self.events: list[str] = []

    def normalize(self, data: dict[str, Any]) -> dict[str, Any]:
        self.events.append("normalize")
        return data

    async def precondition(self, caller, input_data) -> AbilityError | None:
        self.events.append("precondition")
        return None

    def permission(self, caller, input_data) -> bool:
        self.events.append("permission")
        return True

    async def execute(self, caller, input_data) -> Any:
        self.events.append("execute")
        return {"echo": input_data.get("value")}


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


def build_invoker(registry, **overrides: Any) -> AbilityInvoker:
    registry.register(make_definition(**overrides))
    registry.seal()
    return AbilityInvoker(registry)


class TestInvoke:
    async def test_success(self, test_registry):
        invoker = build_invoker(test_registry)
        result = await invoker.invoke("test/echo", {"value": "hi"})
        assert not result.is_error
        assert result.output == {"echo": "hi"}
        assert result.to_dict() == {"ok": True, "output": {"echo": "hi"}}

    async def test_unknown_ability(self, test_registry):
        invoker = build_invoker(test_registry)
        result = await invoker.invoke("test/missing", {})
        assert result.error.code == "ability_not_found"
        assert result.stage is InvocationStage.RECEIVED

    async def test_stage_order(self, test_registry, recorder):
        invoker = build_invoker(
            test_registry,
            normalize_input=recorder.normalize,
            precondition=recorder.precondition,
            permission=recorder.permission,
            execute=recorder.execute,
        )
        await invoker.invoke("test/echo", {"value": "x"})
        assert recorder.events == ["normalize", "precondition", "permission", "execute"]

    async def test_invalid_input_never_reaches_permission(self, test_registry, recorder):
        invoker = build_invoker(
            test_registry, permission=recorder.permission, execute=recorder.execute
        )
        result = await invoker.invoke("test/echo", {"value": 5})
        assert result.error.code == "type_mismatch"
        assert result.error.field == "value"
        assert result.stage is InvocationStage.RECEIVED
        assert recorder.events == []

    async def test_denied_never_executes(self, test_registry, recorder):
        invoker = build_invoker(
            test_registry, permission=lambda c, i: False, execute=recorder.execute
        )
        result = await invoker.invoke("test/echo", {"value": "x"})
        assert result.error.code == "permission_denied"
        assert result.stage is InvocationStage.VALIDATED
        assert "test/echo" in result.error.message
        assert recorder.events == []

    async def test_raising_permission_is_denial(self, test_registry, recorder):
        def permission(caller, input_data):
            raise RuntimeError("store offline")

        invoker = build_invoker(test_registry, permission=permission, execute=recorder.execute)
        result = await invoker.invoke("test/echo", {})
        assert result.error.code == "permission_denied"
        assert recorder.events == []

    async def test_permission_sees_normalized_input(self, test_registry):
        seen: dict[str, Any] = {}

        def permission(caller, input_data):
            seen.update(input_data)
            return True

        invoker = build_invoker(
            test_registry,
            input_schema={
                "type": "object",
                "properties": {"value": {"type": "string", "default": "fallback"}},
            },
            permission=permission,
        )
        await invoker.invoke("test/echo", None)
        assert seen == {"value": "fallback"}

    async def test_precondition_error_stops_before_permission(self, test_registry, recorder):
        async def precondition(caller, input_data):
            return ResourceNotFound("Thing not found.", field="id")

        invoker = build_invoker(
            test_registry,
            precondition=precondition,
            permission=recorder.permission,
            execute=recorder.execute,
        )
        result = await invoker.invoke("test/echo", {})
        assert result.error.code == "resource_not_found"
        assert result.stage is InvocationStage.VALIDATED
        assert recorder.events == []

    async def test_precondition_may_raise(self, test_registry):
        async def precondition(caller, input_data):
            raise ResourceNotFound("Gone.")

        invoker = build_invoker(test_registry, precondition=precondition)
        result = await invoker.invoke("test/echo", {})
        assert result.error.message == "Gone."

    async def test_precondition_unexpected_error_is_hidden(self, test_registry, recorder, caplog):
        async def precondition(caller, input_data):
            raise RuntimeError("driver exploded")

        invoker = build_invoker(
            test_registry,
            precondition=precondition,
            permission=recorder.permission,
            execute=recorder.execute,
        )
        with caplog.at_level(logging.ERROR):
            result = await invoker.invoke("test/echo", {})
        assert result.error.code == "execution_failed"
        assert "driver" not in result.error.message
        assert result.stage is InvocationStage.VALIDATED
        assert recorder.events == []
        assert "ability_precondition_failed" in caplog.text

    async def test_execute_ability_error_is_forwarded(self, test_registry):
        async def execute(caller, input_data):
            raise AbilityError("Nope.", code="custom_failure")

        invoker = build_invoker(test_registry, execute=execute)
        result = await invoker.invoke("test/echo", {})
        assert result.error.code == "custom_failure"
        assert result.stage is InvocationStage.AUTHORIZED

    async def test_execute_unexpected_error_is_hidden(self, test_registry, caplog):
        async def execute(caller, input_data):
            raise ZeroDivisionError("secret internals")

        invoker = build_invoker(test_registry, execute=execute)
        with caplog.at_level(logging.ERROR):
            result = await invoker.invoke("test/echo", {})
        assert result.error.code == "execution_failed"
        assert "secret" not in result.error.message
        assert "ability_execution_failed" in caplog.text

    async def test_execute_returning_failure(self, test_registry):
        async def execute(caller, input_data):
            return AbilityResult.failure(AbilityError("Half done.", code="partial"))

        invoker = build_invoker(test_registry, execute=execute)
        result = await invoker.invoke("test/echo", {})
        assert result.error.code == "partial"
        assert result.stage is InvocationStage.AUTHORIZED

    async def test_execute_returning_success_result(self, test_registry):
        async def execute(caller, input_data):
            return AbilityResult.success({"echo": "wrapped"})

        invoker = build_invoker(test_registry, execute=execute)
        result = await invoker.invoke("test/echo", {})
        assert result.output == {"echo": "wrapped"}

    async def test_output_is_shaped(self, test_registry):
        async def execute(caller, input_data):
            return {"echo": "x", "internal": "leak"}

        invoker = build_invoker(test_registry, execute=execute)
        result = await invoker.invoke("test/echo", {})
        assert result.output == {"echo": "x"}

    async def test_caller_input_is_not_mutated(self, test_registry):
        def normalize(data):
            data["value"] = "changed"
            return data

        invoker = build_invoker(test_registry, normalize_input=normalize)
        raw = {"value": "original"}
        result = await invoker.invoke("test/echo", raw)
        assert raw == {"value": "original"}
        assert result.output == {"echo": "changed"}

    async def test_default_caller_is_anonymous(self, test_registry):
        seen: list[CallerContext] = []

        def permission(caller, input_data):
            seen.append(caller)
            return True

        invoker = build_invoker(test_registry, permission=permission)
        await invoker.invoke("test/echo", {})
        assert seen[0].is_anonymous

    async def test_failure_to_dict_has_stage(self, test_registry):
        invoker = build_invoker(test_registry, permission=lambda c, i: False)
        result = await invoker.invoke("test/echo", {})
        data = result.to_dict()
        assert data["ok"] is False
        assert data["error"]["code"] == "permission_denied"
        assert data["stage"] == "validated"


class TestObservability:
    async def test_log_context_during_execute(self, test_registry):
        captured: dict[str, Any] = {}

        async def execute(caller, input_data):
            captured.update(get_log_context())
            return {}

        invoker = build_invoker(test_registry, execute=execute)
        await invoker.invoke("test/echo", {}, CallerContext(user_id=42))
        assert captured["ability_id"] == "test/echo"
        assert captured["user_id"] == 42
        assert len(captured["invocation_id"]) == 32
        assert get_log_context() == {}

    async def test_invocations_get_distinct_ids(self, test_registry):
        ids: list[str] = []

        async def execute(caller, input_data):
            ids.append(get_log_context()["invocation_id"])
            return {}

        invoker = build_invoker(test_registry, execute=execute)
        await invoker.invoke("test/echo", {})
        await invoker.invoke("test/echo", {})
        assert ids[0] != ids[1]

    async def test_logs_success(self, test_registry, caplog):
        invoker = build_invoker(test_registry)
        with caplog.at_level(logging.INFO, logger="content_abilities"):
            await invoker.invoke("test/echo", {})
        record = next(r for r in caplog.records if r.getMessage() == "ability_invoked")
        assert record.levelno == logging.INFO
        assert record.stage == "completed"

    async def test_logs_denial_as_warning(self, test_registry, caplog):
        invoker = build_invoker(test_registry, permission=lambda c, i: False)
        with caplog.at_level(logging.INFO, logger="content_abilities"):
            await invoker.invoke("test/echo", {})
        record = next(r for r in caplog.records if r.getMessage() == "ability_invoked")
        assert record.levelno == logging.WARNING
        assert getattr(record, "error.code") == "permission_denied"

    async def test_callback(self, test_registry):
        calls: list[tuple] = []
        test_registry.register(make_definition())
        invoker = AbilityInvoker(
            test_registry,
            on_invocation=lambda *args: calls.append(args),
        )
        result = await invoker.invoke("test/echo", {"value": "a"})
        ability_id, raw_input, seen_result, duration_ms = calls[0]
        assert ability_id == "test/echo"
        assert raw_input == {"value": "a"}
        assert seen_result is result
        assert duration_ms >= 0

    async def test_callback_errors_do_not_fail_invocation(self, test_registry):
        def callback(*args):
            raise RuntimeError("metrics down")

        test_registry.register(make_definition())
        invoker = AbilityInvoker(test_registry, on_invocation=callback)
        result = await invoker.invoke("test/echo", {})
        assert not result.is_error


class TestListing:
    async def test_list_abilities_public_by_default(self, test_registry):
        test_registry.register(make_definition())
        test_registry.register(make_definition(id="test/hidden", visibility=Visibility.PRIVATE))
        invoker = AbilityInvoker(test_registry)
        assert [a["id"] for a in invoker.list_abilities()] == ["test/echo"]
        assert len(invoker.list_abilities(visibility=None)) == 2

    async def test_listing_has_no_callables(self, test_registry):
        test_registry.register(make_definition())
        listing = AbilityInvoker(test_registry).list_abilities()[0]
        assert set(listing) == {
            "id",
            "label",
            "description",
            "category",
            "input_schema",
            "output_schema",
            "annotations",
        }
        assert listing["annotations"] == {
            "readOnlyHint": False,
            "destructiveHint": False,
            "idempotentHint": False,
        }

    async def test_list_categories(self, test_registry):
        invoker = AbilityInvoker(test_registry)
        assert [c.id for c in invoker.list_categories()] == ["test"]
