"""Tests for the validation debouncer and step result cache."""

import asyncio

import pytest

from intake.validators import FieldState, FieldValidationResult, ValidationResult
from intake.wizard import ValidationDebouncer, fingerprint

DELAY = 0.02
SETTLE = 0.08


class RecordingValidator:
    """Field validator that records every call and rejects empty strings."""

    def __init__(self):
        self.calls: list[tuple[str, object, int]] = []

    def __call__(self, field_name: str, value, step_index: int) -> FieldValidationResult:
        self.calls.append((field_name, value, step_index))
        if value == "":
            return FieldValidationResult(is_valid=False, state=FieldState.REQUIRED, error="required")
        return FieldValidationResult(is_valid=True, state=FieldState.VALID)


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def validator():
    return RecordingValidator()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def debouncer(validator, clock):
    debouncer = ValidationDebouncer(validator, delay=DELAY, step_cache_seconds=1.0, clock=clock)
    yield debouncer
    debouncer.close()


@pytest.mark.asyncio
class TestDebouncedValidate:
    """Trailing-edge debounce per (step, field)."""

    async def test_rapid_calls_coalesce(self, debouncer, validator):
        for value in ("R", "Ra", "Rak", "Rako", "Rakoto"):
            debouncer.debounced_validate("surname", value, 1)

        await asyncio.sleep(SETTLE)

        assert validator.calls == [("surname", "Rakoto", 1)]

    async def test_returns_neutral_until_evaluated(self, debouncer):
        result = debouncer.debounced_validate("surname", "", 1)

        assert result == FieldValidationResult.neutral()

        await asyncio.sleep(SETTLE)

        assert debouncer.debounced_validate("surname", "Rakoto", 1).state == FieldState.REQUIRED

    async def test_keys_are_independent(self, debouncer, validator):
        debouncer.debounced_validate("surname", "Rakoto", 1)
        debouncer.debounced_validate("first_name", "Jean", 1)
        debouncer.debounced_validate("surname", "", 2)

        assert debouncer.pending_keys == [(1, "first_name"), (1, "surname"), (2, "surname")]

        await asyncio.sleep(SETTLE)

        assert sorted(validator.calls) == [
            ("first_name", "Jean", 1),
            ("surname", "", 2),
            ("surname", "Rakoto", 1),
        ]
        assert debouncer.pending_keys == []

    async def test_callback_receives_result(self, debouncer):
        received = []

        debouncer.debounced_validate("surname", "", 1, on_result=received.append)
        await asyncio.sleep(SETTLE)

        assert [r.state for r in received] == [FieldState.REQUIRED]

    async def test_immediate_validation_cancels_pending(self, debouncer, validator):
        debouncer.debounced_validate("surname", "stale", 1)

        result = debouncer.get_immediate_validation("surname", "Rakoto", 1)
        await asyncio.sleep(SETTLE)

        assert result.state == FieldState.VALID
        assert validator.calls == [("surname", "Rakoto", 1)]

    async def test_clear_single_entry(self, debouncer, validator):
        debouncer.get_immediate_validation("surname", "", 1)
        debouncer.get_immediate_validation("first_name", "", 1)
        debouncer.debounced_validate("surname", "pending", 1)

        debouncer.clear_cache("surname", 1)
        await asyncio.sleep(SETTLE)

        assert debouncer.cached_result("surname", 1) == FieldValidationResult.neutral()
        assert debouncer.cached_result("first_name", 1).state == FieldState.REQUIRED
        assert ("surname", "pending", 1) not in validator.calls

    async def test_clear_everything_drops_pending_timers(self, debouncer, validator):
        debouncer.debounced_validate("surname", "Rakoto", 1)
        debouncer.debounced_validate("email_address", "x@y.mg", 2)

        debouncer.clear_cache()
        await asyncio.sleep(SETTLE)

        assert validator.calls == []
        assert debouncer.pending_keys == []

    async def test_clear_by_step(self, debouncer):
        debouncer.get_immediate_validation("surname", "", 1)
        debouncer.get_immediate_validation("surname", "", 2)

        debouncer.clear_cache(step_index=1)

        assert debouncer.cached_result("surname", 1).state == FieldState.DEFAULT
        assert debouncer.cached_result("surname", 2).state == FieldState.REQUIRED

    async def test_clear_by_field(self, debouncer):
        debouncer.get_immediate_validation("surname", "", 1)
        debouncer.get_immediate_validation("surname", "", 2)
        debouncer.get_immediate_validation("first_name", "", 1)

        debouncer.clear_cache(field_name="surname")

        assert debouncer.cached_result("surname", 1).state == FieldState.DEFAULT
        assert debouncer.cached_result("surname", 2).state == FieldState.DEFAULT
        assert debouncer.cached_result("first_name", 1).state == FieldState.REQUIRED

    async def test_closed_debouncer_schedules_nothing(self, debouncer, validator):
        debouncer.debounced_validate("surname", "Rakoto", 1)
        debouncer.close()

        result = debouncer.debounced_validate("surname", "Rakoto", 1)
        await asyncio.sleep(SETTLE)

        assert debouncer.closed
        assert result == FieldValidationResult.neutral()
        assert validator.calls == []
        assert debouncer.pending_keys == []


class TestStepCache:
    """Whole-step results within the freshness window."""

    def test_same_snapshot_evaluated_once(self, debouncer):
        calls = []

        def evaluate():
            calls.append(1)
            return ValidationResult(is_valid=True)

        first = debouncer.cached_step_validation(1, {"surname": "Rakoto", "first_name": "Jean"}, evaluate)
        second = debouncer.cached_step_validation(1, {"first_name": "Jean", "surname": "Rakoto"}, evaluate)

        assert first is second
        assert len(calls) == 1

    def test_different_snapshot_or_step(self, debouncer):
        calls = []

        def evaluate():
            calls.append(1)
            return ValidationResult(is_valid=True)

        debouncer.cached_step_validation(1, {"surname": "Rakoto"}, evaluate)
        debouncer.cached_step_validation(1, {"surname": "Rabe"}, evaluate)
        debouncer.cached_step_validation(2, {"surname": "Rakoto"}, evaluate)

        assert len(calls) == 3

    def test_freshness_window(self, debouncer, clock):
        calls = []

        def evaluate():
            calls.append(1)
            return ValidationResult(is_valid=True)

        debouncer.cached_step_validation(1, {}, evaluate)
        clock.now += 0.5
        debouncer.cached_step_validation(1, {}, evaluate)
        clock.now += 1.0
        debouncer.cached_step_validation(1, {}, evaluate)

        assert len(calls) == 2

    def test_force_bypasses_cache(self, debouncer):
        calls = []

        def evaluate():
            calls.append(1)
            return ValidationResult(is_valid=True)

        debouncer.cached_step_validation(1, {}, evaluate)
        debouncer.cached_step_validation(1, {}, evaluate, force=True)

        assert len(calls) == 2

    def test_clear_by_step_drops_step_results(self, debouncer):
        calls = []

        def evaluate():
            calls.append(1)
            return ValidationResult(is_valid=True)

        debouncer.cached_step_validation(1, {}, evaluate)
        debouncer.cached_step_validation(2, {}, evaluate)
        debouncer.clear_cache(step_index=1)
        debouncer.cached_step_validation(1, {}, evaluate)
        debouncer.cached_step_validation(2, {}, evaluate)

        assert len(calls) == 3

    def test_fingerprint_ignores_key_order(self):
        assert fingerprint({"a": 1, "b": [1, 2]}) == fingerprint({"b": [1, 2], "a": 1})
        assert fingerprint({"a": 1}) != fingerprint({"a": 2})
        assert fingerprint(None) == fingerprint({})


class TestWithoutEventLoop:
    """Synchronous callers get the result straight away."""

    def test_validates_immediately(self, debouncer, validator):
        received = []

        result = debouncer.debounced_validate("surname", "", 1, on_result=received.append)

        assert result.state == FieldState.REQUIRED
        assert received == [result]
        assert validator.calls == [("surname", "", 1)]
        assert debouncer.pending_keys == []
        assert debouncer.cached_result("surname", 1) == result

    def test_closed_debouncer_does_not_validate(self, debouncer, validator):
        debouncer.close()

        result = debouncer.debounced_validate("surname", "", 1)

        assert result == FieldValidationResult.neutral()
        assert validator.calls == []
