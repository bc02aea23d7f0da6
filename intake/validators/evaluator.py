"""Rule Evaluator — validates step snapshots and single field values.

Every step is checked in two passes:

1. Schema pass: the snapshot is validated against the step's compiled pydantic
   record model and every entry of ValidationError.errors() is harvested.
2. Required pass: declared required and conditionally required fields are
   reconciled per record, which is where RequiredWhen conditions are resolved.

Usage:
    evaluator = RuleEvaluator(PERSON_STEP_RULES)
    result = evaluator.validate_step(1, {"surname": "Rakoto", ...})
    if not result.is_valid:
        # Highlight result.errors / result.field_states
"""

import time
from typing import Any, Mapping, Optional

import structlog
from pydantic import ValidationError

from intake.validators.models import (
    ERROR_CODE_MAP,
    ErrorCode,
    FieldPath,
    FieldState,
    FieldValidationError,
    FieldValidationResult,
    ValidationResult,
)
from intake.validators.rules import FieldRule, NestedArrayRule, StepRuleSet
from intake.validators.schema import CompiledStep, compile_rule_set, is_blank
from intake.validators.step_rules import APPLICATION_STEP_RULES, PERSON_STEP_RULES

logger = structlog.get_logger()


class RuleEvaluator:
    """Evaluates declared field rules for the steps of one wizard.

    Design principles:
        - Deterministic: same snapshot in → same result out
        - Collect-all: every broken field is reported, never just the first
        - No side effects: results are returned, never stored
    """

    def __init__(self, rule_sets: Mapping[int, StepRuleSet]):
        self.rule_sets: dict[int, StepRuleSet] = dict(rule_sets)
        self._compiled: dict[int, CompiledStep] = {
            index: compile_rule_set(rule_set) for index, rule_set in self.rule_sets.items()
        }

    @property
    def step_indices(self) -> list[int]:
        return sorted(self.rule_sets)

    def has_rules(self, step_index: int) -> bool:
        return step_index in self._compiled

    # ── Step validation ──

    def validate_step(self, step_index: int, data: Optional[Mapping]) -> ValidationResult:
        """Validate a full step snapshot.

        Args:
            step_index: Wizard step to validate
            data: Snapshot of the form data (scalars and sequences of records)

        Returns:
            ValidationResult; an unknown step index yields an empty valid result
        """
        if step_index not in self._compiled:
            return ValidationResult.empty()

        start_time = time.perf_counter()
        snapshot = data if isinstance(data, Mapping) else {}

        schema_errors = self.schema_pass(step_index, snapshot)
        required_errors, filled_states = self.required_pass(step_index, snapshot)

        field_errors: list[FieldValidationError] = []
        states: dict[FieldPath, FieldState] = {}

        for err in schema_errors:
            path = FieldPath(*err.location)
            if path not in states:
                states[path] = FieldState(err.state)
            field_errors.append(err)

        for err in required_errors:
            path = FieldPath(*err.location)
            if path in states:
                continue
            states[path] = FieldState.REQUIRED
            field_errors.append(err)

        for path, state in filled_states.items():
            states.setdefault(path, state)

        result = ValidationResult.build(field_errors, states)

        logger.debug(
            "step_validated",
            step=step_index,
            rule_set=self.rule_sets[step_index].key,
            is_valid=result.is_valid,
            error_count=len(result.errors),
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        return result

    def schema_pass(self, step_index: int, data: Mapping) -> list[FieldValidationError]:
        """Validate against the compiled record model and harvest every error."""
        compiled = self._compiled[step_index]
        try:
            compiled.record_model.model_validate(dict(data))
        except ValidationError as exc:
            return [self._translate(compiled.rule_set, error) for error in exc.errors()]
        return []

    def required_pass(
        self, step_index: int, data: Mapping
    ) -> tuple[list[FieldValidationError], dict[FieldPath, FieldState]]:
        """Reconcile declared required fields against the raw snapshot.

        Returns:
            (required errors, VALID states for every filled field)
        """
        rule_set = self._compiled[step_index].rule_set
        errors: list[FieldValidationError] = []
        states: dict[FieldPath, FieldState] = {}

        for rule in rule_set.field_rules:
            self._reconcile(rule, FieldPath(rule.name), data, errors, states)

        for array in rule_set.array_rules:
            path = FieldPath(array.name)
            items = data.get(array.name)

            if is_blank(items):
                if array.required:
                    errors.append(FieldValidationError(
                        code=ErrorCode.FIELD_REQUIRED,
                        location=path,
                        message=array.empty_message,
                        state=FieldState.REQUIRED,
                    ))
                    states[path] = FieldState.REQUIRED
                continue

            # Wrong container types are reported by the schema pass
            if not isinstance(items, (list, tuple)):
                continue

            states[path] = FieldState.VALID
            for index, item in enumerate(items):
                if not isinstance(item, Mapping):
                    continue
                for rule in array.item_rules:
                    self._reconcile(rule, path.child(index).child(rule.name), item, errors, states)

        return errors, states

    def _reconcile(
        self,
        rule: FieldRule,
        path: FieldPath,
        record: Mapping,
        errors: list[FieldValidationError],
        states: dict[FieldPath, FieldState],
    ) -> None:
        if not is_blank(record.get(rule.name)):
            states[path] = FieldState.VALID
            return
        if rule.is_required_for(record):
            errors.append(FieldValidationError(
                code=ErrorCode.FIELD_REQUIRED,
                location=path,
                message=rule.required_message,
                state=FieldState.REQUIRED,
            ))
            states[path] = FieldState.REQUIRED

    def _translate(self, rule_set: StepRuleSet, error: dict[str, Any]) -> FieldValidationError:
        """Turn one pydantic error entry into a FieldValidationError."""
        path = FieldPath.from_loc(error["loc"])
        error_type = error["type"]
        rule, array = _rule_at(rule_set, path)

        state = FieldState.REQUIRED if error_type == "missing" else FieldState.INVALID
        code = ERROR_CODE_MAP.get(error_type, ErrorCode.FIELD_INVALID_TYPE)

        if rule is not None:
            message = rule.message_for(error_type, error["msg"])
        elif array is not None and len(path) == 1 and error_type in ("missing", "too_short"):
            message = array.empty_message
            state = FieldState.REQUIRED
        elif array is not None:
            message = f"{array.item_label.capitalize()} entry is invalid: {error['msg']}"
        else:
            message = error["msg"]

        return FieldValidationError(code=code, location=path, message=message, state=state)

    # ── Single-field validation ──

    def validate_field(self, field_name: str, value: Any, step_index: int) -> FieldValidationResult:
        """Validate one value in isolation (e.g. on every keystroke).

        Conditional requirements need sibling values, so a conditionally
        required field is treated as optional here; validate_step enforces it.
        """
        compiled = self._compiled.get(step_index)
        if compiled is None:
            return FieldValidationResult.neutral()

        rule_set = compiled.rule_set

        if is_blank(value):
            if not rule_set.is_required(field_name):
                return FieldValidationResult(is_valid=True, state=FieldState.DEFAULT)
            array = rule_set.array_rule(field_name)
            message = array.empty_message if array else rule_set.find_rule(field_name).required_message
            return FieldValidationResult(is_valid=False, state=FieldState.REQUIRED, error=message)

        adapter = compiled.adapter_for(field_name)
        if adapter is None:
            return FieldValidationResult(is_valid=True, state=FieldState.VALID)

        try:
            adapter.validate_python(value)
        except ValidationError as exc:
            first = exc.errors()[0]
            return FieldValidationResult(
                is_valid=False,
                state=FieldState.INVALID,
                error=self._field_message(rule_set, field_name, first),
            )

        return FieldValidationResult(is_valid=True, state=FieldState.VALID)

    def _field_message(self, rule_set: StepRuleSet, field_name: str, error: dict[str, Any]) -> str:
        names = [part for part in error["loc"] if isinstance(part, str)]
        rule = rule_set.find_rule(names[-1]) if names else rule_set.find_rule(field_name)
        if rule is not None:
            return rule.message_for(error["type"], error["msg"])
        array = rule_set.array_rule(field_name)
        if array is not None and error["type"] == "too_short":
            return array.empty_message
        return error["msg"]

    def get_field_state(self, field_name: str, value: Any, step_index: int) -> FieldState:
        return FieldState(self.validate_field(field_name, value, step_index).state)

    # ── Whole-wizard helpers ──

    def validate_all_steps(self, data: Optional[Mapping]) -> dict[int, ValidationResult]:
        """Validate the same snapshot against every step that declares rules."""
        return {index: self.validate_step(index, data) for index in self.step_indices}

    def is_step_complete(self, step_index: int, data: Optional[Mapping]) -> bool:
        return self.validate_step(step_index, data).is_valid


def _rule_at(rule_set: StepRuleSet, path: FieldPath) -> tuple[Optional[FieldRule], Optional[NestedArrayRule]]:
    """Locate the rule addressed by an error path."""
    array = rule_set.array_rule(path.root) if path.root else None
    if array is None:
        return (rule_set.rule_for(path.root) if path.root else None), None
    if len(path) >= 3 and isinstance(path[2], str):
        return array.item_rule(path[2]), array
    return None, array


# Module-level evaluators (rule sets are read-only, safe to share)
person_evaluator = RuleEvaluator(PERSON_STEP_RULES)
application_evaluator = RuleEvaluator(APPLICATION_STEP_RULES)
