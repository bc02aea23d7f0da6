"""Step navigator — per-step state machine for one wizard session.

Each step moves through unvisited → visited-invalid/visited-valid → completed.
Validation only ever changes is_valid/has_errors; completion is an explicit,
gated transition. Every transition replaces the WizardState snapshot and
notifies subscribers with the new one.
"""

import time
from typing import Any, Callable, Mapping, Optional

import structlog
from pydantic import ValidationError

from intake.licensing.engine import LicenseRuleEngine
from intake.licensing.models import (
    GENERIC_FAILURE_MESSAGE,
    ExistingLicenseCheck,
    ExternalLicenseDetails,
)
from intake.validators.evaluator import RuleEvaluator
from intake.validators.models import BUSINESS_ERROR_KEY, ValidationResult
from intake.validators.schema import is_blank
from intake.wizard.debouncer import ValidationDebouncer
from intake.wizard.definitions import WizardDefinition
from intake.wizard.models import StepIcon, StepState, WizardMode, WizardState

logger = structlog.get_logger()

StateListener = Callable[[WizardState], None]

STEP_ERROR_KEY = "step"

# Step data keys the licensing engine reads, wherever in the wizard they were entered
BUSINESS_INPUT_KEYS = (
    "person_id",
    "birth_date",
    "application_type",
    "license_categories",
    "external_learner_permit",
    "external_existing_license",
)
MISSING_BUSINESS_INPUTS_MESSAGE = "Complete applicant and application details first"


class StepNavigator:
    """Owns the WizardState of one session and gates navigation on it.

    Design principles:
        - Snapshots only: callers read WizardState, never mutate it
        - Validation never completes a step and never un-completes one
        - Evaluator failures become an invalid step, not an exception
    """

    def __init__(
        self,
        definition: WizardDefinition,
        evaluator: RuleEvaluator,
        debouncer: ValidationDebouncer,
        license_engine: Optional[LicenseRuleEngine] = None,
        mode: Optional[WizardMode] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.definition = definition
        self.evaluator = evaluator
        self.debouncer = debouncer
        self.license_engine = license_engine
        self.mode = WizardMode(mode or definition.default_mode)
        self._clock = clock or time.time
        self.license_check: Optional[ExistingLicenseCheck] = None
        self._state = WizardState.initial(definition.total_steps, self.mode)
        self._results: dict[int, ValidationResult] = {}
        self._snapshots: dict[int, dict] = {}
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> WizardState:
        return self._state

    @property
    def total_steps(self) -> int:
        return self.definition.total_steps

    # ── Subscribers ──

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, state: WizardState) -> None:
        self._state = state
        dead: list[StateListener] = []
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.warning("state_listener_failed", wizard=self.definition.name, error=str(e))
                dead.append(listener)

        for listener in dead:
            self._listeners.remove(listener)

    def _in_range(self, step_index: int) -> bool:
        return 0 <= step_index < self.total_steps

    def _require_index(self, step_index: int) -> None:
        if not self._in_range(step_index):
            raise IndexError(f"Step {step_index} out of range for wizard '{self.definition.name}'")

    # ── Validation ──

    def validate_step(self, step_index: int, data: Optional[Mapping] = None, force: bool = False) -> ValidationResult:
        """Validate one step and record the outcome on its state.

        Results come through the debouncer's step cache, so repeated calls
        with the same snapshot inside the freshness window are free. On a
        business step the cache key also covers the inputs composed from
        earlier steps.

        Raises:
            IndexError: step_index is outside the wizard
        """
        self._require_index(step_index)
        snapshot = dict(data or {})
        self._snapshots[step_index] = snapshot

        cache_data: Mapping = snapshot
        business_inputs: Optional[dict] = None
        if self.definition.steps[step_index].business_rules:
            business_inputs = self._business_inputs(step_index)
            cache_data = {"step": snapshot, "business_inputs": business_inputs}

        result = self.debouncer.cached_step_validation(
            step_index,
            cache_data,
            lambda: self._evaluate(step_index, snapshot, business_inputs),
            force=force,
        )
        self._results[step_index] = result
        self._apply_result(step_index, result)
        return result

    def _business_inputs(self, step_index: int) -> dict:
        """Licensing inputs from every step up to and including step_index.

        Later steps override earlier ones; blank values never override.
        """
        inputs: dict = {}
        for index in range(step_index + 1):
            snapshot = self._snapshots.get(index, {})
            for key in BUSINESS_INPUT_KEYS:
                if not is_blank(snapshot.get(key)):
                    inputs[key] = snapshot[key]
        return inputs

    def _evaluate(self, step_index: int, data: Mapping, business_inputs: Optional[Mapping] = None) -> ValidationResult:
        try:
            result = self.evaluator.validate_step(step_index, data)
            if business_inputs is not None:
                result = self._with_business(result, business_inputs)
            return result
        except Exception as e:
            logger.error(
                "step_validation_failed",
                wizard=self.definition.name,
                step=step_index,
                error=str(e),
                error_type=type(e).__name__,
            )
            return ValidationResult(is_valid=False, errors={STEP_ERROR_KEY: GENERIC_FAILURE_MESSAGE})

    def _with_business(self, result: ValidationResult, inputs: Mapping) -> ValidationResult:
        if self.license_engine is None:
            return result

        missing = [k for k in ("application_type", "license_categories", "birth_date") if is_blank(inputs.get(k))]
        if missing:
            logger.info("business_inputs_missing", wizard=self.definition.name, missing=missing)
            errors = {**result.errors, BUSINESS_ERROR_KEY: MISSING_BUSINESS_INPUTS_MESSAGE}
            return result.model_copy(update={"is_valid": False, "errors": errors})

        business = self.license_engine.evaluate(
            inputs["application_type"],
            inputs["license_categories"],
            inputs["birth_date"],
            existing=self.license_check,
            person_id=str(inputs.get("person_id") or ""),
            external_learner_permit=_external_details(inputs, "external_learner_permit"),
            external_existing_license=_external_details(inputs, "external_existing_license"),
        )
        return result.with_business(business)

    def _apply_result(self, step_index: int, result: ValidationResult) -> None:
        current = self._state.steps[step_index]
        # Wall clock can step backwards; the timestamp must not
        now = max(current.last_validated_at, self._clock())

        if current.is_completed and not result.is_valid:
            # Completion is never revoked; the step shows a warning instead
            logger.warning("completed_step_invalidated", wizard=self.definition.name, step=step_index)
            step = current.model_copy(update={"has_errors": True, "last_validated_at": now})
        else:
            step = current.model_copy(update={
                "is_valid": result.is_valid,
                "has_errors": not result.is_valid,
                "last_validated_at": now,
            })

        self._set_state(self._state.with_step(step_index, step))

    def validate_all_steps(self, step_data: Mapping[int, Mapping]) -> dict[int, ValidationResult]:
        """Force re-validation of every step (before final submission)."""
        return {
            index: self.validate_step(index, step_data.get(index), force=True)
            for index in range(self.total_steps)
        }

    def last_result(self, step_index: int) -> Optional[ValidationResult]:
        return self._results.get(step_index)

    def apply_license_check(self, check: ExistingLicenseCheck) -> None:
        """Record the resolved existing-licence lookup for business steps.

        Cached business results were computed without it, so they are dropped.
        """
        self.license_check = check
        for index in self.definition.business_steps:
            self.debouncer.clear_cache(step_index=index)
        logger.info(
            "license_check_applied",
            person_id=check.person_id,
            has_active_licenses=check.has_active_licenses,
            lookup_failed=check.lookup_failed,
        )

    # ── Transitions ──

    def mark_step_visited(self, step_index: int) -> None:
        self._require_index(step_index)
        current = self._state.steps[step_index]
        if current.is_visited:
            return
        self._set_state(self._state.with_step(step_index, current.model_copy(update={"is_visited": True})))

    def mark_step_completed(self, step_index: int) -> bool:
        """Complete a valid step. Returns False (and changes nothing) otherwise."""
        if not self._in_range(step_index):
            return False

        current = self._state.steps[step_index]
        if current.is_completed:
            return True
        if not current.is_valid:
            logger.info("step_completion_refused", wizard=self.definition.name, step=step_index)
            return False

        step = current.model_copy(update={"is_completed": True, "is_visited": True})
        self._set_state(self._state.with_step(step_index, step))
        return True

    def set_active_step(self, step_index: int) -> bool:
        """Move to a step when it is clickable; it becomes visited."""
        if not self.is_step_clickable(step_index):
            logger.debug("step_navigation_refused", wizard=self.definition.name, step=step_index)
            return False

        current = self._state.steps[step_index]
        state = self._state.with_step(step_index, current.model_copy(update={"is_visited": True}))
        self._set_state(state.model_copy(update={"active_step": step_index}))
        return True

    def reset_all_steps(self) -> None:
        """Back to a fresh wizard: step 0 visited and active, caches cleared."""
        self.debouncer.clear_cache()
        self._results.clear()
        self._snapshots.clear()
        self._set_state(WizardState.initial(self.total_steps, self.mode))
        logger.info("wizard_reset", wizard=self.definition.name)

    def reset_validation(self) -> None:
        self.reset_all_steps()

    def initialize_for_existing_person(self) -> None:
        """Open every step for an entity loaded from the backend.

        Steps are visited but neither valid nor completed: each one has to be
        re-validated against the loaded data.
        """
        self.debouncer.clear_cache()
        self._results.clear()
        self._snapshots.clear()
        self._set_state(WizardState(
            steps=tuple(StepState(is_visited=True) for _ in range(self.total_steps)),
            active_step=0,
            mode=self.mode,
            existing_entity=True,
        ))
        logger.info("wizard_initialized_for_existing", wizard=self.definition.name)

    # ── Queries ──

    def is_step_clickable(self, step_index: int) -> bool:
        if not self._in_range(step_index):
            return False

        state = self._state
        active = state.active_step
        step = state.steps[step_index]

        return (
            step_index == active
            or step.is_completed
            or (step_index == active + 1 and state.steps[active].is_valid)
            or (step_index < active and step.is_valid)
            or (state.existing_entity and step.is_visited)
        )

    def get_step_icon(self, step_index: int) -> StepIcon:
        if not self._in_range(step_index):
            return StepIcon.DEFAULT

        state = self._state
        step = state.steps[step_index]

        if step.is_completed:
            return StepIcon.COMPLETED
        if step_index == state.active_step:
            return StepIcon.CURRENT
        if step.is_visited and step.has_errors:
            return StepIcon.WARNING
        if step_index == state.next_available_step and state.is_current_step_valid:
            return StepIcon.NEXT_AVAILABLE
        return StepIcon.DEFAULT

    def is_submittable(self) -> bool:
        """Every step the current mode requires is valid and error-free."""
        steps = self._state.steps
        return all(
            steps[i].is_valid and not steps[i].has_errors
            for i in self.definition.required_steps(self.mode)
        )


def _external_details(data: Mapping, key: str) -> Optional[ExternalLicenseDetails]:
    raw: Any = data.get(key)
    if raw is None or isinstance(raw, ExternalLicenseDetails):
        return raw
    try:
        return ExternalLicenseDetails.model_validate(raw)
    except ValidationError as e:
        logger.warning("external_details_invalid", field=key, error_count=e.error_count())
        return None
