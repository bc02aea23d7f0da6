"""Wizard state models — per-step state, wizard snapshot and cache entries.

StepState and WizardState are immutable: every transition builds a new
snapshot. Derived values are computed on read and never stored.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, computed_field, model_validator


class WizardMode(str, Enum):
    PERSON = "person"
    APPLICATION = "application"


class StepStatus(str, Enum):
    UNVISITED = "unvisited"
    VISITED_INVALID = "visited-invalid"
    VISITED_VALID = "visited-valid"
    COMPLETED = "completed"


class WizardStatus(str, Enum):
    IN_PROGRESS = "in-progress"
    ALL_COMPLETE = "all-complete"


class StepIcon(str, Enum):
    """Icon shown for a step in the wizard's step bar."""

    COMPLETED = "completed"
    CURRENT = "current"
    WARNING = "warning"
    NEXT_AVAILABLE = "next-available"
    DEFAULT = "default"


class StepState(BaseModel):
    """Validation/navigation state of one step."""

    model_config = ConfigDict(frozen=True)

    is_valid: bool = False
    is_completed: bool = False
    is_visited: bool = False
    has_errors: bool = False
    last_validated_at: float = 0.0

    @model_validator(mode="after")
    def _completed_implies_valid(self) -> "StepState":
        if self.is_completed and not self.is_valid:
            raise ValueError("a completed step must be valid")
        return self

    @property
    def status(self) -> StepStatus:
        if self.is_completed:
            return StepStatus.COMPLETED
        if not self.is_visited:
            return StepStatus.UNVISITED
        return StepStatus.VISITED_VALID if self.is_valid else StepStatus.VISITED_INVALID


class WizardState(BaseModel):
    """Read-only snapshot of a wizard session."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    steps: tuple[StepState, ...]
    active_step: int = 0
    mode: WizardMode = WizardMode.PERSON
    existing_entity: bool = False

    @classmethod
    def initial(cls, total_steps: int, mode: WizardMode) -> "WizardState":
        """Fresh wizard: only the first step visited."""
        return cls(
            steps=tuple(StepState(is_visited=(i == 0)) for i in range(total_steps)),
            active_step=0,
            mode=mode,
        )

    def with_step(self, index: int, step: StepState) -> "WizardState":
        steps = list(self.steps)
        steps[index] = step
        return self.model_copy(update={"steps": tuple(steps)})

    @computed_field
    @property
    def total_steps(self) -> int:
        return len(self.steps)

    @computed_field
    @property
    def completed_steps_count(self) -> int:
        return sum(1 for s in self.steps if s.is_completed)

    @computed_field
    @property
    def all_steps_valid(self) -> bool:
        return all(s.is_valid for s in self.steps)

    @computed_field
    @property
    def next_available_step(self) -> int:
        """First step not yet completed (total_steps when all are)."""
        return next((i for i, s in enumerate(self.steps) if not s.is_completed), len(self.steps))

    @computed_field
    @property
    def is_current_step_valid(self) -> bool:
        return self.steps[self.active_step].is_valid if self.steps else False

    @computed_field
    @property
    def is_current_step_invalid(self) -> bool:
        return self.steps[self.active_step].has_errors if self.steps else False

    @computed_field
    @property
    def can_navigate_next(self) -> bool:
        return self.is_current_step_valid and self.active_step < len(self.steps) - 1

    @computed_field
    @property
    def can_navigate_previous(self) -> bool:
        return self.active_step > 0

    @computed_field
    @property
    def status(self) -> WizardStatus:
        if self.steps and self.completed_steps_count == len(self.steps):
            return WizardStatus.ALL_COMPLETE
        return WizardStatus.IN_PROGRESS


class CacheEntry(BaseModel):
    """A cached validation result and when it was produced."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    key: tuple[int, str]  # (step_index, field name or data fingerprint)
    result: Any
    timestamp: float
