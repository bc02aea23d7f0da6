"""Validation models — field states, error codes, field paths and step results.

All validation is deterministic: same snapshot in → same result out.
"""

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field

from intake.licensing.models import BusinessValidationResult

# Key under which a failed business evaluation is reported in ValidationResult.errors
BUSINESS_ERROR_KEY = "business_rules"


class FieldState(str, Enum):
    """Display state of a single field."""

    VALID = "valid"
    INVALID = "invalid"    # Value present but breaks a format/range rule
    REQUIRED = "required"  # Required value is missing
    DEFAULT = "default"    # Optional and empty, or not yet checked


class ErrorCode(str, Enum):
    """Deterministic error codes for every field rule.

    Naming convention: SCOPE_SPECIFIC_ISSUE
    """

    FIELD_REQUIRED = "FIELD_REQUIRED"
    FIELD_INVALID_TYPE = "FIELD_INVALID_TYPE"
    FIELD_INVALID_FORMAT = "FIELD_INVALID_FORMAT"
    FIELD_TOO_SHORT = "FIELD_TOO_SHORT"
    FIELD_TOO_LONG = "FIELD_TOO_LONG"
    FIELD_OUT_OF_RANGE = "FIELD_OUT_OF_RANGE"
    FIELD_INVALID_CHOICE = "FIELD_INVALID_CHOICE"
    ARRAY_EMPTY = "ARRAY_EMPTY"
    ARRAY_INVALID_ENTRY = "ARRAY_INVALID_ENTRY"


# Map pydantic error types to field error codes
ERROR_CODE_MAP: dict[str, ErrorCode] = {
    "missing": ErrorCode.FIELD_REQUIRED,
    "string_too_short": ErrorCode.FIELD_TOO_SHORT,
    "string_too_long": ErrorCode.FIELD_TOO_LONG,
    "string_pattern_mismatch": ErrorCode.FIELD_INVALID_FORMAT,
    "literal_error": ErrorCode.FIELD_INVALID_CHOICE,
    "greater_than": ErrorCode.FIELD_OUT_OF_RANGE,
    "greater_than_equal": ErrorCode.FIELD_OUT_OF_RANGE,
    "less_than": ErrorCode.FIELD_OUT_OF_RANGE,
    "less_than_equal": ErrorCode.FIELD_OUT_OF_RANGE,
    "too_short": ErrorCode.ARRAY_EMPTY,
    "model_type": ErrorCode.ARRAY_INVALID_ENTRY,
    "model_attributes_type": ErrorCode.ARRAY_INVALID_ENTRY,
    "list_type": ErrorCode.FIELD_INVALID_TYPE,
}


class FieldPath(tuple):
    """Typed address of a value inside a step snapshot.

    FieldPath("aliases", 0, "document_number") renders as
    "aliases[0].document_number". Strings are only produced for display
    and dictionary keys; lookups walk the typed parts.
    """

    def __new__(cls, *parts: Union[str, int]) -> "FieldPath":
        return super().__new__(cls, parts)

    @classmethod
    def from_loc(cls, loc) -> "FieldPath":
        """Build from a pydantic error location tuple."""
        return cls(*loc)

    def child(self, part: Union[str, int]) -> "FieldPath":
        return FieldPath(*self, part)

    @property
    def leaf(self) -> Optional[str]:
        """Last named (non-index) segment."""
        for part in reversed(self):
            if isinstance(part, str):
                return part
        return None

    @property
    def root(self) -> Optional[str]:
        return self[0] if self and isinstance(self[0], str) else None

    def __str__(self) -> str:
        rendered = ""
        for part in self:
            if isinstance(part, int):
                rendered += f"[{part}]"
            elif rendered:
                rendered += f".{part}"
            else:
                rendered = str(part)
        return rendered


class FieldValidationError(BaseModel):
    """A single field finding."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    code: ErrorCode
    location: tuple[Union[int, str], ...]
    message: str
    state: FieldState = FieldState.INVALID

    @computed_field
    @property
    def path(self) -> str:
        return str(FieldPath(*self.location))


class FieldValidationResult(BaseModel):
    """Outcome of validating one field value in isolation."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    is_valid: bool
    state: FieldState
    error: Optional[str] = None

    @classmethod
    def neutral(cls) -> "FieldValidationResult":
        """Placeholder returned while no evaluation has completed yet."""
        return cls(is_valid=True, state=FieldState.DEFAULT)


class ValidationResult(BaseModel):
    """Complete result of validating one step snapshot."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    is_valid: bool
    errors: dict[str, str] = Field(default_factory=dict)
    field_states: dict[str, FieldState] = Field(default_factory=dict)
    field_errors: list[FieldValidationError] = Field(default_factory=list)
    business: Optional[BusinessValidationResult] = None

    @classmethod
    def empty(cls) -> "ValidationResult":
        """Result for a step that declares no rules."""
        return cls(is_valid=True)

    @classmethod
    def build(
        cls,
        field_errors: list[FieldValidationError],
        field_states: dict[FieldPath, FieldState],
    ) -> "ValidationResult":
        """Build a result from collected findings and per-path states.

        A step is valid only when there are no findings AND every field that
        received a state resolved to VALID. The second condition catches a
        field marked REQUIRED/INVALID without a captured message.
        """
        errors: dict[str, str] = {}
        for err in field_errors:
            # First message per path wins (schema pass runs first)
            errors.setdefault(err.path, err.message)

        states = {str(path): state for path, state in field_states.items()}
        is_valid = not errors and all(
            FieldState(state) == FieldState.VALID for state in states.values()
        )

        return cls(
            is_valid=is_valid,
            errors=errors,
            field_states=states,
            field_errors=field_errors,
        )

    def with_business(self, business: BusinessValidationResult) -> "ValidationResult":
        """Merge a business evaluation into this result."""
        errors = dict(self.errors)
        if not business.is_valid:
            errors[BUSINESS_ERROR_KEY] = business.message
        return self.model_copy(update={
            "is_valid": self.is_valid and business.is_valid,
            "errors": errors,
            "business": business,
        })
