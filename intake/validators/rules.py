"""Declarative field rules — the per-step validation contract.

A StepRuleSet is declared once per wizard step and never changes at runtime.
The evaluator compiles each rule set into a pydantic record model (see
schema.py) and uses the rules again for the required-field reconciliation pass.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
ISO_DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class FieldKind(str, Enum):
    """Value type expected by a field rule."""

    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    EMAIL = "email"
    DATE = "date"  # ISO YYYY-MM-DD string
    STRING_LIST = "string_list"  # Multi-select, e.g. licence categories


class RequiredWhen(BaseModel):
    """Conditional requirement: required only when a sibling field matches."""

    model_config = ConfigDict(frozen=True)

    sibling: str
    equals: tuple[Any, ...]

    def applies(self, record: Mapping) -> bool:
        return record.get(self.sibling) in self.equals


class FieldRule(BaseModel):
    """Validation contract for one scalar field."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    name: str
    label: Optional[str] = None
    kind: FieldKind = FieldKind.STRING
    required: bool = False
    required_when: Optional[RequiredWhen] = None
    pattern: Optional[str] = None
    pattern_message: Optional[str] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    ge: Optional[float] = None
    le: Optional[float] = None
    choices: Optional[tuple[str, ...]] = None

    @property
    def display_label(self) -> str:
        return self.label or self.name.replace("_", " ").capitalize()

    @property
    def required_message(self) -> str:
        return f"{self.display_label} is required"

    def is_required_for(self, record: Mapping) -> bool:
        """Whether this field must be filled in, given its sibling values."""
        if self.required_when is not None:
            return self.required_when.applies(record)
        return self.required

    def annotation(self) -> Any:
        """Python type (with constraints) used by the compiled record model."""
        kind = FieldKind(self.kind)

        if kind == FieldKind.STRING_LIST:
            item = Literal[self.choices] if self.choices else str
            return Annotated[list[item], Field(min_length=self.min_length or 1)]
        if self.choices:
            return Literal[self.choices]

        if kind == FieldKind.INTEGER:
            return Annotated[int, Field(ge=self.ge, le=self.le)]
        if kind == FieldKind.NUMBER:
            return Annotated[float, Field(ge=self.ge, le=self.le)]
        if kind == FieldKind.BOOLEAN:
            return bool

        pattern = self.pattern
        if pattern is None and kind == FieldKind.EMAIL:
            pattern = EMAIL_PATTERN
        elif pattern is None and kind == FieldKind.DATE:
            pattern = ISO_DATE_PATTERN

        return Annotated[str, StringConstraints(
            strip_whitespace=True,
            min_length=self.min_length,
            max_length=self.max_length,
            pattern=pattern,
        )]

    def message_for(self, error_type: str, fallback: str) -> str:
        """Translate a pydantic error type into a user-facing message."""
        label = self.display_label
        kind = FieldKind(self.kind)

        if error_type == "missing":
            return self.required_message
        if error_type == "too_short":
            return f"Select at least {self.min_length or 1} {label.lower()}"
        if error_type == "string_too_short":
            return f"{label} must be at least {self.min_length} characters"
        if error_type == "string_too_long":
            return f"{label} must not exceed {self.max_length} characters"
        if error_type == "string_pattern_mismatch":
            if self.pattern_message:
                return self.pattern_message
            if kind == FieldKind.EMAIL:
                return "Please enter a valid email address"
            if kind == FieldKind.DATE:
                return "Date must be in YYYY-MM-DD format"
            return f"{label} has an invalid format"
        if error_type == "literal_error":
            return f"Please select a valid {label.lower()}"
        if error_type in ("greater_than_equal", "greater_than"):
            return f"{label} must be at least {self.ge:g}"
        if error_type in ("less_than_equal", "less_than"):
            return f"{label} must not exceed {self.le:g}"
        return f"{label}: {fallback}"


class NestedArrayRule(BaseModel):
    """Contract for a sequence of sub-records (documents, addresses, ...)."""

    model_config = ConfigDict(frozen=True)

    name: str
    item_label: str
    item_rules: tuple[FieldRule, ...]
    required: bool = True
    min_items: int = 1

    @property
    def empty_message(self) -> str:
        return f"At least one {self.item_label} is required"

    def item_rule(self, name: str) -> Optional[FieldRule]:
        return next((r for r in self.item_rules if r.name == name), None)


class StepRuleSet(BaseModel):
    """All field rules declared for one wizard step."""

    model_config = ConfigDict(frozen=True)

    key: str
    field_rules: tuple[FieldRule, ...] = ()
    array_rules: tuple[NestedArrayRule, ...] = ()

    def rule_for(self, name: str) -> Optional[FieldRule]:
        """Top-level rule by field name."""
        return next((r for r in self.field_rules if r.name == name), None)

    def array_rule(self, name: str) -> Optional[NestedArrayRule]:
        return next((a for a in self.array_rules if a.name == name), None)

    def find_rule(self, name: str) -> Optional[FieldRule]:
        """Rule by name, searching top-level fields first, then nested items."""
        rule = self.rule_for(name)
        if rule is not None:
            return rule
        for array in self.array_rules:
            rule = array.item_rule(name)
            if rule is not None:
                return rule
        return None

    def is_required(self, name: str) -> bool:
        """Unconditional requirement, used when a field is checked on its own."""
        array = self.array_rule(name)
        if array is not None:
            return array.required
        rule = self.find_rule(name)
        return bool(rule and rule.required and rule.required_when is None)

    @property
    def required_names(self) -> list[str]:
        names = [r.name for r in self.field_rules if r.required and r.required_when is None]
        names.extend(a.name for a in self.array_rules if a.required)
        return names
