"""Rule Evaluator — declarative field rules for the intake wizards.

Usage:
    from intake.validators import person_evaluator

    result = person_evaluator.validate_step(1, form_data)
    if not result.is_valid:
        # Show result.errors next to the fields in result.field_states
"""

from intake.validators.evaluator import RuleEvaluator, application_evaluator, person_evaluator
from intake.validators.models import (
    ErrorCode,
    FieldPath,
    FieldState,
    FieldValidationError,
    FieldValidationResult,
    ValidationResult,
)
from intake.validators.rules import FieldKind, FieldRule, NestedArrayRule, RequiredWhen, StepRuleSet
from intake.validators.step_rules import APPLICATION_STEP_RULES, PERSON_STEP_RULES

__all__ = [
    "RuleEvaluator",
    "person_evaluator",
    "application_evaluator",
    "ErrorCode",
    "FieldPath",
    "FieldState",
    "FieldValidationError",
    "FieldValidationResult",
    "ValidationResult",
    "FieldKind",
    "FieldRule",
    "NestedArrayRule",
    "RequiredWhen",
    "StepRuleSet",
    "PERSON_STEP_RULES",
    "APPLICATION_STEP_RULES",
]
