"""Wizard runtime — debounced field validation, step cache and step navigation.

Usage:
    from intake.wizard import create_wizard_session

    session = create_wizard_session("person")
    session.navigator.validate_step(0, {"document_number": "123456789"})
    session.navigator.mark_step_completed(0)
"""

from intake.wizard.debouncer import ValidationDebouncer, fingerprint
from intake.wizard.definitions import (
    APPLICATION_WIZARD,
    PERSON_WIZARD,
    WIZARDS,
    StepDefinition,
    WizardDefinition,
)
from intake.wizard.models import (
    CacheEntry,
    StepIcon,
    StepState,
    StepStatus,
    WizardMode,
    WizardState,
    WizardStatus,
)
from intake.wizard.navigator import StepNavigator
from intake.wizard.session import WizardSession, create_wizard_session

__all__ = [
    "ValidationDebouncer",
    "fingerprint",
    "APPLICATION_WIZARD",
    "PERSON_WIZARD",
    "WIZARDS",
    "StepDefinition",
    "WizardDefinition",
    "CacheEntry",
    "StepIcon",
    "StepState",
    "StepStatus",
    "WizardMode",
    "WizardState",
    "WizardStatus",
    "StepNavigator",
    "WizardSession",
    "create_wizard_session",
]
