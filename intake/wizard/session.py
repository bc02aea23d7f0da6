"""Wizard session — wires evaluator, debouncer, navigator and licensing engine together.

Usage:
    session = create_wizard_session("application", lookup=backend_lookup)
    session.debouncer.debounced_validate("surname", value, step_index=1)
    result = session.navigator.validate_step(1, form_data)
    if session.navigator.mark_step_completed(1):
        session.navigator.set_active_step(2)
    ...
    session.close()
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional, Union

import structlog

from intake.licensing.engine import LicenseRuleEngine
from intake.licensing.lookup import LicenseLookup
from intake.licensing.models import ExistingLicenseCheck
from intake.validators.evaluator import RuleEvaluator, application_evaluator, person_evaluator
from intake.wizard.debouncer import ValidationDebouncer
from intake.wizard.definitions import WIZARDS, WizardDefinition
from intake.wizard.models import WizardMode
from intake.wizard.navigator import StepNavigator

logger = structlog.get_logger()

_SHARED_EVALUATORS: dict[str, RuleEvaluator] = {
    "person": person_evaluator,
    "application": application_evaluator,
}


@dataclass
class WizardSession:
    """Everything one open wizard owns. Nothing here is shared between sessions."""

    definition: WizardDefinition
    evaluator: RuleEvaluator
    debouncer: ValidationDebouncer
    navigator: StepNavigator
    license_engine: Optional[LicenseRuleEngine] = None

    async def check_existing_licenses(self, person_id: str, today: Optional[date] = None) -> ExistingLicenseCheck:
        """Resolve the person's licences and hand them to the navigator."""
        if self.license_engine is None:
            raise RuntimeError(f"Wizard '{self.definition.name}' has no licensing engine")

        check = await self.license_engine.check_existing_licenses(person_id, today=today)
        if not self.debouncer.closed:
            self.navigator.apply_license_check(check)
        return check

    def close(self) -> None:
        self.debouncer.close()
        logger.info("wizard_session_closed", wizard=self.definition.name)


def create_wizard_session(
    wizard: Union[str, WizardDefinition],
    mode: Optional[WizardMode] = None,
    existing_entity: bool = False,
    license_engine: Optional[LicenseRuleEngine] = None,
    lookup: Optional[LicenseLookup] = None,
    debounce_seconds: Optional[float] = None,
    step_cache_seconds: Optional[float] = None,
) -> WizardSession:
    """Build a session for a named wizard ("person", "application") or a custom definition.

    Args:
        wizard: Wizard name or definition
        mode: Overrides the wizard's default mode
        existing_entity: Open every step for an entity loaded from the backend
        license_engine: Engine for business steps; built from the bundled tables
            (with `lookup`) when the wizard has business steps and none is given
        lookup: Existing-licence lookup for the default engine
        debounce_seconds: Field debounce window, defaults to settings
        step_cache_seconds: Step result freshness window, defaults to settings

    Raises:
        KeyError: Unknown wizard name
    """
    definition = WIZARDS[wizard] if isinstance(wizard, str) else wizard

    evaluator = _SHARED_EVALUATORS.get(definition.name)
    if evaluator is None or evaluator.rule_sets != definition.rule_sets:
        evaluator = RuleEvaluator(definition.rule_sets)

    if license_engine is None and definition.business_steps:
        license_engine = LicenseRuleEngine(lookup=lookup)

    debouncer = ValidationDebouncer(
        evaluator.validate_field,
        delay=debounce_seconds,
        step_cache_seconds=step_cache_seconds,
    )
    navigator = StepNavigator(definition, evaluator, debouncer, license_engine=license_engine, mode=mode)

    if existing_entity:
        navigator.initialize_for_existing_person()

    logger.info(
        "wizard_session_created",
        wizard=definition.name,
        mode=navigator.mode.value,
        existing_entity=existing_entity,
    )
    return WizardSession(
        definition=definition,
        evaluator=evaluator,
        debouncer=debouncer,
        navigator=navigator,
        license_engine=license_engine,
    )
