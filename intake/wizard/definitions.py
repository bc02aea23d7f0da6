"""Wizard definitions — the fixed, ordered step list of each intake wizard."""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from intake.validators.rules import StepRuleSet
from intake.validators.step_rules import APPLICATION_STEP_RULES, PERSON_STEP_RULES
from intake.wizard.models import WizardMode

ALL_MODES = frozenset({WizardMode.PERSON, WizardMode.APPLICATION})


class StepDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    title: str
    rule_set: Optional[StepRuleSet] = None
    business_rules: bool = False          # Run the licensing engine on this step
    required_in: frozenset[WizardMode] = ALL_MODES


class WizardDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    default_mode: WizardMode
    steps: tuple[StepDefinition, ...]

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    @property
    def rule_sets(self) -> dict[int, StepRuleSet]:
        return {i: step.rule_set for i, step in enumerate(self.steps) if step.rule_set is not None}

    @property
    def business_steps(self) -> list[int]:
        return [i for i, step in enumerate(self.steps) if step.business_rules]

    def required_steps(self, mode: WizardMode) -> list[int]:
        return [i for i, step in enumerate(self.steps) if WizardMode(mode) in step.required_in]


PERSON_WIZARD = WizardDefinition(
    name="person",
    default_mode=WizardMode.PERSON,
    steps=(
        StepDefinition(key="lookup", title="Lookup", rule_set=PERSON_STEP_RULES[0]),
        StepDefinition(key="details", title="Personal details", rule_set=PERSON_STEP_RULES[1]),
        StepDefinition(key="contact", title="Contact details", rule_set=PERSON_STEP_RULES[2]),
        StepDefinition(key="documents", title="ID documents", rule_set=PERSON_STEP_RULES[3]),
        StepDefinition(key="address", title="Address", rule_set=PERSON_STEP_RULES[4]),
        StepDefinition(key="review", title="Review"),
    ),
)

APPLICATION_WIZARD = WizardDefinition(
    name="application",
    default_mode=WizardMode.APPLICATION,
    steps=(
        StepDefinition(key="applicant", title="Applicant", rule_set=APPLICATION_STEP_RULES[0]),
        StepDefinition(key="application_details", title="Application details", rule_set=APPLICATION_STEP_RULES[1]),
        StepDefinition(key="requirements", title="Requirements", rule_set=APPLICATION_STEP_RULES[2],
                       business_rules=True),
        StepDefinition(key="biometric", title="Biometric capture", rule_set=APPLICATION_STEP_RULES[3],
                       required_in=frozenset({WizardMode.APPLICATION})),
        StepDefinition(key="review", title="Review"),
    ),
)

WIZARDS: dict[str, WizardDefinition] = {
    PERSON_WIZARD.name: PERSON_WIZARD,
    APPLICATION_WIZARD.name: APPLICATION_WIZARD,
}
