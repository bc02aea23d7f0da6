"""Tests for wizard session wiring."""

import pytest

from intake.errors import LicenseLookupError
from intake.licensing import InMemoryLicenseLookup, LicenseRuleEngine
from intake.validators import application_evaluator, person_evaluator
from intake.wizard import (
    PERSON_WIZARD,
    StepDefinition,
    WizardDefinition,
    WizardMode,
    create_wizard_session,
)
from intake.validators.step_rules import PERSON_STEP_RULES


class TestCreateSession:
    def test_person_wizard(self):
        session = create_wizard_session("person")

        assert session.definition is PERSON_WIZARD
        assert session.evaluator is person_evaluator
        assert session.license_engine is None
        assert session.navigator.mode == WizardMode.PERSON
        session.close()

    def test_application_wizard_gets_engine(self):
        session = create_wizard_session("application")

        assert session.evaluator is application_evaluator
        assert isinstance(session.license_engine, LicenseRuleEngine)
        assert session.navigator.license_engine is session.license_engine
        assert session.navigator.mode == WizardMode.APPLICATION
        session.close()

    def test_sessions_do_not_share_state(self):
        first = create_wizard_session("person")
        second = create_wizard_session("person")

        first.debouncer.get_immediate_validation("surname", "", 1)

        assert first.debouncer is not second.debouncer
        assert second.debouncer.cached_result("surname", 1).is_valid
        first.close()
        second.close()

    def test_existing_entity(self):
        session = create_wizard_session("person", existing_entity=True)

        assert session.navigator.state.existing_entity
        assert all(s.is_visited for s in session.navigator.state.steps)
        session.close()

    def test_custom_definition(self):
        definition = WizardDefinition(
            name="quick-lookup",
            default_mode=WizardMode.PERSON,
            steps=(
                StepDefinition(key="lookup", title="Lookup", rule_set=PERSON_STEP_RULES[0]),
                StepDefinition(key="done", title="Done"),
            ),
        )

        session = create_wizard_session(definition, debounce_seconds=0.05, step_cache_seconds=2.0)

        assert session.evaluator.step_indices == [0]
        assert session.debouncer.delay == 0.05
        assert session.debouncer.step_cache_seconds == 2.0
        assert session.navigator.state.total_steps == 2
        session.close()

    def test_unknown_wizard(self):
        with pytest.raises(KeyError):
            create_wizard_session("vehicle")

    def test_close(self):
        session = create_wizard_session("person")

        session.close()

        assert session.debouncer.closed


@pytest.mark.asyncio
class TestExistingLicenses:
    async def test_check_applied_to_navigator(self, application_session):
        check = await application_session.check_existing_licenses("P-2")

        assert check.held_categories == ["B"]
        assert application_session.navigator.license_check is check

    async def test_lookup_failure(self, category_table):
        lookup = InMemoryLicenseLookup(error=LicenseLookupError("timeout"))
        session = create_wizard_session("application", license_engine=LicenseRuleEngine(
            table=category_table, lookup=lookup,
        ))

        check = await session.check_existing_licenses("P-1")

        assert check.lookup_failed
        assert session.navigator.license_check.lookup_failed
        session.close()

    async def test_wizard_without_engine(self, person_session):
        with pytest.raises(RuntimeError):
            await person_session.check_existing_licenses("P-1")
