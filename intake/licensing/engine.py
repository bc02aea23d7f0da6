"""License Rule Engine — orchestrates business rules, produces a BusinessValidationResult.

This is the entry point for licensing business validation. It resolves the
applicant's existing licences, runs every registered rule against one
ApplicationContext and groups the findings.

Usage:
    engine = LicenseRuleEngine(lookup=backend_lookup)
    result = await engine.evaluate_application("NEW_LICENSE", ["B"], "2001-04-12", person_id)
    if not result.is_valid:
        # Render result.age_violations / missing_prerequisites / invalid_combinations
"""

import time
from collections import deque
from datetime import date, datetime
from functools import lru_cache
from typing import Iterable, Optional, Union

import structlog

from intake.config import get_settings
from intake.licensing.age_validator import AgeRequirementRule
from intake.licensing.base import ApplicationContext, BaseBusinessRule
from intake.licensing.combination_validator import CombinationRule
from intake.licensing.external_verification_validator import ExternalVerificationRule
from intake.licensing.fees import calculate_application_fees
from intake.licensing.loader import CategoryRuleTable, load_category_rules, load_fee_table
from intake.licensing.lookup import LicenseLookup, derive_license_check
from intake.licensing.models import (
    BusinessRuleViolation,
    BusinessValidationResult,
    ExistingLicenseCheck,
    ExternalLicenseDetails,
    FeeLine,
)
from intake.licensing.prerequisite_validator import PrerequisiteRule

logger = structlog.get_logger()


def calculate_age(birth_date: Union[str, date, datetime], today: Optional[date] = None) -> int:
    """Whole years between birth_date and today.

    Raises:
        ValueError: birth_date is not an ISO date
    """
    if isinstance(birth_date, datetime):
        birth = birth_date.date()
    elif isinstance(birth_date, date):
        birth = birth_date
    else:
        birth = date.fromisoformat(str(birth_date).strip()[:10])

    today = today or date.today()
    age = today.year - birth.year
    if (today.month, today.day) < (birth.month, birth.day):
        age -= 1
    return age


def get_suggested_categories(
    categories: Iterable[str],
    table: CategoryRuleTable,
    held: Iterable[str] = (),
) -> list[str]:
    """Prerequisite categories that would have to be added to the selection.

    Walks prerequisite chains transitively and returns the smallest additions,
    in discovery order. The selection itself is never modified; applying the
    suggestions (and telling the user) is the caller's decision.
    """
    chosen = list(dict.fromkeys(categories))
    authorised_by_holdings = table.expand(held)
    suggestions: list[str] = []
    queue = deque(chosen)

    while queue:
        category = queue.popleft()
        rule = table.get(category)
        if rule is None or not rule.prerequisites:
            continue

        available = authorised_by_holdings | table.expand(c for c in chosen if c != category)
        available |= set(chosen) - {category}
        if table.prerequisites_met(category, available):
            continue

        if rule.prerequisite_mode == "any":
            wanted = [rule.prerequisites[0]]
        else:
            wanted = [p for p in rule.prerequisites if p not in available]

        for prereq in wanted:
            if prereq not in chosen:
                chosen.append(prereq)
                suggestions.append(prereq)
                queue.append(prereq)

    return suggestions


class LicenseRuleEngine:
    """Runs the licensing business rules and computes fees.

    Design principles:
        - Collect-all: every rule runs, every violation is reported
        - Never raises: any failure becomes the generic invalid result
        - Deterministic: existing licences are resolved before rules run
    """

    def __init__(
        self,
        table: Optional[CategoryRuleTable] = None,
        lookup: Optional[LicenseLookup] = None,
        fee_table: Optional[Iterable[FeeLine]] = None,
        renewal_window_months: Optional[int] = None,
    ):
        self.table = table if table is not None else load_category_rules()
        self.lookup = lookup
        self._fee_table = tuple(fee_table) if fee_table is not None else None
        self.renewal_window_months = (
            renewal_window_months
            if renewal_window_months is not None
            else get_settings().RENEWAL_WINDOW_MONTHS
        )
        self.rules: list[BaseBusinessRule] = self._default_rules()

    def _default_rules(self) -> list[BaseBusinessRule]:
        """Rule chain in execution order."""
        return [
            AgeRequirementRule(),
            PrerequisiteRule(),
            CombinationRule(),
            ExternalVerificationRule(),  # runs last; depends on a sound selection
        ]

    @property
    def fee_table(self) -> tuple[FeeLine, ...]:
        if self._fee_table is None:
            self._fee_table = load_fee_table()
        return self._fee_table

    # ── Evaluation ──

    def evaluate(
        self,
        application_type: str,
        categories: Iterable[str],
        birth_date: Union[str, date],
        existing: Optional[ExistingLicenseCheck] = None,
        person_id: str = "",
        external_learner_permit: Optional[ExternalLicenseDetails] = None,
        external_existing_license: Optional[ExternalLicenseDetails] = None,
        today: Optional[date] = None,
    ) -> BusinessValidationResult:
        """Evaluate every rule against already-resolved licence records.

        Args:
            application_type: ApplicationType value
            categories: Selected licence categories (order and duplicates ignored)
            birth_date: Applicant's date of birth (ISO string or date)
            existing: Result of check_existing_licenses; None means no records
            external_learner_permit: Clerk-captured learner's permit details
            external_existing_license: Clerk-captured driver's licence details
            today: Evaluation date, defaults to the current date

        Returns:
            BusinessValidationResult; never raises
        """
        start_time = time.perf_counter()
        today = today or date.today()
        rule_timings: dict[str, float] = {}

        try:
            context = ApplicationContext.build(
                application_type=application_type,
                categories=categories,
                age=calculate_age(birth_date, today),
                existing=existing or ExistingLicenseCheck.empty(person_id, self.table.categories),
                table=self.table,
                today=today,
                external_learner_permit=external_learner_permit,
                external_existing_license=external_existing_license,
            )

            violations: list[BusinessRuleViolation] = []
            requires_external = False

            for rule in self.rules:
                r_start = time.perf_counter()
                try:
                    violations.extend(rule.evaluate(context))
                    requires_external = requires_external or rule.needs_external_verification(context)
                finally:
                    rule_timings[rule.name] = round((time.perf_counter() - r_start) * 1000, 2)

            result = BusinessValidationResult.build(violations, requires_external)

        except Exception as e:
            logger.error(
                "business_evaluation_failed",
                application_type=str(application_type),
                error=str(e),
                error_type=type(e).__name__,
            )
            return BusinessValidationResult.failed()

        logger.info(
            "business_evaluation_complete",
            application_type=context.application_type,
            categories=list(context.categories),
            is_valid=result.is_valid,
            violation_count=len(result.violations),
            requires_external_verification=result.requires_external_verification,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            rule_timings=rule_timings,
        )
        return result

    async def evaluate_application(
        self,
        application_type: str,
        categories: Iterable[str],
        birth_date: Union[str, date],
        person_id: str,
        external_learner_permit: Optional[ExternalLicenseDetails] = None,
        external_existing_license: Optional[ExternalLicenseDetails] = None,
        today: Optional[date] = None,
    ) -> BusinessValidationResult:
        """Look up existing licences, then evaluate every rule."""
        existing = await self.check_existing_licenses(person_id, today=today)
        return self.evaluate(
            application_type,
            categories,
            birth_date,
            existing=existing,
            person_id=person_id,
            external_learner_permit=external_learner_permit,
            external_existing_license=external_existing_license,
            today=today,
        )

    async def check_existing_licenses(self, person_id: str, today: Optional[date] = None) -> ExistingLicenseCheck:
        """What the person already holds.

        A failing lookup is treated as "no records found" with lookup_failed
        set, which routes the application through external verification.
        """
        if self.lookup is None:
            return ExistingLicenseCheck.empty(person_id, self.table.categories)

        try:
            licenses = await self.lookup.fetch_licenses(person_id)
            return derive_license_check(
                person_id,
                licenses or [],
                self.table,
                today or date.today(),
                self.renewal_window_months,
            )
        except Exception as e:
            logger.warning(
                "license_lookup_failed",
                person_id=person_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return ExistingLicenseCheck.empty(person_id, self.table.categories, lookup_failed=True)

    # ── Helpers exposed to the wizard ──

    def get_suggested_categories(self, categories: Iterable[str], held: Iterable[str] = ()) -> list[str]:
        return get_suggested_categories(categories, self.table, held)

    def calculate_application_fees(
        self,
        application_type: str,
        categories: Iterable[str],
        fee_table: Optional[Iterable[FeeLine]] = None,
        today: Optional[date] = None,
    ) -> list[FeeLine]:
        return calculate_application_fees(
            application_type,
            categories,
            fee_table if fee_table is not None else self.fee_table,
            today=today,
        )

    def add_rule(self, rule: BaseBusinessRule) -> None:
        """Add a custom rule to the chain."""
        self.rules.append(rule)

    def remove_rule(self, rule_name: str) -> None:
        """Remove a rule by name."""
        self.rules = [r for r in self.rules if r.name != rule_name]


@lru_cache
def get_license_engine() -> LicenseRuleEngine:
    """Shared engine over the configured tables, without a licence lookup."""
    return LicenseRuleEngine()
