"""Base business rule — abstract class implementing the Strategy Pattern.

Each rule is a standalone, independently testable unit.
New rules are added without modifying the engine.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from intake.licensing.loader import CategoryRuleTable
from intake.licensing.models import (
    BusinessRuleViolation,
    ExistingLicenseCheck,
    ExternalLicenseDetails,
    ViolationCode,
    ViolationKind,
)


@dataclass(frozen=True)
class ApplicationContext:
    """Everything a rule may look at, resolved once per evaluation."""

    application_type: str
    categories: tuple[str, ...]   # Selection, de-duplicated, order kept
    age: int
    existing: ExistingLicenseCheck
    table: CategoryRuleTable
    today: date
    external_learner_permit: Optional[ExternalLicenseDetails] = None
    external_existing_license: Optional[ExternalLicenseDetails] = None

    @classmethod
    def build(
        cls,
        application_type: str,
        categories: Iterable[str],
        age: int,
        existing: ExistingLicenseCheck,
        table: CategoryRuleTable,
        today: date,
        external_learner_permit: Optional[ExternalLicenseDetails] = None,
        external_existing_license: Optional[ExternalLicenseDetails] = None,
    ) -> "ApplicationContext":
        return cls(
            application_type=str(getattr(application_type, "value", application_type)),
            categories=tuple(dict.fromkeys(categories)),
            age=age,
            existing=existing,
            table=table,
            today=today,
            external_learner_permit=external_learner_permit,
            external_existing_license=external_existing_license,
        )

    @property
    def selected(self) -> frozenset[str]:
        return frozenset(self.categories)

    @property
    def known_categories(self) -> list[str]:
        return [c for c in self.categories if c in self.table]

    @property
    def held(self) -> set[str]:
        """Categories authorised by valid licences on record."""
        return self.table.expand(self.existing.held_categories)


class BaseBusinessRule(ABC):
    """Abstract base for all licensing business rules.

    Contract:
        - evaluate() is deterministic: same context → same output
        - evaluate() returns a list of BusinessRuleViolation (empty = no issues)
        - No network calls; existing licences are resolved before rules run
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name for logging."""
        ...

    @abstractmethod
    def evaluate(self, context: ApplicationContext) -> list[BusinessRuleViolation]:
        """Run the rule against one application context."""
        ...

    def needs_external_verification(self, context: ApplicationContext) -> bool:
        """Whether internal records cannot settle this rule on their own."""
        return False

    # ── Helper Methods ──

    def _violation(
        self,
        code: ViolationCode,
        kind: ViolationKind,
        message: str,
        category: Optional[str] = None,
        missing: Optional[list[str]] = None,
        required_age: Optional[int] = None,
        current_age: Optional[int] = None,
    ) -> BusinessRuleViolation:
        """Convenience method to create a BusinessRuleViolation."""
        return BusinessRuleViolation(
            code=code,
            kind=kind,
            message=message,
            category=category,
            missing=missing or [],
            required_age=required_age,
            current_age=current_age,
        )
