"""External Verification Rule — licences the system has no digital record of.

NEW_LICENSE needs a learner's permit, RENEWAL needs the renewed categories
held, UPGRADE needs the prerequisites held. When internal records do not
cover the requirement, the clerk-captured licence details decide.
"""

from typing import Callable, NamedTuple, Optional

from intake.licensing.base import ApplicationContext, BaseBusinessRule
from intake.licensing.models import (
    ApplicationType,
    BusinessRuleViolation,
    ExternalLicenseDetails,
    ViolationCode,
    ViolationKind,
)


class _Expectation(NamedTuple):
    subject: str
    external: Optional[ExternalLicenseDetails]
    code: ViolationCode
    message: str
    missing: list[str]
    covers: Callable[[ExternalLicenseDetails, str], bool]


class ExternalVerificationRule(BaseBusinessRule):
    """Validates externally supplied licence details when records fall short."""

    @property
    def name(self) -> str:
        return "ExternalVerificationRule"

    def needs_external_verification(self, context: ApplicationContext) -> bool:
        return bool(self._pending(context))

    def _pending(self, context: ApplicationContext) -> list[str]:
        """Selected categories internal records cannot vouch for."""
        table = context.table
        app_type = context.application_type

        if app_type == ApplicationType.NEW_LICENSE.value:
            needing = [c for c in context.known_categories if table.get(c).requires_learners_permit]
            permit = context.existing.learners_permit
            if permit is not None and permit.is_valid and permit.expiry_date >= context.today:
                needing = [c for c in needing if not table.learner_permit_covers(permit.categories, c)]
            return needing

        if app_type == ApplicationType.RENEWAL.value:
            recorded = table.expand(context.existing.recorded_categories)
            return [c for c in context.known_categories if c not in recorded]

        if app_type == ApplicationType.UPGRADE.value:
            held = context.held
            return [c for c in context.known_categories if not table.prerequisites_met(c, held)]

        return []

    def _expectation(self, context: ApplicationContext, pending: list[str]) -> _Expectation:
        table = context.table
        app_type = context.application_type
        listed = ", ".join(pending)

        if app_type == ApplicationType.NEW_LICENSE.value:
            return _Expectation(
                subject="learner's permit",
                external=context.external_learner_permit,
                code=ViolationCode.LEARNER_PERMIT_REQUIRED,
                message=f"Valid learner's permit required for selected categories: {listed}",
                missing=pending,
                covers=lambda ext, c: table.learner_permit_covers(ext.categories, c),
            )

        if app_type == ApplicationType.RENEWAL.value:
            return _Expectation(
                subject="licence",
                external=context.external_existing_license,
                code=ViolationCode.EXISTING_LICENSE_REQUIRED,
                message=f"An existing licence for {listed} is required for renewal",
                missing=pending,
                covers=lambda ext, c: c in table.expand(ext.categories),
            )

        held = context.held
        prerequisites: list[str] = []
        for category in pending:
            prerequisites.extend(
                p for p in table.get(category).prerequisites if p not in held and p not in prerequisites
            )
        return _Expectation(
            subject="licence",
            external=context.external_existing_license,
            code=ViolationCode.EXISTING_LICENSE_REQUIRED,
            message=f"An existing licence with {', '.join(prerequisites)} is required to upgrade to {listed}",
            missing=prerequisites,
            covers=lambda ext, c: table.prerequisites_met(c, held | table.expand(ext.categories)),
        )

    def evaluate(self, context: ApplicationContext) -> list[BusinessRuleViolation]:
        pending = self._pending(context)
        if not pending:
            return []

        expected = self._expectation(context, pending)
        external = expected.external

        if external is None:
            return [self._violation(
                code=expected.code,
                kind=ViolationKind.VERIFICATION,
                message=expected.message,
                missing=expected.missing,
            )]

        violations = []

        if not external.verified_by_clerk:
            violations.append(self._violation(
                code=ViolationCode.EXTERNAL_NOT_VERIFIED,
                kind=ViolationKind.VERIFICATION,
                message=f"External {expected.subject} has not been verified by a clerk",
            ))

        if not external.license_number.strip():
            violations.append(self._violation(
                code=ViolationCode.EXTERNAL_NUMBER_MISSING,
                kind=ViolationKind.VERIFICATION,
                message=f"External {expected.subject} number is required",
            ))

        if external.expiry_date is None:
            violations.append(self._violation(
                code=ViolationCode.EXTERNAL_EXPIRED,
                kind=ViolationKind.VERIFICATION,
                message=f"External {expected.subject} expiry date is required",
            ))
        elif external.expiry_date < context.today:
            violations.append(self._violation(
                code=ViolationCode.EXTERNAL_EXPIRED,
                kind=ViolationKind.VERIFICATION,
                message=f"External {expected.subject} has expired",
                missing=expected.missing,
            ))

        uncovered = [c for c in pending if not expected.covers(external, c)]
        if uncovered:
            violations.append(self._violation(
                code=ViolationCode.EXTERNAL_CATEGORIES_NOT_COVERED,
                kind=ViolationKind.VERIFICATION,
                message=f"External {expected.subject} does not cover: {', '.join(uncovered)}",
                missing=expected.missing,
            ))

        return violations
