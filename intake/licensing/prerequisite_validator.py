"""Prerequisite Rule — categories that must be held or applied for together."""

from intake.licensing.base import ApplicationContext, BaseBusinessRule
from intake.licensing.models import ApplicationType, BusinessRuleViolation, ViolationCode, ViolationKind


class PrerequisiteRule(BaseBusinessRule):
    """Checks declared prerequisites against holdings plus the concurrent selection.

    Holdings and selection are both expanded through the superseding table,
    so a held C1 satisfies a B prerequisite. Upgrades are left to
    ExternalVerificationRule: their prerequisites must already be held.
    """

    @property
    def name(self) -> str:
        return "PrerequisiteRule"

    def evaluate(self, context: ApplicationContext) -> list[BusinessRuleViolation]:
        violations = []
        if context.application_type == ApplicationType.UPGRADE.value:
            return violations

        for category in context.known_categories:
            rule = context.table.get(category)
            # A category never satisfies its own prerequisites through what it supersedes
            others = [c for c in context.known_categories if c != category]
            available = context.held | context.table.expand(others)
            if context.table.prerequisites_met(category, available):
                continue

            if rule.prerequisite_mode == "any":
                missing = list(rule.prerequisites)
                message = f"Category {category} requires one of: {', '.join(missing)}"
            else:
                missing = [p for p in rule.prerequisites if p not in available]
                message = f"Category {category} requires category {', '.join(missing)}"

            violations.append(self._violation(
                code=ViolationCode.PREREQUISITE_MISSING,
                kind=ViolationKind.PREREQUISITE,
                message=message,
                category=category,
                missing=missing,
            ))

        return violations
