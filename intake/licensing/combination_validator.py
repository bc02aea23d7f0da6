"""Combination Rule — category selections that cannot go on one application."""

from intake.licensing.base import ApplicationContext, BaseBusinessRule
from intake.licensing.models import BusinessRuleViolation, ViolationCode, ViolationKind
from intake.licensing.reference_data import FIRST_ISSUE_APPLICATION_TYPES, LEARNER_APPLICATION_TYPES


class CombinationRule(BaseBusinessRule):
    """Rejects invalid selections instead of silently dropping categories.

    Checks:
        - Unknown categories
        - Categories unavailable on learner's permit applications
        - Learner's permit codes on non-learner applications
        - Categories already authorised by another selected category
        - Categories already held on first-issue applications
    """

    @property
    def name(self) -> str:
        return "CombinationRule"

    def evaluate(self, context: ApplicationContext) -> list[BusinessRuleViolation]:
        violations = []
        table = context.table
        is_learner_application = context.application_type in LEARNER_APPLICATION_TYPES

        # 1. Unknown categories
        for category in context.categories:
            if category not in table:
                violations.append(self._violation(
                    code=ViolationCode.CATEGORY_UNKNOWN,
                    kind=ViolationKind.COMBINATION,
                    message=f"Unknown licence category: {category}",
                    category=category,
                ))

        # 2. Learner / non-learner availability
        for category in context.known_categories:
            rule = table.get(category)
            if is_learner_application and not rule.allows_learners_permit:
                violations.append(self._violation(
                    code=ViolationCode.CATEGORY_NOT_FOR_LEARNERS,
                    kind=ViolationKind.COMBINATION,
                    message=f"Category {category} is not available on a learner's permit application",
                    category=category,
                ))
            elif not is_learner_application and rule.learner_only:
                violations.append(self._violation(
                    code=ViolationCode.LEARNER_CODE_NOT_ALLOWED,
                    kind=ViolationKind.COMBINATION,
                    message=f"Learner's permit code {category} is only valid on a learner's permit application",
                    category=category,
                ))

        # 3. Redundant selections (prerequisite chains are allowed together)
        for category in context.known_categories:
            for other in context.known_categories:
                if other == category or category not in table.authorised_by(other):
                    continue
                if category in table.transitive_prerequisites(other):
                    continue
                violations.append(self._violation(
                    code=ViolationCode.CATEGORY_SUPERSEDED,
                    kind=ViolationKind.COMBINATION,
                    message=f"Category {category} is already authorised by category {other}",
                    category=category,
                ))
                break

        # 4. Categories already held
        if context.application_type in FIRST_ISSUE_APPLICATION_TYPES:
            held = set(context.existing.held_categories)
            duplicates = [c for c in context.categories if c in held]
            if duplicates:
                violations.append(self._violation(
                    code=ViolationCode.CATEGORY_ALREADY_HELD,
                    kind=ViolationKind.COMBINATION,
                    message=(
                        f"Cannot apply for categories already held: {', '.join(duplicates)}. "
                        "Use RENEWAL or UPGRADE instead."
                    ),
                ))

        return violations
