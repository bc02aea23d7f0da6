"""Age Requirement Rule — minimum age per licence category."""

from intake.licensing.base import ApplicationContext, BaseBusinessRule
from intake.licensing.models import BusinessRuleViolation, ViolationCode, ViolationKind


class AgeRequirementRule(BaseBusinessRule):
    """Records one violation per selected category the applicant is too young for."""

    @property
    def name(self) -> str:
        return "AgeRequirementRule"

    def evaluate(self, context: ApplicationContext) -> list[BusinessRuleViolation]:
        violations = []

        for category in context.known_categories:
            rule = context.table.get(category)
            if context.age < rule.minimum_age:
                violations.append(self._violation(
                    code=ViolationCode.AGE_BELOW_MINIMUM,
                    kind=ViolationKind.AGE,
                    message=(
                        f"Minimum age for category {category} is {rule.minimum_age} years "
                        f"(applicant is {context.age})"
                    ),
                    category=category,
                    required_age=rule.minimum_age,
                    current_age=context.age,
                ))

        return violations
