"""Reference data — application type groups, learner codes and fee-type policy.

Category minimum ages, prerequisites and fee amounts live in the bundled JSON
tables (see loader.py); this module holds the fixed policy that decides how
those tables are applied.
"""

from typing import NamedTuple

from intake.licensing.models import ApplicationType

# ──────────────────────────────────────────────────────────────────────
# APPLICATION TYPE GROUPS
# ──────────────────────────────────────────────────────────────────────

LEARNER_APPLICATION_TYPES: frozenset[str] = frozenset({
    ApplicationType.LEARNERS_PERMIT.value,
    ApplicationType.LEARNERS_PERMIT_DUPLICATE.value,
    ApplicationType.LEARNERS_PERMIT_CAPTURE.value,
})

# Applications that may not include categories the person already holds
FIRST_ISSUE_APPLICATION_TYPES: frozenset[str] = frozenset({
    ApplicationType.NEW_LICENSE.value,
    ApplicationType.LEARNERS_PERMIT.value,
})


# ──────────────────────────────────────────────────────────────────────
# LEARNER'S PERMIT CODES
# ──────────────────────────────────────────────────────────────────────

# Learner code held → learner codes it prepares for.
# Code 3 (any vehicle other than a motor cycle) also covers light vehicles.
LEARNER_CODE_COVERAGE: dict[str, frozenset[str]] = {
    "1": frozenset({"1"}),
    "2": frozenset({"2"}),
    "3": frozenset({"2", "3"}),
}


# ──────────────────────────────────────────────────────────────────────
# FEE-TYPE POLICY PER APPLICATION TYPE
# ──────────────────────────────────────────────────────────────────────


class FeePolicy(NamedTuple):
    """Which fee rows an application type pays."""

    contains: tuple[str, ...] = ()   # fee_type substrings that match
    exact: tuple[str, ...] = ()      # fee_type values that match exactly
    filter_categories: bool = True   # Apply the row's category list

    def matches(self, fee_type: str) -> bool:
        return fee_type in self.exact or any(part in fee_type for part in self.contains)


FEE_POLICIES: dict[str, FeePolicy] = {
    # Theory test only
    ApplicationType.LEARNERS_PERMIT.value: FeePolicy(contains=("theory_test",)),
    # Theory was paid on the learner's permit
    ApplicationType.NEW_LICENSE.value: FeePolicy(contains=("practical_test",), exact=("card_production",)),
    ApplicationType.RENEWAL.value: FeePolicy(exact=("card_production",), filter_categories=False),
    ApplicationType.DUPLICATE.value: FeePolicy(exact=("card_production",), filter_categories=False),
    ApplicationType.UPGRADE.value: FeePolicy(
        contains=("theory_test", "practical_test"),
        exact=("card_production",),
    ),
    ApplicationType.TEMPORARY_LICENSE.value: FeePolicy(contains=("temporary_license",)),
    ApplicationType.INTERNATIONAL_PERMIT.value: FeePolicy(exact=("international_permit",), filter_categories=False),
}
