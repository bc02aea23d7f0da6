"""Fee computation — selects fee rows for an application from the rate table.

Categories are treated as a set: order and duplicates in the selection never
change the result, and each row is included at most once.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from intake.licensing.models import FeeLine
from intake.licensing.reference_data import FEE_POLICIES


def calculate_application_fees(
    application_type: str,
    categories: Iterable[str],
    fee_table: Iterable[FeeLine],
    today: Optional[date] = None,
) -> list[FeeLine]:
    """Fee rows payable for an application.

    Application types with a fee-type policy pay the rows that policy names;
    any other type pays the mandatory rows listed for it (or for every type).
    Rows outside their effective window are skipped.

    Returns:
        Matching rows sorted by fee type
    """
    app_type = str(getattr(application_type, "value", application_type))
    selected = frozenset(categories)
    today = today or date.today()
    policy = FEE_POLICIES.get(app_type)

    lines: list[FeeLine] = []
    for fee in fee_table:
        if not fee.is_effective(today):
            continue

        if policy is not None:
            if not policy.matches(fee.fee_type):
                continue
            if policy.filter_categories and not fee.applies_to(selected):
                continue
        else:
            type_match = not fee.applies_to_application_types or app_type in fee.applies_to_application_types
            if not (type_match and fee.is_mandatory and fee.applies_to(selected)):
                continue

        if fee not in lines:
            lines.append(fee)

    return sorted(lines, key=lambda fee: (fee.fee_type, fee.display_name, fee.amount))


def total_fees(lines: Iterable[FeeLine]) -> Decimal:
    return sum((line.amount for line in lines), Decimal("0"))
