"""Existing licence lookup — the one asynchronous collaborator of the engine.

The engine only depends on the LicenseLookup protocol; the backend-facing
implementation lives with the caller. derive_license_check() turns the raw
licence records into an ExistingLicenseCheck.
"""

import calendar
from datetime import date
from typing import Optional, Protocol

from intake.licensing.loader import CategoryRuleTable
from intake.licensing.models import ActiveLicense, ExistingLicenseCheck, LicenseType


class LicenseLookup(Protocol):
    """Fetches the licences and permits recorded for a person.

    Implementations return None (or an empty list) when nothing is on record
    and raise LicenseLookupError when the backend cannot be reached.
    """

    async def fetch_licenses(self, person_id: str) -> Optional[list[ActiveLicense]]:
        ...


class InMemoryLicenseLookup:
    """LicenseLookup backed by a dict of records per person."""

    def __init__(self, records: Optional[dict[str, list[ActiveLicense]]] = None,
                 error: Optional[Exception] = None):
        self.records = records or {}
        self.error = error
        self.calls: list[str] = []

    async def fetch_licenses(self, person_id: str) -> Optional[list[ActiveLicense]]:
        self.calls.append(person_id)
        if self.error is not None:
            raise self.error
        return self.records.get(person_id)


def add_months(day: date, months: int) -> date:
    """Same day `months` later, clamped to the end of shorter months."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def derive_license_check(
    person_id: str,
    licenses: list[ActiveLicense],
    table: CategoryRuleTable,
    today: date,
    renewal_window_months: int = 6,
) -> ExistingLicenseCheck:
    """Summarise licence records into what the person may apply for next."""
    driving = [lic for lic in licenses if lic.license_type == LicenseType.DRIVERS_LICENSE]
    permits = [
        lic for lic in licenses
        if lic.license_type == LicenseType.LEARNERS_PERMIT and lic.is_valid and lic.expiry_date >= today
    ]
    learners_permit = max(permits, key=lambda lic: lic.expiry_date) if permits else None

    held: list[str] = []
    for lic in driving:
        if lic.is_valid:
            held.extend(c for c in lic.categories if c not in held)
    authorised = table.expand(held)

    # Licences expiring within the renewal window
    renewal_cutoff = add_months(today, renewal_window_months)
    must_renew: list[str] = []
    for lic in driving:
        if lic.is_valid and lic.expiry_date <= renewal_cutoff:
            must_renew.extend(c for c in lic.categories if c not in must_renew)

    can_upgrade_to = [
        category for category in table.driving_categories
        if category not in authorised
        and table.get(category).prerequisites
        and table.prerequisites_met(category, authorised)
    ]

    return ExistingLicenseCheck(
        person_id=person_id,
        has_active_licenses=any(lic.is_valid for lic in driving),
        active_licenses=licenses,
        has_learners_permit=learners_permit is not None,
        learners_permit=learners_permit,
        can_apply_for=[c for c in table.categories if c not in held],
        must_renew=must_renew,
        can_upgrade_to=can_upgrade_to,
    )
