"""Business Constraint Engine — licence category rules, external verification and fees.

Usage:
    from intake.licensing import LicenseRuleEngine

    engine = LicenseRuleEngine(lookup=backend_lookup)
    result = await engine.evaluate_application("NEW_LICENSE", ["B"], birth_date, person_id)
    suggestions = engine.get_suggested_categories(["C"])  # Caller decides whether to add them
"""

from intake.licensing.engine import (
    LicenseRuleEngine,
    calculate_age,
    get_license_engine,
    get_suggested_categories,
)
from intake.licensing.fees import calculate_application_fees, total_fees
from intake.licensing.loader import CategoryRuleTable, load_category_rules, load_fee_table
from intake.licensing.lookup import InMemoryLicenseLookup, LicenseLookup, derive_license_check
from intake.licensing.models import (
    ActiveLicense,
    ApplicationType,
    BusinessRuleViolation,
    BusinessValidationResult,
    ExistingLicenseCheck,
    ExternalLicenseDetails,
    FeeLine,
    LicenseCategoryRule,
    ViolationCode,
)

__all__ = [
    "LicenseRuleEngine",
    "calculate_age",
    "get_license_engine",
    "get_suggested_categories",
    "calculate_application_fees",
    "total_fees",
    "CategoryRuleTable",
    "load_category_rules",
    "load_fee_table",
    "InMemoryLicenseLookup",
    "LicenseLookup",
    "derive_license_check",
    "ActiveLicense",
    "ApplicationType",
    "BusinessRuleViolation",
    "BusinessValidationResult",
    "ExistingLicenseCheck",
    "ExternalLicenseDetails",
    "FeeLine",
    "LicenseCategoryRule",
    "ViolationCode",
]
