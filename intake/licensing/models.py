"""Licensing models — category rules, licence records, fee rows and business results."""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

GENERIC_FAILURE_MESSAGE = "Validation failed — please check requirements"
VALID_APPLICATION_MESSAGE = "Application validation passed"


class ApplicationType(str, Enum):
    """Kinds of licence application handled by the intake wizard."""

    NEW_LICENSE = "NEW_LICENSE"
    LEARNERS_PERMIT = "LEARNERS_PERMIT"
    LEARNERS_PERMIT_DUPLICATE = "LEARNERS_PERMIT_DUPLICATE"
    RENEWAL = "RENEWAL"
    DUPLICATE = "DUPLICATE"
    UPGRADE = "UPGRADE"
    TEMPORARY_LICENSE = "TEMPORARY_LICENSE"
    INTERNATIONAL_PERMIT = "INTERNATIONAL_PERMIT"
    DRIVERS_LICENSE_CAPTURE = "DRIVERS_LICENSE_CAPTURE"
    LEARNERS_PERMIT_CAPTURE = "LEARNERS_PERMIT_CAPTURE"
    PROFESSIONAL_LICENSE = "PROFESSIONAL_LICENSE"
    FOREIGN_CONVERSION = "FOREIGN_CONVERSION"


class LicenseType(str, Enum):
    LEARNERS_PERMIT = "LEARNERS_PERMIT"
    DRIVERS_LICENSE = "DRIVERS_LICENSE"


class LicenseStatus(str, Enum):
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    SUSPENDED = "SUSPENDED"
    REVOKED = "REVOKED"


class ViolationKind(str, Enum):
    """Group a violation is rendered under."""

    AGE = "age"
    PREREQUISITE = "prerequisite"
    COMBINATION = "combination"
    VERIFICATION = "verification"
    SYSTEM = "system"


class ViolationCode(str, Enum):
    """Deterministic codes for every business rule.

    Naming convention: SCOPE_SPECIFIC_ISSUE
    """

    AGE_BELOW_MINIMUM = "AGE_BELOW_MINIMUM"

    PREREQUISITE_MISSING = "PREREQUISITE_MISSING"

    CATEGORY_UNKNOWN = "CATEGORY_UNKNOWN"
    CATEGORY_NOT_FOR_LEARNERS = "CATEGORY_NOT_FOR_LEARNERS"
    LEARNER_CODE_NOT_ALLOWED = "LEARNER_CODE_NOT_ALLOWED"
    CATEGORY_SUPERSEDED = "CATEGORY_SUPERSEDED"
    CATEGORY_ALREADY_HELD = "CATEGORY_ALREADY_HELD"

    LEARNER_PERMIT_REQUIRED = "LEARNER_PERMIT_REQUIRED"
    EXISTING_LICENSE_REQUIRED = "EXISTING_LICENSE_REQUIRED"
    EXTERNAL_NOT_VERIFIED = "EXTERNAL_NOT_VERIFIED"
    EXTERNAL_NUMBER_MISSING = "EXTERNAL_NUMBER_MISSING"
    EXTERNAL_EXPIRED = "EXTERNAL_EXPIRED"
    EXTERNAL_CATEGORIES_NOT_COVERED = "EXTERNAL_CATEGORIES_NOT_COVERED"

    EVALUATION_FAILED = "EVALUATION_FAILED"


# ── Rule table rows ──


class LicenseCategoryRule(BaseModel):
    """One row of the licence category rule table."""

    model_config = ConfigDict(frozen=True)

    category: str
    minimum_age: int = Field(ge=0)
    prerequisites: tuple[str, ...] = ()
    prerequisite_mode: Literal["all", "any"] = "all"
    supersedes: tuple[str, ...] = ()
    description: str = ""
    requires_learners_permit: bool = False
    allows_learners_permit: bool = False
    learner_code: Optional[str] = None  # Learner's permit code that prepares for this category
    learner_only: bool = False          # Category is itself a learner's permit code


class FeeLine(BaseModel):
    """One row of the fee rate table."""

    model_config = ConfigDict(frozen=True)

    fee_type: str
    display_name: str
    description: str = ""
    amount: Decimal = Field(ge=0)
    currency: str = "MGA"
    applies_to_categories: tuple[str, ...] = ()
    applies_to_application_types: tuple[str, ...] = ()
    is_mandatory: bool = True
    effective_from: Optional[date] = None
    effective_until: Optional[date] = None

    def is_effective(self, today: date) -> bool:
        if self.effective_from and today < self.effective_from:
            return False
        if self.effective_until and today > self.effective_until:
            return False
        return True

    def applies_to(self, categories: frozenset[str]) -> bool:
        """Empty category list means the fee applies to every category."""
        if not self.applies_to_categories:
            return True
        return any(cat in categories for cat in self.applies_to_categories)


# ── Licence records ──


class ActiveLicense(BaseModel):
    """A licence or learner's permit recorded in the system."""

    id: str
    license_number: str
    categories: list[str]
    license_type: LicenseType
    issue_date: date
    expiry_date: date
    status: LicenseStatus = LicenseStatus.ACTIVE
    is_valid: bool = True


class ExternalLicenseDetails(BaseModel):
    """Licence details captured by a clerk from a paper/foreign document."""

    license_number: str = ""
    license_type: LicenseType
    categories: list[str] = Field(default_factory=list)
    issue_date: Optional[date] = None
    expiry_date: Optional[date] = None
    issuing_location: str = ""
    verified_by_clerk: bool = False
    verification_notes: Optional[str] = None


class ExistingLicenseCheck(BaseModel):
    """What a person already holds and what they may apply for next."""

    person_id: str
    has_active_licenses: bool = False
    active_licenses: list[ActiveLicense] = Field(default_factory=list)
    has_learners_permit: bool = False
    learners_permit: Optional[ActiveLicense] = None
    can_apply_for: list[str] = Field(default_factory=list)
    must_renew: list[str] = Field(default_factory=list)
    can_upgrade_to: list[str] = Field(default_factory=list)
    lookup_failed: bool = False

    @classmethod
    def empty(cls, person_id: str, can_apply_for: Optional[list[str]] = None,
              lookup_failed: bool = False) -> "ExistingLicenseCheck":
        """No records found (or the lookup could not be performed)."""
        return cls(
            person_id=person_id,
            can_apply_for=list(can_apply_for or []),
            lookup_failed=lookup_failed,
        )

    @property
    def held_categories(self) -> list[str]:
        """Categories on valid driver's licences."""
        held: list[str] = []
        for license in self.active_licenses:
            if license.license_type == LicenseType.DRIVERS_LICENSE and license.is_valid:
                held.extend(c for c in license.categories if c not in held)
        return held

    @property
    def recorded_categories(self) -> list[str]:
        """Categories on any driver's licence on record, expired ones included."""
        recorded: list[str] = []
        for license in self.active_licenses:
            if license.license_type == LicenseType.DRIVERS_LICENSE:
                recorded.extend(c for c in license.categories if c not in recorded)
        return recorded


# ── Business results ──


class AgeViolation(BaseModel):
    category: str
    required_age: int
    current_age: int


class BusinessRuleViolation(BaseModel):
    """A single business rule finding, tied to a category where possible."""

    model_config = ConfigDict(use_enum_values=True)

    code: ViolationCode
    kind: ViolationKind
    message: str
    category: Optional[str] = None
    required_age: Optional[int] = None
    current_age: Optional[int] = None
    missing: list[str] = Field(default_factory=list)


class BusinessValidationResult(BaseModel):
    """Outcome of evaluating business rules for an application."""

    is_valid: bool
    message: str
    age_violations: list[AgeViolation] = Field(default_factory=list)
    missing_prerequisites: list[str] = Field(default_factory=list)
    invalid_combinations: list[str] = Field(default_factory=list)
    requires_external_verification: bool = False
    violations: list[BusinessRuleViolation] = Field(default_factory=list)

    @classmethod
    def build(
        cls,
        violations: list[BusinessRuleViolation],
        requires_external_verification: bool = False,
    ) -> "BusinessValidationResult":
        """Group violations into the structured lists the UI renders."""
        age_violations = [
            AgeViolation(category=v.category, required_age=v.required_age, current_age=v.current_age)
            for v in violations
            if v.kind == ViolationKind.AGE
        ]

        missing: list[str] = []
        for v in violations:
            if v.kind in (ViolationKind.PREREQUISITE, ViolationKind.VERIFICATION):
                missing.extend(c for c in v.missing if c not in missing)

        combinations = [v.message for v in violations if v.kind == ViolationKind.COMBINATION]

        if violations:
            message = "; ".join(v.message for v in violations)
        else:
            message = VALID_APPLICATION_MESSAGE

        return cls(
            is_valid=not violations,
            message=message,
            age_violations=age_violations,
            missing_prerequisites=missing,
            invalid_combinations=combinations,
            requires_external_verification=requires_external_verification,
            violations=violations,
        )

    @classmethod
    def failed(cls) -> "BusinessValidationResult":
        """Generic invalid result used when evaluation itself broke."""
        return cls(
            is_valid=False,
            message=GENERIC_FAILURE_MESSAGE,
            violations=[BusinessRuleViolation(
                code=ViolationCode.EVALUATION_FAILED,
                kind=ViolationKind.SYSTEM,
                message=GENERIC_FAILURE_MESSAGE,
            )],
        )
