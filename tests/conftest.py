"""Pytest configuration and fixtures for the intake engine tests.

Provides rule tables, a fixed evaluation date, complete step data for both
wizards and ready-made wizard sessions.
"""

from datetime import date
from typing import Optional

import pytest

from intake.licensing import (
    ActiveLicense,
    CategoryRuleTable,
    InMemoryLicenseLookup,
    LicenseRuleEngine,
    load_category_rules,
)
from intake.licensing.models import LicenseType
from intake.wizard import create_wizard_session

TODAY = date(2025, 6, 15)


def make_license(
    categories: list[str],
    license_type: LicenseType = LicenseType.DRIVERS_LICENSE,
    expiry_date: date = date(2099, 12, 31),
    is_valid: bool = True,
    license_id: Optional[str] = None,
) -> ActiveLicense:
    return ActiveLicense(
        id=license_id or f"{license_type.value}-{'-'.join(categories)}",
        license_number=f"LN-{'-'.join(categories)}",
        categories=categories,
        license_type=license_type,
        issue_date=date(2020, 1, 1),
        expiry_date=expiry_date,
        is_valid=is_valid,
    )


# ── Rule tables ──────────────────────────────────────────────────


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture(scope="session")
def category_table() -> CategoryRuleTable:
    """The bundled licence category table."""
    return load_category_rules()


@pytest.fixture
def simple_table() -> CategoryRuleTable:
    """Three-category table: B requires A, C has a minimum age of 18."""
    return CategoryRuleTable.from_rows(
        [
            {"category": "A", "minimum_age": 18},
            {"category": "B", "minimum_age": 18, "prerequisites": ["A"]},
            {"category": "C", "minimum_age": 18},
        ],
        source="simple",
    )


@pytest.fixture
def license_factory():
    return make_license


@pytest.fixture
def engine(category_table) -> LicenseRuleEngine:
    return LicenseRuleEngine(table=category_table)


# ── Step data ────────────────────────────────────────────────────


@pytest.fixture
def person_step_data() -> dict[int, dict]:
    """Valid data for every step of the person wizard."""
    return {
        0: {"document_number": "123456789"},
        1: {
            "surname": "Rakoto",
            "first_name": "Jean",
            "person_nature": "MALE",
            "birth_date": "1990-05-01",
            "nationality_code": "MG",
            "preferred_language": "fr",
        },
        2: {
            "email_address": "jean.rakoto@example.mg",
            "cell_phone": "0815598453",
            "cell_phone_country_code": "+261",
        },
        3: {
            "aliases": [
                {
                    "document_type": "NATIONAL_ID",
                    "document_number": "123456789",
                    "name_in_document": "Jean Rakoto",
                    "country_of_issue": "MG",
                    "is_primary": True,
                },
            ],
        },
        4: {
            "addresses": [
                {
                    "address_type": "RESIDENTIAL",
                    "street_line1": "12 Rue Principale",
                    "locality": "Analakely",
                    "town": "Antananarivo",
                    "province_code": "T",
                    "postal_code": "101",
                    "country": "MG",
                },
            ],
        },
        5: {},
    }


@pytest.fixture
def external_learner_permit() -> dict:
    return {
        "license_number": "LP-2024-001",
        "license_type": "LEARNERS_PERMIT",
        "categories": ["2"],
        "expiry_date": "2099-01-01",
        "verified_by_clerk": True,
    }


@pytest.fixture
def application_step_data(external_learner_permit) -> dict[int, dict]:
    """Valid data for every step of the application wizard (new B licence)."""
    business_inputs = {
        "person_id": "P-1",
        "birth_date": "1990-05-01",
        "application_type": "NEW_LICENSE",
        "license_categories": ["B"],
    }
    return {
        0: {"person_id": "P-1", "birth_date": "1990-05-01"},
        1: {"application_type": "NEW_LICENSE", "license_categories": ["B"], "is_urgent": False},
        2: {
            **business_inputs,
            "medical_certificate_verified": True,
            "vision_test_passed": True,
            "external_learner_permit": external_learner_permit,
        },
        3: {"photo": "photo.jpg", "signature": "signature.png"},
        4: {},
    }


# ── Sessions ─────────────────────────────────────────────────────


@pytest.fixture
def person_session():
    session = create_wizard_session("person", debounce_seconds=0.02)
    yield session
    session.close()


@pytest.fixture
def license_lookup(license_factory) -> InMemoryLicenseLookup:
    """P-1 holds a learner's permit for code 2; P-2 holds a B licence."""
    return InMemoryLicenseLookup({
        "P-1": [license_factory(["2"], license_type=LicenseType.LEARNERS_PERMIT)],
        "P-2": [license_factory(["B"])],
    })


@pytest.fixture
def application_session(category_table, license_lookup):
    session = create_wizard_session(
        "application",
        license_engine=LicenseRuleEngine(table=category_table, lookup=license_lookup),
        debounce_seconds=0.02,
    )
    yield session
    session.close()
