"""Declared field rules for the person and application wizards.

Step indices are fixed for a session. A step without an entry here has no
field rules and always validates.
"""

from intake.licensing.models import ApplicationType
from intake.validators.rules import FieldKind, FieldRule, NestedArrayRule, RequiredWhen, StepRuleSet

# ──────────────────────────────────────────────────────────────────────
# PERSON WIZARD
# ──────────────────────────────────────────────────────────────────────

PERSON_LOOKUP = StepRuleSet(
    key="lookup",
    field_rules=(
        FieldRule(
            name="document_number",
            label="ID number",
            required=True,
            min_length=9,
            pattern=r"^\d+$",
            pattern_message="ID number must contain only digits",
        ),
    ),
)

PERSON_DETAILS = StepRuleSet(
    key="details",
    field_rules=(
        FieldRule(name="surname", required=True, min_length=2, max_length=50),
        FieldRule(name="first_name", required=True, min_length=2, max_length=50),
        FieldRule(name="middle_name", max_length=50),
        FieldRule(name="person_nature", label="Gender", required=True, choices=("MALE", "FEMALE")),
        FieldRule(name="birth_date", label="Date of birth", kind=FieldKind.DATE, required=True),
        FieldRule(name="nationality_code", label="Nationality", required=True, min_length=2),
        FieldRule(name="preferred_language", label="Language", required=True, min_length=2),
        FieldRule(name="email_address", label="Email address", kind=FieldKind.EMAIL, max_length=100),
    ),
)

PERSON_CONTACT = StepRuleSet(
    key="contact",
    field_rules=(
        FieldRule(name="email_address", label="Email address", kind=FieldKind.EMAIL,
                  required=True, max_length=100),
        FieldRule(
            name="cell_phone",
            label="Cell phone number",
            required=True,
            pattern=r"^0\d{9}$",
            pattern_message="Cell phone must be exactly 10 digits starting with 0 (e.g., 0815598453)",
        ),
        FieldRule(name="cell_phone_country_code", label="Country code", required=True),
    ),
)

PERSON_DOCUMENTS = StepRuleSet(
    key="documents",
    array_rules=(
        NestedArrayRule(
            name="aliases",
            item_label="identification document",
            item_rules=(
                FieldRule(name="document_type", required=True),
                FieldRule(name="document_number", required=True, min_length=3),
                FieldRule(name="name_in_document", label="Name on document", required=True, min_length=2),
                FieldRule(name="country_of_issue", required=True),
                FieldRule(name="is_primary", kind=FieldKind.BOOLEAN),
                FieldRule(name="is_current", kind=FieldKind.BOOLEAN),
                FieldRule(
                    name="expiry_date",
                    kind=FieldKind.DATE,
                    required_when=RequiredWhen(sibling="document_type", equals=("PASSPORT",)),
                ),
            ),
        ),
    ),
)

PERSON_ADDRESS = StepRuleSet(
    key="address",
    array_rules=(
        NestedArrayRule(
            name="addresses",
            item_label="address",
            item_rules=(
                FieldRule(name="address_type", required=True),
                FieldRule(name="street_line1", label="Address line 1", required=True, min_length=5),
                FieldRule(name="street_line2", label="Address line 2"),
                FieldRule(name="locality", required=True, min_length=2),
                FieldRule(name="town", required=True, min_length=2),
                FieldRule(name="province_code", label="Province", required=True),
                FieldRule(
                    name="postal_code",
                    required=True,
                    pattern=r"^\d{3}$",
                    pattern_message="Postal code must be exactly 3 digits",
                ),
                FieldRule(name="country", required=True),
                FieldRule(name="is_primary", kind=FieldKind.BOOLEAN),
            ),
        ),
    ),
)

PERSON_STEP_RULES: dict[int, StepRuleSet] = {
    0: PERSON_LOOKUP,
    1: PERSON_DETAILS,
    2: PERSON_CONTACT,
    3: PERSON_DOCUMENTS,
    4: PERSON_ADDRESS,
    # 5: review, no field rules
}


# ──────────────────────────────────────────────────────────────────────
# APPLICATION WIZARD
# ──────────────────────────────────────────────────────────────────────

APPLICATION_TYPES = tuple(t.value for t in ApplicationType)

APPLICATION_APPLICANT = StepRuleSet(
    key="applicant",
    field_rules=(
        FieldRule(name="person_id", label="Applicant", required=True),
        FieldRule(name="birth_date", label="Date of birth", kind=FieldKind.DATE, required=True),
    ),
)

APPLICATION_DETAILS = StepRuleSet(
    key="application_details",
    field_rules=(
        FieldRule(name="application_type", required=True, choices=APPLICATION_TYPES),
        FieldRule(name="license_categories", label="Licence categories",
                  kind=FieldKind.STRING_LIST, required=True, min_length=1),
        FieldRule(name="is_urgent", kind=FieldKind.BOOLEAN),
        FieldRule(
            name="urgency_reason",
            required_when=RequiredWhen(sibling="is_urgent", equals=(True,)),
            min_length=5,
        ),
        FieldRule(
            name="replacement_reason",
            required_when=RequiredWhen(sibling="application_type",
                                       equals=("DUPLICATE", "LEARNERS_PERMIT_DUPLICATE")),
            choices=("theft", "loss", "destruction", "recovery", "new_card", "change_particulars"),
        ),
    ),
)

APPLICATION_REQUIREMENTS = StepRuleSet(
    key="requirements",
    field_rules=(
        FieldRule(name="medical_certificate_verified", label="Medical certificate verification",
                  kind=FieldKind.BOOLEAN, required=True),
        FieldRule(name="vision_test_passed", kind=FieldKind.BOOLEAN),
    ),
)

APPLICATION_BIOMETRIC = StepRuleSet(
    key="biometric",
    field_rules=(
        FieldRule(name="photo", label="Photo", required=True),
        FieldRule(name="signature", label="Signature"),
        FieldRule(name="fingerprint", label="Fingerprint"),
    ),
)

APPLICATION_STEP_RULES: dict[int, StepRuleSet] = {
    0: APPLICATION_APPLICANT,
    1: APPLICATION_DETAILS,
    2: APPLICATION_REQUIREMENTS,
    3: APPLICATION_BIOMETRIC,
    # 4: review, no field rules
}
