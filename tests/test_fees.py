"""Tests for application fee calculation."""

from datetime import date
from decimal import Decimal

import pytest

from intake.licensing import FeeLine, calculate_application_fees, load_fee_table, total_fees


@pytest.fixture(scope="module")
def fee_table():
    return load_fee_table()


def fee_types(lines) -> list[str]:
    return [line.fee_type for line in lines]


@pytest.mark.business
class TestFeePolicies:
    """Fee rows selected per application type."""

    def test_new_licence(self, fee_table, today):
        lines = calculate_application_fees("NEW_LICENSE", ["B"], fee_table, today=today)

        assert fee_types(lines) == ["card_production", "practical_test_light"]
        assert total_fees(lines) == Decimal("48000")

    def test_new_heavy_licence(self, fee_table, today):
        lines = calculate_application_fees("NEW_LICENSE", ["B", "C1"], fee_table, today=today)

        assert fee_types(lines) == ["card_production", "practical_test_heavy", "practical_test_light"]

    def test_learners_permit_pays_theory_only(self, fee_table, today):
        lines = calculate_application_fees("LEARNERS_PERMIT", ["2"], fee_table, today=today)

        assert fee_types(lines) == ["theory_test_learner"]

    def test_renewal_pays_card_only(self, fee_table, today):
        lines = calculate_application_fees("RENEWAL", ["C", "B"], fee_table, today=today)

        assert fee_types(lines) == ["card_production"]
        assert lines[0].amount == Decimal("38000")

    def test_upgrade(self, fee_table, today):
        lines = calculate_application_fees("UPGRADE", ["C1"], fee_table, today=today)

        assert fee_types(lines) == ["card_production", "practical_test_heavy", "theory_test_heavy"]

    def test_international_permit(self, fee_table, today):
        lines = calculate_application_fees("INTERNATIONAL_PERMIT", ["B"], fee_table, today=today)

        assert fee_types(lines) == ["international_permit"]

    def test_unlisted_type_pays_mandatory_rows(self, fee_table, today):
        lines = calculate_application_fees("FOREIGN_CONVERSION", ["B"], fee_table, today=today)

        assert fee_types(lines) == [
            "application_processing",
            "card_production",
            "foreign_conversion_review",
            "practical_test_light",
            "theory_test_light",
        ]

    def test_optional_rows_never_charged(self, fee_table, today):
        for app_type in ("NEW_LICENSE", "RENEWAL", "PROFESSIONAL_LICENSE"):
            lines = calculate_application_fees(app_type, ["B"], fee_table, today=today)
            assert "express_processing" not in fee_types(lines)

    def test_effective_dates(self, fee_table):
        before = calculate_application_fees("RENEWAL", ["B"], fee_table, today=date(2023, 6, 1))
        after = calculate_application_fees("RENEWAL", ["B"], fee_table, today=date(2024, 1, 1))

        assert [line.amount for line in before] == [Decimal("30000")]
        assert [line.amount for line in after] == [Decimal("38000")]

    def test_engine_helper_uses_bundled_table(self, engine, today):
        lines = engine.calculate_application_fees("LEARNERS_PERMIT", ["1"], today=today)

        assert fee_types(lines) == ["theory_test_learner"]


@pytest.mark.business
class TestFeeSetInvariance:
    """Category order and duplicates never change the fees."""

    @pytest.mark.parametrize("app_type", ["NEW_LICENSE", "UPGRADE", "LEARNERS_PERMIT", "FOREIGN_CONVERSION"])
    def test_order_and_duplicates(self, fee_table, today, app_type):
        forward = calculate_application_fees(app_type, ["A", "C1"], fee_table, today=today)
        backward = calculate_application_fees(app_type, ["C1", "A"], fee_table, today=today)
        repeated = calculate_application_fees(app_type, ["A", "C1", "A"], fee_table, today=today)

        assert forward == backward == repeated

    def test_each_row_once(self, today):
        row = FeeLine(fee_type="card_production", display_name="Card production", amount=Decimal("38000"))

        lines = calculate_application_fees("RENEWAL", ["B"], [row, row], today=today)

        assert lines == [row]

    def test_no_fee_rows(self, today):
        assert calculate_application_fees("NEW_LICENSE", ["B"], [], today=today) == []
        assert total_fees([]) == Decimal("0")
