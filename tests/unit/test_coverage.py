"""
Unit Tests for the Coverage Calculator.

Tests for:
- Rule lookup and not-covered services
- Eligible amount under per-event and period limits
- Patient responsibility split
- Out-of-pocket soft cap
"""

from decimal import Decimal

import pytest

from careledger.core.enums import ServiceType
from careledger.schemas.plan import CoverageRule
from careledger.services.coverage import calculate_coverage, eligible_amount, get_coverage_rule
from careledger.utils.errors import ServiceNotCovered

COVERAGE = {
    "outpatient": {"covered": True, "copayment": "20", "coverage_percentage": "80"},
    "specialist_consultation": {
        "covered": True,
        "copayment": "30",
        "coverage_percentage": "70",
        "limit": {"amount": "300", "period": "visit"},
    },
    "inpatient": {
        "covered": True,
        "copayment": "0",
        "coverage_percentage": "90",
        "limit": {"amount": "5000", "period": "year"},
    },
    "dental": {"covered": False},
}


def rule(service_type: ServiceType) -> CoverageRule:
    return get_coverage_rule(COVERAGE, service_type)


@pytest.mark.unit
class TestRuleLookup:
    def test_covered_service(self):
        found = rule(ServiceType.OUTPATIENT)
        assert found.covered is True
        assert found.coverage_percentage == Decimal("80")

    def test_not_covered_service(self):
        with pytest.raises(ServiceNotCovered):
            rule(ServiceType.DENTAL)

    def test_missing_service_is_not_covered(self):
        with pytest.raises(ServiceNotCovered):
            rule(ServiceType.VISION)


@pytest.mark.unit
class TestEligibleAmount:
    def test_no_limit(self):
        assert eligible_amount(Decimal("1000"), rule(ServiceType.OUTPATIENT)) == Decimal("1000.00")

    def test_per_event_limit_caps_each_claim(self):
        specialist = rule(ServiceType.SPECIALIST_CONSULTATION)
        assert eligible_amount(Decimal("500"), specialist) == Decimal("300.00")
        # Earlier visits do not reduce a per-visit limit
        assert eligible_amount(Decimal("500"), specialist, Decimal("900")) == Decimal("300.00")

    def test_period_limit_uses_what_is_left(self):
        inpatient = rule(ServiceType.INPATIENT)
        assert eligible_amount(Decimal("1000"), inpatient, Decimal("4800")) == Decimal("200.00")
        assert eligible_amount(Decimal("1000"), inpatient, Decimal("6000")) == Decimal("0.00")


@pytest.mark.unit
class TestCalculateCoverage:
    def test_eighty_percent_with_copay(self):
        result = calculate_coverage(
            Decimal("1000"), rule(ServiceType.OUTPATIENT), remaining_deductible=Decimal("0")
        )
        assert result.covered_amount == Decimal("780.00")
        assert result.patient_total == Decimal("220.00")
        assert result.copayment == Decimal("20.00")
        assert result.coinsurance == Decimal("200.00")

    def test_deductible_taken_before_coinsurance(self):
        result = calculate_coverage(
            Decimal("1000"), rule(ServiceType.OUTPATIENT), remaining_deductible=Decimal("500")
        )
        assert result.covered_amount == Decimal("780.00")
        assert result.copayment == Decimal("20.00")
        assert result.deductible == Decimal("200.00")
        assert result.coinsurance == Decimal("0.00")

    def test_per_event_limit(self):
        result = calculate_coverage(Decimal("500"), rule(ServiceType.SPECIALIST_CONSULTATION))
        # 70% of 300 minus 30 copay
        assert result.eligible_amount == Decimal("300.00")
        assert result.covered_amount == Decimal("180.00")
        assert result.patient_total == Decimal("320.00")

    def test_remaining_annual_caps_covered(self):
        result = calculate_coverage(
            Decimal("1000"), rule(ServiceType.OUTPATIENT), remaining_annual=Decimal("100")
        )
        assert result.covered_amount == Decimal("100.00")
        assert result.patient_total == Decimal("900.00")

    def test_copay_larger_than_benefit(self):
        result = calculate_coverage(Decimal("20"), rule(ServiceType.OUTPATIENT))
        assert result.covered_amount == Decimal("0.00")
        assert result.copayment == Decimal("20.00")

    def test_out_of_pocket_room_waives_coinsurance_then_deductible(self):
        result = calculate_coverage(
            Decimal("1000"),
            rule(ServiceType.OUTPATIENT),
            remaining_deductible=Decimal("500"),
            out_of_pocket_room=Decimal("50"),
        )
        assert result.patient_total == Decimal("50.00")
        assert result.copayment == Decimal("20.00")
        assert result.deductible == Decimal("30.00")
        assert result.coinsurance == Decimal("0.00")
        assert result.covered_amount == Decimal("950.00")

    def test_out_of_pocket_exhausted(self):
        result = calculate_coverage(
            Decimal("1000"), rule(ServiceType.OUTPATIENT), out_of_pocket_room=Decimal("0")
        )
        assert result.covered_amount == Decimal("1000.00")
        assert result.patient_total == Decimal("0.00")

    @pytest.mark.parametrize("billed", ["0.01", "19.99", "333.33", "1000", "12345.67"])
    @pytest.mark.parametrize("deductible", ["0", "150", "5000"])
    def test_covered_plus_patient_equals_billed(self, billed, deductible):
        result = calculate_coverage(
            Decimal(billed),
            rule(ServiceType.OUTPATIENT),
            remaining_deductible=Decimal(deductible),
            out_of_pocket_room=Decimal("100"),
        )
        assert result.covered_amount + result.patient_total == Decimal(billed).quantize(Decimal("0.01"))
        assert result.covered_amount >= 0
        assert min(result.copayment, result.deductible, result.coinsurance) >= 0
