"""
Tests for Phase 4: Valuation Calculator
Feature: personal-injury case valuation

Tests cover:
- Multiplier selection (custom, injury table, default)
- Local valuation formula and negligence / policy-limit handling
- Precondition check (at least one economic figure)
- Input coercion of malformed form values
- Element amount derivation and the quick damage calculators
- Demand letter total
- Stored damages summary
"""
import pytest


@pytest.fixture
def calculator():
    """Return a ValuationCalculator with default settings."""
    from app.personal_injury.calculator import ValuationCalculator
    return ValuationCalculator()


def make_input(**overrides):
    from app.personal_injury.models import CaseValuationInput
    values = {
        "injury_type": "fracture",
        "medical_expenses": 10000,
        "lost_wages": 5000,
        "future_medical": 0,
        "comparative_negligence_percent": 20,
        "policy_limit": None,
    }
    values.update(overrides)
    return CaseValuationInput(**values)


class TestMultiplier:
    """Tests for multiplier selection."""

    def test_custom_multiplier_wins(self, calculator):
        assert calculator.get_multiplier(make_input(custom_multiplier=3.7)) == 3.7

    def test_zero_custom_multiplier_ignored(self, calculator):
        assert calculator.get_multiplier(make_input(custom_multiplier=0)) == 2.5

    @pytest.mark.parametrize("injury_type, expected", [
        ("soft_tissue", 1.5),
        ("fracture", 2.5),
        ("disc_injury", 3.0),
        ("tbi", 4.0),
        ("spinal", 5.0),
        ("burn", 4.0),
        ("amputation", 5.0),
        ("wrongful_death", 5.0),
        ("other", 2.5),
    ])
    def test_injury_table(self, calculator, injury_type, expected):
        assert calculator.get_multiplier(make_input(injury_type=injury_type)) == expected

    def test_unknown_injury_uses_default(self, calculator):
        assert calculator.get_multiplier(make_input(injury_type="paper_cut")) == 2.0

    def test_configured_default(self):
        from app.personal_injury.calculator import ValuationCalculator
        calculator = ValuationCalculator(default_multiplier=1.75)
        assert calculator.get_multiplier(make_input(injury_type="unknown")) == 1.75


class TestComputeLocal:
    """Tests for the local valuation formula."""

    def test_fracture_scenario(self, calculator):
        valuation = calculator.compute_local(make_input())

        assert valuation.economic_damages == 15000
        assert valuation.non_economic_damages == 37500
        assert valuation.total_case_value == 52500
        assert valuation.adjusted_case_value == pytest.approx(42000)
        assert valuation.realistic_recovery == pytest.approx(42000)
        assert valuation.multiplier == 2.5

    def test_fracture_scenario_with_policy_limit(self, calculator):
        valuation = calculator.compute_local(make_input(policy_limit=30000))

        assert valuation.realistic_recovery == 30000

    def test_non_economic_is_economic_times_multiplier(self, calculator):
        for injury in ("soft_tissue", "tbi", "unknown"):
            valuation = calculator.compute_local(make_input(injury_type=injury, future_medical=1234.56))
            assert valuation.non_economic_damages == valuation.economic_damages * valuation.multiplier

    @pytest.mark.parametrize("negligence", [0, 10, 33.3, 50, 99])
    def test_adjusted_value_applies_negligence(self, calculator, negligence):
        valuation = calculator.compute_local(make_input(comparative_negligence_percent=negligence))

        assert valuation.adjusted_case_value == valuation.total_case_value * (1 - negligence / 100)

    def test_full_negligence_zeroes_adjusted_value(self, calculator):
        valuation = calculator.compute_local(make_input(comparative_negligence_percent=100))

        assert valuation.adjusted_case_value == 0
        assert valuation.realistic_recovery == 0

    def test_zero_policy_limit_caps_recovery_at_zero(self, calculator):
        valuation = calculator.compute_local(make_input(policy_limit=0))

        assert valuation.adjusted_case_value > 0
        assert valuation.realistic_recovery == 0

    def test_no_policy_limit_means_uncapped(self, calculator):
        valuation = calculator.compute_local(make_input(policy_limit=None))

        assert valuation.realistic_recovery == valuation.adjusted_case_value

    def test_compute_local_is_idempotent(self, calculator):
        valuation_input = make_input(policy_limit=50000)

        assert calculator.compute_local(valuation_input) == calculator.compute_local(valuation_input)

    def test_local_valuation_has_no_settlement_range(self, calculator):
        from app.personal_injury.constants import ValuationSource

        valuation = calculator.compute_local(make_input())

        assert valuation.source == ValuationSource.LOCAL
        assert valuation.has_settlement_range is False

    def test_malformed_numbers_are_total(self, calculator):
        valuation = calculator.compute_local(
            make_input(medical_expenses="abc", lost_wages=float("nan"), future_medical=None)
        )

        assert valuation.economic_damages == 0
        assert valuation.realistic_recovery == 0

    def test_breakdown_reports_each_step(self, calculator):
        breakdown = calculator.compute_breakdown(make_input(policy_limit=30000))

        assert breakdown["economic_damages"].value == 15000
        assert breakdown["realistic_recovery"].value == 30000
        assert breakdown["realistic_recovery"].warnings
        assert "multiplier" in breakdown["non_economic_damages"].formula


class TestPreconditions:
    """Tests for check_preconditions."""

    def test_all_zero_without_elements_raises(self, calculator):
        from app.personal_injury.exceptions import ValidationError

        with pytest.raises(ValidationError) as exc_info:
            calculator.check_preconditions(
                make_input(medical_expenses=0, lost_wages=0, future_medical=0)
            )

        assert exc_info.value.missing_fields == ["medical_expenses", "lost_wages", "future_medical"]

    def test_element_total_satisfies_precondition(self, calculator):
        calculator.check_preconditions(
            make_input(medical_expenses=0, lost_wages=0, future_medical=0),
            damage_economic_total=500,
        )

    def test_single_figure_satisfies_precondition(self, calculator):
        calculator.check_preconditions(
            make_input(medical_expenses=0, lost_wages=0, future_medical=100)
        )


class TestCaseValuationInput:
    """Tests for form coercion into CaseValuationInput."""

    def test_from_form_coerces_values(self):
        from app.personal_injury.constants import LiabilityAssessment
        from app.personal_injury.models import CaseValuationInput

        valuation_input = CaseValuationInput.from_form({
            "injury_type": "tbi",
            "medical_expenses": "12000",
            "lost_wages": "oops",
            "future_medical": -50,
            "liability_assessment": "comparative",
            "comparative_negligence_percent": 140,
            "policy_limit": "100000",
        })

        assert valuation_input.medical_expenses == 12000
        assert valuation_input.lost_wages == 0
        assert valuation_input.future_medical == 0
        assert valuation_input.liability_assessment == LiabilityAssessment.COMPARATIVE
        assert valuation_input.comparative_negligence_percent == 100
        assert valuation_input.policy_limit == 100000

    @pytest.mark.parametrize("raw, expected", [
        (None, None),
        ("", None),
        ("   ", None),
        ("unlimited", None),
        (0, 0.0),
        ("0", 0.0),
        (-10, 0.0),
        (25000, 25000.0),
    ])
    def test_policy_limit_keeps_zero_distinct_from_none(self, raw, expected):
        from app.personal_injury.models import CaseValuationInput

        assert CaseValuationInput.from_form({"policy_limit": raw}).policy_limit == expected

    def test_unknown_liability_defaults_to_clear(self):
        from app.personal_injury.constants import LiabilityAssessment
        from app.personal_injury.models import CaseValuationInput

        valuation_input = CaseValuationInput.from_form({"liability_assessment": "maybe"})

        assert valuation_input.liability_assessment == LiabilityAssessment.CLEAR


class TestElementAmount:
    """Tests for element amount derivation."""

    def _element(self, **kwargs):
        from app.personal_injury.constants import DamageElementType
        from app.personal_injury.models import DamageElement
        return DamageElement(case_id="case-1", element_type=DamageElementType.OTHER, **kwargs)

    def test_multiplier_applies_first(self, calculator):
        element = self._element(base_amount=100, multiplier=3, duration_value=10)
        assert calculator.element_amount(element) == 300

    def test_duration_applies_without_multiplier(self, calculator):
        element = self._element(base_amount=100, duration_value=12)
        assert calculator.element_amount(element) == 1200

    def test_base_alone(self, calculator):
        assert calculator.element_amount(self._element(base_amount=250)) == 250

    def test_no_base_is_zero(self, calculator):
        assert calculator.element_amount(self._element(multiplier=3)) == 0


class TestQuickCalculators:
    """Tests for the quick damage calculators."""

    def test_household_services(self, calculator):
        from app.personal_injury.constants import DamageElementType

        element = calculator.household_services("case-1", monthly_rate=400, months=6)

        assert element.element_type == DamageElementType.HOUSEHOLD_SERVICES
        assert element.calculated_amount == 2400
        assert element.duration_unit == "Months"

    def test_mileage_uses_irs_rate_by_default(self, calculator):
        element = calculator.mileage("case-1", miles=100)

        assert element.base_amount == 0.67
        assert element.calculated_amount == pytest.approx(67.0)

    def test_mileage_custom_rate(self, calculator):
        element = calculator.mileage("case-1", miles=100, rate_per_mile=0.5)

        assert element.calculated_amount == 50

    def test_lost_wages(self, calculator):
        from app.personal_injury.constants import ConfidenceLevel

        element = calculator.lost_wages("case-1", hourly_rate=25, hours_lost=80, employer_name="Acme")

        assert element.calculated_amount == 2000
        assert element.source_employer == "Acme"
        assert element.confidence_level == ConfidenceLevel.HIGH

    def test_pain_suffering_multiplier(self, calculator):
        element = calculator.pain_suffering("case-1", "MULTIPLIER", economic_base=10000, multiplier_or_per_diem=2.5)

        assert element.calculated_amount == 25000
        assert element.element_name == "Pain & Suffering (2.5x Multiplier)"

    def test_pain_suffering_per_diem(self, calculator):
        element = calculator.pain_suffering(
            "case-1", "PER_DIEM", economic_base=0, multiplier_or_per_diem=150, duration_days=90
        )

        assert element.calculated_amount == 13500
        assert element.element_name == "Pain & Suffering ($150/day)"

    def test_pain_suffering_direct_amount(self, calculator):
        element = calculator.pain_suffering("case-1", "", economic_base=8000, multiplier_or_per_diem=0)

        assert element.calculated_amount == 8000


class TestDemandTotal:
    """Tests for the demand letter total."""

    def test_economic_plus_pain_and_suffering(self, calculator):
        result = calculator.demand_total(10000, 5000, 5000, 3)

        assert result.value == 80000
        assert result.inputs["pain_suffering_multiplier"] == 3

    @pytest.mark.parametrize("multiplier", [None, 0, "", "abc"])
    def test_missing_multiplier_defaults_to_two_and_a_half(self, calculator, multiplier):
        result = calculator.demand_total(medical_expenses=4000, pain_suffering_multiplier=multiplier)

        assert result.value == 4000 * 3.5
        assert result.inputs["pain_suffering_multiplier"] == 2.5

    def test_string_amounts_are_coerced(self, calculator):
        result = calculator.demand_total("1000", None, "500", "2")

        assert result.value == 4500

    def test_empty_demand_is_zero(self, calculator):
        assert calculator.demand_total().value == 0


class TestSummarize:
    """Tests for the stored damages summary."""

    @pytest.fixture
    def elements(self):
        from app.personal_injury.constants import DamageElementType as T
        from app.personal_injury.models import DamageElement
        return [
            DamageElement(case_id="case-1", element_type=T.PAST_MEDICAL, calculated_amount=10000),
            DamageElement(case_id="case-1", element_type=T.MILEAGE, calculated_amount=200),
            DamageElement(case_id="case-1", element_type=T.PROPERTY_DAMAGE, calculated_amount=5000),
            DamageElement(case_id="case-1", element_type=T.PAIN_SUFFERING, calculated_amount=20000),
        ]

    def test_summary_totals(self, calculator, elements):
        calculation = calculator.summarize("case-1", elements)

        # Property damage is not part of the stored summary's economic total
        assert calculation.economic_damages_total == 10200
        assert calculation.non_economic_damages_total == 20000
        assert calculation.gross_damages_total == 30200
        assert calculation.adjusted_damages_total == 30200

    def test_summary_range_brackets_adjusted_total(self, calculator, elements):
        calculation = calculator.summarize("case-1", elements, comparative_negligence_percent=50)

        assert calculation.adjusted_damages_total == 15100
        assert calculation.low_value == pytest.approx(11325)
        assert calculation.mid_value == 15100
        assert calculation.high_value == pytest.approx(18875)

    def test_summary_carries_existing_negligence_and_analysis(self, calculator, elements):
        from app.personal_injury.models import DamageCalculation

        existing = DamageCalculation(
            case_id="case-1",
            comparative_negligence_percent=10,
            settlement_analysis={"realistic_recovery": 1},
        )

        calculation = calculator.summarize("case-1", elements, existing=existing)

        assert calculation.comparative_negligence_percent == 10
        assert calculation.settlement_analysis == {"realistic_recovery": 1}
