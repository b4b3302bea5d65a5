"""
Personal-injury case valuation calculator.

Implements the settlement-value formula:
- Multiplier selection (manual override or injury-type table)
- Economic and non-economic damages
- Comparative negligence reduction
- Policy-limit capping of the realistic recovery

Also provides the quick damage calculators (household services, mileage, lost
wages, pain & suffering) and the stored damages summary.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union

from app.personal_injury.aggregator import DamageAggregator
from app.personal_injury.constants import (
    DEFAULT_MULTIPLIER,
    DEMAND_DEFAULT_MULTIPLIER,
    INJURY_TYPES,
    IRS_MILEAGE_RATE,
    SUMMARY_ECONOMIC_TYPES,
    SUMMARY_HIGH_FACTOR,
    SUMMARY_LOW_FACTOR,
    ConfidenceLevel,
    DamageElementType,
    PainSufferingMethod,
    ValuationSource,
)
from app.personal_injury.exceptions import ValidationError
from app.personal_injury.models import (
    CaseValuation,
    CaseValuationInput,
    DamageCalculation,
    DamageElement,
    coerce_policy_limit,
)
from app.utils import to_number

ECONOMIC_INPUT_FIELDS = ("medical_expenses", "lost_wages", "future_medical")


@dataclass
class CalculationResult:
    """Result of one valuation step with metadata."""

    name: str
    value: float
    inputs: Dict[str, Any]
    formula: str
    warnings: List[str] = field(default_factory=list)


class ValuationCalculator:
    """
    Personal-injury case value calculator.

    ``compute_local`` is pure and total: it never raises, whatever the input.
    The "at least one economic figure" rule is checked separately by
    ``check_preconditions`` before a valuation is requested.
    """

    def __init__(
        self,
        default_multiplier: float = DEFAULT_MULTIPLIER,
        mileage_rate: float = IRS_MILEAGE_RATE,
    ):
        """
        Initialize calculator.

        Args:
            default_multiplier: Multiplier for injury types missing from the table
            mileage_rate: Default dollars per mile for medical travel
        """
        self.default_multiplier = default_multiplier
        self.mileage_rate = mileage_rate

    # ------------------------------------------------------------------
    # Case valuation
    # ------------------------------------------------------------------

    def get_multiplier(self, valuation_input: CaseValuationInput) -> float:
        """
        Select the non-economic damages multiplier.

        Priority: custom multiplier (if > 0) > injury-type table > default.
        """
        custom = to_number(valuation_input.custom_multiplier)
        if custom > 0:
            return custom

        injury = INJURY_TYPES.get(valuation_input.injury_type)
        if injury:
            return injury[1]
        return self.default_multiplier

    def check_preconditions(
        self,
        valuation_input: CaseValuationInput,
        damage_economic_total: float = 0.0,
    ) -> None:
        """
        Refuse a valuation when no economic figure is present anywhere.

        Args:
            valuation_input: Form figures
            damage_economic_total: Aggregated economic total of the damage elements

        Raises:
            ValidationError: naming every empty economic input field
        """
        missing = [
            name for name in ECONOMIC_INPUT_FIELDS
            if to_number(getattr(valuation_input, name)) <= 0
        ]
        if len(missing) == len(ECONOMIC_INPUT_FIELDS) and to_number(damage_economic_total) <= 0:
            raise ValidationError(missing)

    def compute_local(self, valuation_input: CaseValuationInput) -> CaseValuation:
        """
        Compute the case value with the deterministic local formula.

        Args:
            valuation_input: Valuation inputs

        Returns:
            CaseValuation with economic, non-economic, total, adjusted and
            realistic recovery figures
        """
        multiplier = self.get_multiplier(valuation_input)

        economic_damages = (
            max(0.0, to_number(valuation_input.medical_expenses))
            + max(0.0, to_number(valuation_input.lost_wages))
            + max(0.0, to_number(valuation_input.future_medical))
        )
        non_economic_damages = economic_damages * multiplier
        total_case_value = economic_damages + non_economic_damages

        negligence = min(100.0, max(0.0, to_number(valuation_input.comparative_negligence_percent)))
        adjusted_case_value = total_case_value * (1 - negligence / 100)

        policy_limit = coerce_policy_limit(valuation_input.policy_limit)
        if policy_limit is not None:
            realistic_recovery = min(adjusted_case_value, policy_limit)
        else:
            realistic_recovery = adjusted_case_value

        return CaseValuation(
            economic_damages=economic_damages,
            non_economic_damages=non_economic_damages,
            total_case_value=total_case_value,
            adjusted_case_value=adjusted_case_value,
            realistic_recovery=realistic_recovery,
            multiplier=multiplier,
            source=ValuationSource.LOCAL,
        )

    def compute_breakdown(self, valuation_input: CaseValuationInput) -> Dict[str, CalculationResult]:
        """
        Compute the local valuation step by step, with formulas.

        Returns:
            Dictionary with one CalculationResult per step
        """
        valuation = self.compute_local(valuation_input)
        policy_limit = coerce_policy_limit(valuation_input.policy_limit)

        recovery_warnings = []
        if policy_limit is not None and valuation.adjusted_case_value > policy_limit:
            recovery_warnings.append(
                f"Adjusted case value exceeds the policy limit of {policy_limit:,.2f}"
            )

        return {
            "multiplier": CalculationResult(
                name="multiplier",
                value=valuation.multiplier,
                inputs={
                    "injury_type": valuation_input.injury_type,
                    "custom_multiplier": valuation_input.custom_multiplier,
                },
                formula="custom_multiplier if > 0 else injury_table[injury_type] else default",
            ),
            "economic_damages": CalculationResult(
                name="economic_damages",
                value=valuation.economic_damages,
                inputs={name: getattr(valuation_input, name) for name in ECONOMIC_INPUT_FIELDS},
                formula="medical_expenses + lost_wages + future_medical",
            ),
            "non_economic_damages": CalculationResult(
                name="non_economic_damages",
                value=valuation.non_economic_damages,
                inputs={
                    "economic_damages": valuation.economic_damages,
                    "multiplier": valuation.multiplier,
                },
                formula="economic_damages * multiplier",
            ),
            "total_case_value": CalculationResult(
                name="total_case_value",
                value=valuation.total_case_value,
                inputs={
                    "economic_damages": valuation.economic_damages,
                    "non_economic_damages": valuation.non_economic_damages,
                },
                formula="economic_damages + non_economic_damages",
            ),
            "adjusted_case_value": CalculationResult(
                name="adjusted_case_value",
                value=valuation.adjusted_case_value,
                inputs={
                    "total_case_value": valuation.total_case_value,
                    "comparative_negligence_percent": valuation_input.comparative_negligence_percent,
                },
                formula="total_case_value * (1 - comparative_negligence_percent / 100)",
            ),
            "realistic_recovery": CalculationResult(
                name="realistic_recovery",
                value=valuation.realistic_recovery,
                inputs={
                    "adjusted_case_value": valuation.adjusted_case_value,
                    "policy_limit": policy_limit,
                },
                formula="min(adjusted_case_value, policy_limit) if policy_limit is not None else adjusted_case_value",
                warnings=recovery_warnings,
            ),
        }

    def demand_total(
        self,
        medical_expenses: Any = None,
        lost_wages: Any = None,
        future_medical: Any = None,
        pain_suffering_multiplier: Any = None,
    ) -> CalculationResult:
        """
        Total to put in a demand letter.

        Economic damages plus pain & suffering at the given multiplier. A
        missing or zero multiplier falls back to 2.5. No negligence reduction
        or policy cap is applied; this is the opening figure, not the expected
        recovery.
        """
        medical = to_number(medical_expenses)
        wages = to_number(lost_wages)
        future = to_number(future_medical)
        multiplier = to_number(pain_suffering_multiplier) or DEMAND_DEFAULT_MULTIPLIER

        economic = medical + wages + future
        return CalculationResult(
            name="demand_total",
            value=economic + economic * multiplier,
            inputs={
                "medical_expenses": medical,
                "lost_wages": wages,
                "future_medical": future,
                "pain_suffering_multiplier": multiplier,
            },
            formula="(medical_expenses + lost_wages + future_medical) * (1 + pain_suffering_multiplier)",
        )

    # ------------------------------------------------------------------
    # Damage element amounts and quick calculators
    # ------------------------------------------------------------------

    @staticmethod
    def element_amount(element: DamageElement) -> float:
        """
        Derive an element's amount from its base figure.

        base * multiplier when a multiplier is set, else base * duration when a
        duration is set, else the base itself. No base means 0.
        """
        if element.base_amount is None:
            return 0.0

        base = to_number(element.base_amount)
        multiplier = to_number(element.multiplier)
        if multiplier > 0:
            return base * multiplier

        duration = to_number(element.duration_value)
        if duration > 0:
            return base * duration

        return base

    def household_services(
        self,
        case_id: str,
        monthly_rate: float,
        months: int,
        notes: Optional[str] = None,
    ) -> DamageElement:
        """Household services loss: monthly rate times months."""
        monthly_rate = to_number(monthly_rate)
        months = int(to_number(months))
        return DamageElement(
            case_id=case_id,
            element_type=DamageElementType.HOUSEHOLD_SERVICES,
            element_name="Household Services Loss",
            calculation_method="Monthly Rate",
            base_amount=monthly_rate,
            duration_value=float(months),
            duration_unit="Months",
            calculated_amount=monthly_rate * months,
            confidence_level=ConfidenceLevel.MEDIUM,
            notes=notes,
        )

    def mileage(
        self,
        case_id: str,
        miles: float,
        rate_per_mile: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> DamageElement:
        """Medical travel mileage at the given rate, or the configured IRS rate."""
        rate = to_number(rate_per_mile) if rate_per_mile is not None else self.mileage_rate
        miles = to_number(miles)
        return DamageElement(
            case_id=case_id,
            element_type=DamageElementType.MILEAGE,
            element_name="Medical Travel Mileage",
            calculation_method="IRS Rate",
            base_amount=rate,
            duration_value=miles,
            duration_unit="Miles",
            calculated_amount=rate * miles,
            confidence_level=ConfidenceLevel.HIGH,
            notes=notes,
        )

    def lost_wages(
        self,
        case_id: str,
        hourly_rate: float,
        hours_lost: int,
        employer_name: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> DamageElement:
        hourly_rate = to_number(hourly_rate)
        hours_lost = int(to_number(hours_lost))
        return DamageElement(
            case_id=case_id,
            element_type=DamageElementType.LOST_WAGES,
            element_name="Lost Wages",
            calculation_method="Hourly",
            base_amount=hourly_rate,
            duration_value=float(hours_lost),
            duration_unit="Hours",
            calculated_amount=hourly_rate * hours_lost,
            source_employer=employer_name,
            confidence_level=ConfidenceLevel.HIGH,
            notes=notes,
        )

    def pain_suffering(
        self,
        case_id: str,
        method: Union[PainSufferingMethod, str],
        economic_base: float,
        multiplier_or_per_diem: float,
        duration_days: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> DamageElement:
        """
        Pain & suffering by the multiplier or per-diem method.

        Args:
            method: MULTIPLIER, PER_DIEM, or anything else for a direct amount
            economic_base: Economic damages base (multiplier method / direct amount)
            multiplier_or_per_diem: Multiplier, or daily rate for per diem
            duration_days: Days of suffering (per diem only)
        """
        method_name = str(getattr(method, "value", method) or "").upper()
        economic_base = to_number(economic_base)
        factor = to_number(multiplier_or_per_diem)
        days = int(to_number(duration_days)) if duration_days is not None else None

        if method_name == PainSufferingMethod.MULTIPLIER.value:
            total = economic_base * factor
            element_name = f"Pain & Suffering ({factor:g}x Multiplier)"
        elif method_name == PainSufferingMethod.PER_DIEM.value:
            total = factor * (days or 0)
            element_name = f"Pain & Suffering (${factor:g}/day)"
        else:
            total = economic_base
            element_name = "Pain & Suffering"

        return DamageElement(
            case_id=case_id,
            element_type=DamageElementType.PAIN_SUFFERING,
            element_name=element_name,
            calculation_method=method_name or None,
            base_amount=economic_base,
            multiplier=factor,
            duration_value=float(days) if days is not None else None,
            duration_unit="Days",
            calculated_amount=total,
            confidence_level=ConfidenceLevel.MEDIUM,
            notes=notes,
        )

    # ------------------------------------------------------------------
    # Stored damages summary
    # ------------------------------------------------------------------

    def summarize(
        self,
        case_id: str,
        elements: Iterable[DamageElement],
        comparative_negligence_percent: Optional[float] = None,
        existing: Optional[DamageCalculation] = None,
    ) -> DamageCalculation:
        """
        Build the per-case damages summary from the stored elements.

        Non-economic damages here are the pain & suffering elements only; the
        low/high values bracket the adjusted total by -25% / +25%.

        Args:
            case_id: Case identifier
            elements: Damage elements of the case
            comparative_negligence_percent: Claimant fault; falls back to the
                value stored on ``existing``
            existing: Previously stored summary to carry forward

        Returns:
            DamageCalculation ready to persist
        """
        aggregator = DamageAggregator(elements)
        category_totals = {
            element_type.value: aggregator.category_total(element_type)
            for element_type in (*SUMMARY_ECONOMIC_TYPES, DamageElementType.PAIN_SUFFERING)
        }

        economic_total = sum(category_totals[t.value] for t in SUMMARY_ECONOMIC_TYPES)
        non_economic_total = category_totals[DamageElementType.PAIN_SUFFERING.value]
        gross_total = economic_total + non_economic_total

        if comparative_negligence_percent is None and existing is not None:
            comparative_negligence_percent = existing.comparative_negligence_percent
        negligence = min(100.0, max(0.0, to_number(comparative_negligence_percent)))

        if negligence > 0:
            adjusted_total = gross_total * (1 - negligence / 100)
        else:
            adjusted_total = gross_total

        return DamageCalculation(
            case_id=case_id,
            category_totals=category_totals,
            economic_damages_total=economic_total,
            non_economic_damages_total=non_economic_total,
            gross_damages_total=gross_total,
            comparative_negligence_percent=negligence,
            adjusted_damages_total=adjusted_total,
            low_value=adjusted_total * SUMMARY_LOW_FACTOR,
            mid_value=adjusted_total,
            high_value=adjusted_total * SUMMARY_HIGH_FACTOR,
            settlement_analysis=existing.settlement_analysis if existing else None,
            calculated_at=datetime.utcnow().isoformat(),
        )
