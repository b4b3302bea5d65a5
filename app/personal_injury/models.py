"""
Data model for personal-injury damages and case valuation.

DamageElement and MedicalRecord are stored per case. CaseValuationInput is the
argument record assembled for each valuation, and CaseValuation is the derived
result; valuations are recomputed rather than mutated.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from app.personal_injury.constants import (
    ConfidenceLevel,
    DamageElementType,
    LiabilityAssessment,
    ValuationSource,
)
from app.utils import to_number


@dataclass
class DamageElement:
    """One line item of claimed damages for a case."""

    case_id: str
    element_type: DamageElementType
    id: Optional[str] = None
    element_name: str = ""
    calculation_method: Optional[str] = None
    base_amount: Optional[float] = None
    calculated_amount: Optional[float] = None
    multiplier: Optional[float] = None
    duration_value: Optional[float] = None
    duration_unit: Optional[str] = None
    confidence_level: ConfidenceLevel = ConfidenceLevel.MEDIUM
    source_provider: Optional[str] = None
    source_employer: Optional[str] = None
    notes: Optional[str] = None
    display_order: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def amount(self) -> float:
        """Effective amount: calculated if present, else base, else 0."""
        if self.calculated_amount is not None:
            return to_number(self.calculated_amount)
        if self.base_amount is not None:
            return to_number(self.base_amount)
        return 0.0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["element_type"] = self.element_type.value
        data["confidence_level"] = self.confidence_level.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DamageElement":
        known = {f for f in cls.__dataclass_fields__}
        values = {k: v for k, v in data.items() if k in known}
        values["element_type"] = DamageElementType(values.get("element_type", "OTHER"))
        values["confidence_level"] = ConfidenceLevel(
            values.get("confidence_level") or ConfidenceLevel.MEDIUM.value
        )
        return cls(**values)


@dataclass
class MedicalRecord:
    """A treatment record from the medical-records subsystem."""

    case_id: str
    provider_name: str
    billed_amount: float = 0.0
    id: Optional[str] = None
    record_type: Optional[str] = None
    treatment_date: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MedicalRecord":
        known = {f for f in cls.__dataclass_fields__}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class CaseValuationInput:
    """Validated argument record for a single case valuation."""

    injury_type: str = "soft_tissue"
    injury_description: str = ""
    medical_expenses: float = 0.0
    lost_wages: float = 0.0
    future_medical: float = 0.0
    custom_multiplier: Optional[float] = None
    liability_assessment: LiabilityAssessment = LiabilityAssessment.CLEAR
    comparative_negligence_percent: float = 0.0
    # None means "no limit"; 0 is a real limit that caps recovery at 0
    policy_limit: Optional[float] = None

    @classmethod
    def from_form(cls, form: Dict[str, Any]) -> "CaseValuationInput":
        """
        Build an input record from loosely-typed form data.

        Malformed money figures become 0, the negligence percentage is clamped
        to [0, 100], and an unparseable policy limit is treated as "no limit".
        """
        custom = form.get("custom_multiplier")
        custom_value = to_number(custom) if custom is not None else None

        liability = form.get("liability_assessment") or LiabilityAssessment.CLEAR.value
        try:
            liability_value = LiabilityAssessment(str(getattr(liability, "value", liability)).upper())
        except ValueError:
            liability_value = LiabilityAssessment.CLEAR

        return cls(
            injury_type=str(form.get("injury_type") or "soft_tissue"),
            injury_description=str(form.get("injury_description") or ""),
            medical_expenses=max(0.0, to_number(form.get("medical_expenses"))),
            lost_wages=max(0.0, to_number(form.get("lost_wages"))),
            future_medical=max(0.0, to_number(form.get("future_medical"))),
            custom_multiplier=custom_value if custom_value else None,
            liability_assessment=liability_value,
            comparative_negligence_percent=min(
                100.0, max(0.0, to_number(form.get("comparative_negligence_percent")))
            ),
            policy_limit=coerce_policy_limit(form.get("policy_limit")),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["liability_assessment"] = self.liability_assessment.value
        return data


def coerce_policy_limit(value: Any) -> Optional[float]:
    """Normalize a policy limit while keeping 0 distinct from None."""
    if value is None:
        return None
    if isinstance(value, str) and value.strip() == "":
        return None
    number = to_number(value, default=None)
    if number is None:
        return None
    return max(0.0, number)


@dataclass
class CaseValuation:
    """Computed case value, from the local formula or the remote service."""

    economic_damages: float
    non_economic_damages: float
    total_case_value: float
    adjusted_case_value: float
    realistic_recovery: float
    multiplier: float
    source: ValuationSource = ValuationSource.LOCAL

    # Remote-only fields
    settlement_range_low: Optional[float] = None
    settlement_range_mid: Optional[float] = None
    settlement_range_high: Optional[float] = None
    case_strength: Optional[float] = None
    key_factors: List[str] = field(default_factory=list)
    multiplier_reasoning: Optional[str] = None
    recommendations: Optional[str] = None
    medical_to_limit_ratio: Optional[float] = None
    is_underinsured: Optional[bool] = None

    @property
    def has_settlement_range(self) -> bool:
        return self.settlement_range_low is not None and self.settlement_range_high is not None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["source"] = self.source.value
        return data


@dataclass
class DamageCalculation:
    """Persisted per-case damages summary, optionally carrying a settlement analysis."""

    case_id: str
    category_totals: Dict[str, float] = field(default_factory=dict)
    economic_damages_total: float = 0.0
    non_economic_damages_total: float = 0.0
    gross_damages_total: float = 0.0
    comparative_negligence_percent: float = 0.0
    adjusted_damages_total: float = 0.0
    low_value: Optional[float] = None
    mid_value: Optional[float] = None
    high_value: Optional[float] = None
    settlement_analysis: Optional[Dict[str, Any]] = None
    calculated_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DamageCalculation":
        known = {f for f in cls.__dataclass_fields__}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class SettlementEvent:
    """One round of settlement negotiation: our demand and the carrier's answer."""

    demand_amount: float
    offer_amount: Optional[float] = None
    offer_date: Optional[str] = None
    counter_amount: Optional[float] = None
    notes: Optional[str] = None
    id: Optional[str] = None
    date: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SettlementEvent":
        known = {f for f in cls.__dataclass_fields__}
        return cls(**{k: v for k, v in data.items() if k in known})
