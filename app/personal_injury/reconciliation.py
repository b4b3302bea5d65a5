"""
Reconciliation of the economic figures fed to the case valuation.

Several sources can claim the same figure: medical-record billing totals, the
damage elements entered for the case, and values typed into the valuation form.
The engine picks the authoritative figure for each input and decides whether it
may overwrite what the user already entered.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from app.personal_injury.aggregator import DamageAggregator
from app.personal_injury.constants import DamageElementType
from app.personal_injury.models import MedicalRecord
from app.utils import to_number

SOURCE_MEDICAL_RECORDS = "medical_records"
SOURCE_DAMAGE_ELEMENTS = "damage_elements"


@dataclass
class ReconciledFigure:
    """One reconciled input figure with provenance."""

    field_name: str
    value: float
    source: Optional[str]
    candidates: Dict[str, float] = field(default_factory=dict)


@dataclass
class ReconciliationResult:
    medical_expenses: ReconciledFigure
    lost_wages: ReconciledFigure
    future_medical: ReconciledFigure

    @property
    def figures(self) -> List[ReconciledFigure]:
        return [self.medical_expenses, self.lost_wages, self.future_medical]


class ReconciliationEngine:
    """
    Produces the authoritative medical, wage and future-care figures.

    Rules:
    - Medical expenses: the larger of the medical-record billed total and the
      PAST_MEDICAL element total. The two sources often overlap, so they are
      never added together.
    - Lost wages / future medical: only the LOST_WAGES / FUTURE_MEDICAL element
      totals. Case-level defaults are never consulted.
    - Write-back: a figure only replaces a form value when it is > 0.
    """

    def __init__(self, aggregator: DamageAggregator):
        self._aggregator = aggregator

    @staticmethod
    def medical_records_total(records: Iterable[MedicalRecord]) -> float:
        return sum((to_number(r.billed_amount) for r in records), 0.0)

    def reconcile(self, medical_records: Iterable[MedicalRecord] = ()) -> ReconciliationResult:
        """
        Reconcile all candidate sources.

        Args:
            medical_records: Treatment records for the case

        Returns:
            ReconciliationResult with one figure per valuation input
        """
        records_total = self.medical_records_total(medical_records)
        elements_total = self._aggregator.category_total(DamageElementType.PAST_MEDICAL)

        if records_total >= elements_total:
            medical_source = SOURCE_MEDICAL_RECORDS if records_total > 0 else None
        else:
            medical_source = SOURCE_DAMAGE_ELEMENTS

        medical = ReconciledFigure(
            field_name="medical_expenses",
            value=max(records_total, elements_total),
            source=medical_source,
            candidates={
                SOURCE_MEDICAL_RECORDS: records_total,
                SOURCE_DAMAGE_ELEMENTS: elements_total,
            },
        )

        return ReconciliationResult(
            medical_expenses=medical,
            lost_wages=self._from_elements("lost_wages", DamageElementType.LOST_WAGES),
            future_medical=self._from_elements("future_medical", DamageElementType.FUTURE_MEDICAL),
        )

    def _from_elements(self, field_name: str, element_type: DamageElementType) -> ReconciledFigure:
        total = self._aggregator.category_total(element_type)
        return ReconciledFigure(
            field_name=field_name,
            value=total,
            source=SOURCE_DAMAGE_ELEMENTS if total > 0 else None,
            candidates={SOURCE_DAMAGE_ELEMENTS: total},
        )

    @staticmethod
    def apply_write_back(form: Dict[str, Any], result: ReconciliationResult) -> Dict[str, Any]:
        """
        Return a copy of the form with reconciled figures pushed in.

        A reconciled 0 means "no new evidence" and leaves the existing entry alone.
        """
        updated = dict(form)
        for figure in result.figures:
            if figure.value > 0:
                updated[figure.field_name] = figure.value
        return updated
