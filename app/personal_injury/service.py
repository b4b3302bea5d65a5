"""
Case valuation workspace.

Ties the damages store, reconciliation, the local calculator and the remote AI
delegate together for one active case at a time.

Usage:
    from app.personal_injury.storage import DamageStorage
    from app.personal_injury.service import CaseValuationWorkspace

    workspace = CaseValuationWorkspace(DamageStorage())
    workspace.select_case("case-123")
    outcome = await workspace.calculate({"injury_type": "fracture", ...})
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from app.personal_injury.aggregator import DamageAggregator
from app.personal_injury.calculator import ValuationCalculator
from app.personal_injury.exceptions import PersistenceError, RemoteServiceError
from app.personal_injury.models import (
    CaseValuation,
    CaseValuationInput,
    DamageCalculation,
    DamageElement,
    MedicalRecord,
)
from app.personal_injury.reconciliation import ReconciliationEngine, ReconciliationResult
from app.personal_injury.remote import RemoteValuationClient
from app.personal_injury.settlement_range import (
    RangeSynthesizer,
    SettlementRange,
    policy_limit_position,
)
from app.personal_injury.storage import DamageStorage, KeyValueStore
from app.utils import setup_logging

logger = setup_logging()

# Element fields whose change requires the calculated amount to be re-derived
AMOUNT_INPUT_FIELDS = ("base_amount", "multiplier", "duration_value")

SETTLEMENT_HISTORY_KEY = "settlement_history"
SETTLEMENT_HISTORY_LIMIT = 20


class CancellationToken:
    """Ties an asynchronous valuation request to the case it was issued for."""

    def __init__(self, case_id: str):
        self.case_id = case_id
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def is_live_for(self, case_id: Optional[str]) -> bool:
        return not self._cancelled and self.case_id == case_id


@dataclass
class ValuationOutcome:
    """A valuation plus everything the UI needs to present it."""

    case_id: str
    valuation: CaseValuation
    valuation_input: CaseValuationInput
    reconciliation: ReconciliationResult
    settlement_range: Optional[SettlementRange] = None
    policy_limit_position: float = 0.0
    remote_error: Optional[str] = None
    # True when the case changed before the request finished
    stale: bool = False
    saved: bool = False
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "case_id": self.case_id,
            "valuation": self.valuation.to_dict(),
            "input": self.valuation_input.to_dict(),
            "reconciliation": {
                figure.field_name: {
                    "value": figure.value,
                    "source": figure.source,
                    "candidates": figure.candidates,
                }
                for figure in self.reconciliation.figures
            },
            "settlement_range": self.settlement_range.to_dict() if self.settlement_range else None,
            "policy_limit_position": self.policy_limit_position,
            "remote_error": self.remote_error,
            "stale": self.stale,
            "saved": self.saved,
            "warnings": list(self.warnings),
        }


class CaseValuationWorkspace:
    """
    Valuation state for the currently selected case.

    - Selecting a case cancels any remote request issued for the previous case
      and discards the previous valuation.
    - Each remote request carries its own cancellation token; a newer
      ``calculate`` supersedes the one still waiting on the remote service.
    - Every element mutation is followed by a full reload from storage.
    - The remote result replaces the local one only while its cancellation
      token is still live for the active case.
    """

    def __init__(
        self,
        storage: DamageStorage,
        calculator: Optional[ValuationCalculator] = None,
        remote_client: Optional[RemoteValuationClient] = None,
        history_store: Optional[KeyValueStore] = None,
    ):
        self._storage = storage
        self._calculator = calculator or ValuationCalculator()
        self._remote = remote_client
        self._history = history_store
        self._ranges = RangeSynthesizer()

        self.active_case_id: Optional[str] = None
        self.elements: List[DamageElement] = []
        self.medical_records: List[MedicalRecord] = []
        self.valuation: Optional[CaseValuation] = None

        self._token: Optional[CancellationToken] = None
        self._remote_task: Optional[asyncio.Future] = None

    # ------------------------------------------------------------------
    # Case selection
    # ------------------------------------------------------------------

    def select_case(self, case_id: str) -> None:
        """Make ``case_id`` the active case and load its damages."""
        self.cancel_pending()
        self.active_case_id = case_id
        self.valuation = None
        self.reload()
        logger.info("Selected case %s (%d damage elements)", case_id, len(self.elements))

    def cancel_pending(self) -> None:
        """Cancel the in-flight remote request, if any."""
        if self._token is not None:
            self._token.cancel()
            if self._remote_task is not None and not self._remote_task.done():
                logger.info("Cancelling remote valuation for case %s", self._token.case_id)
        self._token = None
        if self._remote_task is not None and not self._remote_task.done():
            self._remote_task.cancel()
        self._remote_task = None

    def reload(self) -> None:
        self._require_case()
        self.elements = self._storage.list_elements(self.active_case_id)
        self.medical_records = self._storage.list_medical_records(self.active_case_id)

    def _require_case(self) -> str:
        if self.active_case_id is None:
            raise RuntimeError("No case selected")
        return self.active_case_id

    @property
    def aggregator(self) -> DamageAggregator:
        return DamageAggregator(self.elements)

    # ------------------------------------------------------------------
    # Damage element mutations (always followed by reload)
    # ------------------------------------------------------------------

    def add_element(self, element: DamageElement) -> DamageElement:
        """
        Store a new element for the active case.

        The calculated amount is derived from the base figures when absent.
        """
        element.case_id = self._require_case()
        if element.calculated_amount is None:
            element.calculated_amount = self._calculator.element_amount(element)
        saved = self._storage.create_element(element)
        self.reload()
        return saved

    def update_element(self, element_id: str, updates: Dict[str, Any]) -> DamageElement:
        """
        Apply non-null ``updates`` to an element.

        The calculated amount is re-derived when a base figure changes and no
        explicit calculated amount is supplied.
        """
        case_id = self._require_case()
        element = self._storage.get_element(case_id, element_id)
        changes = {k: v for k, v in updates.items() if v is not None and k not in ("id", "case_id")}

        merged = element.to_dict()
        merged.update(changes)
        updated = DamageElement.from_dict(merged)

        if "calculated_amount" not in changes and any(k in changes for k in AMOUNT_INPUT_FIELDS):
            updated.calculated_amount = self._calculator.element_amount(updated)

        saved = self._storage.save_element(updated)
        self.reload()
        return saved

    def delete_element(self, element_id: str) -> None:
        self._storage.delete_element(self._require_case(), element_id)
        self.reload()

    def reorder_elements(self, element_ids: List[str]) -> None:
        self._storage.reorder_elements(self._require_case(), element_ids)
        self.reload()

    def sync_medical_expenses(self) -> DamageElement:
        element = self._storage.sync_medical_expenses(self._require_case())
        self.reload()
        return element

    def add_medical_record(self, record: MedicalRecord) -> MedicalRecord:
        record.case_id = self._require_case()
        saved = self._storage.add_medical_record(record)
        self.reload()
        return saved

    def summarize(self, comparative_negligence_percent: Optional[float] = None) -> DamageCalculation:
        """Recompute and store the damages summary for the active case."""
        case_id = self._require_case()
        existing = self._storage.get_calculation(case_id)
        calculation = self._calculator.summarize(
            case_id, self.elements, comparative_negligence_percent, existing=existing
        )
        self._storage.save_calculation(calculation)
        logger.info("Damage calculation saved for case %s with total: %.2f",
                    case_id, calculation.adjusted_damages_total)
        return calculation

    # ------------------------------------------------------------------
    # Valuation
    # ------------------------------------------------------------------

    def reconcile_into(self, form: Dict[str, Any]) -> Tuple[Dict[str, Any], ReconciliationResult]:
        """Reconcile candidate sources and push positive figures into the form."""
        self._require_case()
        result = ReconciliationEngine(self.aggregator).reconcile(self.medical_records)
        return ReconciliationEngine.apply_write_back(form, result), result

    def prepare_input(self, form: Dict[str, Any]) -> Tuple[CaseValuationInput, ReconciliationResult]:
        """
        Reconcile the form and build a validated valuation input.

        Raises:
            ValidationError: if no economic figure is present anywhere
        """
        reconciled_form, result = self.reconcile_into(form)
        valuation_input = CaseValuationInput.from_form(reconciled_form)
        self._calculator.check_preconditions(valuation_input, self.aggregator.economic_total())
        return valuation_input, result

    def calculate_local(self, form: Dict[str, Any]) -> ValuationOutcome:
        """Reconcile, validate and value the case with the local formula only."""
        case_id = self._require_case()
        valuation_input, reconciliation = self.prepare_input(form)
        valuation = self._calculator.compute_local(valuation_input)
        self.valuation = valuation
        return self._outcome(case_id, valuation, valuation_input, reconciliation)

    async def calculate(self, form: Dict[str, Any]) -> ValuationOutcome:
        """
        Value the case locally, then ask the remote service for a richer answer.

        The local result is applied immediately. A successful remote result
        replaces it; any remote failure is logged and the local result stands.
        If the case changes or a newer calculation starts while the remote call
        is running, its result is dropped and the returned outcome (carrying
        the local valuation) is marked stale.

        Raises:
            ValidationError: if no economic figure is present anywhere
        """
        outcome = self.calculate_local(form)
        if self._remote is None or not self._remote.configured:
            return outcome

        self.cancel_pending()
        token = CancellationToken(outcome.case_id)
        task = asyncio.ensure_future(
            asyncio.to_thread(self._remote.compute_remote, outcome.valuation_input)
        )
        self._token = token
        self._remote_task = task

        try:
            remote_valuation = await task
        except asyncio.CancelledError:
            if token.cancelled:
                logger.info("Remote valuation for case %s superseded, keeping local result", outcome.case_id)
                outcome.stale = True
                return outcome
            # Cancelled from outside the workspace
            task.cancel()
            raise
        except RemoteServiceError as e:
            logger.warning("Remote valuation failed for case %s, using local formula: %s",
                           outcome.case_id, e)
            outcome.remote_error = str(e)
            return outcome
        finally:
            if self._remote_task is task:
                self._remote_task = None

        if not token.is_live_for(self.active_case_id):
            logger.info("Discarding late remote valuation for case %s", outcome.case_id)
            outcome.stale = True
            return outcome

        self.valuation = remote_valuation
        return self._outcome(
            outcome.case_id, remote_valuation, outcome.valuation_input, outcome.reconciliation
        )

    def display(self, valuation: CaseValuation, policy_limit: Any = None) -> Dict[str, Any]:
        """
        Range bar and policy-limit marker for a valuation.

        Returns:
            ``{"range": {...} or None, "policy_limit_position": float}``
        """
        settlement_range = self._ranges.from_valuation(valuation)
        if settlement_range is None:
            return {"range": None, "policy_limit_position": 0.0}
        return {
            "range": settlement_range.to_dict(),
            "policy_limit_position": policy_limit_position(policy_limit, settlement_range.high),
        }

    def _outcome(
        self,
        case_id: str,
        valuation: CaseValuation,
        valuation_input: CaseValuationInput,
        reconciliation: ReconciliationResult,
    ) -> ValuationOutcome:
        settlement_range = self._ranges.from_valuation(valuation)
        position = 0.0
        if settlement_range is not None:
            position = policy_limit_position(valuation_input.policy_limit, settlement_range.high)

        warnings = []
        if valuation_input.policy_limit is not None and valuation.adjusted_case_value > valuation_input.policy_limit:
            warnings.append("Case value exceeds the policy limit; recovery is capped.")

        return ValuationOutcome(
            case_id=case_id,
            valuation=valuation,
            valuation_input=valuation_input,
            reconciliation=reconciliation,
            settlement_range=settlement_range,
            policy_limit_position=position,
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Persistence of results
    # ------------------------------------------------------------------

    def save_settlement_analysis(self, outcome: ValuationOutcome) -> Optional[DamageCalculation]:
        """
        Persist the valuation as the case's settlement analysis.

        Failures are logged and swallowed: the displayed valuation stays valid.
        Stale outcomes are never saved.
        """
        if outcome.stale or outcome.case_id != self.active_case_id:
            return None

        analysis = outcome.valuation.to_dict()
        analysis["injury_type"] = outcome.valuation_input.injury_type
        analysis["policy_limit"] = outcome.valuation_input.policy_limit
        analysis["comparative_negligence_percent"] = outcome.valuation_input.comparative_negligence_percent

        try:
            calculation = self._storage.save_settlement_analysis(outcome.case_id, analysis)
        except PersistenceError as e:
            logger.error("Failed to save settlement analysis for case %s: %s", outcome.case_id, e)
            return None

        outcome.saved = True
        self._record_history(outcome)
        return calculation

    def _record_history(self, outcome: ValuationOutcome) -> None:
        if self._history is None:
            return
        entry = {
            "case_id": outcome.case_id,
            "realistic_recovery": outcome.valuation.realistic_recovery,
            "adjusted_case_value": outcome.valuation.adjusted_case_value,
            "source": outcome.valuation.source.value,
            "recorded_at": datetime.utcnow().isoformat(),
        }
        try:
            history = self._history.get(SETTLEMENT_HISTORY_KEY, [])
            history.insert(0, entry)
            self._history.put(SETTLEMENT_HISTORY_KEY, history[:SETTLEMENT_HISTORY_LIMIT])
        except PersistenceError as e:
            logger.error("Failed to record settlement history: %s", e)

    def settlement_history(self) -> List[Dict[str, Any]]:
        if self._history is None:
            return []
        return self._history.get(SETTLEMENT_HISTORY_KEY, [])
