"""
Settlement negotiation tracker.

Keeps the demand / offer / counter-offer rounds of a case in the key/value
store and derives where the negotiation stands from the most recent round.

Usage:
    from app.personal_injury.settlement_tracker import SettlementTracker
    from app.personal_injury.storage import KeyValueStore

    tracker = SettlementTracker(KeyValueStore(path), "case-123")
    tracker.add_event({"demand_amount": 150000, "offer_amount": 60000})
    tracker.summary()
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from app.personal_injury.exceptions import ValidationError
from app.personal_injury.models import SettlementEvent
from app.personal_injury.storage import KeyValueStore
from app.utils import setup_logging, to_number

logger = setup_logging()

SETTLEMENT_EVENTS_KEY = "settlement_events"


class SettlementTracker:
    """Settlement events for one case, oldest first."""

    def __init__(self, store: KeyValueStore, case_id: str):
        self._store = store
        self.case_id = case_id

    @property
    def key(self) -> str:
        return f"{SETTLEMENT_EVENTS_KEY}:{self.case_id}"

    def events(self) -> List[SettlementEvent]:
        return [SettlementEvent.from_dict(item) for item in self._store.get(self.key, [])]

    def add_event(self, event: Union[SettlementEvent, Dict[str, Any]]) -> SettlementEvent:
        """
        Append a negotiation round.

        The demand amount is required; the other amounts are optional. The
        event gets a fresh id and the current UTC timestamp.

        Raises:
            ValidationError: if the demand amount is missing
        """
        if isinstance(event, dict):
            event = SettlementEvent.from_dict({"demand_amount": None, **event})
        if event.demand_amount is None or event.demand_amount == "":
            raise ValidationError(["demand_amount"], "A settlement event needs a demand amount")

        event.demand_amount = to_number(event.demand_amount)
        event.offer_amount = _optional_amount(event.offer_amount)
        event.counter_amount = _optional_amount(event.counter_amount)
        event.id = uuid.uuid4().hex
        event.date = datetime.utcnow().isoformat()

        stored = self._store.get(self.key, [])
        stored.append(event.to_dict())
        self._store.put(self.key, stored)
        logger.info("Recorded settlement event for case %s: demand %.2f", self.case_id, event.demand_amount)
        return event

    def clear(self) -> None:
        self._store.delete(self.key)
        logger.info("Cleared settlement history for case %s", self.case_id)

    def _latest(self) -> Optional[SettlementEvent]:
        events = self.events()
        return events[-1] if events else None

    def latest_demand(self) -> float:
        latest = self._latest()
        return to_number(latest.demand_amount) if latest else 0.0

    def latest_offer(self) -> float:
        latest = self._latest()
        return to_number(latest.offer_amount) if latest else 0.0

    def negotiation_gap(self) -> float:
        return self.latest_demand() - self.latest_offer()

    def offer_percent(self) -> float:
        """Latest offer as a percentage of the latest demand, capped at 100."""
        demand = self.latest_demand()
        if demand == 0:
            return 0.0
        return min(100.0, self.latest_offer() / demand * 100)

    def summary(self) -> Dict[str, Any]:
        return {
            "case_id": self.case_id,
            "event_count": len(self.events()),
            "latest_demand": self.latest_demand(),
            "latest_offer": self.latest_offer(),
            "negotiation_gap": self.negotiation_gap(),
            "offer_percent": self.offer_percent(),
        }


def _optional_amount(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return to_number(value)
