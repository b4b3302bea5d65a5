"""
Settlement range display helpers.

Turns a three-point settlement estimate (low / likely / high) into sorted
values and the segment widths of a proportional bar, and places the
policy-limit marker on the same bar.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from app.personal_injury.models import CaseValuation, coerce_policy_limit
from app.utils import to_number

EQUAL_SEGMENT_PCT = 33.0


def _clamp_pct(value: float) -> float:
    return min(100.0, max(0.0, value))


@dataclass
class SettlementRange:
    """Sorted settlement range with bar segment widths (percent of high)."""

    low: float
    mid: float
    high: float
    low_pct: float
    likely_pct: float
    high_pct: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "low": self.low,
            "mid": self.mid,
            "high": self.high,
            "low_pct": self.low_pct,
            "likely_pct": self.likely_pct,
            "high_pct": self.high_pct,
        }


class RangeSynthesizer:
    """
    Normalizes a possibly disordered three-point estimate.

    The remote service does not guarantee low <= likely <= high, so the values
    are sorted first; the middle value is recovered as sum - min - max, which
    keeps the total of the three figures unchanged.
    """

    def synthesize(self, low: Any, likely: Any, high: Any) -> SettlementRange:
        """
        Build the sorted range and bar widths.

        Args:
            low: Raw low estimate
            likely: Raw most-likely estimate
            high: Raw high estimate

        Returns:
            SettlementRange; equal thirds when the high value is not positive
        """
        values = (to_number(low), to_number(likely), to_number(high))
        sorted_low = min(values)
        sorted_high = max(values)
        sorted_mid = sum(values) - sorted_low - sorted_high

        if sorted_high <= 0:
            return SettlementRange(
                low=sorted_low,
                mid=sorted_mid,
                high=sorted_high,
                low_pct=EQUAL_SEGMENT_PCT,
                likely_pct=EQUAL_SEGMENT_PCT,
                high_pct=EQUAL_SEGMENT_PCT,
            )

        return SettlementRange(
            low=sorted_low,
            mid=sorted_mid,
            high=sorted_high,
            low_pct=_clamp_pct(sorted_low / sorted_high * 100),
            likely_pct=_clamp_pct((sorted_mid - sorted_low) / sorted_high * 100),
            high_pct=_clamp_pct((sorted_high - sorted_mid) / sorted_high * 100),
        )

    def from_valuation(self, valuation: CaseValuation) -> Optional[SettlementRange]:
        """Range for a valuation, or None when it carries no settlement range."""
        if not valuation.has_settlement_range:
            return None
        likely = valuation.settlement_range_mid
        if likely is None:
            likely = valuation.realistic_recovery
        return self.synthesize(
            valuation.settlement_range_low, likely, valuation.settlement_range_high
        )


def policy_limit_position(policy_limit: Any, high: Any) -> float:
    """
    Position of the policy-limit marker on the range bar, in percent.

    0 when there is no limit, the limit is not positive, or the high value is
    not positive.
    """
    limit = coerce_policy_limit(policy_limit)
    high_value = to_number(high)
    if limit is not None and limit > 0 and high_value > 0:
        return _clamp_pct(limit / high_value * 100)
    return 0.0
