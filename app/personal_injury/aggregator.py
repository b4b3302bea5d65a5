"""
Damage aggregator for personal-injury cases.

Groups and totals the damage elements of a single case.
"""

from typing import Dict, Iterable, List, Union

from app.personal_injury.constants import (
    ECONOMIC_TYPES,
    MAIN_CATEGORIES,
    NON_ECONOMIC_TYPES,
    DamageElementType,
)
from app.personal_injury.models import DamageElement


class DamageAggregator:
    """
    Aggregates the damage elements of one case.

    Handles:
    - Filtering elements by category
    - Category totals (calculated amount, else base amount, else 0)
    - Economic and non-economic bucket totals
    - The catch-all "other" display group

    The aggregator works on a snapshot of the elements passed in; it never
    mutates them and an empty collection yields zero totals.
    """

    def __init__(self, elements: Iterable[DamageElement] = ()):
        self._elements: List[DamageElement] = list(elements)

    @property
    def elements(self) -> List[DamageElement]:
        return list(self._elements)

    def by_category(self, element_type: Union[DamageElementType, str]) -> List[DamageElement]:
        """
        Return elements of the given type, in stored order.

        Args:
            element_type: A DamageElementType or its string value

        Returns:
            Matching elements; none for an unknown type string
        """
        try:
            element_type = DamageElementType(element_type)
        except ValueError:
            return []
        return [e for e in self._elements if e.element_type == element_type]

    def category_total(self, element_type: Union[DamageElementType, str]) -> float:
        """Sum of effective amounts for one category."""
        return sum((e.amount for e in self.by_category(element_type)), 0.0)

    def economic_total(self) -> float:
        return sum(
            (e.amount for e in self._elements if e.element_type in ECONOMIC_TYPES), 0.0
        )

    def non_economic_total(self) -> float:
        return sum(
            (e.amount for e in self._elements if e.element_type in NON_ECONOMIC_TYPES), 0.0
        )

    def other_elements(self) -> List[DamageElement]:
        """Elements outside the four main display categories."""
        return [e for e in self._elements if e.element_type not in MAIN_CATEGORIES]

    def summary_by_type(self) -> Dict[str, float]:
        """
        Total per element type, only for types that have elements.

        Returns:
            Mapping of element type value to total amount
        """
        summary: Dict[str, float] = {}
        for element in self._elements:
            key = element.element_type.value
            summary[key] = summary.get(key, 0.0) + element.amount
        return summary

    def economic_breakdown(self) -> Dict[str, float]:
        """Economic vs non-economic split plus the total of all elements."""
        return {
            "economic": self.economic_total(),
            "non_economic": self.non_economic_total(),
            "total": sum((e.amount for e in self._elements), 0.0),
        }
