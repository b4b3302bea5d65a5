"""
JSON storage for personal-injury damages.

Stores damage elements, medical records and the damages summary for each case
under the data/pi_cases directory.
"""

import json
import shutil
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from app.personal_injury.constants import ConfidenceLevel, DamageElementType
from app.personal_injury.exceptions import ElementNotFoundError, PersistenceError
from app.personal_injury.models import DamageCalculation, DamageElement, MedicalRecord
from app.utils import to_number

# Default data path - can be overridden in tests
DATA_PATH = Path(__file__).parent.parent.parent / "data"


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    try:
        with open(path) as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise PersistenceError(f"Failed to read {path}: {e}") from e


def _write_json(path: Path, data: Any) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(data, f, indent=2, default=str)
    except (OSError, TypeError) as e:
        raise PersistenceError(f"Failed to write {path}: {e}") from e


class DamageStorage:
    """
    Storage service for personal-injury damages.

    File structure:
        data/pi_cases/{case_id}/
            elements.json          - Damage elements, in display order
            medical_records.json   - Treatment records with billed amounts
            calculation.json       - Damages summary and settlement analysis
    """

    def __init__(self, base_path: Optional[Path] = None):
        """
        Initialize storage.

        Args:
            base_path: Base path for data storage (defaults to DATA_PATH)
        """
        self._explicit_base_path = Path(base_path) if base_path is not None else None

    @property
    def base_path(self) -> Path:
        """Get base path, using module-level DATA_PATH if not explicitly set."""
        return self._explicit_base_path if self._explicit_base_path is not None else DATA_PATH

    @property
    def cases_path(self) -> Path:
        return self.base_path / "pi_cases"

    def _get_case_dir(self, case_id: str) -> Path:
        return self.cases_path / str(case_id)

    # ------------------------------------------------------------------
    # Damage elements
    # ------------------------------------------------------------------

    def _load_elements(self, case_id: str) -> List[DamageElement]:
        raw = _read_json(self._get_case_dir(case_id) / "elements.json", [])
        return [DamageElement.from_dict(item) for item in raw]

    def _save_elements(self, case_id: str, elements: List[DamageElement]) -> None:
        _write_json(
            self._get_case_dir(case_id) / "elements.json",
            [e.to_dict() for e in elements],
        )

    def list_elements(self, case_id: str) -> List[DamageElement]:
        """
        List damage elements of a case.

        Returns:
            Elements ordered by display order
        """
        return sorted(self._load_elements(case_id), key=lambda e: e.display_order)

    def list_elements_by_type(self, case_id: str, element_type: DamageElementType) -> List[DamageElement]:
        element_type = DamageElementType(element_type)
        return [e for e in self.list_elements(case_id) if e.element_type == element_type]

    def get_element(self, case_id: str, element_id: str) -> DamageElement:
        """
        Load one element.

        Raises:
            ElementNotFoundError: if the id is unknown for this case
        """
        for element in self._load_elements(case_id):
            if element.id == element_id:
                return element
        raise ElementNotFoundError(case_id, element_id)

    def create_element(self, element: DamageElement) -> DamageElement:
        """
        Store a new element, assigning its id, display order and timestamps.

        Args:
            element: Element to store; its case_id selects the case

        Returns:
            The stored element
        """
        elements = self._load_elements(element.case_id)
        now = datetime.utcnow().isoformat()

        element.id = element.id or uuid.uuid4().hex
        element.display_order = max((e.display_order for e in elements), default=-1) + 1
        element.created_at = now
        element.updated_at = now

        elements.append(element)
        self._save_elements(element.case_id, elements)
        return element

    def save_element(self, element: DamageElement) -> DamageElement:
        """Replace an existing element in place (matched by id)."""
        elements = self._load_elements(element.case_id)
        for index, existing in enumerate(elements):
            if existing.id == element.id:
                element.updated_at = datetime.utcnow().isoformat()
                elements[index] = element
                self._save_elements(element.case_id, elements)
                return element
        raise ElementNotFoundError(element.case_id, element.id)

    def delete_element(self, case_id: str, element_id: str) -> None:
        elements = self._load_elements(case_id)
        remaining = [e for e in elements if e.id != element_id]
        if len(remaining) == len(elements):
            raise ElementNotFoundError(case_id, element_id)
        self._save_elements(case_id, remaining)

    def reorder_elements(self, case_id: str, element_ids: List[str]) -> None:
        """
        Set display order to the position of each id in ``element_ids``.

        Raises:
            ElementNotFoundError: if any id is unknown
        """
        elements = {e.id: e for e in self._load_elements(case_id)}
        for element_id in element_ids:
            if element_id not in elements:
                raise ElementNotFoundError(case_id, element_id)
        for order, element_id in enumerate(element_ids):
            elements[element_id].display_order = order
        self._save_elements(case_id, list(elements.values()))

    # ------------------------------------------------------------------
    # Medical records
    # ------------------------------------------------------------------

    def list_medical_records(self, case_id: str) -> List[MedicalRecord]:
        raw = _read_json(self._get_case_dir(case_id) / "medical_records.json", [])
        return [MedicalRecord.from_dict(item) for item in raw]

    def add_medical_record(self, record: MedicalRecord) -> MedicalRecord:
        records = self.list_medical_records(record.case_id)
        record.id = record.id or uuid.uuid4().hex
        records.append(record)
        _write_json(
            self._get_case_dir(record.case_id) / "medical_records.json",
            [r.to_dict() for r in records],
        )
        return record

    def medical_billed_total(self, case_id: str) -> float:
        return sum((to_number(r.billed_amount) for r in self.list_medical_records(case_id)), 0.0)

    def sync_medical_expenses(self, case_id: str) -> DamageElement:
        """
        Recompute the PAST_MEDICAL element from the medical-record billed total.

        Updates the first existing PAST_MEDICAL element, or creates one.

        Returns:
            The synced element
        """
        total_billed = self.medical_billed_total(case_id)
        note = f"Synced from medical records on {datetime.utcnow().date().isoformat()}"

        existing = self.list_elements_by_type(case_id, DamageElementType.PAST_MEDICAL)
        if existing:
            element = existing[0]
            element.base_amount = total_billed
            element.calculated_amount = total_billed
            element.notes = note
            return self.save_element(element)

        element = DamageElement(
            case_id=case_id,
            element_type=DamageElementType.PAST_MEDICAL,
            element_name="Past Medical Expenses",
            calculation_method="Actual",
            base_amount=total_billed,
            calculated_amount=total_billed,
            confidence_level=ConfidenceLevel.HIGH,
            notes=note,
        )
        return self.create_element(element)

    # ------------------------------------------------------------------
    # Damages summary
    # ------------------------------------------------------------------

    def get_calculation(self, case_id: str) -> Optional[DamageCalculation]:
        data = _read_json(self._get_case_dir(case_id) / "calculation.json", None)
        return DamageCalculation.from_dict(data) if data else None

    def save_calculation(self, calculation: DamageCalculation) -> DamageCalculation:
        _write_json(self._get_case_dir(calculation.case_id) / "calculation.json", calculation.to_dict())
        return calculation

    def save_settlement_analysis(self, case_id: str, analysis: Dict[str, Any]) -> DamageCalculation:
        """
        Attach a settlement analysis to the case's damages summary.

        Low/mid/high values and the economic/non-economic totals are refreshed
        from the analysis when it carries them.

        Args:
            case_id: Case identifier
            analysis: Settlement analysis mirroring a CaseValuation

        Returns:
            The updated summary
        """
        calculation = self.get_calculation(case_id) or DamageCalculation(case_id=case_id)
        calculation.settlement_analysis = analysis

        field_map = {
            "settlement_range_low": "low_value",
            "realistic_recovery": "mid_value",
            "settlement_range_high": "high_value",
            "economic_damages": "economic_damages_total",
            "non_economic_damages": "non_economic_damages_total",
        }
        for source_key, target_attr in field_map.items():
            value = to_number(analysis.get(source_key), default=None)
            if value is not None:
                setattr(calculation, target_attr, value)

        calculation.calculated_at = datetime.utcnow().isoformat()
        return self.save_calculation(calculation)

    # ------------------------------------------------------------------
    # Cases
    # ------------------------------------------------------------------

    def list_cases(self) -> List[str]:
        if not self.cases_path.exists():
            return []
        return [d.name for d in self.cases_path.iterdir() if d.is_dir()]

    def delete_case(self, case_id: str) -> bool:
        """
        Delete a case and all of its damages data.

        Returns:
            True if deleted, False if not found
        """
        case_dir = self._get_case_dir(case_id)
        if case_dir.exists():
            shutil.rmtree(case_dir)
            return True
        return False


class KeyValueStore:
    """
    Small JSON-file key/value store for ancillary lists such as settlement
    history and provider directories.
    """

    def __init__(self, path: Path):
        self._path = Path(path)

    def get(self, key: str, default: Any = None) -> Any:
        return _read_json(self._path, {}).get(key, default)

    def put(self, key: str, value: Any) -> None:
        data = _read_json(self._path, {})
        data[key] = value
        _write_json(self._path, data)

    def delete(self, key: str) -> None:
        data = _read_json(self._path, {})
        if data.pop(key, None) is not None:
            _write_json(self._path, data)
