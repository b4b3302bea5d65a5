"""
Client for the remote AI case valuation service.

The service receives the same inputs as the local formula and answers with
``{"success": bool, "calculation": {...}}``. Any transport error, HTTP error,
malformed payload or ``success: false`` is raised as RemoteServiceError so the
caller can fall back to the local calculation.
"""

from __future__ import annotations

import json
import math
from typing import Any, Dict, Optional

import requests

from app.config import PersonalInjurySettings
from app.personal_injury.constants import ValuationSource
from app.personal_injury.exceptions import RemoteServiceError
from app.personal_injury.models import CaseValuation, CaseValuationInput
from app.utils import setup_logging, to_number

logger = setup_logging()

REQUIRED_FIELDS = ("economicDamages", "nonEconomicDamages", "totalCaseValue", "realisticRecovery")


def build_request_body(valuation_input: CaseValuationInput) -> Dict[str, Any]:
    """Wire payload for the remote valuation request."""
    return {
        "injuryType": valuation_input.injury_type,
        "injuryDescription": valuation_input.injury_description,
        "liabilityAssessment": valuation_input.liability_assessment.value,
        "comparativeNegligence": valuation_input.comparative_negligence_percent,
        "medicalExpenses": valuation_input.medical_expenses,
        "lostWages": valuation_input.lost_wages,
        "futureMedical": valuation_input.future_medical,
        "policyLimit": valuation_input.policy_limit,
    }


def _required_number(calculation: Dict[str, Any], key: str) -> float:
    value = calculation.get(key)
    if value is None or isinstance(value, bool):
        raise RemoteServiceError(f"Remote valuation is missing '{key}'")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise RemoteServiceError(f"Remote valuation has a non-numeric '{key}': {value!r}") from exc
    if not math.isfinite(number):
        raise RemoteServiceError(f"Remote valuation has a non-finite '{key}'")
    return number


def _optional_number(calculation: Dict[str, Any], key: str) -> Optional[float]:
    return to_number(calculation.get(key), default=None)


def parse_calculation(
    calculation: Dict[str, Any],
    valuation_input: CaseValuationInput,
) -> CaseValuation:
    """
    Map a remote ``calculation`` object onto a CaseValuation.

    Dollar figures are taken from the payload as-is. The payload has no
    adjusted value, so it is derived from the remote total and the input's
    comparative negligence. The realistic recovery doubles as the likely
    point of the settlement range.

    Raises:
        RemoteServiceError: if a required dollar figure is missing or malformed
    """
    if not isinstance(calculation, dict):
        raise RemoteServiceError("Remote valuation payload has no calculation object")

    economic, non_economic, total, realistic = (
        _required_number(calculation, key) for key in REQUIRED_FIELDS
    )

    multiplier = _optional_number(calculation, "recommendedMultiplier")
    if multiplier is None:
        multiplier = non_economic / economic if economic > 0 else 0.0

    negligence = min(100.0, max(0.0, to_number(valuation_input.comparative_negligence_percent)))

    case_strength = _optional_number(calculation, "caseStrength")
    if case_strength is not None:
        case_strength = min(10.0, max(0.0, case_strength))

    key_factors = calculation.get("keyFactors") or []
    if not isinstance(key_factors, list):
        key_factors = [key_factors]

    is_underinsured = calculation.get("isUnderinsured")

    return CaseValuation(
        economic_damages=economic,
        non_economic_damages=non_economic,
        total_case_value=total,
        adjusted_case_value=total * (1 - negligence / 100),
        realistic_recovery=realistic,
        multiplier=multiplier,
        source=ValuationSource.REMOTE,
        settlement_range_low=_optional_number(calculation, "settlementRangeLow"),
        settlement_range_mid=realistic,
        settlement_range_high=_optional_number(calculation, "settlementRangeHigh"),
        case_strength=case_strength,
        key_factors=[str(f) for f in key_factors],
        multiplier_reasoning=calculation.get("multiplierReasoning"),
        recommendations=calculation.get("recommendations"),
        medical_to_limit_ratio=_optional_number(calculation, "medicalToLimitRatio"),
        is_underinsured=bool(is_underinsured) if is_underinsured is not None else None,
    )


class RemoteValuationClient:
    """
    Submits valuation inputs to the remote AI service.

    One attempt per call, bounded by ``settings.remote_timeout``; there is no
    retry because the local formula is always available as a fallback.
    """

    def __init__(self, settings: PersonalInjurySettings, session: Optional[requests.Session] = None):
        self._settings = settings
        self._session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return self._settings.remote_configured

    def compute_remote(self, valuation_input: CaseValuationInput) -> CaseValuation:
        """
        Request a valuation from the remote service.

        Args:
            valuation_input: Valuation inputs

        Returns:
            CaseValuation with source REMOTE

        Raises:
            RemoteServiceError: on any failure; callers fall back to the local formula
        """
        if not self.configured:
            raise RemoteServiceError("Remote valuation service is not configured")

        headers = {"Content-Type": "application/json"}
        if self._settings.remote_api_key:
            headers["Authorization"] = f"Bearer {self._settings.remote_api_key}"

        body = build_request_body(valuation_input)
        try:
            resp = self._session.post(
                self._settings.remote_url,
                headers=headers,
                json=body,
                timeout=self._settings.remote_timeout,
            )
        except requests.Timeout as exc:
            raise RemoteServiceError(
                f"Remote valuation timed out after {self._settings.remote_timeout}s"
            ) from exc
        except requests.RequestException as exc:
            raise RemoteServiceError(f"Remote valuation request failed: {exc}") from exc

        if resp.status_code >= 400:
            raise RemoteServiceError(
                f"Remote valuation error {resp.status_code}: {resp.text}",
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise RemoteServiceError(f"Remote valuation returned invalid JSON: {resp.text[:200]}") from exc

        if not isinstance(data, dict) or not data.get("success"):
            error = data.get("error") if isinstance(data, dict) else None
            raise RemoteServiceError(
                f"Remote valuation unsuccessful: {error or json.dumps(data)[:200]}"
            )

        valuation = parse_calculation(data.get("calculation"), valuation_input)
        logger.debug("Remote valuation succeeded (recovery=%.2f)", valuation.realistic_recovery)
        return valuation
