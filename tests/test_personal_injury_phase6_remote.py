"""
Tests for Phase 6: Remote AI Valuation Client
Feature: personal-injury case valuation

Tests cover:
- Request payload and headers
- Mapping of a successful remote calculation
- Transport, HTTP, payload and success-flag failures as RemoteServiceError
"""
from unittest.mock import MagicMock

import pytest
import requests


@pytest.fixture
def settings():
    from app.config import PersonalInjurySettings
    return PersonalInjurySettings(
        remote_url="https://valuation.example.com/api/calculate",
        remote_api_key="test-key",
        remote_timeout=5.0,
    )


@pytest.fixture
def valuation_input():
    from app.personal_injury.constants import LiabilityAssessment
    from app.personal_injury.models import CaseValuationInput
    return CaseValuationInput(
        injury_type="fracture",
        injury_description="Broken wrist",
        medical_expenses=10000,
        lost_wages=5000,
        liability_assessment=LiabilityAssessment.COMPARATIVE,
        comparative_negligence_percent=20,
        policy_limit=30000,
    )


@pytest.fixture
def remote_calculation():
    return {
        "economicDamages": 15000,
        "recommendedMultiplier": 2.8,
        "multiplierReasoning": "Surgical repair with hardware",
        "nonEconomicDamages": 42000,
        "totalCaseValue": 57000,
        "realisticRecovery": 30000,
        "settlementRangeLow": 35000,
        "settlementRangeHigh": 25000,
        "caseStrength": 7,
        "keyFactors": ["Clear imaging", "Surgery"],
        "recommendations": "Demand policy limits",
        "medicalToLimitRatio": 0.33,
        "isUnderinsured": True,
    }


def make_response(status_code=200, payload=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload
    return response


def make_client(settings, response=None, error=None):
    from app.personal_injury.remote import RemoteValuationClient
    session = MagicMock()
    if error is not None:
        session.post.side_effect = error
    else:
        session.post.return_value = response
    return RemoteValuationClient(settings, session=session), session


class TestRequest:
    """Tests for the outbound request."""

    def test_build_request_body(self, valuation_input):
        from app.personal_injury.remote import build_request_body

        body = build_request_body(valuation_input)

        assert body == {
            "injuryType": "fracture",
            "injuryDescription": "Broken wrist",
            "liabilityAssessment": "COMPARATIVE",
            "comparativeNegligence": 20,
            "medicalExpenses": 10000,
            "lostWages": 5000,
            "futureMedical": 0.0,
            "policyLimit": 30000,
        }

    def test_posts_with_auth_and_timeout(self, settings, valuation_input, remote_calculation):
        client, session = make_client(
            settings, make_response(payload={"success": True, "calculation": remote_calculation})
        )

        client.compute_remote(valuation_input)

        args, kwargs = session.post.call_args
        assert args[0] == settings.remote_url
        assert kwargs["headers"]["Authorization"] == "Bearer test-key"
        assert kwargs["timeout"] == 5.0
        assert kwargs["json"]["injuryType"] == "fracture"

    def test_no_auth_header_without_key(self, settings, valuation_input, remote_calculation):
        settings.remote_api_key = None
        client, session = make_client(
            settings, make_response(payload={"success": True, "calculation": remote_calculation})
        )

        client.compute_remote(valuation_input)

        assert "Authorization" not in session.post.call_args.kwargs["headers"]


class TestResponseMapping:
    """Tests for mapping a successful calculation."""

    def test_successful_calculation(self, settings, valuation_input, remote_calculation):
        from app.personal_injury.constants import ValuationSource

        client, _ = make_client(
            settings, make_response(payload={"success": True, "calculation": remote_calculation})
        )

        valuation = client.compute_remote(valuation_input)

        assert valuation.source == ValuationSource.REMOTE
        assert valuation.economic_damages == 15000
        assert valuation.non_economic_damages == 42000
        assert valuation.total_case_value == 57000
        assert valuation.realistic_recovery == 30000
        assert valuation.multiplier == 2.8
        assert valuation.adjusted_case_value == pytest.approx(45600)
        assert valuation.settlement_range_low == 35000
        assert valuation.settlement_range_mid == 30000
        assert valuation.settlement_range_high == 25000
        assert valuation.case_strength == 7
        assert valuation.key_factors == ["Clear imaging", "Surgery"]
        assert valuation.is_underinsured is True

    def test_multiplier_derived_when_missing(self, valuation_input, remote_calculation):
        from app.personal_injury.remote import parse_calculation

        del remote_calculation["recommendedMultiplier"]

        valuation = parse_calculation(remote_calculation, valuation_input)

        assert valuation.multiplier == pytest.approx(2.8)

    def test_optional_fields_may_be_absent(self, valuation_input):
        from app.personal_injury.remote import parse_calculation

        valuation = parse_calculation(
            {
                "economicDamages": 1000,
                "nonEconomicDamages": 1500,
                "totalCaseValue": 2500,
                "realisticRecovery": 2500,
            },
            valuation_input,
        )

        assert valuation.has_settlement_range is False
        assert valuation.key_factors == []
        assert valuation.is_underinsured is None

    @pytest.mark.parametrize("bad_value", [None, "lots", float("nan")])
    def test_malformed_required_field_raises(self, valuation_input, remote_calculation, bad_value):
        from app.personal_injury.exceptions import RemoteServiceError
        from app.personal_injury.remote import parse_calculation

        remote_calculation["totalCaseValue"] = bad_value

        with pytest.raises(RemoteServiceError):
            parse_calculation(remote_calculation, valuation_input)


class TestFailures:
    """Every failure surfaces as RemoteServiceError."""

    def test_timeout(self, settings, valuation_input):
        from app.personal_injury.exceptions import RemoteServiceError

        client, _ = make_client(settings, error=requests.Timeout("slow"))

        with pytest.raises(RemoteServiceError, match="timed out"):
            client.compute_remote(valuation_input)

    def test_connection_error(self, settings, valuation_input):
        from app.personal_injury.exceptions import RemoteServiceError

        client, _ = make_client(settings, error=requests.ConnectionError("refused"))

        with pytest.raises(RemoteServiceError):
            client.compute_remote(valuation_input)

    def test_http_error_status(self, settings, valuation_input):
        from app.personal_injury.exceptions import RemoteServiceError

        client, _ = make_client(settings, make_response(status_code=502, text="Bad gateway"))

        with pytest.raises(RemoteServiceError) as exc_info:
            client.compute_remote(valuation_input)

        assert exc_info.value.status_code == 502

    def test_invalid_json(self, settings, valuation_input):
        from app.personal_injury.exceptions import RemoteServiceError

        client, _ = make_client(settings, make_response(payload=ValueError("no json"), text="<html>"))

        with pytest.raises(RemoteServiceError, match="invalid JSON"):
            client.compute_remote(valuation_input)

    def test_success_false(self, settings, valuation_input):
        from app.personal_injury.exceptions import RemoteServiceError

        client, _ = make_client(
            settings, make_response(payload={"success": False, "error": "model overloaded"})
        )

        with pytest.raises(RemoteServiceError, match="model overloaded"):
            client.compute_remote(valuation_input)

    def test_missing_calculation(self, settings, valuation_input):
        from app.personal_injury.exceptions import RemoteServiceError

        client, _ = make_client(settings, make_response(payload={"success": True}))

        with pytest.raises(RemoteServiceError):
            client.compute_remote(valuation_input)

    def test_not_configured(self, valuation_input):
        from app.config import PersonalInjurySettings
        from app.personal_injury.exceptions import RemoteServiceError
        from app.personal_injury.remote import RemoteValuationClient

        client = RemoteValuationClient(PersonalInjurySettings(remote_url=""), session=MagicMock())

        assert client.configured is False
        with pytest.raises(RemoteServiceError):
            client.compute_remote(valuation_input)
