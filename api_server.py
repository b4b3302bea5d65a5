"""
FastAPI backend server for the personal-injury case valuation workbench.
This provides REST API endpoints for the damages and case value screens.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from app.config import Settings, load_settings, validate_settings
from app.personal_injury import (
    CaseValuationWorkspace,
    ConfidenceLevel,
    DamageAggregator,
    DamageCalculation,
    DamageElement,
    DamageElementType,
    DamageStorage,
    ElementNotFoundError,
    KeyValueStore,
    MedicalRecord,
    PersistenceError,
    RemoteValuationClient,
    SettlementTracker,
    ValidationError,
    ValuationCalculator,
)
from app.utils import setup_logging

# Setup logging
_startup_settings = load_settings()
logger = setup_logging(_startup_settings.app.log_level)

# Initialize FastAPI app
app = FastAPI(
    title="Case Valuation API",
    description="REST API for personal-injury damages and case valuation",
    version="0.1.0",
)


def _allowed_origins(settings: Settings) -> List[str]:
    """CORS origins: local dev servers plus the configured frontend."""
    origins = [
        "http://localhost:3000",  # Next.js dev server
        "http://127.0.0.1:3000",
    ]
    if settings.app.frontend_url:
        origins.append(settings.app.frontend_url)
    return origins


# Configure CORS for frontend access
app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins(_startup_settings),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    """Report configuration problems on startup."""
    settings = load_settings()
    for problem in validate_settings(settings):
        logger.warning("Configuration: %s", problem)
    logger.info(
        "Case valuation %s (remote service %s)",
        "enabled" if settings.personal_injury.enabled else "disabled",
        "configured" if settings.personal_injury.remote_configured else "not configured",
    )


# Pydantic models for API requests
Amount = Union[float, str, None]


class DamageElementRequest(BaseModel):
    element_type: DamageElementType
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


class DamageElementUpdate(BaseModel):
    element_type: Optional[DamageElementType] = None
    element_name: Optional[str] = None
    calculation_method: Optional[str] = None
    base_amount: Optional[float] = None
    calculated_amount: Optional[float] = None
    multiplier: Optional[float] = None
    duration_value: Optional[float] = None
    duration_unit: Optional[str] = None
    confidence_level: Optional[ConfidenceLevel] = None
    source_provider: Optional[str] = None
    source_employer: Optional[str] = None
    notes: Optional[str] = None


class ReorderRequest(BaseModel):
    element_ids: List[str]


class CalculateDamagesRequest(BaseModel):
    comparative_negligence_percent: Optional[float] = None


class SettlementAnalysisRequest(BaseModel):
    analysis: Dict[str, Any]


class HouseholdServicesRequest(BaseModel):
    monthly_rate: float
    months: int
    notes: Optional[str] = None


class MileageRequest(BaseModel):
    miles: float
    rate_per_mile: Optional[float] = None
    notes: Optional[str] = None


class LostWagesRequest(BaseModel):
    hourly_rate: float
    hours_lost: int
    employer_name: Optional[str] = None
    notes: Optional[str] = None


class PainSufferingRequest(BaseModel):
    method: str  # 'MULTIPLIER' or 'PER_DIEM'
    economic_base: float = 0.0
    multiplier_or_per_diem: float
    duration_days: Optional[int] = None
    notes: Optional[str] = None


class MedicalRecordRequest(BaseModel):
    provider_name: str
    billed_amount: float = 0.0
    record_type: Optional[str] = None
    treatment_date: Optional[str] = None


class CaseValueRequest(BaseModel):
    injury_type: str = "soft_tissue"
    injury_description: str = ""
    medical_expenses: Amount = None
    lost_wages: Amount = None
    future_medical: Amount = None
    custom_multiplier: Amount = None
    liability_assessment: Optional[str] = None
    comparative_negligence_percent: Amount = None
    policy_limit: Amount = None


class SettlementEventRequest(BaseModel):
    demand_amount: Amount = None
    offer_amount: Amount = None
    offer_date: Optional[str] = None
    counter_amount: Amount = None
    notes: Optional[str] = None


class DemandTotalRequest(BaseModel):
    medical_expenses: Amount = None
    lost_wages: Amount = None
    future_medical: Amount = None
    pain_suffering_multiplier: Amount = None


# ============================================================================
# Helpers
# ============================================================================

def _get_storage(settings: Settings) -> DamageStorage:
    return DamageStorage(Path(settings.personal_injury.data_path))


def _get_calculator(settings: Settings) -> ValuationCalculator:
    return ValuationCalculator(
        default_multiplier=settings.personal_injury.default_multiplier,
        mileage_rate=settings.personal_injury.mileage_rate,
    )


def _get_settings_store(settings: Settings) -> KeyValueStore:
    return KeyValueStore(Path(settings.personal_injury.data_path) / "pi_settings.json")


def _get_workspace(settings: Settings, case_id: str) -> CaseValuationWorkspace:
    """Build a workspace with ``case_id`` selected."""
    pi = settings.personal_injury
    remote = RemoteValuationClient(pi) if pi.remote_configured else None
    workspace = CaseValuationWorkspace(
        _get_storage(settings),
        calculator=_get_calculator(settings),
        remote_client=remote,
        history_store=_get_settings_store(settings),
    )
    workspace.select_case(case_id)
    return workspace


def _validation_detail(e: ValidationError) -> Dict[str, Any]:
    return {"message": str(e), "missing_fields": e.missing_fields}


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "version": "0.1.0", "name": "Case Valuation"}


@app.get("/api/health")
async def health():
    """Health check with valuation feature status."""
    settings = load_settings()
    return {
        "status": "ok",
        "valuation_enabled": settings.personal_injury.enabled,
        "remote_configured": settings.personal_injury.remote_configured,
    }


@app.get("/api/config/status")
async def config_status():
    """Check configuration status."""
    try:
        settings = load_settings()
        errors = validate_settings(settings)
        return {
            "valid": len(errors) == 0,
            "errors": errors,
        }
    except Exception as e:
        return {
            "valid": False,
            "errors": [str(e)],
        }


# ============================================================================
# Damage Element APIs
# ============================================================================

@app.get("/api/pi/cases/{case_id}/damages/elements")
async def list_damage_elements(case_id: str):
    """List damage elements of a case in display order."""
    try:
        storage = _get_storage(load_settings())
        elements = storage.list_elements(case_id)
        return {"data": [e.to_dict() for e in elements]}
    except Exception as e:
        logger.error("Failed to list damage elements for case %s: %s", case_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/pi/cases/{case_id}/damages/elements")
async def create_damage_element(case_id: str, request: DamageElementRequest):
    """Create a damage element; the calculated amount is derived when omitted."""
    try:
        workspace = _get_workspace(load_settings(), case_id)
        element = DamageElement(case_id=case_id, **request.model_dump())
        saved = workspace.add_element(element)
        logger.info("Created damage element %s for case %s", saved.id, case_id)
        return {"data": saved.to_dict()}
    except Exception as e:
        logger.error("Failed to create damage element for case %s: %s", case_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/api/pi/cases/{case_id}/damages/elements/by-type/{element_type}")
async def list_damage_elements_by_type(case_id: str, element_type: str):
    """List damage elements of one type."""
    try:
        try:
            type_value = DamageElementType(element_type.upper())
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Unknown damage element type: {element_type}")
        storage = _get_storage(load_settings())
        elements = storage.list_elements_by_type(case_id, type_value)
        return {"data": [e.to_dict() for e in elements]}
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Failed to list %s elements for case %s: %s", element_type, case_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.put("/api/pi/cases/{case_id}/damages/elements/reorder")
async def reorder_damage_elements(case_id: str, request: ReorderRequest):
    """Set the display order to the order of ``element_ids``."""
    try:
        workspace = _get_workspace(load_settings(), case_id)
        workspace.reorder_elements(request.element_ids)
        return {"data": [e.to_dict() for e in workspace.elements]}
    except ElementNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error("Failed to reorder elements for case %s: %s", case_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/api/pi/cases/{case_id}/damages/elements/{element_id}")
async def get_damage_element(case_id: str, element_id: str):
    try:
        storage = _get_storage(load_settings())
        return {"data": storage.get_element(case_id, element_id).to_dict()}
    except ElementNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error("Failed to load element %s: %s", element_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.put("/api/pi/cases/{case_id}/damages/elements/{element_id}")
async def update_damage_element(case_id: str, element_id: str, request: DamageElementUpdate):
    """Update the supplied fields of a damage element."""
    try:
        workspace = _get_workspace(load_settings(), case_id)
        updated = workspace.update_element(element_id, request.model_dump(exclude_none=True))
        logger.info("Updated damage element %s for case %s", element_id, case_id)
        return {"data": updated.to_dict()}
    except ElementNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error("Failed to update element %s: %s", element_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.delete("/api/pi/cases/{case_id}/damages/elements/{element_id}")
async def delete_damage_element(case_id: str, element_id: str):
    try:
        workspace = _get_workspace(load_settings(), case_id)
        workspace.delete_element(element_id)
        logger.info("Deleted damage element %s for case %s", element_id, case_id)
        return {"message": "Damage element deleted", "id": element_id}
    except ElementNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error("Failed to delete element %s: %s", element_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


# ============================================================================
# Damages Summary APIs
# ============================================================================

@app.get("/api/pi/cases/{case_id}/damages/calculation")
async def get_damage_calculation(case_id: str):
    """Get the stored damages summary, or an empty summary if none exists."""
    try:
        storage = _get_storage(load_settings())
        calculation = storage.get_calculation(case_id) or DamageCalculation(case_id=case_id)
        return {"data": calculation.to_dict()}
    except Exception as e:
        logger.error("Failed to load damage calculation for case %s: %s", case_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/pi/cases/{case_id}/damages/calculate")
async def calculate_damages(case_id: str, request: Optional[CalculateDamagesRequest] = None):
    """Recompute and store the damages summary from the case's elements."""
    try:
        workspace = _get_workspace(load_settings(), case_id)
        negligence = request.comparative_negligence_percent if request else None
        calculation = workspace.summarize(negligence)
        return {"data": calculation.to_dict()}
    except Exception as e:
        logger.error("Failed to calculate damages for case %s: %s", case_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/api/pi/cases/{case_id}/damages/summary-by-type")
async def damages_summary_by_type(case_id: str):
    try:
        storage = _get_storage(load_settings())
        return {"data": DamageAggregator(storage.list_elements(case_id)).summary_by_type()}
    except Exception as e:
        logger.error("Failed to summarize damages for case %s: %s", case_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/api/pi/cases/{case_id}/damages/economic-breakdown")
async def damages_economic_breakdown(case_id: str):
    try:
        storage = _get_storage(load_settings())
        return {"data": DamageAggregator(storage.list_elements(case_id)).economic_breakdown()}
    except Exception as e:
        logger.error("Failed to build economic breakdown for case %s: %s", case_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/pi/cases/{case_id}/damages/sync-medical")
async def sync_medical_expenses(case_id: str):
    """Sync the past medical element with the billed total of the medical records."""
    try:
        workspace = _get_workspace(load_settings(), case_id)
        element = workspace.sync_medical_expenses()
        logger.info("Synced medical expenses for case %s: %.2f", case_id, element.amount)
        return {"data": element.to_dict()}
    except Exception as e:
        logger.error("Failed to sync medical expenses for case %s: %s", case_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/pi/cases/{case_id}/damages/settlement-analysis")
async def save_settlement_analysis(case_id: str, request: SettlementAnalysisRequest):
    """Attach a settlement analysis to the stored damages summary."""
    try:
        storage = _get_storage(load_settings())
        calculation = storage.save_settlement_analysis(case_id, request.analysis)
        return {"data": calculation.to_dict()}
    except Exception as e:
        logger.error("Failed to save settlement analysis for case %s: %s", case_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


# ============================================================================
# Quick Damage Calculators
# ============================================================================

@app.post("/api/pi/cases/{case_id}/damages/calculate/household-services")
async def calculate_household_services(case_id: str, request: HouseholdServicesRequest):
    try:
        settings = load_settings()
        element = _get_calculator(settings).household_services(
            case_id, request.monthly_rate, request.months, request.notes
        )
        saved = _get_workspace(settings, case_id).add_element(element)
        return {"data": saved.to_dict()}
    except Exception as e:
        logger.error("Household services calculation failed for case %s: %s", case_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/pi/cases/{case_id}/damages/calculate/mileage")
async def calculate_mileage(case_id: str, request: MileageRequest):
    try:
        settings = load_settings()
        element = _get_calculator(settings).mileage(
            case_id, request.miles, request.rate_per_mile, request.notes
        )
        saved = _get_workspace(settings, case_id).add_element(element)
        return {"data": saved.to_dict()}
    except Exception as e:
        logger.error("Mileage calculation failed for case %s: %s", case_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/pi/cases/{case_id}/damages/calculate/lost-wages")
async def calculate_lost_wages(case_id: str, request: LostWagesRequest):
    try:
        settings = load_settings()
        element = _get_calculator(settings).lost_wages(
            case_id, request.hourly_rate, request.hours_lost, request.employer_name, request.notes
        )
        saved = _get_workspace(settings, case_id).add_element(element)
        return {"data": saved.to_dict()}
    except Exception as e:
        logger.error("Lost wages calculation failed for case %s: %s", case_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/pi/cases/{case_id}/damages/calculate/pain-suffering")
async def calculate_pain_suffering(case_id: str, request: PainSufferingRequest):
    try:
        settings = load_settings()
        element = _get_calculator(settings).pain_suffering(
            case_id,
            request.method,
            request.economic_base,
            request.multiplier_or_per_diem,
            request.duration_days,
            request.notes,
        )
        saved = _get_workspace(settings, case_id).add_element(element)
        return {"data": saved.to_dict()}
    except Exception as e:
        logger.error("Pain & suffering calculation failed for case %s: %s", case_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


# ============================================================================
# Medical Record APIs
# ============================================================================

@app.get("/api/pi/cases/{case_id}/medical-records")
async def list_medical_records(case_id: str):
    try:
        storage = _get_storage(load_settings())
        records = storage.list_medical_records(case_id)
        return {
            "data": [r.to_dict() for r in records],
            "total_billed": storage.medical_billed_total(case_id),
        }
    except Exception as e:
        logger.error("Failed to list medical records for case %s: %s", case_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/pi/cases/{case_id}/medical-records")
async def add_medical_record(case_id: str, request: MedicalRecordRequest):
    try:
        workspace = _get_workspace(load_settings(), case_id)
        record = workspace.add_medical_record(MedicalRecord(case_id=case_id, **request.model_dump()))
        return {"data": record.to_dict()}
    except Exception as e:
        logger.error("Failed to add medical record for case %s: %s", case_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


# ============================================================================
# Case Valuation API
# ============================================================================

@app.post("/api/pi/cases/{case_id}/case-value")
async def calculate_case_value(case_id: str, request: CaseValueRequest):
    """
    Value a personal-injury case.

    Reconciles the economic figures with the case's damages and medical
    records, computes the local formula, asks the remote AI service for a
    richer valuation (falling back to the local result on any failure), and
    persists the result as the case's settlement analysis.

    Returns:
        - valuation: economic, non-economic, total, adjusted and realistic values
        - reconciliation: chosen figure and source per economic input
        - settlement_range: sorted range and bar widths (remote valuations only)
        - policy_limit_position: policy-limit marker position in percent
        - remote_error: why the remote valuation was not used, if it failed
    """
    try:
        settings = load_settings()
        if not settings.personal_injury.enabled:
            raise HTTPException(status_code=503, detail="Case valuation is disabled")

        workspace = _get_workspace(settings, case_id)
        outcome = await workspace.calculate(request.model_dump())
        workspace.save_settlement_analysis(outcome)

        logger.info(
            "Case %s valued at %.2f (source=%s)",
            case_id, outcome.valuation.realistic_recovery, outcome.valuation.source.value,
        )
        return {"data": outcome.to_dict()}
    except HTTPException:
        raise
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=_validation_detail(e))
    except PersistenceError as e:
        logger.error("Case valuation storage failure for case %s: %s", case_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))
    except Exception as e:
        logger.error("Case valuation failed for case %s: %s", case_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/api/pi/settlement-history")
async def settlement_history():
    """Most recent saved settlement analyses across cases."""
    try:
        settings = load_settings()
        workspace = CaseValuationWorkspace(
            _get_storage(settings), history_store=_get_settings_store(settings)
        )
        return {"data": workspace.settlement_history()}
    except Exception as e:
        logger.error("Failed to load settlement history: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


# ============================================================================
# Settlement Negotiation APIs
# ============================================================================

@app.get("/api/pi/cases/{case_id}/settlement-events")
async def list_settlement_events(case_id: str):
    """Negotiation rounds for a case, oldest first, with the latest demand/offer summary."""
    try:
        tracker = SettlementTracker(_get_settings_store(load_settings()), case_id)
        return {
            "data": [event.to_dict() for event in tracker.events()],
            "summary": tracker.summary(),
        }
    except Exception as e:
        logger.error("Failed to list settlement events for case %s: %s", case_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/pi/cases/{case_id}/settlement-events")
async def add_settlement_event(case_id: str, request: SettlementEventRequest):
    """Record a demand, offer or counter-offer."""
    try:
        tracker = SettlementTracker(_get_settings_store(load_settings()), case_id)
        event = tracker.add_event(request.model_dump())
        return {"data": event.to_dict(), "summary": tracker.summary()}
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=_validation_detail(e))
    except Exception as e:
        logger.error("Failed to add settlement event for case %s: %s", case_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.delete("/api/pi/cases/{case_id}/settlement-events")
async def clear_settlement_events(case_id: str):
    """Clear the negotiation history of a case."""
    try:
        SettlementTracker(_get_settings_store(load_settings()), case_id).clear()
        return {"success": True}
    except Exception as e:
        logger.error("Failed to clear settlement events for case %s: %s", case_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/pi/demand-total")
async def calculate_demand_total(request: DemandTotalRequest):
    """Opening demand: economic damages plus pain & suffering at the given multiplier."""
    result = _get_calculator(load_settings()).demand_total(**request.model_dump())
    return {
        "data": {
            "demand_total": result.value,
            "inputs": result.inputs,
            "formula": result.formula,
        }
    }


# Entry point for running with uvicorn directly
def main():
    """Entry point for the API server."""
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
