"""
Personal-Injury Case Valuation Module

This module provides damage aggregation, figure reconciliation and settlement
valuation for personal-injury cases, with an optional remote AI valuation
service and a deterministic local fallback.
"""

from app.personal_injury.constants import (
    DamageElementType,
    ConfidenceLevel,
    LiabilityAssessment,
    PainSufferingMethod,
    ValuationSource,
    INJURY_TYPES,
)
from app.personal_injury.exceptions import (
    ValidationError,
    RemoteServiceError,
    PersistenceError,
    ElementNotFoundError,
)
from app.personal_injury.models import (
    DamageElement,
    MedicalRecord,
    CaseValuationInput,
    CaseValuation,
    DamageCalculation,
    SettlementEvent,
)

# Aggregation and reconciliation
from app.personal_injury.aggregator import DamageAggregator
from app.personal_injury.reconciliation import (
    ReconciliationEngine,
    ReconciliationResult,
    ReconciledFigure,
)

# Calculator and settlement range display
from app.personal_injury.calculator import ValuationCalculator, CalculationResult
from app.personal_injury.settlement_range import (
    RangeSynthesizer,
    SettlementRange,
    policy_limit_position,
)

# Remote valuation, storage and orchestration
from app.personal_injury.remote import RemoteValuationClient
from app.personal_injury.storage import DamageStorage, KeyValueStore
from app.personal_injury.settlement_tracker import SettlementTracker
from app.personal_injury.service import (
    CaseValuationWorkspace,
    CancellationToken,
    ValuationOutcome,
)

__all__ = [
    # Constants
    "DamageElementType",
    "ConfidenceLevel",
    "LiabilityAssessment",
    "PainSufferingMethod",
    "ValuationSource",
    "INJURY_TYPES",
    # Errors
    "ValidationError",
    "RemoteServiceError",
    "PersistenceError",
    "ElementNotFoundError",
    # Models
    "DamageElement",
    "MedicalRecord",
    "CaseValuationInput",
    "CaseValuation",
    "DamageCalculation",
    "SettlementEvent",
    # Aggregation and reconciliation
    "DamageAggregator",
    "ReconciliationEngine",
    "ReconciliationResult",
    "ReconciledFigure",
    # Calculator
    "ValuationCalculator",
    "CalculationResult",
    "RangeSynthesizer",
    "SettlementRange",
    "policy_limit_position",
    # Remote, storage, orchestration
    "RemoteValuationClient",
    "DamageStorage",
    "KeyValueStore",
    "SettlementTracker",
    "CaseValuationWorkspace",
    "CancellationToken",
    "ValuationOutcome",
]
