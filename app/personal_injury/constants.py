"""
Constants and enums for personal-injury damages and case valuation.
"""

from enum import Enum


class DamageElementType(str, Enum):
    """Line-item categories of claimed damages."""
    # Economic
    PAST_MEDICAL = "PAST_MEDICAL"
    FUTURE_MEDICAL = "FUTURE_MEDICAL"
    LOST_WAGES = "LOST_WAGES"
    FUTURE_LOST_WAGES = "FUTURE_LOST_WAGES"
    EARNING_CAPACITY = "EARNING_CAPACITY"
    HOUSEHOLD_SERVICES = "HOUSEHOLD_SERVICES"
    MILEAGE = "MILEAGE"
    PROPERTY_DAMAGE = "PROPERTY_DAMAGE"
    OUT_OF_POCKET = "OUT_OF_POCKET"

    # Non-economic
    PAIN_SUFFERING = "PAIN_SUFFERING"
    EMOTIONAL_DISTRESS = "EMOTIONAL_DISTRESS"
    LOSS_CONSORTIUM = "LOSS_CONSORTIUM"
    LOSS_ENJOYMENT = "LOSS_ENJOYMENT"

    OTHER = "OTHER"


class ConfidenceLevel(str, Enum):
    """How well-supported a damage figure is."""
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class LiabilityAssessment(str, Enum):
    """Strength of the liability case against the defendant."""
    CLEAR = "CLEAR"
    COMPARATIVE = "COMPARATIVE"
    DISPUTED = "DISPUTED"


class PainSufferingMethod(str, Enum):
    MULTIPLIER = "MULTIPLIER"
    PER_DIEM = "PER_DIEM"


class ValuationSource(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"


# Buckets used for economic / non-economic totals
ECONOMIC_TYPES = frozenset({
    DamageElementType.PAST_MEDICAL,
    DamageElementType.FUTURE_MEDICAL,
    DamageElementType.LOST_WAGES,
    DamageElementType.FUTURE_LOST_WAGES,
    DamageElementType.PROPERTY_DAMAGE,
    DamageElementType.OUT_OF_POCKET,
})

NON_ECONOMIC_TYPES = frozenset({
    DamageElementType.PAIN_SUFFERING,
    DamageElementType.EMOTIONAL_DISTRESS,
    DamageElementType.LOSS_CONSORTIUM,
    DamageElementType.LOSS_ENJOYMENT,
})

# Categories with their own display group; everything else lands in "other"
MAIN_CATEGORIES = frozenset({
    DamageElementType.PAST_MEDICAL,
    DamageElementType.LOST_WAGES,
    DamageElementType.FUTURE_MEDICAL,
    DamageElementType.PAIN_SUFFERING,
})

# Categories rolled into the economic total of the stored damages summary
SUMMARY_ECONOMIC_TYPES = (
    DamageElementType.PAST_MEDICAL,
    DamageElementType.FUTURE_MEDICAL,
    DamageElementType.LOST_WAGES,
    DamageElementType.EARNING_CAPACITY,
    DamageElementType.HOUSEHOLD_SERVICES,
    DamageElementType.MILEAGE,
    DamageElementType.OTHER,
)

# Injury type -> (label, multiplier), in display order
INJURY_TYPES = {
    "soft_tissue": ("Soft Tissue (Whiplash, Sprains)", 1.5),
    "fracture": ("Fractures / Broken Bones", 2.5),
    "disc_injury": ("Disc Herniation / Bulge", 3.0),
    "tbi": ("Traumatic Brain Injury (TBI)", 4.0),
    "spinal": ("Spinal Cord Injury", 5.0),
    "burn": ("Severe Burns", 4.0),
    "amputation": ("Amputation / Loss of Limb", 5.0),
    "wrongful_death": ("Wrongful Death", 5.0),
    "other": ("Other Serious Injury", 2.5),
}

DEFAULT_MULTIPLIER = 2.0

# Pain & suffering multiplier used by the demand total when none is given
DEMAND_DEFAULT_MULTIPLIER = 2.5

# IRS standard mileage rate (2024), dollars per mile
IRS_MILEAGE_RATE = 0.67

# Stored summary range around the adjusted total
SUMMARY_LOW_FACTOR = 0.75
SUMMARY_HIGH_FACTOR = 1.25
