from enum import Enum


class VehicleType(str, Enum):
    ice = "ice"
    hev = "hev"
    phev = "phev"
    bev = "bev"
    fcev = "fcev"


class PayFrequency(str, Enum):
    weekly = "weekly"
    fortnightly = "fortnightly"
    monthly = "monthly"


class IssueSeverity(str, Enum):
    error = "error"
    warning = "warning"


class ResidualSource(str, Enum):
    default_table = "default_table"
    user_override = "user_override"


class InferenceMethod(str, Enum):
    direct_quote_value = "direct_quote_value"
    calculated_from_quote = "calculated_from_quote"
    fallback_default = "fallback_default"


class Confidence(str, Enum):
    high = "high"
    medium = "medium"
    low = "low"


PAY_PERIODS_PER_YEAR = {
    PayFrequency.weekly: 52,
    PayFrequency.fortnightly: 26,
    PayFrequency.monthly: 12,
}

ZERO_EMISSION_VEHICLE_TYPES = (VehicleType.bev, VehicleType.fcev)
