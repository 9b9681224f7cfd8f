from .enums import (
    VehicleType,
    PayFrequency,
    IssueSeverity,
    ResidualSource,
    InferenceMethod,
    Confidence,
    PAY_PERIODS_PER_YEAR,
    ZERO_EMISSION_VEHICLE_TYPES,
)

__all__ = [
    'VehicleType',
    'PayFrequency',
    'IssueSeverity',
    'ResidualSource',
    'InferenceMethod',
    'Confidence',
    'PAY_PERIODS_PER_YEAR',
    'ZERO_EMISSION_VEHICLE_TYPES',
]
