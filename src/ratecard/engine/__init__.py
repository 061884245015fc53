"""Engine subpackage - pricing models, validation, calculation and batching."""
from .pricing_engine import PricingEngine, calculate_price
from .models import PricingModelKind, CalculationInput, CalculationResult
from .validator import validate, check_pricing_data, parse_pricing_data, ValidationResult
from .registry import resolve, supported_models
from .batch import BatchOrchestrator, CalculationRequest, BatchReport, run_batch
from .errors import (
    PricingError,
    UnsupportedModel,
    MalformedPricingData,
    InvalidInput,
    BatchRejected,
)

__all__ = [
    'PricingEngine', 'calculate_price',
    'PricingModelKind', 'CalculationInput', 'CalculationResult',
    'validate', 'check_pricing_data', 'parse_pricing_data', 'ValidationResult',
    'resolve', 'supported_models',
    'BatchOrchestrator', 'CalculationRequest', 'BatchReport', 'run_batch',
    'PricingError', 'UnsupportedModel', 'MalformedPricingData', 'InvalidInput', 'BatchRejected',
]
