"""
Pricing model registry - static lookup from model kind to its handler.

The table is built once at import time and only read afterwards, so it
is safe to share between threads.
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable

from . import calculators, validator
from .models import PricingModelKind, PricingData, CalculationInput, CalculationResult


@dataclass(frozen=True)
class ModelHandler:
    """Validator and calculator pair for one pricing model."""
    kind: PricingModelKind
    calculator: Callable[[Any, CalculationInput], CalculationResult]
    description: str = ""

    def validate(self, data: Any) -> bool:
        return validator.validate(self.kind, data)

    def check(self, data: Any) -> validator.ValidationResult:
        return validator.check_pricing_data(self.kind, data)

    def parse(self, data: Any) -> PricingData:
        return validator.parse_pricing_data(self.kind, data)

    def calculate(self, pricing: PricingData, calc_input: CalculationInput) -> CalculationResult:
        return self.calculator(pricing, calc_input)


_HANDLERS = MappingProxyType({
    PricingModelKind.TIERED: ModelHandler(
        PricingModelKind.TIERED,
        calculators.calculate_tiered,
        "Graduated quantity bands, each billed at its own rate",
    ),
    PricingModelKind.SEAT_BASED: ModelHandler(
        PricingModelKind.SEAT_BASED,
        calculators.calculate_seat_based,
        "Per-seat rate with a seat minimum, optional seat bands and volume discounts",
    ),
    PricingModelKind.FLAT_RATE: ModelHandler(
        PricingModelKind.FLAT_RATE,
        calculators.calculate_flat_rate,
        "Single rate per unit",
    ),
    PricingModelKind.COST_PLUS: ModelHandler(
        PricingModelKind.COST_PLUS,
        calculators.calculate_cost_plus,
        "Base cost plus markup percentage and fixed margin",
    ),
    PricingModelKind.SUBSCRIPTION: ModelHandler(
        PricingModelKind.SUBSCRIPTION,
        calculators.calculate_subscription,
        "Recurring monthly or yearly amount per subscription",
    ),
})


def resolve(kind: Any) -> ModelHandler:
    """
    Look up the handler for a pricing model tag.

    Raises:
        UnsupportedModel: tag is not one of the known kinds
    """
    return _HANDLERS[PricingModelKind.parse(kind)]


def supported_models() -> list[ModelHandler]:
    """All handlers, in declaration order of PricingModelKind."""
    return [_HANDLERS[kind] for kind in PricingModelKind]
