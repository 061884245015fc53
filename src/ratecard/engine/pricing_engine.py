"""
Pricing Engine - resolves a price for one rate card and one request.

Resolution order:
1. Resolve the pricing model tag to its handler
2. Coerce the calculation input (quantity must be positive)
3. Parse the pricing data into its typed variant
4. Run the model's calculator
"""
from typing import Any

from . import registry, validator
from .models import CalculationInput, CalculationResult


class PricingEngine:
    """
    Stateless facade over the registry.

    Every calculation is independent, so one engine can be shared
    across threads.
    """

    def validate(self, pricing_model: Any, data: Any) -> bool:
        """Pre-flight structural check. Never raises."""
        return validator.validate(pricing_model, data)

    def check(self, pricing_model: Any, data: Any) -> validator.ValidationResult:
        """Pre-flight check listing every problem found. Never raises."""
        return validator.check_pricing_data(pricing_model, data)

    def calculate(self, pricing_model: Any, data: Any, calc_input: Any) -> CalculationResult:
        """
        Calculate a price.

        Args:
            pricing_model: PricingModelKind or its tag
            data: raw pricing data mapping or an already-parsed variant
            calc_input: CalculationInput or a request mapping

        Returns:
            CalculationResult with rounded total and breakdown

        Raises:
            UnsupportedModel, InvalidInput, MalformedPricingData
        """
        handler = registry.resolve(pricing_model)
        calc_input = CalculationInput.from_dict(calc_input)
        pricing = handler.parse(data)
        return handler.calculate(pricing, calc_input)


def calculate_price(pricing_model: Any, data: Any, calc_input: Any) -> CalculationResult:
    """Module-level shortcut for PricingEngine().calculate."""
    return PricingEngine().calculate(pricing_model, data, calc_input)
