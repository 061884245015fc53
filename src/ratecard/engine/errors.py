"""
Typed failures raised by the pricing engine.

All failures derive from PricingError (a ValueError) so callers can map
the whole family to a client error in one place.
"""
from typing import Optional


class PricingError(ValueError):
    """Base class for every engine failure."""


class UnsupportedModel(PricingError):
    """The pricing model tag is not one of the known kinds."""

    def __init__(self, tag):
        self.tag = tag
        super().__init__(f"Unsupported pricing model: {tag}")


class MalformedPricingData(PricingError):
    """The pricing data payload does not fit its declared model."""

    def __init__(self, model: str, errors: Optional[list[str]] = None):
        self.model = model
        self.errors = list(errors or [])
        detail = "; ".join(self.errors) if self.errors else "payload is not usable"
        super().__init__(f"Invalid pricing data structure for {model}: {detail}")


class InvalidInput(PricingError):
    """The calculation input violates its own constraints."""


class BatchRejected(InvalidInput):
    """The batch as a whole was refused before any item was calculated."""
