"""
Rate Card Package

Pricing calculation engine for rate cards.
Validates stored pricing data for five pricing models (tiered, seat-based,
flat-rate, cost-plus, subscription) and calculates prices with a breakdown.
"""

__version__ = "1.0.0"
