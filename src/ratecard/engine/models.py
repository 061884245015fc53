"""
Data models for the pricing engine.

Uses dataclasses for structured, type-safe data representation.
Pricing data variants are frozen: the engine never mutates a rate card.
"""
import math
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Mapping, Optional, Union

from .errors import InvalidInput, UnsupportedModel


BILLING_PERIODS = ('monthly', 'yearly')


def is_number(value: Any) -> bool:
    """True for finite ints and floats (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # ints too large for a float
        return False


class PricingModelKind(str, Enum):
    """Closed set of supported pricing models, valued by their persisted tag."""
    TIERED = 'tiered'
    SEAT_BASED = 'seat-based'
    FLAT_RATE = 'flat-rate'
    COST_PLUS = 'cost-plus'
    SUBSCRIPTION = 'subscription'

    @property
    def display_name(self) -> str:
        """CamelCase variant name, e.g. "SeatBased"."""
        return self.name.title().replace('_', '')

    @classmethod
    def parse(cls, tag: Any) -> 'PricingModelKind':
        """
        Resolve a tag to a kind.

        Accepts the persisted tag ("seat-based"), the member name
        ("SEAT_BASED") or the variant name ("SeatBased").
        """
        if isinstance(tag, cls):
            return tag
        if isinstance(tag, str):
            key = tag.strip()
            for kind in cls:
                if key in (kind.value, kind.name, kind.display_name):
                    return kind
        raise UnsupportedModel(tag)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Tier:
    """A quantity band; up_to=None means unbounded."""
    up_to: Optional[float]
    rate: float


@dataclass(frozen=True)
class TieredPricing:
    tiers: tuple[Tier, ...]


@dataclass(frozen=True)
class VolumeDiscount:
    min_seats: float
    discount_percent: float


@dataclass(frozen=True)
class SeatBasedPricing:
    seat_rate: float
    min_seats: float = 0
    seat_tiers: tuple[Tier, ...] = ()
    volume_discounts: tuple[VolumeDiscount, ...] = ()


@dataclass(frozen=True)
class FlatRatePricing:
    rate: float
    billing_period: Optional[str] = None  # "one-time", "monthly", "yearly"


@dataclass(frozen=True)
class CostPlusPricing:
    markup_percent: Optional[float] = None
    fixed_margin: Optional[float] = None
    base_cost: Optional[float] = None  # stored reference, used when the input omits one


@dataclass(frozen=True)
class SubscriptionPricing:
    monthly_amount: float
    yearly_amount: Optional[float] = None
    setup_fee: Optional[float] = None
    features: tuple[str, ...] = ()

    @property
    def effective_yearly_amount(self) -> float:
        """Yearly amount, derived as twelve months when not stored."""
        if self.yearly_amount is None:
            return self.monthly_amount * 12
        return self.yearly_amount


PricingData = Union[
    TieredPricing,
    SeatBasedPricing,
    FlatRatePricing,
    CostPlusPricing,
    SubscriptionPricing,
]


@dataclass(frozen=True)
class CalculationInput:
    """A single calculation request against one rate card."""
    quantity: float
    base_cost: Optional[float] = None  # CostPlus only
    billing_period: Optional[str] = None  # Subscription only
    parameters: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not is_number(self.quantity):
            raise InvalidInput("Quantity must be a number")
        if self.quantity <= 0:
            raise InvalidInput("Quantity must be greater than 0")
        if self.base_cost is not None:
            if not is_number(self.base_cost) or self.base_cost < 0:
                raise InvalidInput("Base cost must be a non-negative number")
        if self.billing_period is not None and self.billing_period not in BILLING_PERIODS:
            raise InvalidInput("Billing period must be monthly or yearly")
        if not isinstance(self.parameters, Mapping):
            raise InvalidInput("Parameters must be an object")

    @classmethod
    def from_dict(cls, data: Any) -> 'CalculationInput':
        """Build from a request mapping (camelCase or snake_case keys)."""
        if isinstance(data, cls):
            return data
        if not isinstance(data, Mapping):
            raise InvalidInput("Calculation input must be an object")
        if data.get('quantity') is None:
            raise InvalidInput("Quantity is required")

        base_cost = data.get('baseCost', data.get('base_cost'))
        billing_period = data.get('billingPeriod', data.get('billing_period'))
        parameters = data.get('parameters')
        if parameters is None:
            parameters = {}
        return cls(
            quantity=data['quantity'],
            base_cost=base_cost,
            billing_period=billing_period,
            parameters=parameters,
        )

    def to_dict(self) -> dict:
        """Convert to the camelCase shape echoed back to callers."""
        data = {'quantity': self.quantity}
        if self.base_cost is not None:
            data['baseCost'] = self.base_cost
        if self.billing_period is not None:
            data['billingPeriod'] = self.billing_period
        if self.parameters:
            data['parameters'] = dict(self.parameters)
        return data


@dataclass
class CalculationResult:
    """Complete result of a pricing calculation."""
    total_price: float
    applied_model: PricingModelKind
    breakdown: dict[str, Union[float, str]] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)

    def line_amounts(self) -> list[float]:
        """Numeric breakdown entries (money lines), in order."""
        return [v for v in self.breakdown.values() if is_number(v)]

    def get_breakdown_text(self) -> str:
        """Get human-readable breakdown as formatted text."""
        lines = []
        for label, value in self.breakdown.items():
            if is_number(value):
                lines.append(f"→ {label}: ${value:,.2f}")
            else:
                lines.append(f"→ {label}: {value}")
        lines.append(f"= Total: ${self.total_price:,.2f}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        data = asdict(self)
        data['applied_model'] = self.applied_model.value
        return data
