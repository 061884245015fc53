"""
Schema Validator - structural checks for rate-card pricing data.

Each pricing model has one converter that walks the raw payload,
collects human-readable errors and, when the payload is clean, returns
the typed pricing variant. The same pass backs the boolean pre-flight
check, the form-error listing and the parse step used by the engine.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

from .errors import MalformedPricingData, UnsupportedModel
from .models import (
    PricingModelKind,
    PricingData,
    Tier,
    TieredPricing,
    VolumeDiscount,
    SeatBasedPricing,
    FlatRatePricing,
    CostPlusPricing,
    SubscriptionPricing,
    is_number,
)


FLAT_RATE_PERIODS = ('one-time', 'monthly', 'yearly')


@dataclass
class ValidationResult:
    """Result of pricing data validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def error(self, message: str):
        self.errors.append(message)
        self.valid = False


def _number(
    data: Mapping,
    key: str,
    result: ValidationResult,
    required: bool = True,
    maximum: Optional[float] = None,
    path: str = '',
) -> Optional[float]:
    """Read a non-negative number field; None when absent or invalid."""
    name = f"{path}{key}"
    value = data.get(key)
    if value is None:
        if required:
            result.error(f"{name} is required")
        return None
    if not is_number(value):
        result.error(f"{name} must be a number")
        return None
    if value < 0:
        result.error(f"{name} must be >= 0")
        return None
    if maximum is not None and value > maximum:
        result.error(f"{name} must be <= {maximum}")
        return None
    return value


def _tiers(raw: Any, key: str, result: ValidationResult) -> tuple[Tier, ...]:
    """
    Read an ordered tier list with strictly increasing upper bounds.

    Every tier but the last needs an upTo; the last tier is unbounded,
    so its upTo must be absent or null.
    """
    if not isinstance(raw, (list, tuple)):
        result.error(f"{key} must be a list of tiers")
        return ()
    if not raw:
        result.error(f"{key} must contain at least one tier")
        return ()

    tiers = []
    previous = 0
    last_index = len(raw) - 1
    for i, tier in enumerate(raw):
        path = f"{key}[{i}]."
        if not isinstance(tier, Mapping):
            result.error(f"{key}[{i}] must be an object")
            continue

        rate = _number(tier, 'rate', result, path=path)
        up_to = tier.get('upTo')
        if up_to is None:
            if i != last_index:
                result.error(f"{path}upTo is required (only the final tier may be unbounded)")
                continue
        elif i == last_index:
            result.error(f"{path}upTo must be null (the final tier is unbounded)")
            continue
        elif not is_number(up_to):
            result.error(f"{path}upTo must be a number or null")
            continue
        elif up_to <= previous:
            result.error(f"{path}upTo must be greater than {previous} (thresholds must strictly increase)")
            continue
        else:
            previous = up_to

        if rate is not None:
            tiers.append(Tier(up_to=up_to, rate=rate))
    return tuple(tiers)


def _convert_tiered(data: Mapping, result: ValidationResult) -> Optional[TieredPricing]:
    if 'tiers' not in data:
        result.error("tiers is required")
        return None
    return TieredPricing(tiers=_tiers(data['tiers'], 'tiers', result))


def _convert_seat_based(data: Mapping, result: ValidationResult) -> SeatBasedPricing:
    seat_rate = _number(data, 'seatRate', result)
    min_seats = _number(data, 'minSeats', result, required=False)

    seat_tiers = ()
    if data.get('seatTiers') is not None:
        seat_tiers = _tiers(data['seatTiers'], 'seatTiers', result)

    discounts = []
    raw_discounts = data.get('volumeDiscounts')
    if raw_discounts is not None:
        if not isinstance(raw_discounts, (list, tuple)):
            result.error("volumeDiscounts must be a list")
        else:
            for i, discount in enumerate(raw_discounts):
                if not isinstance(discount, Mapping):
                    result.error(f"volumeDiscounts[{i}] must be an object")
                    continue
                path = f"volumeDiscounts[{i}]."
                seats = _number(discount, 'minSeats', result, path=path)
                percent = _number(discount, 'discountPercent', result, maximum=100, path=path)
                if seats is not None and percent is not None:
                    discounts.append(VolumeDiscount(min_seats=seats, discount_percent=percent))

    return SeatBasedPricing(
        seat_rate=seat_rate,
        min_seats=min_seats or 0,
        seat_tiers=seat_tiers,
        volume_discounts=tuple(discounts),
    )


def _convert_flat_rate(data: Mapping, result: ValidationResult) -> FlatRatePricing:
    rate = _number(data, 'rate', result)
    period = data.get('billingPeriod')
    if period is not None and period not in FLAT_RATE_PERIODS:
        result.error(f"billingPeriod must be one of {', '.join(FLAT_RATE_PERIODS)}")
    return FlatRatePricing(rate=rate, billing_period=period)


def _convert_cost_plus(data: Mapping, result: ValidationResult) -> CostPlusPricing:
    markup = _number(data, 'markupPercent', result, required=False)
    margin = _number(data, 'fixedMargin', result, required=False)
    base_cost = _number(data, 'baseCost', result, required=False)
    if data.get('markupPercent') is None and data.get('fixedMargin') is None:
        result.error("markupPercent or fixedMargin is required")
    return CostPlusPricing(markup_percent=markup, fixed_margin=margin, base_cost=base_cost)


def _convert_subscription(data: Mapping, result: ValidationResult) -> SubscriptionPricing:
    monthly = _number(data, 'monthlyAmount', result)
    yearly = _number(data, 'yearlyAmount', result, required=False)
    setup_fee = _number(data, 'setupFee', result, required=False)

    features = data.get('features')
    if features is None:
        features = ()
    elif not isinstance(features, (list, tuple)) or not all(isinstance(f, str) for f in features):
        result.error("features must be a list of strings")
        features = ()

    return SubscriptionPricing(
        monthly_amount=monthly,
        yearly_amount=yearly,
        setup_fee=setup_fee,
        features=tuple(features),
    )


# kind -> (typed variant, converter, known payload keys)
_CONVERTERS: dict[PricingModelKind, tuple[type, Callable, frozenset]] = {
    PricingModelKind.TIERED: (
        TieredPricing, _convert_tiered, frozenset({'tiers'}),
    ),
    PricingModelKind.SEAT_BASED: (
        SeatBasedPricing, _convert_seat_based,
        frozenset({'seatRate', 'minSeats', 'seatTiers', 'volumeDiscounts'}),
    ),
    PricingModelKind.FLAT_RATE: (
        FlatRatePricing, _convert_flat_rate, frozenset({'rate', 'billingPeriod'}),
    ),
    PricingModelKind.COST_PLUS: (
        CostPlusPricing, _convert_cost_plus,
        frozenset({'markupPercent', 'fixedMargin', 'baseCost'}),
    ),
    PricingModelKind.SUBSCRIPTION: (
        SubscriptionPricing, _convert_subscription,
        frozenset({'monthlyAmount', 'yearlyAmount', 'setupFee', 'features'}),
    ),
}


def _convert(kind: PricingModelKind, data: Any) -> tuple[Optional[PricingData], ValidationResult]:
    """Single parse/validate/convert pass. Returns (pricing or None, result)."""
    pricing_type, converter, known_keys = _CONVERTERS[kind]
    result = ValidationResult(valid=True)

    if isinstance(data, pricing_type):
        return data, result
    if not isinstance(data, Mapping):
        result.error(f"Pricing data for {kind.value} must be an object")
        return None, result

    pricing = converter(data, result)
    for key in data:
        if key not in known_keys:
            result.warnings.append(f"Unknown field '{key}' is ignored")

    if not result.valid:
        return None, result
    return pricing, result


def check_pricing_data(kind: Any, data: Any) -> ValidationResult:
    """
    Validate a pricing data payload and list every problem found.

    Never raises: unknown kinds and malformed payloads come back as an
    invalid result with error messages suitable for form feedback.
    """
    try:
        resolved = PricingModelKind.parse(kind)
    except UnsupportedModel as e:
        return ValidationResult(valid=False, errors=[str(e)])

    try:
        _, result = _convert(resolved, data)
    except Exception as e:
        # Mappings that fail on access count as invalid
        return ValidationResult(valid=False, errors=[f"Pricing data could not be read: {e}"])
    return result


def validate(kind: Any, data: Any) -> bool:
    """Boolean pre-flight check of a pricing data payload. Never raises."""
    return check_pricing_data(kind, data).valid


def parse_pricing_data(kind: Any, data: Any) -> PricingData:
    """
    Convert a raw payload into the typed pricing variant for its kind.

    Raises:
        UnsupportedModel: kind is not a known pricing model
        MalformedPricingData: payload does not fit the kind
    """
    resolved = PricingModelKind.parse(kind)
    if isinstance(data, tuple(t for t, _, _ in _CONVERTERS.values())) and \
            not isinstance(data, _CONVERTERS[resolved][0]):
        raise MalformedPricingData(
            resolved.value,
            [f"{type(data).__name__} cannot be priced as {resolved.value}"],
        )

    pricing, result = _convert(resolved, data)
    if pricing is None:
        raise MalformedPricingData(resolved.value, result.errors)
    return pricing
