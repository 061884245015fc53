"""
Per-model price calculators.

Each calculator takes a typed pricing variant plus a CalculationInput and
returns a CalculationResult. Line amounts are kept unrounded until the
final total, which is rounded once (half-up, two decimals). Numeric
breakdown entries are money lines that add up exactly to the total:
the rounded total is shared out across the lines cent by cent. String
entries document the formula.
"""
import math
from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP, localcontext
from typing import Optional

from .errors import InvalidInput, MalformedPricingData
from .models import (
    PricingModelKind,
    Tier,
    TieredPricing,
    SeatBasedPricing,
    FlatRatePricing,
    CostPlusPricing,
    SubscriptionPricing,
    CalculationInput,
    CalculationResult,
)


PRICE_DECIMALS = 2


def _quantize(value: Decimal, places: int, rounding: str) -> Decimal:
    with localcontext() as ctx:
        # room for every integer digit plus the cents
        ctx.prec = max(ctx.prec, value.adjusted() + places + 2)
        return value.quantize(Decimal(1).scaleb(-places), rounding=rounding)


def round_money(value: float, places: int = PRICE_DECIMALS) -> float:
    """
    Round half-up to a fixed number of decimal places.

    Raises:
        InvalidInput: value is not a finite amount (the calculation overflowed)
    """
    try:
        finite = math.isfinite(value)
    except OverflowError:
        finite = False
    if not finite:
        raise InvalidInput("Calculated amount is out of range")

    rounded = float(_quantize(Decimal(str(value)), places, ROUND_HALF_UP))
    if not math.isfinite(rounded):
        raise InvalidInput("Calculated amount is out of range")
    return rounded


def _allocate(amounts: list[float]) -> tuple[float, list[float]]:
    """
    Round the total once and share it out across the line amounts.

    Every line is floored to cents; the cents left over go one at a time
    to the lines with the largest remainders, so the rounded lines add up
    exactly to the rounded total.
    """
    total = round_money(sum(amounts))
    exact = [Decimal(str(a)) for a in amounts]
    lines = [_quantize(d, PRICE_DECIMALS, ROUND_FLOOR) for d in exact]

    cent = Decimal(1).scaleb(-PRICE_DECIMALS)
    with localcontext() as ctx:
        ctx.prec = max([ctx.prec] + [d.adjusted() + PRICE_DECIMALS + 4 for d in exact])
        leftover = int((Decimal(str(total)) - sum(lines, Decimal(0))) / cent)
        order = sorted(range(len(lines)), key=lambda i: exact[i] - lines[i], reverse=True)
        step = cent if leftover > 0 else -cent
        for k in range(abs(leftover)):
            lines[order[k % len(order)]] += step
    return total, [float(line) for line in lines]


def _fmt_qty(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def _fmt_money(value: float) -> str:
    text = f"{value:,.2f}"
    if round(value, 2) != value:
        text = f"{value:,}"
    return f"${text}"


def _consume_tiers(
    quantity: float,
    tiers: tuple[Tier, ...],
    unit: str,
    kind: PricingModelKind,
) -> list[tuple[str, float, float]]:
    """
    Walk ordered tiers and price the part of quantity inside each band.

    A band covers [previous upper bound, upTo); the unbounded final tier
    takes whatever remains. Returns (label, consumed, amount) for every
    tier that consumed something.
    """
    lines = []
    previous = 0
    for i, tier in enumerate(tiers, start=1):
        if quantity <= previous:
            break
        upper = quantity if tier.up_to is None else min(quantity, tier.up_to)
        consumed = upper - previous
        if consumed > 0:
            bound = '∞' if tier.up_to is None else _fmt_qty(tier.up_to)
            label = (
                f"Tier {i}: {_fmt_qty(previous)}-{bound} "
                f"({_fmt_qty(consumed)} {unit} @ {_fmt_money(tier.rate)})"
            )
            lines.append((label, consumed, consumed * tier.rate))
        previous = upper if tier.up_to is None else tier.up_to

    if quantity > previous:
        # Only reachable with a typed variant built outside the validator
        raise MalformedPricingData(kind.value, [
            f"final tier is bounded at {_fmt_qty(previous)}, so {_fmt_qty(quantity)} {unit} cannot be priced"
        ])
    return lines


def calculate_tiered(pricing: TieredPricing, calc_input: CalculationInput) -> CalculationResult:
    """Graduated pricing: each band of the quantity is billed at its own rate."""
    lines = _consume_tiers(calc_input.quantity, pricing.tiers, 'units', PricingModelKind.TIERED)
    total, amounts = _allocate([amount for _, _, amount in lines])

    return CalculationResult(
        total_price=total,
        applied_model=PricingModelKind.TIERED,
        breakdown={label: amount for (label, _, _), amount in zip(lines, amounts)},
        metadata={
            'totalQuantity': calc_input.quantity,
            'tiersUsed': len(lines),
        },
    )


def calculate_seat_based(pricing: SeatBasedPricing, calc_input: CalculationInput) -> CalculationResult:
    """
    Per-seat pricing with a seat minimum.

    Seat bands, when present, are consumed like tiers. The best volume
    discount reached by the effective seat count is subtracted last.
    """
    seats = calc_input.quantity
    effective_seats = max(seats, pricing.min_seats)

    breakdown = {'Effective seats': _fmt_qty(effective_seats)}
    if pricing.seat_tiers:
        breakdown['Seat rate'] = 'banded'
        lines = [
            (label, amount)
            for label, _, amount in _consume_tiers(
                effective_seats, pricing.seat_tiers, 'seats', PricingModelKind.SEAT_BASED,
            )
        ]
    else:
        breakdown['Seat rate'] = f"{_fmt_money(pricing.seat_rate)} per seat"
        lines = [(
            f"{_fmt_qty(effective_seats)} seats @ {_fmt_money(pricing.seat_rate)}",
            effective_seats * pricing.seat_rate,
        )]

    subtotal = sum(amount for _, amount in lines)

    discount_percent = 0
    applicable = [d for d in pricing.volume_discounts if effective_seats >= d.min_seats]
    if applicable:
        discount_percent = max(d.discount_percent for d in applicable)

    discount_amount = subtotal * (discount_percent / 100)
    if discount_amount > 0:
        lines.append((f"Volume discount ({_fmt_qty(discount_percent)}% off)", -discount_amount))

    total, amounts = _allocate([amount for _, amount in lines])
    for (label, _), amount in zip(lines, amounts):
        breakdown[label] = amount

    return CalculationResult(
        total_price=total,
        applied_model=PricingModelKind.SEAT_BASED,
        breakdown=breakdown,
        metadata={
            'requestedSeats': seats,
            'effectiveSeats': effective_seats,
            'discountPercent': discount_percent,
            'minimumSeatsApplied': seats < pricing.min_seats,
        },
    )


def calculate_flat_rate(pricing: FlatRatePricing, calc_input: CalculationInput) -> CalculationResult:
    total = pricing.rate * calc_input.quantity
    label = f"{_fmt_money(pricing.rate)} × {_fmt_qty(calc_input.quantity)}"
    if pricing.billing_period:
        label += f" ({pricing.billing_period})"

    return CalculationResult(
        total_price=round_money(total),
        applied_model=PricingModelKind.FLAT_RATE,
        breakdown={label: round_money(total)},
        metadata={
            'unitPrice': pricing.rate,
            'billingPeriod': pricing.billing_period or 'one-time',
        },
    )


def calculate_cost_plus(pricing: CostPlusPricing, calc_input: CalculationInput) -> CalculationResult:
    """
    Base cost plus a percentage markup, then a fixed margin on top.

    The base cost comes from the request, falling back to the rate
    card's stored reference and finally to zero.
    """
    base_cost_source = 'input'
    base_cost: Optional[float] = calc_input.base_cost
    if base_cost is None:
        base_cost = pricing.base_cost
        base_cost_source = 'rate card'
    if base_cost is None:
        base_cost = 0
        base_cost_source = 'none'

    markup_percent = pricing.markup_percent or 0
    fixed_margin = pricing.fixed_margin or 0
    markup_amount = base_cost * (markup_percent / 100)
    total, (base_line, markup_line, margin_line) = _allocate([base_cost, markup_amount, fixed_margin])

    return CalculationResult(
        total_price=total,
        applied_model=PricingModelKind.COST_PLUS,
        breakdown={
            'Base cost': base_line,
            f"Markup ({_fmt_qty(markup_percent)}%)": markup_line,
            'Fixed margin': margin_line,
        },
        metadata={
            'baseCost': base_cost,
            'baseCostSource': base_cost_source,
            'markupPercent': markup_percent,
            'fixedMargin': fixed_margin,
            'quantity': calc_input.quantity,
        },
    )


def calculate_subscription(pricing: SubscriptionPricing, calc_input: CalculationInput) -> CalculationResult:
    """Recurring amount for the requested period, per unit, plus any setup fee."""
    period = calc_input.billing_period or 'monthly'
    quantity = calc_input.quantity

    if period == 'yearly':
        unit_amount = pricing.effective_yearly_amount
        monthly_equivalent = unit_amount / 12
    else:
        unit_amount = pricing.monthly_amount
        monthly_equivalent = unit_amount

    breakdown = {
        'Billing period': period,
        'Amount per unit': f"{_fmt_money(unit_amount)} ({period})",
    }
    if period == 'yearly' and pricing.yearly_amount is None:
        breakdown['Amount per unit'] += f", derived as 12 × {_fmt_money(pricing.monthly_amount)}"

    lines = [(f"{_fmt_qty(quantity)} × {_fmt_money(unit_amount)}", unit_amount * quantity)]
    setup_fee = pricing.setup_fee or 0
    if setup_fee > 0:
        lines.append(('Setup fee', setup_fee))

    total, amounts = _allocate([amount for _, amount in lines])
    for (label, _), amount in zip(lines, amounts):
        breakdown[label] = amount

    return CalculationResult(
        total_price=total,
        applied_model=PricingModelKind.SUBSCRIPTION,
        breakdown=breakdown,
        metadata={
            'billingPeriod': period,
            'features': list(pricing.features),
            'monthlyEquivalent': round_money(monthly_equivalent),
            'yearlyDerived': pricing.yearly_amount is None,
        },
    )
