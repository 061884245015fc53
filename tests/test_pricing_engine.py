"""
Calculation engine tests - worked examples for every pricing model
plus the engine-wide guarantees (rounding, non-negative totals, purity).
"""
import pytest
import sys
import os

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from ratecard.engine import (
    PricingEngine,
    PricingModelKind,
    CalculationInput,
    calculate_price,
    resolve,
    supported_models,
    InvalidInput,
    MalformedPricingData,
    UnsupportedModel,
)
from ratecard.engine.calculators import round_money
from ratecard.engine.models import FlatRatePricing, Tier, TieredPricing


TIERED = {'tiers': [{'upTo': 100, 'rate': 1.0}, {'upTo': None, 'rate': 0.5}]}


@pytest.fixture(scope="module")
def engine():
    return PricingEngine()


def assert_lines_sum_to_total(result):
    """Numeric breakdown entries add up exactly to the total."""
    assert round(sum(result.line_amounts()), 2) == result.total_price, \
        f"Breakdown {result.breakdown} does not add up to {result.total_price}"


class TestTiered:

    def test_two_tier_example(self, engine):
        result = engine.calculate('tiered', TIERED, {'quantity': 150})
        assert result.total_price == 125.00
        assert result.applied_model == PricingModelKind.TIERED
        assert list(result.breakdown.values()) == [100.0, 25.0]
        assert result.metadata['tiersUsed'] == 2
        assert_lines_sum_to_total(result)

    def test_zero_consumption_tiers_are_omitted(self, engine):
        result = engine.calculate('tiered', TIERED, {'quantity': 40})
        assert result.total_price == 40.00
        assert len(result.breakdown) == 1

    def test_quantity_on_threshold_stays_in_first_tier(self, engine):
        result = engine.calculate('tiered', TIERED, {'quantity': 100})
        assert result.total_price == 100.00
        assert len(result.breakdown) == 1

    def test_three_tiers(self, engine):
        data = {'tiers': [
            {'upTo': 10, 'rate': 5},
            {'upTo': 50, 'rate': 4},
            {'rate': 3},
        ]}
        result = engine.calculate('tiered', data, {'quantity': 60})
        # 10*5 + 40*4 + 10*3
        assert result.total_price == 240.00
        assert_lines_sum_to_total(result)

    def test_bounded_final_tier_is_rejected(self, engine):
        data = {'tiers': [{'upTo': 100, 'rate': 1.0}, {'upTo': 200, 'rate': 0.5}]}
        with pytest.raises(MalformedPricingData, match="final tier is unbounded"):
            engine.calculate('tiered', data, {'quantity': 150})

    def test_typed_bounded_final_tier(self, engine):
        pricing = TieredPricing(tiers=(Tier(up_to=100, rate=1.0),))
        assert engine.calculate('tiered', pricing, {'quantity': 100}).total_price == 100.00
        with pytest.raises(MalformedPricingData, match="cannot be priced"):
            engine.calculate('tiered', pricing, {'quantity': 150})

    def test_sub_cent_lines_add_up_to_total(self, engine):
        data = {'tiers': [
            {'upTo': 1, 'rate': 0.005},
            {'upTo': 2, 'rate': 0.005},
            {'upTo': 3, 'rate': 0.005},
            {'rate': 0.005},
        ]}
        result = engine.calculate('tiered', data, {'quantity': 4})
        assert result.total_price == 0.02
        assert sorted(result.line_amounts()) == [0.0, 0.0, 0.01, 0.01]
        assert_lines_sum_to_total(result)

    def test_fractional_quantity(self, engine):
        result = engine.calculate('tiered', TIERED, {'quantity': 100.5})
        assert result.total_price == 100.25


class TestSeatBased:

    def test_minimum_seats_example(self, engine):
        result = engine.calculate('seat-based', {'seatRate': 10, 'minSeats': 5}, {'quantity': 3})
        assert result.total_price == 50.00
        assert result.breakdown['Effective seats'] == '5'
        assert result.metadata['effectiveSeats'] == 5
        assert result.metadata['minimumSeatsApplied'] is True
        assert_lines_sum_to_total(result)

    def test_above_minimum(self, engine):
        result = engine.calculate('seat-based', {'seatRate': 10, 'minSeats': 5}, {'quantity': 12})
        assert result.total_price == 120.00
        assert result.metadata['minimumSeatsApplied'] is False

    def test_seat_bands(self, engine):
        data = {
            'seatRate': 10,
            'minSeats': 5,
            'seatTiers': [{'upTo': 10, 'rate': 10}, {'upTo': None, 'rate': 8}],
        }
        result = engine.calculate('seat-based', data, {'quantity': 15})
        assert result.total_price == 140.00
        assert result.breakdown['Seat rate'] == 'banded'
        assert_lines_sum_to_total(result)

    def test_best_volume_discount_applies(self, engine):
        data = {
            'seatRate': 10,
            'volumeDiscounts': [
                {'minSeats': 10, 'discountPercent': 5},
                {'minSeats': 50, 'discountPercent': 20},
                {'minSeats': 100, 'discountPercent': 30},
            ],
        }
        result = engine.calculate('seat-based', data, {'quantity': 60})
        assert result.total_price == 480.00
        assert result.breakdown['Volume discount (20% off)'] == -120.00
        assert result.metadata['discountPercent'] == 20
        assert_lines_sum_to_total(result)


class TestFlatRate:

    def test_flat_rate_example(self, engine):
        result = engine.calculate('flat-rate', {'rate': 19.99}, {'quantity': 3})
        assert result.total_price == 59.97
        assert result.breakdown == {'$19.99 × 3': 59.97}

    def test_billing_period_label(self, engine):
        result = engine.calculate('flat-rate', {'rate': 5, 'billingPeriod': 'monthly'}, {'quantity': 2})
        assert list(result.breakdown) == ['$5.00 × 2 (monthly)']

    def test_unused_input_fields_are_ignored(self, engine):
        result = engine.calculate(
            'flat-rate', {'rate': 10},
            {'quantity': 2, 'baseCost': 500, 'billingPeriod': 'yearly'},
        )
        assert result.total_price == 20.00


class TestCostPlus:

    def test_markup_then_margin_example(self, engine):
        data = {'markupPercent': 15, 'fixedMargin': 10}
        result = engine.calculate('cost-plus', data, {'quantity': 1, 'baseCost': 200})
        assert result.total_price == 240.00
        assert result.breakdown == {
            'Base cost': 200.0,
            'Markup (15%)': 30.0,
            'Fixed margin': 10.0,
        }

    def test_missing_base_cost_defaults_to_zero(self, engine):
        result = engine.calculate('cost-plus', {'markupPercent': 15, 'fixedMargin': 10}, {'quantity': 1})
        assert result.total_price == 10.00
        assert result.metadata['baseCostSource'] == 'none'

    def test_stored_base_cost_reference(self, engine):
        data = {'markupPercent': 25, 'baseCost': 80}
        result = engine.calculate('cost-plus', data, {'quantity': 1})
        assert result.total_price == 100.00
        assert result.metadata['baseCostSource'] == 'rate card'

    def test_request_base_cost_wins(self, engine):
        data = {'markupPercent': 25, 'baseCost': 80}
        result = engine.calculate('cost-plus', data, {'quantity': 1, 'baseCost': 40})
        assert result.total_price == 50.00


class TestSubscription:

    def test_derived_yearly_example(self, engine):
        result = engine.calculate(
            'subscription', {'monthlyAmount': 29},
            {'quantity': 2, 'billingPeriod': 'yearly'},
        )
        assert result.total_price == 696.00
        assert result.breakdown['Billing period'] == 'yearly'
        assert result.metadata['yearlyDerived'] is True
        assert_lines_sum_to_total(result)

    def test_stored_yearly_amount(self, engine):
        result = engine.calculate(
            'subscription', {'monthlyAmount': 29, 'yearlyAmount': 290},
            {'quantity': 2, 'billingPeriod': 'yearly'},
        )
        assert result.total_price == 580.00

    def test_monthly_is_default(self, engine):
        result = engine.calculate('subscription', {'monthlyAmount': 29, 'yearlyAmount': 290}, {'quantity': 3})
        assert result.total_price == 87.00
        assert result.metadata['billingPeriod'] == 'monthly'

    def test_setup_fee(self, engine):
        data = {'monthlyAmount': 29, 'setupFee': 99, 'features': ['SSO']}
        result = engine.calculate('subscription', data, {'quantity': 1})
        assert result.total_price == 128.00
        assert result.breakdown['Setup fee'] == 99.0
        assert result.metadata['features'] == ['SSO']
        assert_lines_sum_to_total(result)


class TestErrors:

    @pytest.mark.parametrize("quantity", [0, -1, -0.5])
    def test_non_positive_quantity(self, engine, quantity):
        with pytest.raises(InvalidInput):
            engine.calculate('flat-rate', {'rate': 5}, {'quantity': quantity})

    def test_missing_quantity(self, engine):
        with pytest.raises(InvalidInput):
            engine.calculate('flat-rate', {'rate': 5}, {})

    def test_invalid_billing_period(self, engine):
        with pytest.raises(InvalidInput):
            engine.calculate('subscription', {'monthlyAmount': 5}, {'quantity': 1, 'billingPeriod': 'weekly'})

    def test_negative_base_cost(self, engine):
        with pytest.raises(InvalidInput):
            CalculationInput(quantity=1, base_cost=-5)

    def test_overflowing_total(self, engine):
        with pytest.raises(InvalidInput, match="out of range"):
            engine.calculate('flat-rate', {'rate': 1e308}, {'quantity': 10})

    def test_integer_quantity_too_large_for_a_float(self, engine):
        with pytest.raises(InvalidInput, match="Quantity must be a number"):
            engine.calculate('flat-rate', {'rate': 1}, {'quantity': 10 ** 400})

    def test_unsupported_model(self, engine):
        with pytest.raises(UnsupportedModel):
            engine.calculate('usage-based', {'rate': 5}, {'quantity': 1})

    def test_malformed_data_when_validation_skipped(self, engine):
        with pytest.raises(MalformedPricingData) as exc:
            engine.calculate('tiered', {'tiers': []}, {'quantity': 1})
        assert "tiers must contain at least one tier" in exc.value.errors

    def test_mismatched_model_and_data(self, engine):
        with pytest.raises(MalformedPricingData):
            engine.calculate('seat-based', {'rate': 5}, {'quantity': 1})

    def test_typed_data_must_match_kind(self, engine):
        assert engine.calculate('flat-rate', FlatRatePricing(rate=2), {'quantity': 2}).total_price == 4.00
        with pytest.raises(MalformedPricingData):
            engine.calculate('tiered', FlatRatePricing(rate=2), {'quantity': 2})


VALID_CASES = [
    ('tiered', TIERED, {'quantity': 150}),
    ('seat-based', {'seatRate': 10, 'minSeats': 5}, {'quantity': 3}),
    ('flat-rate', {'rate': 19.99}, {'quantity': 3}),
    ('cost-plus', {'markupPercent': 15, 'fixedMargin': 10}, {'quantity': 1, 'baseCost': 200}),
    ('subscription', {'monthlyAmount': 29}, {'quantity': 2, 'billingPeriod': 'yearly'}),
    ('flat-rate', {'rate': 0}, {'quantity': 1}),
]


@pytest.mark.parametrize("kind,data,calc_input", VALID_CASES)
def test_total_is_non_negative(engine, kind, data, calc_input):
    assert engine.calculate(kind, data, calc_input).total_price >= 0


@pytest.mark.parametrize("kind,data,calc_input", VALID_CASES)
def test_identical_inputs_give_identical_results(engine, kind, data, calc_input):
    first = engine.calculate(kind, data, calc_input)
    second = engine.calculate(kind, data, calc_input)
    assert first == second
    assert first.to_dict() == second.to_dict()


@pytest.mark.parametrize("value,expected", [
    (0.125, 0.13),
    (2.675, 2.68),
    (1.005, 1.01),
    (59.97000000000001, 59.97),
    (-0.0, 0.0),
])
def test_round_money_half_up(value, expected):
    assert round_money(value) == expected


@pytest.mark.parametrize("value", [float('inf'), float('nan'), 10 ** 400])
def test_round_money_rejects_non_finite_amounts(value):
    with pytest.raises(InvalidInput, match="out of range"):
        round_money(value)


def test_calculate_price_shortcut():
    result = calculate_price(PricingModelKind.FLAT_RATE, {'rate': 19.99}, CalculationInput(quantity=3))
    assert result.total_price == 59.97


def test_registry_covers_every_kind():
    handlers = supported_models()
    assert [h.kind for h in handlers] == list(PricingModelKind)
    assert resolve('Tiered').kind == PricingModelKind.TIERED
    assert resolve('cost-plus').validate({'fixedMargin': 1})
    with pytest.raises(UnsupportedModel):
        resolve('usage-based')


def test_breakdown_text():
    result = calculate_price('tiered', TIERED, {'quantity': 150})
    text = result.get_breakdown_text()
    assert text.splitlines()[-1] == "= Total: $125.00"
