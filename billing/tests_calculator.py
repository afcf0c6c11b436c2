from datetime import date, datetime, timedelta
from decimal import Decimal

from django.test import SimpleTestCase

from .calculator import AdjustmentRates, calculate_adjustment, to_calendar_date
from .exceptions import InvalidCalculationInput

DUE = date(2025, 3, 10)


def make_rates(**overrides):
    values = {
        "daily_interest_rate": "0.001",
        "late_penalty_rate": "2",
        "max_accumulated_interest_rate": "10",
        "grace_period_days": 0,
        "early_payment_discount_rate": "5",
        "early_payment_discount_days": 5,
    }
    values.update(overrides)
    return AdjustmentRates.from_configuration(values)


class ReferenceScenarioTests(SimpleTestCase):
    def setUp(self):
        self.rates = make_rates()

    def test_due_today_has_no_charges(self):
        result = calculate_adjustment(1000, DUE, self.rates, as_of_date=DUE)

        self.assertEqual(result.days_overdue, 0)
        self.assertEqual(result.interest_amount, Decimal("0.00"))
        self.assertEqual(result.penalty_amount, Decimal("0.00"))
        self.assertEqual(result.total_amount, Decimal("1000.00"))
        self.assertFalse(result.discount_applied)

    def test_ten_days_overdue(self):
        result = calculate_adjustment(1000, DUE, self.rates, as_of_date=DUE + timedelta(days=10))

        self.assertEqual(result.days_overdue, 10)
        self.assertEqual(result.interest_amount, Decimal("10.00"))
        self.assertEqual(result.penalty_amount, Decimal("20.00"))
        self.assertEqual(result.total_amount, Decimal("1030.00"))
        self.assertEqual(result.final_amount_with_discount, Decimal("1030.00"))

    def test_interest_is_capped(self):
        result = calculate_adjustment(1000, DUE, self.rates, as_of_date=DUE + timedelta(days=200))

        self.assertEqual(result.uncapped_interest_amount, Decimal("200.00"))
        self.assertEqual(result.interest_amount, Decimal("100.00"))
        self.assertEqual(result.penalty_amount, Decimal("20.00"))
        self.assertEqual(result.total_amount, Decimal("1120.00"))

    def test_early_payment_inside_window_gets_discount(self):
        result = calculate_adjustment(1000, DUE, self.rates, as_of_date=DUE - timedelta(days=3))

        self.assertTrue(result.discount_applied)
        self.assertEqual(result.discount_amount, Decimal("50.00"))
        self.assertEqual(result.final_amount_with_discount, Decimal("950.00"))
        self.assertEqual(result.interest_amount, Decimal("0.00"))
        self.assertEqual(result.penalty_amount, Decimal("0.00"))
        self.assertEqual(result.total_amount, Decimal("1000.00"))

    def test_early_payment_outside_window_gets_nothing(self):
        result = calculate_adjustment(1000, DUE, self.rates, as_of_date=DUE - timedelta(days=10))

        self.assertFalse(result.discount_applied)
        self.assertEqual(result.discount_amount, Decimal("0.00"))
        self.assertEqual(result.days_overdue, 0)
        self.assertEqual(result.total_amount, Decimal("1000.00"))
        self.assertEqual(result.final_amount_with_discount, Decimal("1000.00"))


class CalculatorPropertyTests(SimpleTestCase):
    def setUp(self):
        self.rates = make_rates()

    def test_same_input_gives_same_result(self):
        as_of = DUE + timedelta(days=17)
        first = calculate_adjustment("1234.56", DUE, self.rates, as_of_date=as_of)
        second = calculate_adjustment("1234.56", DUE, self.rates, as_of_date=as_of)
        self.assertEqual(first, second)

    def test_interest_never_decreases_as_days_pass(self):
        previous = Decimal("0")
        for offset in range(0, 150):
            result = calculate_adjustment(1000, DUE, self.rates, as_of_date=DUE + timedelta(days=offset))
            self.assertGreaterEqual(result.interest_amount, previous)
            self.assertLessEqual(result.interest_amount, Decimal("100.00"))
            previous = result.interest_amount

    def test_discount_and_overdue_are_exclusive(self):
        for offset in range(-10, 10):
            result = calculate_adjustment(1000, DUE, self.rates, as_of_date=DUE + timedelta(days=offset))
            self.assertFalse(result.discount_applied and result.days_overdue > 0)

    def test_grace_period_boundary(self):
        rates = make_rates(grace_period_days=3)

        at_boundary = calculate_adjustment(1000, DUE, rates, as_of_date=DUE + timedelta(days=3))
        self.assertEqual(at_boundary.days_overdue, 0)
        self.assertEqual(at_boundary.penalty_amount, Decimal("0.00"))
        self.assertEqual(at_boundary.interest_amount, Decimal("0.00"))

        past_boundary = calculate_adjustment(1000, DUE, rates, as_of_date=DUE + timedelta(days=4))
        self.assertEqual(past_boundary.days_overdue, 1)
        self.assertEqual(past_boundary.interest_amount, Decimal("1.00"))
        self.assertEqual(past_boundary.penalty_amount, Decimal("20.00"))

    def test_grace_period_does_not_shift_discount_window(self):
        rates = make_rates(grace_period_days=10)
        result = calculate_adjustment(1000, DUE, rates, as_of_date=DUE - timedelta(days=5))
        self.assertTrue(result.discount_applied)

    def test_rounds_half_up_once_at_the_end(self):
        rates = make_rates(daily_interest_rate="0.0033", late_penalty_rate="0", max_accumulated_interest_rate="100")
        # 100.15 * 0.0033 * 1 = 0.330495 -> 0.33
        result = calculate_adjustment("100.15", DUE, rates, as_of_date=DUE + timedelta(days=1))
        self.assertEqual(result.interest_amount, Decimal("0.33"))
        self.assertEqual(result.total_amount, Decimal("100.48"))

        # 250 * 0.05 / 100 = 0.125 -> 0.13
        rates = make_rates(late_penalty_rate="0.05")
        result = calculate_adjustment("250", DUE, rates, as_of_date=DUE + timedelta(days=1))
        self.assertEqual(result.penalty_amount, Decimal("0.13"))

    def test_does_not_mutate_configuration(self):
        config = {
            "daily_interest_rate": "0.001",
            "late_penalty_rate": "2",
            "max_accumulated_interest_rate": "10",
            "grace_period_days": 0,
        }
        snapshot = dict(config)
        calculate_adjustment(1000, DUE, config, as_of_date=DUE + timedelta(days=5))
        self.assertEqual(config, snapshot)


class DateNormalizationTests(SimpleTestCase):
    def setUp(self):
        self.rates = make_rates()

    def test_time_of_day_is_discarded(self):
        result = calculate_adjustment(
            1000,
            datetime(2025, 3, 10, 23, 59),
            self.rates,
            as_of_date=datetime(2025, 3, 11, 0, 1),
        )
        self.assertEqual(result.days_overdue, 1)

    def test_accepts_iso_strings(self):
        result = calculate_adjustment(1000, "2025-03-10", self.rates, as_of_date="2025-03-20T08:30:00")
        self.assertEqual(result.days_overdue, 10)

    def test_to_calendar_date_rejects_garbage(self):
        with self.assertRaises(InvalidCalculationInput):
            to_calendar_date("not a date")
        with self.assertRaises(InvalidCalculationInput):
            to_calendar_date("2025-02-30")
        with self.assertRaises(InvalidCalculationInput):
            to_calendar_date(None)


class DiscountConfigurationTests(SimpleTestCase):
    def test_no_discount_when_not_configured(self):
        rates = make_rates(early_payment_discount_rate=None, early_payment_discount_days=None)
        result = calculate_adjustment(1000, DUE, rates, as_of_date=DUE - timedelta(days=1))
        self.assertFalse(result.discount_applied)
        self.assertEqual(result.final_amount_with_discount, Decimal("1000.00"))

    def test_discount_fields_are_optional(self):
        rates = AdjustmentRates(
            daily_interest_rate=Decimal("0.001"),
            late_penalty_rate=Decimal("2"),
            max_accumulated_interest_rate=Decimal("10"),
            grace_period_days=0,
        )
        self.assertIsNone(rates.early_payment_discount_rate)
        self.assertIsNone(rates.early_payment_discount_days)
        self.assertFalse(rates.has_early_payment_discount)

    def test_zero_rate_disables_discount(self):
        rates = make_rates(early_payment_discount_rate="0")
        result = calculate_adjustment(1000, DUE, rates, as_of_date=DUE - timedelta(days=1))
        self.assertFalse(result.discount_applied)

    def test_window_edge_is_inclusive(self):
        rates = make_rates()
        result = calculate_adjustment(1000, DUE, rates, as_of_date=DUE - timedelta(days=5))
        self.assertTrue(result.discount_applied)
        result = calculate_adjustment(1000, DUE, rates, as_of_date=DUE - timedelta(days=6))
        self.assertFalse(result.discount_applied)


class InvalidInputTests(SimpleTestCase):
    def setUp(self):
        self.rates = make_rates()

    def test_rejects_non_positive_amounts(self):
        for amount in (0, -1, "-10.00"):
            with self.assertRaises(InvalidCalculationInput) as ctx:
                calculate_adjustment(amount, DUE, self.rates, as_of_date=DUE)
            self.assertEqual(ctx.exception.field, "original_amount")

    def test_rejects_non_numeric_and_non_finite_amounts(self):
        for amount in ("abc", None, float("nan"), float("inf"), True):
            with self.assertRaises(InvalidCalculationInput):
                calculate_adjustment(amount, DUE, self.rates, as_of_date=DUE)

    def test_rejects_unparsable_dates(self):
        with self.assertRaises(InvalidCalculationInput) as ctx:
            calculate_adjustment(1000, "10/03/2025", self.rates, as_of_date=DUE)
        self.assertEqual(ctx.exception.field, "due_date")

        with self.assertRaises(InvalidCalculationInput) as ctx:
            calculate_adjustment(1000, DUE, self.rates, as_of_date="yesterday")
        self.assertEqual(ctx.exception.field, "as_of_date")

    def test_rejects_negative_rates(self):
        with self.assertRaises(InvalidCalculationInput):
            make_rates(daily_interest_rate="-0.001")
        with self.assertRaises(InvalidCalculationInput):
            make_rates(max_accumulated_interest_rate="-1")
        with self.assertRaises(InvalidCalculationInput):
            make_rates(early_payment_discount_rate="-5")

    def test_rejects_negative_or_fractional_day_counts(self):
        with self.assertRaises(InvalidCalculationInput):
            make_rates(grace_period_days=-1)
        with self.assertRaises(InvalidCalculationInput):
            make_rates(early_payment_discount_days="2.5")

    def test_rejects_missing_required_rate(self):
        with self.assertRaises(InvalidCalculationInput):
            calculate_adjustment(1000, DUE, {"daily_interest_rate": "0.001"}, as_of_date=DUE)

    def test_invalid_input_is_a_value_error(self):
        with self.assertRaises(ValueError):
            calculate_adjustment(0, DUE, self.rates, as_of_date=DUE)
