"""
Overdue adjustment calculator.

Given an invoice's original amount, its due date and the billing
configuration, works out days overdue, accrued interest (capped), the
one-time late penalty and the early-payment discount as of a given date.

Pure: no database access, no mutation of its inputs. Money is handled as
Decimal and rounded half-up to cents once, at the end.
"""
from dataclasses import dataclass, asdict
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

from django.utils.dateparse import parse_date, parse_datetime

from .constants import CENTS
from .exceptions import InvalidCalculationInput

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def _to_decimal(value, field):
    if isinstance(value, bool):
        raise InvalidCalculationInput(f"{field} must be a number", field, value)
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidCalculationInput(f"{field} must be a number", field, value)
    if not number.is_finite():
        raise InvalidCalculationInput(f"{field} must be finite", field, value)
    return number


def _to_rate(value, field):
    rate = _to_decimal(value, field)
    if rate < 0:
        raise InvalidCalculationInput(f"{field} cannot be negative", field, value)
    return rate


def _to_days(value, field):
    days = _to_decimal(value, field)
    if days < 0 or days != days.to_integral_value():
        raise InvalidCalculationInput(
            f"{field} must be a non-negative whole number", field, value
        )
    return int(days)


def to_calendar_date(value, field="date"):
    """
    Normalize a date, datetime or ISO string to a calendar date.
    Time-of-day is discarded.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            parsed = parse_datetime(text)
            if parsed is not None:
                return parsed.date()
            parsed = parse_date(text)
        except ValueError:
            parsed = None
        if parsed is not None:
            return parsed
    raise InvalidCalculationInput(f"{field} is not a valid date", field, value)


@dataclass(frozen=True)
class AdjustmentRates:
    daily_interest_rate: Decimal
    late_penalty_rate: Decimal
    max_accumulated_interest_rate: Decimal
    grace_period_days: int
    early_payment_discount_rate: Optional[Decimal] = None
    early_payment_discount_days: Optional[int] = None

    @classmethod
    def from_configuration(cls, configuration):
        """
        Build rates from anything exposing the configuration attributes
        (the BillingConfiguration model, a dict-like row, another rates
        object). Values are coerced from their stored representation.
        """
        if isinstance(configuration, cls):
            return configuration

        def read(name):
            if isinstance(configuration, dict):
                return configuration.get(name)
            return getattr(configuration, name, None)

        for required in (
            "daily_interest_rate",
            "late_penalty_rate",
            "max_accumulated_interest_rate",
            "grace_period_days",
        ):
            if read(required) is None:
                raise InvalidCalculationInput(
                    f"{required} is not configured", required
                )

        discount_rate = read("early_payment_discount_rate")
        discount_days = read("early_payment_discount_days")

        return cls(
            daily_interest_rate=_to_rate(read("daily_interest_rate"), "daily_interest_rate"),
            late_penalty_rate=_to_rate(read("late_penalty_rate"), "late_penalty_rate"),
            max_accumulated_interest_rate=_to_rate(
                read("max_accumulated_interest_rate"), "max_accumulated_interest_rate"
            ),
            grace_period_days=_to_days(read("grace_period_days"), "grace_period_days"),
            early_payment_discount_rate=(
                None if discount_rate is None
                else _to_rate(discount_rate, "early_payment_discount_rate")
            ),
            early_payment_discount_days=(
                None if discount_days is None
                else _to_days(discount_days, "early_payment_discount_days")
            ),
        )

    @property
    def has_early_payment_discount(self):
        # A zero rate or zero-day window disables the discount
        return bool(self.early_payment_discount_rate) and bool(
            self.early_payment_discount_days
        )


@dataclass(frozen=True)
class CalculationResult:
    days_overdue: int
    interest_amount: Decimal
    uncapped_interest_amount: Decimal
    penalty_amount: Decimal
    total_amount: Decimal
    discount_applied: bool
    discount_amount: Decimal
    final_amount_with_discount: Decimal

    def as_dict(self):
        return asdict(self)


def _round(amount):
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def calculate_adjustment(original_amount, due_date, configuration, as_of_date=None):
    """
    Calculate the overdue adjustment for a single invoice.

    Args:
        original_amount: Positive invoice amount (Decimal, int, float or str).
        due_date: Invoice due date (date, datetime or ISO string).
        configuration: BillingConfiguration, AdjustmentRates or a mapping with
            the same field names.
        as_of_date: Reference date; defaults to today.

    Returns:
        CalculationResult with all amounts rounded to cents.

    Raises:
        InvalidCalculationInput: if any input is malformed or out of range.
    """
    amount = _to_decimal(original_amount, "original_amount")
    if amount <= 0:
        raise InvalidCalculationInput(
            "original_amount must be greater than zero", "original_amount", original_amount
        )

    due = to_calendar_date(due_date, "due_date")
    as_of = to_calendar_date(
        as_of_date if as_of_date is not None else date.today(), "as_of_date"
    )
    rates = AdjustmentRates.from_configuration(configuration)

    raw_day_difference = (as_of - due).days

    discount_applied = False
    discount_amount = ZERO
    if (
        raw_day_difference < 0
        and rates.has_early_payment_discount
        and abs(raw_day_difference) <= rates.early_payment_discount_days
    ):
        discount_applied = True
        discount_amount = amount * rates.early_payment_discount_rate / HUNDRED

    days_overdue = max(0, raw_day_difference - rates.grace_period_days)

    penalty_amount = ZERO
    interest_amount = ZERO
    uncapped_interest_amount = ZERO
    if days_overdue > 0:
        penalty_amount = amount * rates.late_penalty_rate / HUNDRED

        uncapped_interest_amount = amount * rates.daily_interest_rate * days_overdue
        max_interest = amount * rates.max_accumulated_interest_rate / HUNDRED
        interest_amount = min(uncapped_interest_amount, max_interest)

    total_amount = amount + interest_amount + penalty_amount
    if discount_applied:
        final_amount = amount - discount_amount
    else:
        final_amount = total_amount

    return CalculationResult(
        days_overdue=days_overdue,
        interest_amount=_round(interest_amount),
        uncapped_interest_amount=_round(uncapped_interest_amount),
        penalty_amount=_round(penalty_amount),
        total_amount=_round(total_amount),
        discount_applied=discount_applied,
        discount_amount=_round(discount_amount),
        final_amount_with_discount=_round(final_amount),
    )
