"""Core calculation engine for the loan calculator.

This module implements the financial logic shared by loan creation, the
customer portal and the public calculator. Two interest conventions are
supported:

* ``simple``: flat rate. Interest is charged on the original principal and
  is the same every month.
* ``compound``: reducing balance. Interest is charged on the outstanding
  balance, so it falls as the principal is repaid.

Every function is pure. Amounts are ``Decimal`` values and are rounded to two
places after each step that rounds, not only at the end, so schedules are
reproducible to the cent. Invalid input raises a subclass of
``LoanCalculationError``.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, getcontext
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from .config import COMPOUND, DAYS_PER_MONTH, INTEREST_METHODS, SIMPLE
from .data_models import LoanEstimate, LoanTerms, ScheduleEntry
from .exceptions import (
    InvalidInterestMethodError,
    InvalidPeriodError,
    InvalidPrincipalError,
    InvalidRateError,
    InvalidTermError,
    ManualEmiError,
)
from .utils import Number, add_months, parse_date, round2, to_decimal

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)

HUNDRED = Decimal(100)
ZERO = Decimal("0.00")

DateLike = Union[date, str, None]


def _as_decimal(value: Any, error_cls, name: str) -> Decimal:
    try:
        return to_decimal(value)
    except ValueError as exc:
        raise error_cls(f"{name} must be a number; got {value!r}", value) from exc


def _validate_principal(principal: Number) -> Decimal:
    amount = _as_decimal(principal, InvalidPrincipalError, "Principal")
    if amount <= 0:
        raise InvalidPrincipalError(f"Principal must be positive; got {amount}", principal)
    return amount


def _validate_rate(monthly_rate: Number) -> Decimal:
    rate = _as_decimal(monthly_rate, InvalidRateError, "Monthly rate")
    if rate < 0:
        raise InvalidRateError(f"Monthly rate cannot be negative; got {rate}", monthly_rate)
    return rate


def _validate_term(term_months: Any) -> int:
    term = _as_decimal(term_months, InvalidTermError, "Term")
    if term <= 0 or term != term.to_integral_value():
        raise InvalidTermError(
            f"Term must be a positive whole number of months; got {term_months!r}", term_months
        )
    return int(term)


def _validate_emi(emi: Number) -> Decimal:
    # a computed EMI may round to 0.00 for tiny principals over long terms
    amount = _as_decimal(emi, ManualEmiError, "EMI")
    if amount < 0:
        raise ManualEmiError(f"EMI cannot be negative; got {amount}", emi)
    return amount


def _validate_manual_emi(emi: Number) -> Decimal:
    amount = _validate_emi(emi)
    if amount == 0:
        raise ManualEmiError("Manual EMI must be positive; got 0", emi)
    return amount


def _validate_method(interest_method: Any) -> str:
    method = str(interest_method or "").strip().lower()
    if method not in INTEREST_METHODS:
        raise InvalidInterestMethodError(
            f"Interest method must be 'simple' or 'compound'; got {interest_method!r}",
            interest_method,
        )
    return method


# ---------------------------------------------------------------------------
# EMI
# ---------------------------------------------------------------------------


def calculate_simple_emi(principal: Number, monthly_rate: Number, term_months: int) -> Decimal:
    """Return the flat-rate EMI.

    The formula is:

        emi = (P + P * r * n) / n

    where ``P`` is the principal, ``r`` the monthly rate as a fraction and
    ``n`` the number of installments.
    """
    amount = _validate_principal(principal)
    rate = _validate_rate(monthly_rate)
    term = _validate_term(term_months)
    interest_total = amount * (rate / HUNDRED) * term
    return round2((amount + interest_total) / term)


def calculate_compound_emi(principal: Number, monthly_rate: Number, term_months: int) -> Decimal:
    """Return the reducing-balance (annuity) EMI.

    The formula is:

        emi = P * r * (1 + r)^n / ((1 + r)^n - 1)

    When the rate is zero the payment simplifies to ``P / n``. The result is
    non-decreasing in ``monthly_rate``, which callers rely on when searching
    for the rate that produces a given EMI.
    """
    amount = _validate_principal(principal)
    rate = _validate_rate(monthly_rate)
    term = _validate_term(term_months)
    r = rate / HUNDRED
    if r == 0:
        return round2(amount / term)
    factor = (1 + r) ** term
    return round2(amount * r * factor / (factor - 1))


_EMI_CALCULATORS: Dict[str, Callable[[Number, Number, int], Decimal]] = {
    SIMPLE: calculate_simple_emi,
    COMPOUND: calculate_compound_emi,
}


def calculate_emi(
    principal: Number, monthly_rate: Number, term_months: int, interest_method: str = SIMPLE
) -> Decimal:
    """Return the EMI for ``interest_method``."""
    return _EMI_CALCULATORS[_validate_method(interest_method)](principal, monthly_rate, term_months)


# ---------------------------------------------------------------------------
# Schedules
# ---------------------------------------------------------------------------


def _amortize(
    principal: Decimal,
    term_months: int,
    emi: Decimal,
    start_date: date,
    interest_on: Callable[[Decimal], Decimal],
) -> List[ScheduleEntry]:
    balance = principal
    schedule: List[ScheduleEntry] = []
    for period in range(1, term_months + 1):
        interest = interest_on(balance)
        if period == term_months:
            # last installment absorbs the rounding drift
            principal_paid = balance
            installment = principal_paid + interest
        else:
            principal_paid = round2(emi - interest)
            installment = emi
        balance = round2(balance - principal_paid)
        schedule.append(
            ScheduleEntry(
                period=period,
                emi=installment,
                principal=principal_paid,
                interest=interest,
                balance=max(balance, ZERO),
                due_date=add_months(start_date, period),
            )
        )
        if balance <= 0 and period != term_months:
            logger.debug("Schedule paid off after %d of %d installments", period, term_months)
            break
    return schedule


def generate_simple_schedule(
    principal: Number,
    monthly_rate: Number,
    term_months: int,
    emi: Number,
    start_date: DateLike = None,
) -> List[ScheduleEntry]:
    """Build a flat-rate amortization schedule.

    Interest is ``round2(P * r)`` every month, computed once from the original
    principal. The principal component is ``round2(emi - interest)``, except
    in the final month, which repays whatever balance is left. If the balance
    is cleared before the final month the schedule stops there.

    Due dates fall on ``start_date`` plus one calendar month per installment.
    """
    amount = _validate_principal(principal)
    rate = _validate_rate(monthly_rate)
    term = _validate_term(term_months)
    installment = _validate_emi(emi)
    monthly_interest = round2(amount * rate / HUNDRED)
    return _amortize(amount, term, installment, parse_date(start_date), lambda _balance: monthly_interest)


def generate_compound_schedule(
    principal: Number,
    monthly_rate: Number,
    term_months: int,
    emi: Number,
    start_date: DateLike = None,
) -> List[ScheduleEntry]:
    """Build a reducing-balance amortization schedule.

    Interest is recomputed each month as ``round2(balance * r)``; otherwise the
    rules match ``generate_simple_schedule``.
    """
    amount = _validate_principal(principal)
    rate = _validate_rate(monthly_rate)
    term = _validate_term(term_months)
    installment = _validate_emi(emi)
    r = rate / HUNDRED
    return _amortize(amount, term, installment, parse_date(start_date), lambda balance: round2(balance * r))


_SCHEDULE_GENERATORS = {
    SIMPLE: generate_simple_schedule,
    COMPOUND: generate_compound_schedule,
}


def generate_schedule(
    principal: Number,
    monthly_rate: Number,
    term_months: int,
    emi: Number,
    start_date: DateLike = None,
    interest_method: str = SIMPLE,
) -> List[ScheduleEntry]:
    """Build the amortization schedule for ``interest_method``."""
    generator = _SCHEDULE_GENERATORS[_validate_method(interest_method)]
    return generator(principal, monthly_rate, term_months, emi, start_date)


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------


def total_interest(emi: Number, term_months: int, principal: Number) -> Decimal:
    """Interest paid over the nominal term: ``round2(emi * n - P)``."""
    return round2(_validate_emi(emi) * _validate_term(term_months) - _validate_principal(principal))


def total_payable(emi: Number, term_months: int) -> Decimal:
    """Amount paid over the nominal term: ``round2(emi * n)``."""
    return round2(_validate_emi(emi) * _validate_term(term_months))


def remaining_balance(schedule: Sequence[ScheduleEntry], payments_received: int) -> Decimal:
    """Return the outstanding balance after ``payments_received`` installments.

    No payments yet gives the opening balance (zero for an empty schedule);
    paying every installment, or more, gives zero. Each payment is assumed to
    settle exactly one scheduled installment.
    """
    if payments_received <= 0:
        if not schedule:
            return ZERO
        first = schedule[0]
        return first.balance + first.principal
    if payments_received >= len(schedule):
        return ZERO
    return schedule[payments_received - 1].balance


def interest_for_period(balance: Number, monthly_rate: Number, days: Number) -> Decimal:
    """Interest accrued on ``balance`` over ``days`` days.

    The monthly rate is spread over a fixed 30-day month.
    """
    amount = _as_decimal(balance, InvalidPrincipalError, "Balance")
    if amount < 0:
        raise InvalidPrincipalError(f"Balance cannot be negative; got {amount}", balance)
    rate = _validate_rate(monthly_rate)
    day_count = _as_decimal(days, InvalidPeriodError, "Days")
    if day_count < 0:
        raise InvalidPeriodError(f"Days cannot be negative; got {day_count}", days)
    daily_rate = rate / HUNDRED / DAYS_PER_MONTH
    return round2(amount * daily_rate * day_count)


def prepayment_amount(balance: Number, monthly_rate: Number, days_in_month: Number = DAYS_PER_MONTH) -> Decimal:
    """Amount needed to close the loan today: balance plus accrued interest."""
    interest_due = interest_for_period(balance, monthly_rate, days_in_month)
    return round2(to_decimal(balance) + interest_due)


# ---------------------------------------------------------------------------
# Estimate
# ---------------------------------------------------------------------------


def _resolve_terms(terms: Union[LoanTerms, Mapping[str, Any], None], params: Dict[str, Any]) -> LoanTerms:
    if terms is None:
        return LoanTerms(**params)
    if isinstance(terms, Mapping):
        return LoanTerms(**{**terms, **params})
    if params:
        raise TypeError("Pass either a LoanTerms instance or keyword arguments, not both")
    return terms


def estimate_loan(terms: Union[LoanTerms, Mapping[str, Any], None] = None, **params: Any) -> LoanEstimate:
    """Compute EMI, schedule, totals and end date for a loan.

    Parameters
    ----------
    terms: LoanTerms or mapping, optional
        The loan parameters. Keyword arguments with the ``LoanTerms`` field
        names may be given instead, or on top of a mapping.

    Returns
    -------
    LoanEstimate
        A supplied ``manual_emi`` is used verbatim; otherwise the EMI is
        computed for the interest method. Totals use the nominal term.

    Raises
    ------
    LoanCalculationError
        If any parameter is invalid.
    """
    loan = _resolve_terms(terms, params)
    principal = _validate_principal(loan.principal)
    rate = _validate_rate(loan.monthly_rate)
    term = _validate_term(loan.term_months)
    method = _validate_method(loan.interest_method)
    start = parse_date(loan.start_date)

    manual_emi: Optional[Decimal] = None
    if loan.manual_emi is not None:
        manual_emi = _validate_manual_emi(loan.manual_emi)
        emi = manual_emi
        logger.debug("Using manual EMI %s for %s loan of %s", emi, method, principal)
    else:
        emi = calculate_emi(principal, rate, term, method)
        logger.debug("Computed %s EMI %s for %s over %d months", method, emi, principal, term)

    schedule = generate_schedule(principal, rate, term, emi, start, method)
    interest = total_interest(emi, term, principal)

    return LoanEstimate(
        emi=emi,
        total_payable=total_payable(emi, term),
        total_interest=interest,
        interest_percentage=round2(interest / principal * HUNDRED),
        end_date=add_months(start, term),
        principal=principal,
        monthly_rate=rate,
        term_months=term,
        interest_method=method,
        start_date=start,
        manual_emi=manual_emi,
        schedule=schedule,
    )
