"""Data models for the loan calculator.

This module defines dataclasses for the values the engine works with: the
loan terms a caller supplies, the individual entries of an amortization
schedule and the composed estimate returned by ``estimate_loan``. All
monetary fields are ``Decimal`` values rounded to two places.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional

from .config import DEFAULT_INTEREST_METHOD


@dataclass
class LoanTerms:
    """Parameters of a loan as entered by a lender or a calculator user.

    Attributes
    ----------
    principal: Decimal
        Loan amount.
    monthly_rate: Decimal
        Monthly interest rate in percent, e.g. ``Decimal("2")`` for 2 %.
    term_months: int
        Number of monthly installments.
    interest_method: str
        ``"simple"`` (flat rate) or ``"compound"`` (reducing balance).
    start_date: date, optional
        Disbursement date; the first installment is due one month later.
        ``None`` means today.
    manual_emi: Decimal, optional
        Negotiated installment that replaces the computed EMI.
    """

    principal: Decimal
    monthly_rate: Decimal
    term_months: int
    interest_method: str = DEFAULT_INTEREST_METHOD
    start_date: Optional[date] = None
    manual_emi: Optional[Decimal] = None


@dataclass(frozen=True)
class ScheduleEntry:
    """One installment of an amortization schedule.

    ``balance`` is the outstanding principal after this installment has been
    paid, never negative.
    """

    period: int
    emi: Decimal
    principal: Decimal
    interest: Decimal
    balance: Decimal
    due_date: date


@dataclass
class LoanEstimate:
    """Result of ``estimate_loan``.

    Totals assume the loan runs its full nominal term, even when the
    schedule pays off early.
    """

    emi: Decimal
    total_payable: Decimal
    total_interest: Decimal
    interest_percentage: Decimal
    end_date: date
    principal: Decimal
    monthly_rate: Decimal
    term_months: int
    interest_method: str
    start_date: date
    manual_emi: Optional[Decimal] = None
    schedule: List[ScheduleEntry] = field(default_factory=list)

    @property
    def months_scheduled(self) -> int:
        return len(self.schedule)
