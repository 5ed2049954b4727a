"""Persistence layer for the loan book.

Loans are stored with their terms, computed totals and full amortization
schedule, so later lookups (remaining balance, next due date, closure quotes)
read the schedule that was agreed at creation time rather than recomputing it.
The store defaults to SQLite for local development, but accepts any
SQLAlchemy-compatible URL.

Monetary values are stored as strings to keep exact ``Decimal`` values.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import Column, Date, DateTime, Integer, String, Text, create_engine, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import declarative_base, sessionmaker

from lendcalc.config import (
    DEFAULT_DATABASE_URL,
    DEFAULT_LOAN_PREFIX,
    LOAN_NUMBER_ATTEMPTS,
    STATUS_ACTIVE,
    STATUS_CLOSED,
    STATUS_COMPLETED,
)
from lendcalc.data_models import LoanTerms, ScheduleEntry
from lendcalc.engine import estimate_loan, prepayment_amount, remaining_balance
from lendcalc.exceptions import LoanConflictError, LoanNotFoundError, LoanStateError
from lendcalc.utils import round2, to_decimal

logger = logging.getLogger(__name__)

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class LoanModel(Base):
    __tablename__ = "loans"

    id = Column(String(64), primary_key=True)
    loan_number = Column(String(32), unique=True, nullable=False)
    borrower = Column(String(255), nullable=True)
    principal = Column(String(32), nullable=False)
    monthly_rate = Column(String(32), nullable=False)
    term_months = Column(Integer, nullable=False)
    interest_method = Column(String(16), nullable=False)
    monthly_emi = Column(String(32), nullable=False)
    manual_emi = Column(String(32), nullable=True)
    total_amount_payable = Column(String(32), nullable=False)
    total_interest_amount = Column(String(32), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(String(16), index=True, nullable=False, default=STATUS_ACTIVE)
    payments_received = Column(Integer, nullable=False, default=0)
    settlement_amount = Column(String(32), nullable=True)
    schedule_json = Column(Text, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


def _schedule_to_json(schedule: List[ScheduleEntry]) -> str:
    return json.dumps(
        [
            {
                "period": e.period,
                "emi": str(e.emi),
                "principal": str(e.principal),
                "interest": str(e.interest),
                "balance": str(e.balance),
                "due_date": e.due_date.isoformat(),
            }
            for e in schedule
        ]
    )


def _schedule_from_json(payload: str) -> List[ScheduleEntry]:
    return [
        ScheduleEntry(
            period=item["period"],
            emi=Decimal(item["emi"]),
            principal=Decimal(item["principal"]),
            interest=Decimal(item["interest"]),
            balance=Decimal(item["balance"]),
            due_date=date.fromisoformat(item["due_date"]),
        )
        for item in json.loads(payload)
    ]


class LoanStore:
    """Database-backed loan book."""

    def __init__(self, url: str, *, loan_prefix: str = DEFAULT_LOAN_PREFIX) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)
        self._loan_prefix = loan_prefix

    def create_loan(self, terms: LoanTerms, borrower: Optional[str] = None) -> Dict[str, Any]:
        """Compute the estimate for ``terms`` and persist it as an active loan.

        Loan numbers run per prefix and start year. When a concurrent writer
        takes the same number first, the insert is retried with a fresh one.
        """
        estimate = estimate_loan(terms)
        loan_number = None
        for attempt in range(1, LOAN_NUMBER_ATTEMPTS + 1):
            with self._session_factory() as session:
                loan_number = self._next_loan_number(session, estimate.start_date.year)
                row = LoanModel(
                    id=uuid4().hex,
                    loan_number=loan_number,
                    borrower=borrower,
                    principal=str(estimate.principal),
                    monthly_rate=str(estimate.monthly_rate),
                    term_months=estimate.term_months,
                    interest_method=estimate.interest_method,
                    monthly_emi=str(estimate.emi),
                    manual_emi=str(estimate.manual_emi) if estimate.manual_emi is not None else None,
                    total_amount_payable=str(estimate.total_payable),
                    total_interest_amount=str(estimate.total_interest),
                    start_date=estimate.start_date,
                    end_date=estimate.end_date,
                    status=STATUS_ACTIVE,
                    payments_received=0,
                    schedule_json=_schedule_to_json(estimate.schedule),
                )
                session.add(row)
                try:
                    session.commit()
                except IntegrityError:
                    session.rollback()
                    logger.warning("Loan number %s already taken (attempt %d)", loan_number, attempt)
                    continue
                logger.info("Created loan %s for %s at EMI %s", row.loan_number, estimate.principal, estimate.emi)
                return self._to_dict(row)
        raise LoanConflictError(loan_number, LOAN_NUMBER_ATTEMPTS)

    def get_loan(self, loan_id: str) -> Dict[str, Any]:
        with self._session_factory() as session:
            return self._to_dict(self._get_row(session, loan_id))

    def get_schedule(self, loan_id: str) -> List[ScheduleEntry]:
        with self._session_factory() as session:
            return _schedule_from_json(self._get_row(session, loan_id).schedule_json)

    def list_loans(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        with self._session_factory() as session:
            query = select(LoanModel).order_by(LoanModel.created_at.asc())
            if status:
                query = query.where(LoanModel.status == status)
            return [self._to_dict(row) for row in session.execute(query).scalars()]

    def record_payment(self, loan_id: str) -> Dict[str, Any]:
        """Record one scheduled installment against an active loan."""
        with self._session_factory() as session:
            row = self._get_row(session, loan_id)
            if row.status != STATUS_ACTIVE:
                raise LoanStateError("Can only record payments for active loans", loan_id, row.status)
            schedule = _schedule_from_json(row.schedule_json)
            row.payments_received += 1
            if remaining_balance(schedule, row.payments_received) <= 0:
                row.status = STATUS_COMPLETED
            session.commit()
            logger.info(
                "Recorded payment %d of %d on loan %s",
                row.payments_received,
                len(schedule),
                row.loan_number,
            )
            return self._to_dict(row)

    def quote_foreclosure(self, loan_id: str, days: Any, fee: Any = 0) -> Dict[str, Any]:
        """Return the amount needed to close an active loan now."""
        with self._session_factory() as session:
            row = self._get_row(session, loan_id)
            return self._quote(row, days, fee)

    def foreclose(self, loan_id: str, days: Any, fee: Any = 0) -> Dict[str, Any]:
        """Settle an active loan early and mark it closed."""
        with self._session_factory() as session:
            row = self._get_row(session, loan_id)
            quote = self._quote(row, days, fee)
            row.status = STATUS_CLOSED
            row.settlement_amount = str(quote["settlement_amount"])
            session.commit()
            logger.info("Foreclosed loan %s for %s", row.loan_number, row.settlement_amount)
            return {**self._to_dict(row), "foreclosure": quote}

    def _quote(self, row: LoanModel, days: Any, fee: Any) -> Dict[str, Any]:
        if row.status != STATUS_ACTIVE:
            raise LoanStateError("Only active loans can be foreclosed", row.id, row.status)
        schedule = _schedule_from_json(row.schedule_json)
        balance = remaining_balance(schedule, row.payments_received)
        rate = Decimal(row.monthly_rate)
        closure = prepayment_amount(balance, rate, days)
        fee_amount = round2(to_decimal(fee))
        return {
            "remaining_balance": balance,
            "accrued_interest": closure - balance,
            "closure_amount": closure,
            "foreclosure_fee": fee_amount,
            "settlement_amount": closure + fee_amount,
            "days": days,
        }

    def _next_loan_number(self, session, year: int) -> str:
        stem = f"{self._loan_prefix}-{year}-"
        query = (
            select(func.count())
            .select_from(LoanModel)
            .where(LoanModel.loan_number.startswith(stem, autoescape=True))
        )
        count = session.execute(query).scalar_one()
        return f"{stem}{count + 1:04d}"

    @staticmethod
    def _get_row(session, loan_id: str) -> LoanModel:
        row = session.get(LoanModel, loan_id)
        if row is None:
            raise LoanNotFoundError(loan_id)
        return row

    @staticmethod
    def _to_dict(row: LoanModel) -> Dict[str, Any]:
        schedule = _schedule_from_json(row.schedule_json)
        balance = remaining_balance(schedule, row.payments_received)
        if row.status == STATUS_CLOSED:
            balance = Decimal("0.00")
        next_due = None
        if row.status == STATUS_ACTIVE and row.payments_received < len(schedule):
            next_due = schedule[row.payments_received].due_date
        return {
            "id": row.id,
            "loan_number": row.loan_number,
            "borrower": row.borrower,
            "principal": Decimal(row.principal),
            "monthly_rate": Decimal(row.monthly_rate),
            "term_months": row.term_months,
            "interest_method": row.interest_method,
            "monthly_emi": Decimal(row.monthly_emi),
            "manual_emi": Decimal(row.manual_emi) if row.manual_emi is not None else None,
            "total_amount_payable": Decimal(row.total_amount_payable),
            "total_interest_amount": Decimal(row.total_interest_amount),
            "start_date": row.start_date,
            "end_date": row.end_date,
            "status": row.status,
            "payments_received": row.payments_received,
            "remaining_balance": balance,
            "next_due_date": next_due,
            "is_fully_paid": row.status == STATUS_COMPLETED,
            "settlement_amount": Decimal(row.settlement_amount) if row.settlement_amount else None,
            "created_at": row.created_at.isoformat(),
        }


def create_store_from_env(url: Optional[str], loan_prefix: Optional[str] = None) -> LoanStore:
    return LoanStore(url or DEFAULT_DATABASE_URL, loan_prefix=loan_prefix or DEFAULT_LOAN_PREFIX)
