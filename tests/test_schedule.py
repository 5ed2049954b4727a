"""
Tests for amortization schedule generation.
"""

from datetime import date
from decimal import Decimal

import pytest

from lendcalc.engine import (
    calculate_compound_emi,
    generate_compound_schedule,
    generate_schedule,
    generate_simple_schedule,
)
from lendcalc.exceptions import ManualEmiError

START = date(2024, 1, 31)


class TestSimpleSchedule:
    @pytest.fixture
    def schedule(self):
        return generate_simple_schedule(Decimal("100000"), Decimal("2"), 12, Decimal("10333.33"), START)

    def test_length(self, schedule):
        assert [e.period for e in schedule] == list(range(1, 13))

    def test_interest_is_flat(self, schedule):
        assert {e.interest for e in schedule} == {Decimal("2000.00")}

    def test_regular_installments(self, schedule):
        first = schedule[0]
        assert first.emi == Decimal("10333.33")
        assert first.principal == Decimal("8333.33")
        assert first.balance == Decimal("91666.67")
        assert schedule[10].balance == Decimal("8333.37")

    def test_final_installment_absorbs_drift(self, schedule):
        last = schedule[-1]
        assert last.principal == Decimal("8333.37")
        assert last.emi == Decimal("10333.37")
        assert last.balance == 0

    def test_due_dates_follow_calendar_months(self, schedule):
        assert schedule[0].due_date == date(2024, 2, 29)
        assert schedule[1].due_date == date(2024, 3, 31)
        assert schedule[2].due_date == date(2024, 4, 30)
        assert schedule[-1].due_date == date(2025, 1, 31)

    def test_start_date_accepts_iso_string(self):
        schedule = generate_simple_schedule(1200, 1, 3, "404.00", "2024-11-30")
        assert [e.due_date for e in schedule] == [date(2024, 12, 30), date(2025, 1, 30), date(2025, 2, 28)]


class TestCompoundSchedule:
    @pytest.fixture
    def schedule(self):
        emi = calculate_compound_emi(100000, 2, 12)
        return generate_compound_schedule(Decimal("100000"), Decimal("2"), 12, emi, START)

    def test_interest_follows_balance(self, schedule):
        assert schedule[0].interest == Decimal("2000.00")
        assert schedule[0].principal == Decimal("7455.96")
        assert schedule[0].balance == Decimal("92544.04")
        assert schedule[1].interest == Decimal("1850.88")
        assert schedule[1].principal == Decimal("7605.08")
        assert schedule[1].balance == Decimal("84938.96")

    def test_interest_decreases(self, schedule):
        interest = [e.interest for e in schedule]
        assert interest == sorted(interest, reverse=True)

    def test_closes_at_zero(self, schedule):
        assert len(schedule) == 12
        assert schedule[-1].balance == 0
        assert sum(e.principal for e in schedule) == Decimal("100000")

    def test_zero_rate(self):
        schedule = generate_compound_schedule(1000, 0, 3, "333.33", START)
        assert [e.interest for e in schedule] == [Decimal("0.00")] * 3
        assert schedule[-1].principal == Decimal("333.34")


class TestEarlyPayoff:
    def test_simple_schedule_stops_when_balance_cleared(self):
        schedule = generate_simple_schedule(100000, 2, 12, 60000, START)
        assert len(schedule) == 2
        assert schedule[0].balance == Decimal("42000.00")
        assert schedule[1].principal == Decimal("58000.00")
        assert schedule[1].balance == 0

    def test_compound_schedule_stops_when_balance_cleared(self):
        schedule = generate_compound_schedule(100000, 2, 12, 60000, START)
        assert len(schedule) == 2
        assert schedule[1].interest == Decimal("840.00")
        assert schedule[1].balance == 0

    def test_exact_payoff_on_penultimate_period_stops(self):
        # 1000 at 0 % with EMI 500 clears the balance after two of three months
        schedule = generate_compound_schedule(1000, 0, 3, 500, START)
        assert len(schedule) == 2
        assert schedule[-1].balance == 0


class TestScheduleValidation:
    @pytest.mark.parametrize("emi", [-100, "abc"])
    def test_emi_must_be_a_non_negative_number(self, emi):
        with pytest.raises(ManualEmiError):
            generate_simple_schedule(100000, 2, 12, emi, START)

    def test_dispatch(self):
        flat = generate_schedule(100000, 2, 12, "10333.33", START, "simple")
        reducing = generate_schedule(100000, 2, 12, "9455.96", START, "compound")
        assert flat[5].interest == Decimal("2000.00")
        assert reducing[5].interest < Decimal("2000.00")

    def test_zero_emi_leaves_everything_to_the_last_month(self):
        # 1 over 360 months rounds the EMI down to 0.00
        schedule = generate_compound_schedule(1, 0, 360, "0.00", START)
        assert len(schedule) == 360
        assert schedule[0].balance == Decimal("1")
        assert schedule[-1].principal == Decimal("1")
        assert schedule[-1].balance == 0
