from decimal import Decimal

import pytest

from lendcalc.engine import calculate_compound_emi
from lendcalc.exceptions import ManualEmiError
from lendcalc.rate_solver import solve_monthly_rate


def test_recovers_rate_from_emi():
    rate = solve_monthly_rate(100000, 12, Decimal("9455.96"))
    assert abs(rate - Decimal("2")) <= Decimal("0.001")


@pytest.mark.parametrize("rate", [Decimal("0.75"), Decimal("1.5"), Decimal("4.25")])
def test_solved_rate_reproduces_emi(rate):
    emi = calculate_compound_emi(250000, rate, 24)
    solved = solve_monthly_rate(250000, 24, emi)
    assert abs(solved - rate) <= Decimal("0.001")
    assert abs(calculate_compound_emi(250000, solved, 24) - emi) <= Decimal("0.50")


def test_interest_free_emi():
    assert solve_monthly_rate(120000, 12, 10000) == Decimal("0.0000")


def test_result_has_four_places():
    rate = solve_monthly_rate(50000, 10, 5500)
    assert rate == rate.quantize(Decimal("0.0001"))


def test_emi_below_interest_free_installment():
    with pytest.raises(ManualEmiError):
        solve_monthly_rate(120000, 12, 9000)


def test_emi_above_max_rate():
    with pytest.raises(ManualEmiError):
        solve_monthly_rate(1000, 12, 5000, max_rate=Decimal("10"))


def test_non_numeric_emi():
    with pytest.raises(ManualEmiError):
        solve_monthly_rate(1000, 12, "lots")
