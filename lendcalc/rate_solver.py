"""Reverse solver: find the monthly rate behind a negotiated EMI.

Lenders sometimes agree an installment first and need the rate that goes with
it. ``calculate_compound_emi`` is monotonic in the rate, so a plain bisection
over ``[0, max_rate]`` converges.
"""

from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP

from .engine import calculate_compound_emi
from .exceptions import ManualEmiError
from .utils import Number, to_decimal

logger = logging.getLogger(__name__)

RATE_QUANTUM = Decimal("0.0001")


def solve_monthly_rate(
    principal: Number,
    term_months: int,
    target_emi: Number,
    tolerance: Decimal = RATE_QUANTUM,
    max_rate: Decimal = Decimal("100"),
    max_iterations: int = 100,
) -> Decimal:
    """Return the monthly compound rate (percent, 4 dp) giving ``target_emi``.

    Raises
    ------
    ManualEmiError
        If the target is below the zero-rate EMI or above the EMI at
        ``max_rate``.
    """
    try:
        target = to_decimal(target_emi)
    except ValueError as exc:
        raise ManualEmiError(f"EMI must be a number; got {target_emi!r}", target_emi) from exc

    low = Decimal(0)
    high = to_decimal(max_rate)
    floor_emi = calculate_compound_emi(principal, low, term_months)
    if target < floor_emi:
        raise ManualEmiError(
            f"EMI {target} is below the interest-free installment {floor_emi}", target_emi
        )
    if target == floor_emi:
        return low.quantize(RATE_QUANTUM)
    ceiling_emi = calculate_compound_emi(principal, high, term_months)
    if target > ceiling_emi:
        raise ManualEmiError(
            f"EMI {target} needs a monthly rate above {high}%", target_emi
        )

    iterations = 0
    while high - low > tolerance and iterations < max_iterations:
        mid = (low + high) / 2
        if calculate_compound_emi(principal, mid, term_months) < target:
            low = mid
        else:
            high = mid
        iterations += 1
    rate = ((low + high) / 2).quantize(RATE_QUANTUM, rounding=ROUND_HALF_UP)
    logger.debug("Solved rate %s%% for EMI %s in %d iterations", rate, target, iterations)
    return rate
