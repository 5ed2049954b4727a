"""Output helpers for the loan calculator.

This module renders estimates and amortization schedules as plain text tables
for the terminal, and converts them into JSON-serializable dictionaries for
file export and the web API.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Iterable, List

import click

from .data_models import LoanEstimate, ScheduleEntry


def _money(value: Decimal) -> float:
    return float(value)


def entry_to_dict(entry: ScheduleEntry) -> Dict[str, Any]:
    """Convert a schedule entry into a dictionary with float amounts."""
    return {
        "month": entry.period,
        "emi": _money(entry.emi),
        "principal": _money(entry.principal),
        "interest": _money(entry.interest),
        "balance": _money(entry.balance),
        "due_date": entry.due_date.isoformat(),
    }


def schedule_to_dicts(schedule: Iterable[ScheduleEntry]) -> List[Dict[str, Any]]:
    return [entry_to_dict(entry) for entry in schedule]


def summary_to_dict(estimate: LoanEstimate) -> Dict[str, Any]:
    """Return the headline figures of an estimate, without the schedule."""
    return {
        "principal": _money(estimate.principal),
        "monthly_rate": _money(estimate.monthly_rate),
        "term_months": estimate.term_months,
        "interest_method": estimate.interest_method,
        "start_date": estimate.start_date.isoformat(),
        "monthly_emi": _money(estimate.emi),
        "manual_emi": estimate.manual_emi is not None,
        "total_amount_payable": _money(estimate.total_payable),
        "total_interest_amount": _money(estimate.total_interest),
        "interest_percentage": _money(estimate.interest_percentage),
        "end_date": estimate.end_date.isoformat(),
        "months_scheduled": estimate.months_scheduled,
    }


def estimate_to_dict(estimate: LoanEstimate) -> Dict[str, Any]:
    data = summary_to_dict(estimate)
    data["schedule"] = schedule_to_dicts(estimate.schedule)
    return data


def print_summary(estimate: LoanEstimate) -> None:
    """Print the headline figures of an estimate in a human-readable format."""
    click.echo("Summary")
    click.echo("-" * 72)
    click.echo(f"Principal          : {estimate.principal:.2f}")
    click.echo(f"Monthly rate       : {estimate.monthly_rate}% ({estimate.interest_method})")
    click.echo(f"Term               : {estimate.term_months} months")
    label = "Monthly EMI (set)  " if estimate.manual_emi is not None else "Monthly EMI        "
    click.echo(f"{label}: {estimate.emi:.2f}")
    click.echo(f"Total interest     : {estimate.total_interest:.2f}")
    click.echo(f"Total payable      : {estimate.total_payable:.2f}")
    click.echo(f"Interest share     : {estimate.interest_percentage:.2f}%")
    click.echo(f"Start date         : {estimate.start_date.isoformat()}")
    click.echo(f"End date           : {estimate.end_date.isoformat()}")
    if estimate.months_scheduled < estimate.term_months:
        click.echo(f"Paid off after     : {estimate.months_scheduled} months")
    click.echo("-" * 72)


def print_schedule(schedule: Iterable[ScheduleEntry]) -> None:
    """Print the amortization schedule as a tab separated table."""
    headers = ["Month", "DueDate", "EMI", "Principal", "Interest", "Balance"]
    click.echo("\t".join(headers))
    for entry in schedule:
        row = [
            str(entry.period),
            entry.due_date.isoformat(),
            f"{entry.emi:.2f}",
            f"{entry.principal:.2f}",
            f"{entry.interest:.2f}",
            f"{entry.balance:.2f}",
        ]
        click.echo("\t".join(row))


def print_comparison(first: LoanEstimate, second: LoanEstimate) -> None:
    """Print two estimates side by side.

    The difference column is ``second - first``; a negative value means the
    second estimate is cheaper.
    """
    click.echo("Comparison")
    click.echo("=" * 72)
    click.echo(
        f"{'Metric':20s} {first.interest_method:>15s} {second.interest_method:>15s} {'Difference':>15s}"
    )
    rows = [
        ("monthly_emi", first.emi, second.emi),
        ("total_interest", first.total_interest, second.total_interest),
        ("total_payable", first.total_payable, second.total_payable),
    ]
    for name, v1, v2 in rows:
        click.echo(f"{name:20s} {v1:15.2f} {v2:15.2f} {v2 - v1:15.2f}")
    click.echo("=" * 72)
