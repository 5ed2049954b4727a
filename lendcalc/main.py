"""Command-line interface for the loan calculator.

This module uses the ``click`` library to implement a multi-command
interface. Users can compute EMIs and full amortization schedules, compare
the flat-rate and reducing-balance conventions, quote an early payoff and
reverse-solve the rate behind an agreed EMI. Results can be printed to the
terminal or exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
import logging
from pathlib import Path
from typing import Optional

import click

from .config import (
    COMPOUND,
    DAYS_PER_MONTH,
    DEFAULT_INTEREST_METHOD,
    INTEREST_METHODS,
    MAX_MONTHLY_RATE,
    MAX_PREVIEW_ROWS,
    MAX_TERM_MONTHS,
    MIN_PRINCIPAL,
    MIN_TERM_MONTHS,
    SIMPLE,
)
from .data_models import LoanEstimate, LoanTerms
from .engine import estimate_loan, prepayment_amount, remaining_balance
from .exceptions import LoanCalculationError
from .formatter import estimate_to_dict, print_comparison, print_schedule, print_summary, summary_to_dict
from .rate_solver import solve_monthly_rate
from .utils import parse_amount, parse_date, to_decimal


class AmountType(click.ParamType):
    """Click parameter accepting amounts such as ``100000``, ``100k`` or ``1,250.50``."""

    name = "amount"

    def convert(self, value, param, ctx):
        try:
            return parse_amount(str(value))
        except ValueError:
            self.fail(f"Invalid amount: {value}", param, ctx)


class RateType(click.ParamType):
    """Click parameter for a monthly percentage rate (``2`` or ``2%``)."""

    name = "rate"

    def convert(self, value, param, ctx):
        text = str(value).strip()
        if text.endswith("%"):
            text = text[:-1]
        try:
            rate = to_decimal(text)
        except ValueError:
            self.fail(f"Invalid percentage: {value}", param, ctx)
        if rate < 0 or rate > MAX_MONTHLY_RATE:
            self.fail(f"Monthly rate must be between 0 and {MAX_MONTHLY_RATE}", param, ctx)
        return rate


AMOUNT = AmountType()
RATE = RateType()


def _principal_option(func):
    return click.option("--principal", "-p", "principal", required=True, type=AMOUNT, help="Loan amount")(func)


def _rate_option(func):
    return click.option("--rate", "-r", "rate", required=True, type=RATE, help="Monthly interest rate (percent)")(func)


def _term_option(func):
    return click.option(
        "--term",
        "-t",
        "term",
        required=True,
        type=click.IntRange(MIN_TERM_MONTHS, MAX_TERM_MONTHS),
        help="Loan term in months",
    )(func)


def _method_option(func):
    return click.option(
        "--method",
        "-m",
        "method",
        type=click.Choice(INTEREST_METHODS),
        default=DEFAULT_INTEREST_METHOD,
        show_default=True,
        help="Interest method: flat rate (simple) or reducing balance (compound)",
    )(func)


def _start_date_option(func):
    return click.option("--start-date", "-s", "start_date", help="Disbursement date (YYYY-MM-DD), default today")(func)


def build_terms_from_options(
    principal,
    rate,
    term: int,
    method: str,
    start_date: Optional[str] = None,
    emi=None,
) -> LoanTerms:
    if principal < MIN_PRINCIPAL:
        raise click.BadParameter(f"Principal must be at least {MIN_PRINCIPAL}", param_hint="--principal")
    try:
        start = parse_date(start_date)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--start-date")
    return LoanTerms(
        principal=principal,
        monthly_rate=rate,
        term_months=term,
        interest_method=method,
        start_date=start,
        manual_emi=emi,
    )


def run_estimate(terms: LoanTerms) -> LoanEstimate:
    try:
        return estimate_loan(terms)
    except LoanCalculationError as exc:
        raise click.BadParameter(str(exc))


def export_to_json(path: Path, estimate: LoanEstimate) -> None:
    """Export the estimate and its schedule to a JSON file."""
    with path.open("w", encoding="utf-8") as f:
        json.dump(estimate_to_dict(estimate), f, indent=2)


def export_to_csv(path: Path, estimate: LoanEstimate) -> None:
    """Export the schedule to a CSV file."""
    header = ["Month", "Due_Date", "EMI", "Principal", "Interest", "Balance"]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for e in estimate.schedule:
            writer.writerow(
                [
                    e.period,
                    e.due_date.isoformat(),
                    f"{e.emi:.2f}",
                    f"{e.principal:.2f}",
                    f"{e.interest:.2f}",
                    f"{e.balance:.2f}",
                ]
            )


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log calculation details")
def cli(verbose: bool) -> None:
    """A command-line EMI and amortization calculator."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@_principal_option
@_rate_option
@_term_option
@_method_option
def emi(principal, rate, term: int, method: str) -> None:
    """Print the monthly installment only."""
    estimate = run_estimate(build_terms_from_options(principal, rate, term, method))
    click.echo(f"{estimate.emi:.2f}")


@cli.command()
@_principal_option
@_rate_option
@_term_option
@_method_option
@_start_date_option
@click.option("--emi", "emi_override", type=AMOUNT, help="Use this EMI instead of the computed one")
@click.option("--output", "-o", "output", type=str, help="Output file path (.json or .csv)")
def schedule(principal, rate, term: int, method: str, start_date: Optional[str], emi_override, output: Optional[str]) -> None:
    """Compute and print the full amortization schedule."""
    estimate = run_estimate(build_terms_from_options(principal, rate, term, method, start_date, emi_override))
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, estimate)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, estimate)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv", param_hint="--output")
        click.echo(f"Schedule exported to {path}")
        return
    print_summary(estimate)
    entries = estimate.schedule
    if len(entries) > MAX_PREVIEW_ROWS:
        click.echo(f"Schedule has {len(entries)} rows; showing first {MAX_PREVIEW_ROWS} rows.")
        entries = entries[:MAX_PREVIEW_ROWS]
    print_schedule(entries)


@cli.command()
@_principal_option
@_rate_option
@_term_option
@_method_option
@_start_date_option
@click.option("--emi", "emi_override", type=AMOUNT, help="Use this EMI instead of the computed one")
@click.option("--output", "-o", "output", type=str, help="Output file path (.json)")
def summary(principal, rate, term: int, method: str, start_date: Optional[str], emi_override, output: Optional[str]) -> None:
    """Compute and print only the summary figures for a loan."""
    estimate = run_estimate(build_terms_from_options(principal, rate, term, method, start_date, emi_override))
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension", param_hint="--output")
        with path.open("w", encoding="utf-8") as f:
            json.dump({"summary": summary_to_dict(estimate)}, f, indent=2)
        click.echo(f"Summary exported to {path}")
    else:
        print_summary(estimate)


@cli.command()
@_principal_option
@_rate_option
@_term_option
@_start_date_option
def compare(principal, rate, term: int, start_date: Optional[str]) -> None:
    """Compare flat-rate and reducing-balance interest for the same loan."""
    flat = run_estimate(build_terms_from_options(principal, rate, term, SIMPLE, start_date))
    reducing = run_estimate(build_terms_from_options(principal, rate, term, COMPOUND, start_date))
    print_comparison(flat, reducing)


@cli.command()
@_principal_option
@_rate_option
@_term_option
@_method_option
@_start_date_option
@click.option("--paid", "paid", type=click.IntRange(min=0), default=0, show_default=True, help="Installments already paid")
@click.option(
    "--days",
    "days",
    type=click.IntRange(min=0),
    default=DAYS_PER_MONTH,
    show_default=True,
    help="Days since the last installment",
)
def payoff(principal, rate, term: int, method: str, start_date: Optional[str], paid: int, days: int) -> None:
    """Quote the outstanding balance and early closure amount."""
    estimate = run_estimate(build_terms_from_options(principal, rate, term, method, start_date))
    balance = remaining_balance(estimate.schedule, paid)
    click.echo(f"Installments paid  : {min(paid, estimate.months_scheduled)} of {estimate.months_scheduled}")
    click.echo(f"Remaining balance  : {balance:.2f}")
    click.echo(f"Closure amount     : {prepayment_amount(balance, estimate.monthly_rate, days):.2f}")


@cli.command("solve-rate")
@_principal_option
@_term_option
@click.option("--emi", "target_emi", required=True, type=AMOUNT, help="Agreed monthly installment")
def solve_rate(principal, term: int, target_emi) -> None:
    """Find the monthly compound rate that produces an agreed EMI."""
    try:
        rate = solve_monthly_rate(principal, term, target_emi)
    except LoanCalculationError as exc:
        raise click.ClickException(str(exc))
    click.echo(f"{rate}")


if __name__ == "__main__":
    cli()
