"""JSON API for the public loan calculator and the loan book.

The calculator endpoints use the same ``estimate_loan`` call as loan
creation, so a quote and a loan created with identical parameters always
show identical figures.

Run locally with::

    flask --app lendcalc_web.app run --port 8710
"""

import logging
import os
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from flask import Blueprint, Flask, current_app, jsonify, request

from lendcalc.config import (
    DEFAULT_INTEREST_METHOD,
    DAYS_PER_MONTH,
    ESTIMATE_DISCLAIMER,
    INTEREST_METHODS,
    MAX_MONTHLY_RATE,
    MAX_TERM_MONTHS,
    MIN_MONTHLY_RATE,
    MIN_PRINCIPAL,
    MIN_TERM_MONTHS,
    SCHEDULE_SAMPLE_SIZE,
)
from lendcalc.data_models import LoanTerms
from lendcalc.engine import estimate_loan
from lendcalc.exceptions import (
    InvalidInterestMethodError,
    InvalidPeriodError,
    InvalidPrincipalError,
    InvalidRateError,
    InvalidTermError,
    LoanCalculationError,
    LoanConflictError,
    LoanNotFoundError,
    LoanStateError,
    ManualEmiError,
)
from lendcalc.formatter import schedule_to_dicts
from lendcalc.rate_solver import solve_monthly_rate
from lendcalc.utils import parse_date, to_decimal
from lendcalc_web.loan_store import LoanStore, create_store_from_env

logger = logging.getLogger(__name__)

api = Blueprint("api", __name__, url_prefix="/api")

# camelCase field names sent by the browser client
FIELD_ALIASES = {
    "monthlyInterestRate": "monthly_rate",
    "loanDurationMonths": "term_months",
    "interestType": "interest_method",
    "startDate": "start_date",
    "manualEMI": "manual_emi",
    "customerName": "borrower",
}

PRINCIPAL_MESSAGE = f"Principal amount is required and must be at least {MIN_PRINCIPAL}"
RATE_MESSAGE = f"Monthly interest rate must be between {MIN_MONTHLY_RATE} and {MAX_MONTHLY_RATE}"
TERM_MESSAGE = f"Loan duration must be between {MIN_TERM_MONTHS} and {MAX_TERM_MONTHS} months"
METHOD_MESSAGE = 'Interest type must be "simple" or "compound"'
EMI_MESSAGE = "Manual EMI must be a positive amount"
DAYS_MESSAGE = "Days must be a whole number, zero or more"


def _jsonable(value: Any) -> Any:
    """Convert Decimals to floats and dates to ISO strings, recursively."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def _payload() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        data = request.form.to_dict()
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return {FIELD_ALIASES.get(key, key): value for key, value in data.items()}


def _number(data: Mapping[str, Any], key: str, error_cls, message: str) -> Decimal:
    value = data.get(key)
    if value is None or value == "" or isinstance(value, bool):
        raise error_cls(message, value)
    try:
        return to_decimal(value)
    except ValueError as exc:
        raise error_cls(message, value) from exc


def _principal(data: Mapping[str, Any]) -> Decimal:
    principal = _number(data, "principal", InvalidPrincipalError, PRINCIPAL_MESSAGE)
    if principal < MIN_PRINCIPAL:
        raise InvalidPrincipalError(PRINCIPAL_MESSAGE, data.get("principal"))
    return principal


def _term(data: Mapping[str, Any]) -> int:
    term = _number(data, "term_months", InvalidTermError, TERM_MESSAGE)
    if term != term.to_integral_value() or not MIN_TERM_MONTHS <= term <= MAX_TERM_MONTHS:
        raise InvalidTermError(TERM_MESSAGE, data.get("term_months"))
    return int(term)


def terms_from_payload(data: Mapping[str, Any], allow_manual_emi: bool = False) -> LoanTerms:
    """Validate calculator input and build ``LoanTerms`` from it."""
    principal = _principal(data)
    rate = _number(data, "monthly_rate", InvalidRateError, RATE_MESSAGE)
    if not MIN_MONTHLY_RATE <= rate <= MAX_MONTHLY_RATE:
        raise InvalidRateError(RATE_MESSAGE, data.get("monthly_rate"))
    term = _term(data)
    method = data.get("interest_method") or DEFAULT_INTEREST_METHOD
    if method not in INTEREST_METHODS:
        raise InvalidInterestMethodError(METHOD_MESSAGE, method)
    manual_emi = None
    if allow_manual_emi and data.get("manual_emi") not in (None, ""):
        manual_emi = _number(data, "manual_emi", ManualEmiError, EMI_MESSAGE)
        if manual_emi <= 0:
            raise ManualEmiError(EMI_MESSAGE, data.get("manual_emi"))
    return LoanTerms(
        principal=principal,
        monthly_rate=rate,
        term_months=term,
        interest_method=method,
        start_date=parse_date(data.get("start_date")),
        manual_emi=manual_emi,
    )


def _store() -> LoanStore:
    return current_app.extensions["loan_store"]


def _days(value: Any) -> int:
    if value is None or value == "" or isinstance(value, bool):
        raise InvalidPeriodError(DAYS_MESSAGE, value)
    try:
        days = to_decimal(value)
    except ValueError as exc:
        raise InvalidPeriodError(DAYS_MESSAGE, value) from exc
    if days < 0 or days != days.to_integral_value():
        raise InvalidPeriodError(DAYS_MESSAGE, value)
    return int(days)


def _fee(value: Any) -> Decimal:
    fee = to_decimal(value if value not in (None, "") else 0)
    if fee < 0:
        raise ValueError("Foreclosure fee cannot be negative")
    return fee


# ---------------------------------------------------------------------------
# Public calculator
# ---------------------------------------------------------------------------


@api.post("/calculator/estimate")
def calculator_estimate():
    terms = terms_from_payload(_payload())
    estimate = estimate_loan(terms)
    schedule = schedule_to_dicts(estimate.schedule)
    return jsonify(
        {
            "success": True,
            "message": "Loan estimate calculated successfully",
            "disclaimer": ESTIMATE_DISCLAIMER,
            "data": {
                "inputs": _jsonable(
                    {
                        "principal": estimate.principal,
                        "monthly_rate": estimate.monthly_rate,
                        "term_months": estimate.term_months,
                        "interest_method": estimate.interest_method,
                        "start_date": estimate.start_date,
                    }
                ),
                "estimate": _jsonable(
                    {
                        "monthly_emi": estimate.emi,
                        "total_amount_payable": estimate.total_payable,
                        "total_interest_amount": estimate.total_interest,
                        "interest_percentage": estimate.interest_percentage,
                        "end_date": estimate.end_date,
                    }
                ),
                "sample_schedule": {
                    "first_months": schedule[:SCHEDULE_SAMPLE_SIZE],
                    "last_months": schedule[-SCHEDULE_SAMPLE_SIZE:],
                    "total_months": len(schedule),
                },
            },
        }
    )


@api.post("/calculator/schedule")
def calculator_schedule():
    estimate = estimate_loan(terms_from_payload(_payload()))
    return jsonify(
        {
            "success": True,
            "disclaimer": ESTIMATE_DISCLAIMER,
            "data": {
                "monthly_emi": float(estimate.emi),
                "total_amount_payable": float(estimate.total_payable),
                "total_interest_amount": float(estimate.total_interest),
                "schedule": schedule_to_dicts(estimate.schedule),
            },
        }
    )


@api.post("/calculator/solve-rate")
def calculator_solve_rate():
    data = _payload()
    principal = _principal(data)
    term = _term(data)
    target = _number(data, "emi", ManualEmiError, EMI_MESSAGE)
    rate = solve_monthly_rate(principal, term, target, max_rate=MAX_MONTHLY_RATE)
    return jsonify({"success": True, "data": {"monthly_rate": float(rate), "emi": float(target)}})


# ---------------------------------------------------------------------------
# Loan book
# ---------------------------------------------------------------------------


@api.post("/loans")
def create_loan():
    data = _payload()
    terms = terms_from_payload(data, allow_manual_emi=True)
    loan = _store().create_loan(terms, borrower=(data.get("borrower") or None))
    return jsonify({"success": True, "message": "Loan created successfully", "loan": _jsonable(loan)}), 201


@api.get("/loans")
def list_loans():
    loans = _store().list_loans(status=request.args.get("status") or None)
    return jsonify({"success": True, "loans": _jsonable(loans)})


@api.get("/loans/<loan_id>")
def get_loan(loan_id: str):
    return jsonify({"success": True, "loan": _jsonable(_store().get_loan(loan_id))})


@api.get("/loans/<loan_id>/schedule")
def get_loan_schedule(loan_id: str):
    store = _store()
    loan = store.get_loan(loan_id)
    return jsonify(
        {
            "success": True,
            "loan_number": loan["loan_number"],
            "payments_received": loan["payments_received"],
            "schedule": schedule_to_dicts(store.get_schedule(loan_id)),
        }
    )


@api.post("/loans/<loan_id>/payments")
def record_payment(loan_id: str):
    loan = _store().record_payment(loan_id)
    return (
        jsonify(
            {
                "success": True,
                "message": "Payment recorded successfully",
                "loan_status": _jsonable(
                    {
                        "remaining_balance": loan["remaining_balance"],
                        "payments_received": loan["payments_received"],
                        "status": loan["status"],
                        "next_due_date": loan["next_due_date"],
                        "is_fully_paid": loan["is_fully_paid"],
                    }
                ),
            }
        ),
        201,
    )


@api.get("/loans/<loan_id>/foreclosure")
def quote_foreclosure(loan_id: str):
    days = _days(request.args.get("days", DAYS_PER_MONTH))
    quote = _store().quote_foreclosure(loan_id, days, _fee(request.args.get("fee")))
    return jsonify({"success": True, "foreclosure": _jsonable(quote)})


@api.post("/loans/<loan_id>/foreclose")
def foreclose_loan(loan_id: str):
    data = _payload()
    days = _days(data.get("days", DAYS_PER_MONTH))
    loan = _store().foreclose(loan_id, days, _fee(data.get("fee")))
    return jsonify({"success": True, "message": "Loan foreclosed and settled successfully", "loan": _jsonable(loan)})


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def _error_response(message: str, status: int, details: Optional[Dict[str, Any]] = None):
    body: Dict[str, Any] = {"success": False, "message": message}
    if details:
        body["details"] = _jsonable(details)
    return jsonify(body), status


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(LoanCalculationError)
    def handle_calculation_error(exc: LoanCalculationError):
        logger.warning("Rejected loan parameters: %s %s", exc.message, exc.details)
        return _error_response(exc.message, 400, exc.details)

    @app.errorhandler(LoanNotFoundError)
    def handle_not_found(exc: LoanNotFoundError):
        return _error_response(exc.message, 404)

    @app.errorhandler(LoanStateError)
    def handle_state_error(exc: LoanStateError):
        logger.warning("Rejected loan operation: %s %s", exc.message, exc.details)
        return _error_response(exc.message, 400, exc.details)

    @app.errorhandler(LoanConflictError)
    def handle_conflict(exc: LoanConflictError):
        logger.error("Loan creation conflict: %s", exc.message)
        return _error_response(exc.message, 409)

    @app.errorhandler(ValueError)
    def handle_value_error(exc: ValueError):
        logger.warning("Rejected request: %s", exc)
        return _error_response(str(exc), 400)


def configure_logging(level: Any) -> None:
    """Apply ``level`` to the calculator and web loggers."""
    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    for name in ("lendcalc", "lendcalc_web"):
        logging.getLogger(name).setLevel(level)


def create_app(config: Optional[Mapping[str, Any]] = None) -> Flask:
    """Build the Flask app; ``config`` overrides values read from the environment."""
    app = Flask(__name__)
    app.config["DATABASE_URL"] = os.environ.get("LENDCALC_DATABASE_URL")
    app.config["LOAN_PREFIX"] = os.environ.get("LENDCALC_LOAN_PREFIX")
    app.config["LOG_LEVEL"] = os.environ.get("LENDCALC_LOG_LEVEL", "INFO")
    if config:
        app.config.update(config)
    configure_logging(app.config["LOG_LEVEL"])
    app.extensions["loan_store"] = create_store_from_env(app.config["DATABASE_URL"], app.config["LOAN_PREFIX"])
    app.register_blueprint(api)
    register_error_handlers(app)
    return app


if __name__ == "__main__":
    print("Starting loan calculator API...")
    create_app().run(host="0.0.0.0", port=8710, debug=True)
