"""Exceptions raised by the loan calculator and the loan book."""

from typing import Any, Dict, Optional


class LendCalcError(Exception):
    """Base exception for all lendcalc errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        return self.message


class LoanCalculationError(LendCalcError, ValueError):
    """Raised when loan parameters violate the calculator's input contract."""

    field: Optional[str] = None

    def __init__(self, message: str, value: Any = None):
        details = {"field": self.field, "value": value} if self.field else {"value": value}
        super().__init__(message, details)
        self.value = value


class InvalidPrincipalError(LoanCalculationError):
    """Principal is missing, non-numeric or not positive."""

    field = "principal"


class InvalidTermError(LoanCalculationError):
    """Term is not a positive whole number of months."""

    field = "term_months"


class InvalidRateError(LoanCalculationError):
    """Monthly rate is non-numeric or negative."""

    field = "monthly_rate"


class ManualEmiError(LoanCalculationError):
    """A supplied EMI is non-numeric, not positive or unreachable."""

    field = "manual_emi"


class InvalidInterestMethodError(LoanCalculationError):
    """Interest method is neither ``simple`` nor ``compound``."""

    field = "interest_method"


class InvalidPeriodError(LoanCalculationError):
    """Day count for period interest is missing, fractional or negative."""

    field = "days"


class LoanNotFoundError(LendCalcError):
    """Raised when a loan cannot be found in the loan book."""

    def __init__(self, loan_id: str):
        super().__init__(f"Loan '{loan_id}' not found", {"loan_id": loan_id})


class LoanStateError(LendCalcError):
    """Raised when an operation is not allowed in the loan's current status."""

    def __init__(self, message: str, loan_id: str, status: str):
        super().__init__(message, {"loan_id": loan_id, "status": status})


class LoanConflictError(LendCalcError):
    """Raised when a loan number could not be allocated."""

    def __init__(self, loan_number: str, attempts: int):
        super().__init__(
            f"Could not allocate a loan number after {attempts} attempts",
            {"loan_number": loan_number, "attempts": attempts},
        )
