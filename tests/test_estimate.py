"""
Tests for the estimate_loan façade.
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from lendcalc.data_models import LoanTerms
from lendcalc.engine import estimate_loan
from lendcalc.exceptions import InvalidInterestMethodError, ManualEmiError


def test_flat_rate_estimate(flat_terms):
    estimate = estimate_loan(flat_terms)
    assert estimate.emi == Decimal("10333.33")
    assert estimate.total_payable == Decimal("123999.96")
    assert estimate.total_interest == Decimal("23999.96")
    assert estimate.interest_percentage == Decimal("24.00")
    assert estimate.end_date == date(2025, 1, 31)
    assert estimate.months_scheduled == 12
    assert estimate.schedule[-1].balance == 0


def test_compound_estimate(flat_terms):
    estimate = estimate_loan(replace(flat_terms, interest_method="compound"))
    assert estimate.emi == Decimal("9455.96")
    assert estimate.total_payable == Decimal("113471.52")
    assert estimate.total_interest == Decimal("13471.52")
    assert estimate.schedule[-1].balance == 0


def test_echoes_terms(flat_terms):
    estimate = estimate_loan(flat_terms)
    assert estimate.principal == Decimal("100000")
    assert estimate.monthly_rate == Decimal("2")
    assert estimate.term_months == 12
    assert estimate.interest_method == "simple"
    assert estimate.start_date == date(2024, 1, 31)
    assert estimate.manual_emi is None


def test_keyword_arguments():
    estimate = estimate_loan(
        principal=100000, monthly_rate=2, term_months=12, interest_method="compound", start_date="2024-01-31"
    )
    assert estimate.emi == Decimal("9455.96")
    assert estimate.start_date == date(2024, 1, 31)


def test_mapping_with_overrides(flat_terms):
    params = {"principal": "100000", "monthly_rate": "2", "term_months": 12, "start_date": date(2024, 1, 31)}
    estimate = estimate_loan(params, interest_method="compound")
    assert estimate.interest_method == "compound"


def test_terms_and_keywords_together_rejected(flat_terms):
    with pytest.raises(TypeError):
        estimate_loan(flat_terms, term_months=6)


def test_default_start_date_is_today():
    estimate = estimate_loan(principal=1000, monthly_rate=1, term_months=2)
    assert estimate.start_date == date.today()


def test_manual_emi_is_used_verbatim(flat_terms):
    estimate = estimate_loan(replace(flat_terms, manual_emi=Decimal("11000")))
    assert estimate.emi == Decimal("11000")
    assert estimate.manual_emi == Decimal("11000")
    assert estimate.schedule[0].emi == Decimal("11000")
    assert estimate.schedule[0].principal == Decimal("9000.00")
    assert estimate.total_payable == Decimal("132000.00")


def test_totals_use_nominal_term_after_early_payoff(flat_terms):
    estimate = estimate_loan(replace(flat_terms, manual_emi=Decimal("60000")))
    assert estimate.months_scheduled == 2
    assert estimate.total_payable == Decimal("720000.00")
    assert estimate.total_interest == Decimal("620000.00")
    assert estimate.end_date == date(2025, 1, 31)


@pytest.mark.parametrize("manual_emi", [0, -5, "abc"])
def test_invalid_manual_emi(flat_terms, manual_emi):
    with pytest.raises(ManualEmiError):
        estimate_loan(replace(flat_terms, manual_emi=manual_emi))


def test_unknown_interest_method(flat_terms):
    with pytest.raises(InvalidInterestMethodError):
        estimate_loan(replace(flat_terms, interest_method="weekly"))


def test_idempotent(flat_terms):
    assert estimate_loan(flat_terms) == estimate_loan(flat_terms)


def test_loan_terms_defaults():
    terms = LoanTerms(principal=Decimal("500"), monthly_rate=Decimal("1"), term_months=5)
    assert terms.interest_method == "simple"
    assert terms.start_date is None
    assert terms.manual_emi is None


def test_tiny_principal_over_long_term():
    estimate = estimate_loan(principal=1, monthly_rate=0, term_months=360, start_date="2024-01-01")
    assert estimate.emi == Decimal("0.00")
    assert estimate.schedule[-1].balance == 0
