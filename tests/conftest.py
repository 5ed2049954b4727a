from datetime import date
from decimal import Decimal

import pytest

from lendcalc.data_models import LoanTerms
from lendcalc_web.app import create_app
from lendcalc_web.loan_store import LoanStore


@pytest.fixture
def start_date():
    return date(2024, 1, 31)


@pytest.fixture
def flat_terms(start_date):
    """100 000 at 2 % a month over a year, flat rate."""
    return LoanTerms(
        principal=Decimal("100000"),
        monthly_rate=Decimal("2"),
        term_months=12,
        interest_method="simple",
        start_date=start_date,
    )


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'loans.sqlite3'}"


@pytest.fixture
def store(database_url):
    return LoanStore(database_url)


@pytest.fixture
def app(database_url):
    return create_app({"TESTING": True, "DATABASE_URL": database_url})


@pytest.fixture
def client(app):
    return app.test_client()
