"""Constants shared by the command-line and web front ends.

The calculation engine itself accepts any positive principal and term and any
non-negative rate; these bounds apply to user input only.
"""

from decimal import Decimal

# Interest conventions
SIMPLE = "simple"
COMPOUND = "compound"
INTEREST_METHODS = (SIMPLE, COMPOUND)
DEFAULT_INTEREST_METHOD = SIMPLE

# Input bounds for the calculator surfaces
MIN_PRINCIPAL = Decimal("1")
MIN_MONTHLY_RATE = Decimal("0")
MAX_MONTHLY_RATE = Decimal("100")
MIN_TERM_MONTHS = 1
MAX_TERM_MONTHS = 360

# Interest accrues on a fixed 30-day month
DAYS_PER_MONTH = 30

# Rows printed by the CLI before the schedule is truncated
MAX_PREVIEW_ROWS = 120

# Rows shown at each end of the schedule sample returned by the estimate API
SCHEDULE_SAMPLE_SIZE = 3

# Loan book
DEFAULT_LOAN_PREFIX = "LN"
DEFAULT_DATABASE_URL = "sqlite:///lendcalc_loans.sqlite3"
# Inserts retried when another writer takes the same loan number
LOAN_NUMBER_ATTEMPTS = 5

# Loan statuses
STATUS_ACTIVE = "active"
STATUS_COMPLETED = "completed"
STATUS_CLOSED = "closed"

ESTIMATE_DISCLAIMER = "This is an estimate only. Actual loan terms may vary based on approval."
