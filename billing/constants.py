from decimal import Decimal

# Defaults for a fresh configuration row
DEFAULT_DAILY_INTEREST_RATE = Decimal("0.0033")  # ~0.33% per day
DEFAULT_LATE_PENALTY_RATE = Decimal("2.00")  # percent, charged once
DEFAULT_MAX_ACCUMULATED_INTEREST_RATE = Decimal("20.00")  # percent of original
DEFAULT_GRACE_PERIOD_DAYS = 0

# Days overdue after which an invoice goes to legal
DEFAULT_LEGAL_ESCALATION_DAYS = 30

# "Test configuration" preview
PREVIEW_AMOUNT = Decimal("1000.00")
PREVIEW_DAYS = 30
MAX_PREVIEW_DAYS = 36500

# Statuses the overdue refresh recalculates
OPEN_STATUSES = ("PENDING", "OPEN", "OVERDUE")

# Currency rounding, applied once at the end of a calculation
CENTS = Decimal("0.01")
