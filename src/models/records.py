"""
Record Models for Finance Tracker

These models define the strict schemas for every record kind that is
stored in the spreadsheet. They are designed to:
1. Enforce form validation at the API boundary
2. Provide clear validation error messages
3. Map one-to-one onto spreadsheet columns

Each kind has a *Create model (what a client submits) and a stored
model (Create + id). Wire names match the sheet headers exactly.
"""

import datetime as dt
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction."""
    INCOME = "Income"
    EXPENSE = "Expense"


class SubscriptionFrequency(str, Enum):
    """How often a subscription bills."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle. Only ACTIVE subscriptions count towards totals."""
    ACTIVE = "Active"
    PAUSED = "Paused"
    CANCELLED = "Cancelled"


class InvestmentType(str, Enum):
    """Asset classes offered in the investment form."""
    STOCK = "Stock"
    CRYPTO = "Crypto"
    MUTUAL_FUND = "Mutual Fund"
    PROPERTY = "Property"
    BOND = "Bond"
    ETF = "ETF"
    OTHER = "Other"


# Context types that have a dedicated theme. Any other type is allowed
# and falls back to the Home theme.
KNOWN_CONTEXT_TYPES = ("Home", "Work", "Business")

# Categories offered by the budget form. Budgets may use other
# categories; these are suggestions only.
BUDGET_CATEGORIES = (
    "Food & Dining",
    "Transportation",
    "Shopping",
    "Entertainment",
    "Bills & Utilities",
    "Healthcare",
    "Education",
    "Travel",
    "Groceries",
    "Gas",
    "Insurance",
    "Rent/Mortgage",
    "Other",
)

MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


class _RecordInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)


# =============================================================================
# CONTEXTS
# =============================================================================

class ContextCreate(_RecordInput):
    """
    A user-defined grouping such as Home, Work or Business.

    The type drives theming; the name is free text.
    """
    name: str = Field(..., min_length=1, max_length=100)
    type: str = Field(..., min_length=1, max_length=50)


class Context(ContextCreate):
    id: str


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionCreate(_RecordInput):
    """A single income or expense entry."""
    context_id: str = Field(..., min_length=1)
    date: dt.date
    category: str = Field(..., min_length=1, max_length=100)
    type: TransactionType
    amount: Decimal = Field(..., gt=0, description="Always positive; type gives the sign")
    account: str = Field(default="", max_length=100)
    notes: str = Field(default="", max_length=1000)


class Transaction(TransactionCreate):
    id: str


# =============================================================================
# SUBSCRIPTIONS
# =============================================================================

class SubscriptionCreate(_RecordInput):
    """A recurring charge."""
    context_id: str = Field(..., min_length=1)
    service: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., gt=0)
    frequency: SubscriptionFrequency = SubscriptionFrequency.MONTHLY
    next_billing_date: Optional[dt.date] = None
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE


class Subscription(SubscriptionCreate):
    id: str


# =============================================================================
# SAVINGS
# =============================================================================

class SavingsCreate(_RecordInput):
    """
    A deposit into a savings account.

    Several records may share an account; their amounts and goals are
    summed when computing progress.
    """
    context_id: str = Field(..., min_length=1)
    account: str = Field(..., min_length=1, max_length=100)
    date: dt.date
    amount: Decimal = Field(..., gt=0)
    goal: Optional[Decimal] = Field(default=None, ge=0)


class Savings(SavingsCreate):
    id: str


# =============================================================================
# BUDGETS
# =============================================================================

class BudgetCreate(_RecordInput):
    """A monthly spending limit for one category."""
    context_id: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1, max_length=100)
    monthly_limit: Decimal = Field(..., gt=0)
    month: str = Field(..., pattern=MONTH_PATTERN, description="YYYY-MM")
    spent: Decimal = Field(default=Decimal("0"), ge=0)


class Budget(BudgetCreate):
    id: str


# =============================================================================
# INVESTMENTS
# =============================================================================

class InvestmentCreate(_RecordInput):
    """
    A holding and what it is worth now.

    current_value defaults to amount_invested when not supplied.
    """
    context_id: str = Field(..., min_length=1)
    asset_name: str = Field(..., min_length=1, max_length=100)
    type: InvestmentType
    amount_invested: Decimal = Field(..., gt=0)
    current_value: Optional[Decimal] = Field(default=None, ge=0)
    date_invested: dt.date
    notes: str = Field(default="", max_length=1000)

    @model_validator(mode='after')
    def default_current_value(self) -> 'InvestmentCreate':
        if self.current_value is None:
            self.current_value = self.amount_invested
        return self


class Investment(InvestmentCreate):
    id: str


# =============================================================================
# TABLE DESCRIPTORS
# =============================================================================

# Column order = sheet column order. Do not reorder: existing sheets
# depend on it.
CONTEXT_COLUMNS = ["id", "name", "type"]
TRANSACTION_COLUMNS = [
    "id", "context_id", "date", "category", "type", "amount", "account", "notes",
]
SUBSCRIPTION_COLUMNS = [
    "id", "context_id", "service", "amount", "frequency", "next_billing_date", "status",
]
SAVINGS_COLUMNS = ["id", "context_id", "account", "date", "amount", "goal"]
BUDGET_COLUMNS = ["id", "context_id", "category", "monthly_limit", "month", "spent"]
INVESTMENT_COLUMNS = [
    "id", "context_id", "asset_name", "type", "amount_invested",
    "current_value", "date_invested", "notes",
]


@dataclass(frozen=True)
class RecordTable:
    """
    Everything storage and the API need to know about one record kind.

    kind is the URL segment and settings key ('transactions'),
    label/plural are used in user-facing messages.
    """
    kind: str
    sheet_name: str
    columns: list[str]
    create_model: type[BaseModel]
    model: type[BaseModel]
    label: str
    plural: str
    filters: tuple[str, ...] = field(default=("context_id",))
    required_message: str = "Required fields missing"
    # Message for a present but invalid value, keyed by field
    field_messages: dict[str, str] = field(default_factory=dict)

    def not_found_message(self) -> str:
        return f"{self.label} not found"

    def invalid_input_message(self, errors: list[dict]) -> str:
        """
        Public message for a rejected request body.

        Missing fields win; otherwise the first field with a message of
        its own, falling back to required_message.
        """
        if any(error.get("type") == "missing" for error in errors):
            return self.required_message
        for error in errors:
            location = error.get("loc") or ("",)
            message = self.field_messages.get(str(location[-1]))
            if message:
                return message
        return self.required_message


CONTEXTS = RecordTable(
    kind="contexts",
    sheet_name="Contexts",
    columns=CONTEXT_COLUMNS,
    create_model=ContextCreate,
    model=Context,
    label="Context",
    plural="contexts",
    filters=(),
    required_message="Name and type are required",
)
TRANSACTIONS = RecordTable(
    kind="transactions",
    sheet_name="Transactions",
    columns=TRANSACTION_COLUMNS,
    create_model=TransactionCreate,
    model=Transaction,
    label="Transaction",
    plural="transactions",
)
SUBSCRIPTIONS = RecordTable(
    kind="subscriptions",
    sheet_name="Subscriptions",
    columns=SUBSCRIPTION_COLUMNS,
    create_model=SubscriptionCreate,
    model=Subscription,
    label="Subscription",
    plural="subscriptions",
)
SAVINGS = RecordTable(
    kind="savings",
    sheet_name="Savings",
    columns=SAVINGS_COLUMNS,
    create_model=SavingsCreate,
    model=Savings,
    label="Savings record",
    plural="savings",
)
BUDGETS = RecordTable(
    kind="budgets",
    sheet_name="Budgets",
    columns=BUDGET_COLUMNS,
    create_model=BudgetCreate,
    model=Budget,
    label="Budget",
    plural="budgets",
    filters=("context_id", "month"),
)
INVESTMENTS = RecordTable(
    kind="investments",
    sheet_name="Investments",
    columns=INVESTMENT_COLUMNS,
    create_model=InvestmentCreate,
    model=Investment,
    label="Investment",
    plural="investments",
    field_messages={
        "amount_invested": "Amount invested must be a positive number",
        "current_value": "Current value must be a non-negative number",
    },
)

TABLES: dict[str, RecordTable] = {
    table.kind: table
    for table in (CONTEXTS, TRANSACTIONS, SUBSCRIPTIONS, SAVINGS, BUDGETS, INVESTMENTS)
}
