"""
Dashboard Aggregation

DESIGN DECISION: All aggregation is DETERMINISTIC and side-effect free.
These functions take records already fetched from storage and return
summary models. They never touch storage themselves, so the API, the
Streamlit UI and the tests all share the same numbers.

Money stays Decimal end to end; percentages are floats rounded to two
decimals for display.
"""

import datetime as dt
from collections import defaultdict
from decimal import Decimal
from typing import Iterable, Optional

from pydantic import BaseModel

from src.models.records import (
    Budget,
    Context,
    Investment,
    Savings,
    Subscription,
    SubscriptionFrequency,
    SubscriptionStatus,
    Transaction,
    TransactionType,
)


ZERO = Decimal("0")
CENTS = Decimal("0.01")

# Multipliers that turn one billing period into a month
MONTHLY_FACTORS = {
    SubscriptionFrequency.DAILY: Decimal("30"),
    SubscriptionFrequency.WEEKLY: Decimal("52") / Decimal("12"),
    SubscriptionFrequency.MONTHLY: Decimal("1"),
    SubscriptionFrequency.YEARLY: Decimal("1") / Decimal("12"),
}

# Budget progress levels, highest first
BUDGET_LEVELS = ((100, "over"), (80, "warning"))


# =============================================================================
# RESULT MODELS
# =============================================================================

class Totals(BaseModel):
    """Headline numbers for one context."""
    total_income: Decimal
    total_expenses: Decimal
    net_income: Decimal
    total_subscriptions: Decimal
    total_savings: Decimal
    total_invested: Decimal
    total_investment_value: Decimal
    investment_profit_loss: Decimal
    investment_return_percentage: float


class CategorySpending(BaseModel):
    category: str
    amount: Decimal
    percentage: float


class MonthlyBucket(BaseModel):
    month: str
    income: Decimal
    expenses: Decimal


class SavingsProgress(BaseModel):
    account: str
    current: Decimal
    goal: Decimal
    progress: float
    bar_percentage: float
    remaining: Decimal
    records: int


class InvestmentPerformance(BaseModel):
    id: str
    name: str
    type: str
    invested: Decimal
    current: Decimal
    profit_loss: Decimal
    percentage: float


class BudgetStatus(BaseModel):
    id: str
    category: str
    month: str
    monthly_limit: Decimal
    spent: Decimal
    percentage: float
    remaining: Decimal
    level: str


class DashboardSummary(BaseModel):
    context: Optional[Context] = None
    month: str
    totals: Totals
    spending_by_category: list[CategorySpending]
    monthly_income_expense: list[MonthlyBucket]
    savings_progress: list[SavingsProgress]
    investment_performance: list[InvestmentPerformance]
    budget_status: list[BudgetStatus]
    subscription_monthly_cost: Decimal


# =============================================================================
# HELPERS
# =============================================================================

def month_key(value: dt.date) -> str:
    """YYYY-MM bucket for a date."""
    return value.strftime("%Y-%m")


def current_month() -> str:
    return month_key(dt.date.today())


def percentage_of(part: Decimal, whole: Decimal) -> float:
    """part as a percentage of whole; 0 when whole is not positive."""
    if whole <= 0:
        return 0.0
    return round(float(part / whole * 100), 2)


def _sum(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)


# =============================================================================
# AGGREGATIONS
# =============================================================================

def calculate_totals(
    transactions: list[Transaction],
    subscriptions: list[Subscription],
    savings: list[Savings],
    investments: list[Investment],
) -> Totals:
    """Income, expenses, active subscriptions, savings and investment totals."""
    total_income = _sum(t.amount for t in transactions if t.type == TransactionType.INCOME)
    total_expenses = _sum(t.amount for t in transactions if t.type == TransactionType.EXPENSE)
    total_invested = _sum(i.amount_invested for i in investments)
    total_value = _sum(i.current_value for i in investments)
    profit_loss = total_value - total_invested

    return Totals(
        total_income=total_income,
        total_expenses=total_expenses,
        net_income=total_income - total_expenses,
        total_subscriptions=_sum(
            s.amount for s in subscriptions if s.status == SubscriptionStatus.ACTIVE
        ),
        total_savings=_sum(s.amount for s in savings),
        total_invested=total_invested,
        total_investment_value=total_value,
        investment_profit_loss=profit_loss,
        investment_return_percentage=percentage_of(profit_loss, total_invested),
    )


def spending_by_category(transactions: list[Transaction]) -> list[CategorySpending]:
    """Expense totals per category, largest first."""
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for transaction in transactions:
        if transaction.type != TransactionType.EXPENSE:
            continue
        totals[transaction.category or "Other"] += transaction.amount

    grand_total = _sum(totals.values())
    rows = [
        CategorySpending(
            category=category,
            amount=amount,
            percentage=percentage_of(amount, grand_total),
        )
        for category, amount in totals.items()
    ]
    rows.sort(key=lambda row: row.amount, reverse=True)
    return rows


def monthly_income_expense(transactions: list[Transaction]) -> list[MonthlyBucket]:
    """Income and expenses per YYYY-MM, oldest month first."""
    buckets: dict[str, MonthlyBucket] = {}
    for transaction in transactions:
        key = month_key(transaction.date)
        bucket = buckets.setdefault(key, MonthlyBucket(month=key, income=ZERO, expenses=ZERO))
        if transaction.type == TransactionType.INCOME:
            bucket.income += transaction.amount
        else:
            bucket.expenses += transaction.amount

    return [buckets[key] for key in sorted(buckets)]


def savings_progress(savings: list[Savings]) -> list[SavingsProgress]:
    """
    Progress per savings account.

    Amounts and goals of records sharing an account are summed.
    progress is uncapped; bar_percentage is capped at 100 for progress bars.
    """
    accounts: dict[str, dict] = {}
    for record in savings:
        account = record.account or "General"
        entry = accounts.setdefault(account, {"current": ZERO, "goal": ZERO, "records": 0})
        entry["current"] += record.amount
        entry["goal"] += record.goal or ZERO
        entry["records"] += 1

    result = []
    for account, entry in accounts.items():
        progress = percentage_of(entry["current"], entry["goal"])
        result.append(SavingsProgress(
            account=account,
            current=entry["current"],
            goal=entry["goal"],
            progress=progress,
            bar_percentage=min(progress, 100.0),
            remaining=entry["goal"] - entry["current"],
            records=entry["records"],
        ))
    return result


def investment_performance(investments: list[Investment]) -> list[InvestmentPerformance]:
    """Invested vs. current value per holding."""
    result = []
    for investment in investments:
        profit_loss = investment.current_value - investment.amount_invested
        result.append(InvestmentPerformance(
            id=investment.id,
            name=investment.asset_name,
            type=investment.type.value,
            invested=investment.amount_invested,
            current=investment.current_value,
            profit_loss=profit_loss,
            percentage=percentage_of(profit_loss, investment.amount_invested),
        ))
    return result


def budget_level(spent: Decimal, limit: Decimal) -> str:
    """Level from the exact spent/limit ratio, before any rounding."""
    if limit <= 0:
        return "ok"
    percentage = spent / limit * 100
    for threshold, level in BUDGET_LEVELS:
        if percentage >= threshold:
            return level
    return "ok"


def budget_status(
    budgets: list[Budget],
    transactions: list[Transaction],
    month: str,
) -> list[BudgetStatus]:
    """
    Spending against each budget of a month.

    spent is recomputed from that month's Expense transactions in the
    budget's category; the stored spent column is ignored.
    """
    spent_by_category: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for transaction in transactions:
        if transaction.type == TransactionType.EXPENSE and month_key(transaction.date) == month:
            spent_by_category[transaction.category] += transaction.amount

    result = []
    for budget in budgets:
        if budget.month != month:
            continue
        spent = spent_by_category[budget.category]
        percentage = min(percentage_of(spent, budget.monthly_limit), 100.0)
        result.append(BudgetStatus(
            id=budget.id,
            category=budget.category,
            month=budget.month,
            monthly_limit=budget.monthly_limit,
            spent=spent,
            percentage=percentage,
            remaining=budget.monthly_limit - spent,
            level=budget_level(spent, budget.monthly_limit),
        ))
    return result


def subscription_monthly_cost(subscriptions: list[Subscription]) -> Decimal:
    """What the active subscriptions cost per month, to the cent."""
    total = _sum(
        s.amount * MONTHLY_FACTORS[s.frequency]
        for s in subscriptions
        if s.status == SubscriptionStatus.ACTIVE
    )
    return total.quantize(CENTS)


def build_dashboard(
    transactions: list[Transaction],
    subscriptions: list[Subscription],
    savings: list[Savings],
    budgets: list[Budget],
    investments: list[Investment],
    context: Optional[Context] = None,
    month: Optional[str] = None,
) -> DashboardSummary:
    """Everything the dashboard shows for one context."""
    month = month or current_month()
    return DashboardSummary(
        context=context,
        month=month,
        totals=calculate_totals(transactions, subscriptions, savings, investments),
        spending_by_category=spending_by_category(transactions),
        monthly_income_expense=monthly_income_expense(transactions),
        savings_progress=savings_progress(savings),
        investment_performance=investment_performance(investments),
        budget_status=budget_status(budgets, transactions, month),
        subscription_monthly_cost=subscription_monthly_cost(subscriptions),
    )
