"""Dashboard aggregation package."""

from src.queries.dashboard import (
    BudgetStatus,
    CategorySpending,
    DashboardSummary,
    InvestmentPerformance,
    MonthlyBucket,
    SavingsProgress,
    Totals,
    budget_level,
    budget_status,
    build_dashboard,
    calculate_totals,
    current_month,
    investment_performance,
    monthly_income_expense,
    savings_progress,
    spending_by_category,
    subscription_monthly_cost,
)

__all__ = [
    "BudgetStatus",
    "CategorySpending",
    "DashboardSummary",
    "InvestmentPerformance",
    "MonthlyBucket",
    "SavingsProgress",
    "Totals",
    "budget_level",
    "budget_status",
    "build_dashboard",
    "calculate_totals",
    "current_month",
    "investment_performance",
    "monthly_income_expense",
    "savings_progress",
    "spending_by_category",
    "subscription_monthly_cost",
]
