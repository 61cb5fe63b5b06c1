"""Tests for semantic record validation."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from src.models.records import (
    BUDGETS,
    CONTEXTS,
    INVESTMENTS,
    SAVINGS,
    SUBSCRIPTIONS,
    TRANSACTIONS,
    BudgetCreate,
    Context,
    ContextCreate,
    InvestmentCreate,
    SavingsCreate,
    SubscriptionCreate,
    TransactionCreate,
)
from src.models.validation import ValidationIssue, ValidationResult
from src.services.storage import InMemoryRecordStorage, StorageError
from src.validation import RecordValidationError, RecordValidator


class FailingStorage(InMemoryRecordStorage):
    async def get_record(self, record_id):
        raise StorageError("sheet unavailable")


@pytest.fixture
def contexts():
    return InMemoryRecordStorage(CONTEXTS, [Context(id="1", name="Family", type="Home")])


@pytest.fixture
def budgets():
    return InMemoryRecordStorage(BUDGETS)


@pytest.fixture
def validator(contexts, budgets, app_settings):
    return RecordValidator(context_storage=contexts, budget_storage=budgets, settings=app_settings)


def transaction(**overrides) -> TransactionCreate:
    data = {
        "context_id": "1",
        "date": date.today(),
        "category": "Groceries",
        "type": "Expense",
        "amount": Decimal("50"),
    }
    data.update(overrides)
    return TransactionCreate(**data)


class TestContextCheck:
    """The referenced context must exist."""

    @pytest.mark.asyncio
    async def test_known_context_passes(self, validator):
        result = await validator.validate(TRANSACTIONS, transaction())
        assert not result.has_errors

    @pytest.mark.asyncio
    async def test_unknown_context_is_error(self, validator):
        result = await validator.validate(TRANSACTIONS, transaction(context_id="42"))
        assert result.has_errors
        assert result.issues[0].issue_type == "unknown_context"

    @pytest.mark.asyncio
    async def test_unreachable_context_sheet_skips_check(self, budgets, app_settings):
        validator = RecordValidator(
            context_storage=FailingStorage(CONTEXTS),
            budget_storage=budgets,
            settings=app_settings,
        )
        result = await validator.validate(TRANSACTIONS, transaction(context_id="42"))
        assert not result.has_errors

    @pytest.mark.asyncio
    async def test_contexts_are_not_checked(self, validator):
        result = await validator.validate(CONTEXTS, ContextCreate(name="Work", type="Work"))
        assert result.issues == []


class TestDateChecks:
    """Future dates and stale billing dates are warnings."""

    @pytest.mark.asyncio
    async def test_future_date_warns(self, validator):
        result = await validator.validate(
            TRANSACTIONS, transaction(date=date.today() + timedelta(days=30))
        )
        assert not result.has_errors
        assert any("future" in warning for warning in result.warnings)

    @pytest.mark.asyncio
    async def test_date_within_tolerance_is_fine(self, validator):
        result = await validator.validate(
            TRANSACTIONS, transaction(date=date.today() + timedelta(days=3))
        )
        assert result.warnings == []

    @pytest.mark.asyncio
    async def test_investment_date_checked(self, validator):
        investment = InvestmentCreate(
            context_id="1",
            asset_name="VTI",
            type="ETF",
            amount_invested="100",
            date_invested=date.today() + timedelta(days=60),
        )
        result = await validator.validate(INVESTMENTS, investment)
        assert result.issues[0].field == "date_invested"

    @pytest.mark.asyncio
    async def test_stale_billing_date_warns_for_active(self, validator):
        subscription = SubscriptionCreate(
            context_id="1",
            service="Netflix",
            amount="15.99",
            next_billing_date=date.today() - timedelta(days=3),
        )
        result = await validator.validate(SUBSCRIPTIONS, subscription)
        assert [issue.issue_type for issue in result.issues] == ["stale_date"]

    @pytest.mark.asyncio
    async def test_stale_billing_date_ignored_when_cancelled(self, validator):
        subscription = SubscriptionCreate(
            context_id="1",
            service="Netflix",
            amount="15.99",
            status="Cancelled",
            next_billing_date=date.today() - timedelta(days=3),
        )
        result = await validator.validate(SUBSCRIPTIONS, subscription)
        assert result.issues == []


class TestAmountChecks:
    """Suspicious amounts are warnings, never errors."""

    @pytest.mark.asyncio
    async def test_huge_amount_warns(self, validator):
        result = await validator.validate(TRANSACTIONS, transaction(amount=Decimal("5000000")))
        assert not result.has_errors
        assert result.issues[0].issue_type == "suspicious_value"

    @pytest.mark.asyncio
    async def test_zero_investment_value_warns(self, validator):
        investment = InvestmentCreate(
            context_id="1",
            asset_name="Startup",
            type="Other",
            amount_invested="100",
            current_value="0",
            date_invested="2023-01-01",
        )
        result = await validator.validate(INVESTMENTS, investment)
        assert result.warnings == ["Startup has a current value of zero"]

    @pytest.mark.asyncio
    async def test_savings_reaching_goal_is_info(self, validator):
        savings = SavingsCreate(
            context_id="1",
            account="Vacation",
            date="2024-01-01",
            amount="600",
            goal="500",
        )
        result = await validator.validate(SAVINGS, savings)
        assert result.issues[0].severity == "info"
        assert result.warnings == []


class TestDuplicateBudget:
    """One budget per category and month is expected."""

    @pytest.mark.asyncio
    async def test_duplicate_category_warns(self, validator, budgets):
        existing = BudgetCreate(context_id="1", category="Groceries", monthly_limit="400", month="2024-03")
        await budgets.create_record(existing)

        duplicate = BudgetCreate(context_id="1", category="groceries", monthly_limit="300", month="2024-03")
        result = await validator.validate(BUDGETS, duplicate)

        assert result.issues[0].issue_type == "duplicate"

    @pytest.mark.asyncio
    async def test_updating_same_budget_is_not_duplicate(self, validator, budgets):
        existing = await budgets.create_record(
            BudgetCreate(context_id="1", category="Groceries", monthly_limit="400", month="2024-03")
        )
        changed = BudgetCreate(context_id="1", category="Groceries", monthly_limit="450", month="2024-03")

        result = await validator.validate(BUDGETS, changed, record_id=existing.id)

        assert result.issues == []

    @pytest.mark.asyncio
    async def test_other_month_is_not_duplicate(self, validator, budgets):
        await budgets.create_record(
            BudgetCreate(context_id="1", category="Groceries", monthly_limit="400", month="2024-03")
        )
        next_month = BudgetCreate(context_id="1", category="Groceries", monthly_limit="400", month="2024-04")

        result = await validator.validate(BUDGETS, next_month)

        assert result.issues == []


class TestSummary:
    """Tests for the form-side summary text."""

    def test_all_clear(self, validator):
        assert validator.get_user_friendly_summary(ValidationResult()) == "✅ All checks passed."

    def test_errors_and_fixes_listed(self, validator):
        result = ValidationResult(issues=[
            ValidationIssue(
                field="context_id",
                issue_type="unknown_context",
                message="Context 9 does not exist",
                severity="error",
                suggested_fix="Pick an existing context or create one first",
            ),
        ])
        summary = validator.get_user_friendly_summary(result)
        assert "Context 9 does not exist" in summary
        assert "Pick an existing context" in summary

    def test_validation_error_message(self):
        result = ValidationResult(issues=[
            ValidationIssue(field="context_id", issue_type="unknown_context",
                            message="Context 9 does not exist", severity="error"),
        ])
        error = RecordValidationError(TRANSACTIONS, result)
        assert str(error) == "Invalid transaction: Context 9 does not exist"
