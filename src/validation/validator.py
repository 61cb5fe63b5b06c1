"""
Record Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION (pydantic models):
- Required field presence
- Type and format checks (dates, YYYY-MM months, positive amounts)
- Enum membership

STAGE 2 - SEMANTIC VALIDATION (this module):
- Referenced context must exist
- Future date detection
- Absurd amount detection
- Stale subscription billing dates
- Duplicate budgets

Only stage 2 needs storage access. Stage 2 errors block the write;
warnings are recorded in the audit trail and never block.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them.
"""

import datetime as dt
from decimal import Decimal
from typing import Optional

import structlog
from pydantic import BaseModel

from src.config import AppSettings, get_settings
from src.models.records import (
    BUDGETS,
    CONTEXTS,
    INVESTMENTS,
    SAVINGS,
    SUBSCRIPTIONS,
    TRANSACTIONS,
    RecordTable,
    SubscriptionStatus,
)
from src.models.validation import ValidationIssue, ValidationResult
from src.services.storage import RecordStorageInterface, StorageError


logger = structlog.get_logger(__name__)

# Date field checked against the future-date tolerance, per kind
DATE_FIELDS = {
    TRANSACTIONS.kind: "date",
    SAVINGS.kind: "date",
    INVESTMENTS.kind: "date_invested",
}

# Money fields checked against the sanity ceiling, per kind
AMOUNT_FIELDS = {
    TRANSACTIONS.kind: "amount",
    SUBSCRIPTIONS.kind: "amount",
    SAVINGS.kind: "amount",
    BUDGETS.kind: "monthly_limit",
    INVESTMENTS.kind: "amount_invested",
}


class RecordValidationError(Exception):
    """A record failed semantic validation and must not be written."""

    def __init__(self, table: RecordTable, result: ValidationResult):
        self.table = table
        self.result = result
        messages = "; ".join(
            issue.message for issue in result.issues if issue.severity == "error"
        )
        super().__init__(f"Invalid {table.label.lower()}: {messages}")


class RecordValidator:
    """
    Semantic validation for every record kind.

    Storage is optional: without a context store the context check is
    skipped, without a budget store the duplicate-budget check is skipped.
    """

    def __init__(
        self,
        context_storage: Optional[RecordStorageInterface] = None,
        budget_storage: Optional[RecordStorageInterface] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._contexts = context_storage
        self._budgets = budget_storage
        self._settings = settings or get_settings().app

    async def _check_context(self, data: BaseModel) -> list[ValidationIssue]:
        if self._contexts is None:
            return []

        try:
            context = await self._contexts.get_record(data.context_id)
        except StorageError as e:
            # An unreachable context sheet is reported by the write itself
            logger.warning("context_check_skipped", error=str(e))
            return []

        if context is None:
            return [ValidationIssue(
                field="context_id",
                issue_type="unknown_context",
                message=f"Context {data.context_id} does not exist",
                severity="error",
                suggested_fix="Pick an existing context or create one first",
            )]
        return []

    def _check_dates(self, table: RecordTable, data: BaseModel) -> list[ValidationIssue]:
        issues = []
        today = dt.date.today()

        field_name = DATE_FIELDS.get(table.kind)
        if field_name:
            value = getattr(data, field_name)
            limit = today + dt.timedelta(days=self._settings.future_date_tolerance_days)
            if value and value > limit:
                issues.append(ValidationIssue(
                    field=field_name,
                    issue_type="future_date",
                    message=f"Date ({value}) is in the future",
                    severity="warning",
                    suggested_fix="Please verify the date is correct",
                ))

        if (
            table.kind == SUBSCRIPTIONS.kind
            and data.status == SubscriptionStatus.ACTIVE
            and data.next_billing_date
            and data.next_billing_date < today
        ):
            issues.append(ValidationIssue(
                field="next_billing_date",
                issue_type="stale_date",
                message=f"Next billing date ({data.next_billing_date}) has already passed",
                severity="warning",
                suggested_fix="Move the billing date forward",
            ))

        return issues

    def _check_amounts(self, table: RecordTable, data: BaseModel) -> list[ValidationIssue]:
        issues = []

        field_name = AMOUNT_FIELDS.get(table.kind)
        max_amount = Decimal(str(self._settings.max_record_amount))
        if field_name:
            value = getattr(data, field_name)
            if value > max_amount:
                issues.append(ValidationIssue(
                    field=field_name,
                    issue_type="suspicious_value",
                    message=f"Amount ({value:,.2f}) seems unusually high",
                    severity="warning",
                    suggested_fix="Please verify this amount is correct",
                ))

        if table.kind == INVESTMENTS.kind and data.current_value == 0:
            issues.append(ValidationIssue(
                field="current_value",
                issue_type="suspicious_value",
                message=f"{data.asset_name} has a current value of zero",
                severity="warning",
            ))

        if (
            table.kind == SAVINGS.kind
            and data.goal is not None
            and data.goal > 0
            and data.amount >= data.goal
        ):
            issues.append(ValidationIssue(
                field="goal",
                issue_type="goal_reached",
                message=f"This deposit alone reaches the {data.account} goal",
                severity="info",
            ))

        return issues

    async def _check_duplicate_budget(
        self,
        data: BaseModel,
        record_id: Optional[str],
    ) -> list[ValidationIssue]:
        if self._budgets is None:
            return []

        try:
            budgets = await self._budgets.list_records(
                context_id=data.context_id,
                month=data.month,
            )
        except StorageError as e:
            logger.warning("duplicate_budget_check_skipped", error=str(e))
            return []

        for budget in budgets:
            if budget.id != record_id and budget.category.lower() == data.category.lower():
                return [ValidationIssue(
                    field="category",
                    issue_type="duplicate",
                    message=f"A {data.category} budget for {data.month} already exists",
                    severity="warning",
                    suggested_fix="Edit the existing budget instead",
                )]
        return []

    async def validate(
        self,
        table: RecordTable,
        data: BaseModel,
        record_id: Optional[str] = None,
    ) -> ValidationResult:
        """
        Run semantic validation on a schema-valid record.

        Args:
            table: Which kind of record this is
            data: The validated *Create model
            record_id: Id being updated (None on create)

        Returns:
            ValidationResult with all issues found
        """
        issues: list[ValidationIssue] = []

        if table.kind == CONTEXTS.kind:
            return ValidationResult(issues=issues)

        issues.extend(await self._check_context(data))
        issues.extend(self._check_dates(table, data))
        issues.extend(self._check_amounts(table, data))

        if table.kind == BUDGETS.kind:
            issues.extend(await self._check_duplicate_budget(data, record_id))

        return ValidationResult(issues=issues)

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """Summary of validation results for display next to a form."""
        if not result.has_errors and not result.warnings:
            return "✅ All checks passed."

        lines = []

        if result.has_errors:
            lines.append("❌ This record can't be saved:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
