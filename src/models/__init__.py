"""
Data Models Package

This package contains all Pydantic models used in the Finance Tracker.
All data flowing through the system must conform to these schemas.
"""

from src.models.records import (
    BUDGET_CATEGORIES,
    BUDGETS,
    CONTEXTS,
    INVESTMENTS,
    KNOWN_CONTEXT_TYPES,
    SAVINGS,
    SUBSCRIPTIONS,
    TABLES,
    TRANSACTIONS,
    Budget,
    BudgetCreate,
    Context,
    ContextCreate,
    Investment,
    InvestmentCreate,
    InvestmentType,
    RecordTable,
    Savings,
    SavingsCreate,
    Subscription,
    SubscriptionCreate,
    SubscriptionFrequency,
    SubscriptionStatus,
    Transaction,
    TransactionCreate,
    TransactionType,
)
from src.models.audit import (
    AUDIT_COLUMNS,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from src.models.validation import ValidationIssue, ValidationResult

__all__ = [
    # Record models
    "Budget",
    "BudgetCreate",
    "Context",
    "ContextCreate",
    "Investment",
    "InvestmentCreate",
    "InvestmentType",
    "Savings",
    "SavingsCreate",
    "Subscription",
    "SubscriptionCreate",
    "SubscriptionFrequency",
    "SubscriptionStatus",
    "Transaction",
    "TransactionCreate",
    "TransactionType",
    # Tables
    "BUDGET_CATEGORIES",
    "BUDGETS",
    "CONTEXTS",
    "INVESTMENTS",
    "KNOWN_CONTEXT_TYPES",
    "RecordTable",
    "SAVINGS",
    "SUBSCRIPTIONS",
    "TABLES",
    "TRANSACTIONS",
    # Audit models
    "AUDIT_COLUMNS",
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Validation
    "ValidationIssue",
    "ValidationResult",
]
