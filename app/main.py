"""
Streamlit Frontend for Finance Tracker

This is the user interface for day-to-day bookkeeping: pick a context
(Home, Work, Business, ...) in the sidebar, then record and review that
context's transactions, subscriptions, savings, budgets and investments.

DESIGN PRINCIPLES:
1. Everything on screen belongs to the selected context
2. Every write goes through the same flows as the HTTP API
3. Validation problems are shown next to the form, in plain language
4. Deleting always asks for confirmation

Run with: streamlit run app/main.py
"""

import asyncio
from datetime import date
from decimal import Decimal
from typing import Callable, Optional

import streamlit as st
from pydantic import BaseModel, ValidationError

from src.config import validate_all_settings
from src.models.records import (
    BUDGET_CATEGORIES,
    BUDGETS,
    INVESTMENTS,
    KNOWN_CONTEXT_TYPES,
    SAVINGS,
    SUBSCRIPTIONS,
    TRANSACTIONS,
    Context,
    InvestmentType,
    RecordTable,
    SubscriptionFrequency,
    SubscriptionStatus,
    TransactionType,
)
from src.orchestrator import FinanceTracker, RecordService, create_app_components
from src.queries import current_month, savings_progress
from src.services.storage import StorageError
from src.themes import generate_theme_css, get_theme
from src.validation import RecordValidationError


# Page configuration
st.set_page_config(
    page_title="Finance Tracker",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .context-header {
        padding: 20px;
        border-radius: 10px;
        margin-bottom: 20px;
        color: white;
        background: linear-gradient(90deg, var(--theme-primary-500), var(--theme-primary-700));
    }
    .context-header p {
        margin: 0;
        opacity: 0.9;
    }
    .stButton>button {
        width: 100%;
    }
</style>
""", unsafe_allow_html=True)

PAGES = [
    "📊 Dashboard",
    "💳 Transactions",
    "🔁 Subscriptions",
    "🏦 Savings",
    "🎯 Budgets",
    "📈 Investments",
    "⚙️ Settings",
]

LEVEL_ICONS = {"over": "🔴", "warning": "🟡", "ok": "🟢"}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components() -> FinanceTracker:
    """Get or create application components (cached)."""
    return create_app_components(use_storage=True)


def money(value: Decimal) -> str:
    return f"${value:,.2f}"


def to_decimal(value: float) -> Decimal:
    return Decimal(str(value))


def show_save_error(error: Exception) -> None:
    """Render a failed write next to its form."""
    if isinstance(error, ValidationError):
        st.error("Please fill in every required field:")
        for issue in error.errors():
            field = ".".join(str(part) for part in issue["loc"])
            st.markdown(f"- **{field}**: {issue['msg']}")
    elif isinstance(error, RecordValidationError):
        st.error(str(error))
        for issue in error.result.issues:
            if issue.suggested_fix:
                st.caption(f"💡 {issue.suggested_fix}")
    else:
        st.error(f"Failed to save: {error}")


def save_record(
    service: RecordService,
    data: dict,
    record_id: Optional[str] = None,
) -> bool:
    """Create or update a record, rendering any problem. Returns True on success."""
    try:
        if record_id is None:
            _, result = run_async(service.create(data))
        else:
            _, result = run_async(service.update(record_id, data))
    except (ValidationError, RecordValidationError, StorageError) as e:
        show_save_error(e)
        return False

    for warning in result.warnings:
        st.warning(f"⚠️ {warning}")
    st.success(f"✅ {service.table.label} saved")
    return True


def delete_record(service: RecordService, record_id: str) -> bool:
    try:
        run_async(service.delete(record_id))
    except StorageError as e:
        st.error(f"Failed to delete {service.table.label.lower()}: {e}")
        return False
    st.success(f"🗑️ {service.table.label} deleted successfully")
    return True


def apply_theme(context: Context) -> None:
    """Inject the context's palette and show its header."""
    theme = get_theme(context.type)
    st.markdown(f"<style>{generate_theme_css(theme)}</style>", unsafe_allow_html=True)
    st.markdown(f"""
    <div class="context-header">
        <h2>{theme.icon} {theme.welcome_message}</h2>
        <p>{context.name} · {theme.description}</p>
    </div>
    """, unsafe_allow_html=True)


# =============================================================================
# CONTEXT SELECTOR
# =============================================================================

def render_context_selector(tracker: FinanceTracker) -> Optional[Context]:
    """Sidebar context picker with create / rename / delete."""
    try:
        contexts = run_async(tracker.contexts.list())
    except StorageError as e:
        st.sidebar.error(f"Failed to fetch contexts: {e}")
        return None

    selected = None
    if contexts:
        ids = [context.id for context in contexts]
        current = st.session_state.get("context_id")
        selected = st.sidebar.selectbox(
            "Context",
            options=contexts,
            index=ids.index(current) if current in ids else 0,
            format_func=lambda c: f"{get_theme(c.type).icon} {c.name}",
        )
        st.session_state.context_id = selected.id
    else:
        st.sidebar.info("Create your first context to get started.")

    with st.sidebar.expander("➕ New context", expanded=not contexts):
        with st.form("new_context", clear_on_submit=True):
            name = st.text_input("Name *", placeholder="e.g. Family")
            context_type = st.selectbox("Type *", options=list(KNOWN_CONTEXT_TYPES))
            if st.form_submit_button("Create", type="primary"):
                if save_record(tracker.contexts, {"name": name, "type": context_type}):
                    st.rerun()

    if selected:
        with st.sidebar.expander("✏️ Manage context"):
            with st.form(f"edit_context_{selected.id}"):
                name = st.text_input("Name", value=selected.name)
                types = list(KNOWN_CONTEXT_TYPES)
                if selected.type not in types:
                    types.append(selected.type)
                context_type = st.selectbox("Type", options=types, index=types.index(selected.type))
                if st.form_submit_button("Rename"):
                    if save_record(tracker.contexts, {"name": name, "type": context_type}, selected.id):
                        st.rerun()

            confirm = st.checkbox(f"Yes, delete {selected.name}")
            if st.button("🗑️ Delete context", disabled=not confirm):
                if delete_record(tracker.contexts, selected.id):
                    st.session_state.pop("context_id", None)
                    st.rerun()

    return selected


# =============================================================================
# GENERIC RECORD PAGE
# =============================================================================

FormFields = Callable[[str, Optional[BaseModel]], dict]


def render_record_manager(
    tracker: FinanceTracker,
    table: RecordTable,
    context: Context,
    records: list[BaseModel],
    form_fields: FormFields,
    describe: Callable[[BaseModel], str],
) -> None:
    """Add form plus edit/delete form for one record kind."""
    service = tracker.service(table.kind)

    with st.expander(f"➕ Add {table.label.lower()}"):
        with st.form(f"add_{table.kind}", clear_on_submit=True):
            values = form_fields(f"add_{table.kind}", None)
            if st.form_submit_button("Save", type="primary"):
                if save_record(service, {"context_id": context.id, **values}):
                    st.rerun()

    if not records:
        return

    with st.expander(f"✏️ Edit or delete {table.plural}"):
        selected = st.selectbox(
            f"Choose {table.label.lower()}",
            options=records,
            format_func=describe,
            key=f"select_{table.kind}",
        )
        prefix = f"edit_{table.kind}_{selected.id}"
        with st.form(prefix):
            values = form_fields(prefix, selected)
            if st.form_submit_button("Save changes", type="primary"):
                if save_record(service, {"context_id": context.id, **values}, selected.id):
                    st.rerun()

        confirm = st.checkbox(
            f"Are you sure you want to delete this {table.label.lower()}?",
            key=f"{prefix}_confirm",
        )
        if st.button("🗑️ Delete", key=f"{prefix}_delete", disabled=not confirm):
            if delete_record(service, selected.id):
                st.rerun()


def list_for_context(tracker: FinanceTracker, table: RecordTable, context: Context) -> list:
    try:
        return run_async(tracker.service(table.kind).list(context_id=context.id))
    except StorageError as e:
        st.error(f"Failed to fetch {table.plural}: {e}")
        return []


def show_records(records: list[BaseModel], empty_message: str) -> None:
    if not records:
        st.info(empty_message)
        return
    st.dataframe(
        [record.model_dump(mode="json", exclude={"context_id"}) for record in records],
        use_container_width=True,
        hide_index=True,
    )


# =============================================================================
# FORMS
# =============================================================================

def transaction_fields(prefix: str, record=None) -> dict:
    col1, col2 = st.columns(2)
    with col1:
        when = st.date_input("Date *", value=record.date if record else date.today(), key=f"{prefix}_date")
        kind = st.selectbox(
            "Type *",
            options=list(TransactionType),
            index=list(TransactionType).index(record.type) if record else 1,
            format_func=lambda t: t.value,
            key=f"{prefix}_type",
        )
        amount = st.number_input(
            "Amount *",
            value=float(record.amount) if record else 0.0,
            min_value=0.0,
            step=0.01,
            format="%.2f",
            key=f"{prefix}_amount",
        )
    with col2:
        category = st.text_input("Category *", value=record.category if record else "", key=f"{prefix}_category")
        account = st.text_input("Account", value=record.account if record else "", key=f"{prefix}_account")
    notes = st.text_area("Notes", value=record.notes if record else "", key=f"{prefix}_notes")
    return {
        "date": when,
        "type": kind,
        "amount": to_decimal(amount),
        "category": category,
        "account": account,
        "notes": notes,
    }


def subscription_fields(prefix: str, record=None) -> dict:
    col1, col2 = st.columns(2)
    with col1:
        service = st.text_input("Service *", value=record.service if record else "", key=f"{prefix}_service")
        amount = st.number_input(
            "Amount *",
            value=float(record.amount) if record else 0.0,
            min_value=0.0,
            step=0.01,
            format="%.2f",
            key=f"{prefix}_amount",
        )
        frequency = st.selectbox(
            "Frequency",
            options=list(SubscriptionFrequency),
            index=list(SubscriptionFrequency).index(record.frequency) if record else 2,
            format_func=lambda f: f.value.title(),
            key=f"{prefix}_frequency",
        )
    with col2:
        next_billing = st.date_input(
            "Next billing date",
            value=record.next_billing_date if record else None,
            key=f"{prefix}_next_billing",
        )
        status = st.selectbox(
            "Status",
            options=list(SubscriptionStatus),
            index=list(SubscriptionStatus).index(record.status) if record else 0,
            format_func=lambda s: s.value,
            key=f"{prefix}_status",
        )
    return {
        "service": service,
        "amount": to_decimal(amount),
        "frequency": frequency,
        "next_billing_date": next_billing,
        "status": status,
    }


def savings_fields(prefix: str, record=None) -> dict:
    col1, col2 = st.columns(2)
    with col1:
        account = st.text_input("Account *", value=record.account if record else "", key=f"{prefix}_account")
        when = st.date_input("Date *", value=record.date if record else date.today(), key=f"{prefix}_date")
    with col2:
        amount = st.number_input(
            "Amount *",
            value=float(record.amount) if record else 0.0,
            min_value=0.0,
            step=0.01,
            format="%.2f",
            key=f"{prefix}_amount",
        )
        goal = st.number_input(
            "Goal",
            value=float(record.goal) if record and record.goal is not None else 0.0,
            min_value=0.0,
            step=0.01,
            format="%.2f",
            key=f"{prefix}_goal",
        )
    return {
        "account": account,
        "date": when,
        "amount": to_decimal(amount),
        "goal": to_decimal(goal) if goal else None,
    }


def budget_fields(prefix: str, record=None) -> dict:
    categories = list(BUDGET_CATEGORIES)
    if record and record.category not in categories:
        categories.append(record.category)
    col1, col2 = st.columns(2)
    with col1:
        category = st.selectbox(
            "Category *",
            options=categories,
            index=categories.index(record.category) if record else 0,
            key=f"{prefix}_category",
        )
        limit = st.number_input(
            "Monthly limit *",
            value=float(record.monthly_limit) if record else 0.0,
            min_value=0.0,
            step=10.0,
            format="%.2f",
            key=f"{prefix}_limit",
        )
    with col2:
        month = st.text_input(
            "Month * (YYYY-MM)",
            value=record.month if record else current_month(),
            key=f"{prefix}_month",
        )
    values = {"category": category, "monthly_limit": to_decimal(limit), "month": month}
    # The form has no spent input; an edit keeps the stored column
    if record:
        values["spent"] = record.spent
    return values


def investment_fields(prefix: str, record=None) -> dict:
    col1, col2 = st.columns(2)
    with col1:
        asset = st.text_input("Asset name *", value=record.asset_name if record else "", key=f"{prefix}_asset")
        kind = st.selectbox(
            "Type *",
            options=list(InvestmentType),
            index=list(InvestmentType).index(record.type) if record else 0,
            format_func=lambda t: t.value,
            key=f"{prefix}_type",
        )
        invested_on = st.date_input(
            "Date invested *",
            value=record.date_invested if record else date.today(),
            key=f"{prefix}_date",
        )
    with col2:
        invested = st.number_input(
            "Amount invested *",
            value=float(record.amount_invested) if record else 0.0,
            min_value=0.0,
            step=0.01,
            format="%.2f",
            key=f"{prefix}_invested",
        )
        current = st.number_input(
            "Current value (blank = amount invested)",
            value=float(record.current_value) if record else None,
            min_value=0.0,
            step=0.01,
            format="%.2f",
            key=f"{prefix}_current",
        )
    notes = st.text_area("Notes", value=record.notes if record else "", key=f"{prefix}_notes")
    return {
        "asset_name": asset,
        "type": kind,
        "date_invested": invested_on,
        "amount_invested": to_decimal(invested),
        "current_value": to_decimal(current) if current is not None else None,
        "notes": notes,
    }


# =============================================================================
# PAGES
# =============================================================================

def render_dashboard_page(tracker: FinanceTracker, context: Context):
    """Render the dashboard for the selected context."""
    try:
        summary = run_async(tracker.dashboard(context_id=context.id))
    except StorageError as e:
        st.error(f"Failed to fetch dashboard data: {e}")
        return

    totals = summary.totals

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Total Income", money(totals.total_income))
    col2.metric("Total Expenses", money(totals.total_expenses))
    col3.metric("Subscriptions", money(totals.total_subscriptions))
    col4.metric("Net Income", money(totals.net_income))

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Total Savings", money(totals.total_savings))
    col2.metric("Invested", money(totals.total_invested))
    col3.metric(
        "Portfolio Value",
        money(totals.total_investment_value),
        delta=f"{totals.investment_return_percentage:+.2f}%",
    )
    col4.metric("Subscriptions / month", money(summary.subscription_monthly_cost))

    st.markdown("---")
    col1, col2 = st.columns(2)

    with col1:
        st.markdown("### Spending by Category")
        if summary.spending_by_category:
            st.bar_chart(
                [{"category": row.category, "amount": float(row.amount)} for row in summary.spending_by_category],
                x="category",
                y="amount",
            )
        else:
            st.info("No expenses recorded yet.")

    with col2:
        st.markdown("### Income vs Expenses")
        if summary.monthly_income_expense:
            st.line_chart(
                [
                    {"month": row.month, "Income": float(row.income), "Expenses": float(row.expenses)}
                    for row in summary.monthly_income_expense
                ],
                x="month",
                y=["Income", "Expenses"],
            )
        else:
            st.info("No transactions recorded yet.")

    col1, col2 = st.columns(2)

    with col1:
        st.markdown("### Savings Goals")
        for row in summary.savings_progress:
            st.markdown(f"**{row.account}**: {money(row.current)} of {money(row.goal)}")
            st.progress(row.bar_percentage / 100, text=f"{row.progress:.1f}%")
        if not summary.savings_progress:
            st.info("No savings recorded yet.")

    with col2:
        st.markdown(f"### Budgets ({summary.month})")
        for row in summary.budget_status:
            st.markdown(
                f"{LEVEL_ICONS[row.level]} **{row.category}**: "
                f"{money(row.spent)} of {money(row.monthly_limit)}"
            )
            st.progress(row.percentage / 100)
        if not summary.budget_status:
            st.info("No budgets for this month.")

    if summary.investment_performance:
        st.markdown("### Investment Performance")
        st.dataframe(
            [row.model_dump(mode="json", exclude={"id"}) for row in summary.investment_performance],
            use_container_width=True,
            hide_index=True,
        )


def render_transactions_page(tracker: FinanceTracker, context: Context):
    st.title("💳 Transactions")
    records = list_for_context(tracker, TRANSACTIONS, context)

    type_filter = st.selectbox(
        "Filter by Type",
        options=[None] + list(TransactionType),
        format_func=lambda t: "All Types" if t is None else t.value,
    )
    shown = [r for r in records if type_filter is None or r.type == type_filter]
    show_records(shown, "No transactions yet. Add your first one below.")

    render_record_manager(
        tracker, TRANSACTIONS, context, records, transaction_fields,
        lambda r: f"{r.date} · {r.category} · {r.type.value} {money(r.amount)}",
    )


def render_subscriptions_page(tracker: FinanceTracker, context: Context):
    st.title("🔁 Subscriptions")
    records = list_for_context(tracker, SUBSCRIPTIONS, context)

    status_filter = st.selectbox(
        "Filter by Status",
        options=[None] + list(SubscriptionStatus),
        format_func=lambda s: "All Statuses" if s is None else s.value,
    )
    shown = [r for r in records if status_filter is None or r.status == status_filter]
    show_records(shown, "No subscriptions yet.")

    render_record_manager(
        tracker, SUBSCRIPTIONS, context, records, subscription_fields,
        lambda r: f"{r.service} · {money(r.amount)} {r.frequency.value} · {r.status.value}",
    )


def render_savings_page(tracker: FinanceTracker, context: Context):
    st.title("🏦 Savings")
    records = list_for_context(tracker, SAVINGS, context)

    for row in savings_progress(records):
        st.markdown(
            f"**{row.account}**: {money(row.current)} of {money(row.goal)} "
            f"({row.progress:.1f}%, {money(row.remaining)} to go)"
        )
        st.progress(row.bar_percentage / 100)

    show_records(records, "No savings yet.")

    render_record_manager(
        tracker, SAVINGS, context, records, savings_fields,
        lambda r: f"{r.date} · {r.account} · {money(r.amount)}",
    )


def render_budgets_page(tracker: FinanceTracker, context: Context):
    st.title("🎯 Budgets")

    month = st.text_input("Month (YYYY-MM)", value=current_month())
    try:
        statuses = run_async(tracker.budget_status(context_id=context.id, month=month))
        budgets = run_async(tracker.service(BUDGETS.kind).list(context_id=context.id, month=month))
    except StorageError as e:
        st.error(f"Failed to fetch budgets: {e}")
        return

    if not statuses:
        st.info(f"No budgets for {month}.")
    for row in statuses:
        st.markdown(
            f"{LEVEL_ICONS[row.level]} **{row.category}**: {money(row.spent)} of "
            f"{money(row.monthly_limit)} · {money(row.remaining)} remaining"
        )
        st.progress(row.percentage / 100)

    render_record_manager(
        tracker, BUDGETS, context, budgets, budget_fields,
        lambda r: f"{r.month} · {r.category} · {money(r.monthly_limit)}",
    )


def render_investments_page(tracker: FinanceTracker, context: Context):
    st.title("📈 Investments")
    records = list_for_context(tracker, INVESTMENTS, context)

    type_filter = st.selectbox(
        "Filter by Type",
        options=[None] + list(InvestmentType),
        format_func=lambda t: "All Types" if t is None else t.value,
    )
    shown = [r for r in records if type_filter is None or r.type == type_filter]
    show_records(shown, "No investments yet.")

    render_record_manager(
        tracker, INVESTMENTS, context, records, investment_fields,
        lambda r: f"{r.asset_name} · {r.type.value} · {money(r.current_value)}",
    )


def render_settings_page(tracker: FinanceTracker):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    groups = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("API Server", "server"),
        ("Application", "app"),
    ]

    for name, key in groups:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    if tracker.storage_backend == "memory":
        st.warning("Records are kept in memory and will be lost when the app stops.")

    st.markdown("---")
    st.markdown("### Recent Activity")
    try:
        events = run_async(tracker.audit_logger.get_recent_events(limit=20))
    except StorageError as e:
        st.error(f"Failed to fetch audit log: {e}")
        events = []
    if events:
        st.dataframe(
            [
                {
                    "time": event.timestamp.strftime("%Y-%m-%d %H:%M"),
                    "event": event.event_type.value,
                    "what": event.description,
                }
                for event in events
            ],
            use_container_width=True,
            hide_index=True,
        )
    else:
        st.info("No activity recorded yet.")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your Google "
        "service account. See `.env.example` for the required variables."
    )


def main():
    """Main application entry point."""
    tracker = get_components()

    st.sidebar.title("💰 Finance Tracker")
    context = render_context_selector(tracker)
    st.sidebar.markdown("---")

    page = st.sidebar.radio("Navigate to:", PAGES, index=0)

    if page == "⚙️ Settings":
        render_settings_page(tracker)
        return

    if context is None:
        st.title("💰 Finance Tracker")
        st.info("👈 Create or pick a context in the sidebar to start.")
        return

    apply_theme(context)

    if page == "📊 Dashboard":
        render_dashboard_page(tracker, context)
    elif page == "💳 Transactions":
        render_transactions_page(tracker, context)
    elif page == "🔁 Subscriptions":
        render_subscriptions_page(tracker, context)
    elif page == "🏦 Savings":
        render_savings_page(tracker, context)
    elif page == "🎯 Budgets":
        render_budgets_page(tracker, context)
    elif page == "📈 Investments":
        render_investments_page(tracker, context)


if __name__ == "__main__":
    main()
