"""Budget Coach MCP Server.

Exposes the weekly budget coach as MCP tools: weekly status, threshold
alerts, week initialization, transaction recording, and category upkeep.
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from mcp.server.fastmcp import Context, FastMCP

# Ensure project root is on sys.path so `budget_coach` is importable when loaded
# directly by tools like `mcp dev` (which use importlib, not `python -m`).
_project_root = str(Path(__file__).resolve().parent.parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

load_dotenv()

from budget_coach.config import Settings, configure_logging
from budget_coach.core.categories import CategoryManager
from budget_coach.core.engine import WeeklyBudgetEngine
from budget_coach.core.errors import InvalidInputError
from budget_coach.core.helm_client import (
    HelmClient,
    RemoteCategoryRepository,
    RemoteTransactionRepository,
)
from budget_coach.core.ledger import TransactionLedger
from budget_coach.core.repositories import (
    InMemoryCategoryRepository,
    InMemoryTransactionRepository,
    InMemoryWeeklyBudgetRepository,
)
from budget_coach.core.resolvers import ResolverError, resolve_category
from budget_coach.core.sql_store import SqlStore
from budget_coach.core.weeks import start_of_week
from budget_coach.mcp.error_handling import handle_tool_errors
from budget_coach.mcp.formatters import (
    format_categories,
    format_category_archived,
    format_category_created,
    format_ceiling_estimate,
    format_defaults_seeded,
    format_initialized,
    format_threshold_alert,
    format_transaction_deleted,
    format_transaction_recorded,
    format_transaction_updated,
    format_weekly_report,
)
from budget_coach.models.results import CeilingEstimate
from budget_coach.models.schemas import (
    CategoryActionInput,
    CheckThresholdsInput,
    CreateCategoryInput,
    DeleteTransactionInput,
    EstimateCeilingInput,
    InitializeWeekInput,
    ListCategoriesInput,
    NewTransaction,
    RecordTransactionInput,
    TransactionUpdate,
    UpdateTransactionInput,
    UserInput,
    WeeklyStatusInput,
)

logger = logging.getLogger("budget_coach_mcp")


# --- Lifespan: initialize shared resources ---


@asynccontextmanager
async def app_lifespan(server: FastMCP):
    settings = Settings.from_env()
    configure_logging(settings.log_level)

    store: SqlStore | None = None
    helm: HelmClient | None = None

    if settings.storage == "memory":
        categories = InMemoryCategoryRepository()
        transactions = InMemoryTransactionRepository()
        weekly_budgets = InMemoryWeeklyBudgetRepository()
    else:
        settings.ensure_data_dir()
        store = SqlStore(settings.database_url)
        await store.create_schema()
        weekly_budgets = store.weekly_budgets
        if settings.storage == "remote":
            helm = HelmClient(settings.helm_api_url, settings.helm_api_token)
            categories = RemoteCategoryRepository(helm)
            transactions = RemoteTransactionRepository(helm)
        else:
            categories = store.categories
            transactions = store.transactions

    engine = WeeklyBudgetEngine(categories, transactions, weekly_budgets)
    logger.info("Budget coach started with %s storage", settings.storage)

    try:
        yield {
            "settings": settings,
            "engine": engine,
            "ledger": TransactionLedger(transactions, engine),
            "categories": CategoryManager(categories, transactions, engine),
        }
    finally:
        if helm is not None:
            await helm.close()
        if store is not None:
            await store.close()


mcp = FastMCP("budget_coach_mcp", lifespan=app_lifespan)


# --- Helpers to get dependencies from context ---


def _get_deps(ctx) -> tuple[WeeklyBudgetEngine, TransactionLedger, CategoryManager]:
    state = ctx.request_context.lifespan_context
    return state["engine"], state["ledger"], state["categories"]


def _user_id(ctx, user_id: str | None) -> str:
    settings: Settings = ctx.request_context.lifespan_context["settings"]
    resolved = user_id or settings.default_user_id
    if not resolved:
        raise InvalidInputError("user_id is required (or set COACH_DEFAULT_USER_ID)")
    return resolved


# --- Read-Only Tools ---


@mcp.tool(
    name="coach_get_weekly_status",
    annotations={
        "title": "Weekly Budget Status",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
@handle_tool_errors
async def coach_get_weekly_status(params: WeeklyStatusInput, ctx: Context) -> str:
    """Show each category's weekly limit, spending, status and safe daily spend."""
    engine, _, _ = _get_deps(ctx)
    user_id = _user_id(ctx, params.user_id)
    report = await engine.get_weekly_report(user_id, params.week_start)
    return format_weekly_report(report)


@mcp.tool(
    name="coach_check_thresholds",
    annotations={
        "title": "Check Spending Thresholds",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
@handle_tool_errors
async def coach_check_thresholds(params: CheckThresholdsInput, ctx: Context) -> str:
    """Check whether a category has crossed 80%, 90% or 100% of this week's limit."""
    engine, _, _ = _get_deps(ctx)
    user_id = _user_id(ctx, params.user_id)

    category = resolve_category(await engine.categories.list_active(user_id), params.category_name)
    alert = await engine.check_thresholds(category.id, user_id)
    return format_threshold_alert(alert, category.name)


@mcp.tool(
    name="coach_list_categories",
    annotations={
        "title": "List Categories",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
@handle_tool_errors
async def coach_list_categories(params: ListCategoriesInput, ctx: Context) -> str:
    """List categories with their monthly ceilings."""
    engine, _, _ = _get_deps(ctx)
    user_id = _user_id(ctx, params.user_id)
    if params.include_archived:
        categories = await engine.categories.list_all(user_id)
    else:
        categories = await engine.categories.list_active(user_id)
    return format_categories(categories)


# --- Write Tools ---


@mcp.tool(
    name="coach_initialize_week",
    annotations={
        "title": "Initialize Weekly Budgets",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
@handle_tool_errors
async def coach_initialize_week(params: InitializeWeekInput, ctx: Context) -> str:
    """Create this week's budget for every active category (safe to run repeatedly)."""
    engine, _, _ = _get_deps(ctx)
    user_id = _user_id(ctx, params.user_id)
    created = await engine.initialize_weekly_budgets(user_id, params.week_start)
    target = start_of_week(params.week_start or engine.now())
    return format_initialized(created, target)


@mcp.tool(
    name="coach_record_transaction",
    annotations={
        "title": "Record Transaction",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": False,
        "openWorldHint": False,
    },
)
@handle_tool_errors
async def coach_record_transaction(params: RecordTransactionInput, ctx: Context) -> str:
    """Record an expense or income and update that week's budget.

    A category that does not exist yet is created with the default ceiling.
    """
    engine, ledger, manager = _get_deps(ctx)
    user_id = _user_id(ctx, params.user_id)

    category = None
    if params.category_name:
        try:
            category = resolve_category(
                await engine.categories.list_active(user_id), params.category_name
            )
        except ResolverError:
            category = await manager.find_or_create(user_id, params.category_name)

    entry = NewTransaction(
        date=params.date or engine.now(),
        description=params.description,
        amount=params.amount,
        type=params.type,
        category_id=category.id if category else None,
        notes=params.notes,
    )
    [transaction] = await ledger.record(user_id, [entry])

    alert = None
    if transaction.is_categorized_expense and (
        start_of_week(transaction.date) == start_of_week(engine.now())
    ):
        alert = await engine.check_thresholds(category.id, user_id)

    return format_transaction_recorded(transaction, category.name if category else None, alert)


@mcp.tool(
    name="coach_update_transaction",
    annotations={
        "title": "Update Transaction",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
@handle_tool_errors
async def coach_update_transaction(params: UpdateTransactionInput, ctx: Context) -> str:
    """Edit a transaction's amount, date, type, description, notes or category."""
    engine, ledger, _ = _get_deps(ctx)
    user_id = _user_id(ctx, params.user_id)

    fields = params.model_dump(
        exclude_unset=True, exclude_none=True,
        exclude={"user_id", "transaction_id", "category_name", "uncategorize"},
    )
    if params.uncategorize:
        fields["category_id"] = None
    elif params.category_name:
        category = resolve_category(
            await engine.categories.list_active(user_id), params.category_name
        )
        fields["category_id"] = category.id

    transaction = await ledger.update(params.transaction_id, user_id, TransactionUpdate(**fields))
    return format_transaction_updated(transaction)


@mcp.tool(
    name="coach_delete_transaction",
    annotations={
        "title": "Delete Transaction",
        "readOnlyHint": False,
        "destructiveHint": True,
        "idempotentHint": False,
        "openWorldHint": False,
    },
)
@handle_tool_errors
async def coach_delete_transaction(params: DeleteTransactionInput, ctx: Context) -> str:
    """Delete a transaction and recompute its week's spending."""
    _, ledger, _ = _get_deps(ctx)
    user_id = _user_id(ctx, params.user_id)
    transaction = await ledger.delete(params.transaction_id, user_id)
    return format_transaction_deleted(transaction)


@mcp.tool(
    name="coach_estimate_ceiling",
    annotations={
        "title": "Estimate Monthly Ceiling",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
@handle_tool_errors
async def coach_estimate_ceiling(params: EstimateCeilingInput, ctx: Context) -> str:
    """Suggest a monthly ceiling from recent spending (average + 10%).

    Set apply=true to save it as the category's ceiling.
    """
    engine, _, manager = _get_deps(ctx)
    user_id = _user_id(ctx, params.user_id)

    category = resolve_category(await engine.categories.list_active(user_id), params.category_name)
    estimated = await engine.calculate_monthly_ceiling(category.id, user_id, params.months)

    if params.apply:
        await manager.set_monthly_ceiling(category.id, user_id, estimated)

    return format_ceiling_estimate(CeilingEstimate(
        category_id=category.id,
        category_name=category.name,
        current_ceiling=category.monthly_ceiling,
        estimated_ceiling=estimated,
        months=params.months,
        applied=params.apply,
    ))


@mcp.tool(
    name="coach_create_category",
    annotations={
        "title": "Create Category",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": False,
        "openWorldHint": False,
    },
)
@handle_tool_errors
async def coach_create_category(params: CreateCategoryInput, ctx: Context) -> str:
    """Create a custom category with a monthly ceiling."""
    _, _, manager = _get_deps(ctx)
    user_id = _user_id(ctx, params.user_id)
    category = await manager.create(user_id, params.name, params.monthly_ceiling, params.emoji)
    return format_category_created(category)


@mcp.tool(
    name="coach_archive_category",
    annotations={
        "title": "Archive Category",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
@handle_tool_errors
async def coach_archive_category(params: CategoryActionInput, ctx: Context) -> str:
    """Archive a category so it stops getting weekly budgets (history is kept)."""
    engine, _, manager = _get_deps(ctx)
    user_id = _user_id(ctx, params.user_id)
    category = resolve_category(await engine.categories.list_active(user_id), params.category_name)
    archived = await manager.archive(category.id, user_id)
    return format_category_archived(archived)


@mcp.tool(
    name="coach_setup_default_categories",
    annotations={
        "title": "Set Up Default Categories",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
@handle_tool_errors
async def coach_setup_default_categories(params: UserInput, ctx: Context) -> str:
    """Create the starter categories (Housing, Food & Dining, ...) and this week's budgets."""
    _, _, manager = _get_deps(ctx)
    user_id = _user_id(ctx, params.user_id)
    created = await manager.seed_defaults(user_id)
    return format_defaults_seeded(created)


# --- Entry point ---


def main():
    mcp.run()


if __name__ == "__main__":
    main()
