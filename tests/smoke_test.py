"""Quick smoke test against the configured store.

Run: python -m tests.smoke_test
Uses COACH_STORAGE / COACH_DATABASE_URL / HELM_API_URL from .env.
Writes a throwaway user's data, so point it at a scratch database.
"""

import asyncio
import sys
from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from dotenv import load_dotenv

load_dotenv()

from budget_coach.config import Settings
from budget_coach.core.calculations import format_currency
from budget_coach.core.categories import CategoryManager
from budget_coach.core.engine import WeeklyBudgetEngine
from budget_coach.core.helm_client import (
    HelmAPIError,
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
from budget_coach.core.resolvers import resolve_category
from budget_coach.core.sql_store import SqlStore
from budget_coach.models.schemas import NewTransaction


async def main():
    try:
        settings = Settings.from_env()
    except RuntimeError as e:
        print(f"Bad configuration: {e}")
        sys.exit(1)

    store = None
    helm = None
    if settings.storage == "memory":
        categories = InMemoryCategoryRepository()
        transactions = InMemoryTransactionRepository()
        weekly_budgets = InMemoryWeeklyBudgetRepository()
    else:
        settings.ensure_data_dir()
        store = SqlStore(settings.database_url)
        await store.create_schema()
        weekly_budgets = store.weekly_budgets
        categories, transactions = store.categories, store.transactions
        if settings.storage == "remote":
            helm = HelmClient(settings.helm_api_url, settings.helm_api_token)
            categories = RemoteCategoryRepository(helm)
            transactions = RemoteTransactionRepository(helm)

    engine = WeeklyBudgetEngine(categories, transactions, weekly_budgets)
    ledger = TransactionLedger(transactions, engine)
    manager = CategoryManager(categories, transactions, engine)
    user_id = f"smoke-{uuid4().hex[:8]}"
    print(f"Storage: {settings.storage}, user: {user_id}")

    try:
        # 1. Defaults
        print("\n1. Seeding default categories...")
        created = await manager.seed_defaults(user_id)
        print(f"   Created {len(created)} categories")

        # 2. Weekly rows
        print("\n2. Initializing this week...")
        count = await engine.initialize_weekly_budgets(user_id)
        print(f"   {count} new weekly budget(s) (expected 0, seeding already did it)")

        # 3. Spend
        print("\n3. Recording $150 of groceries...")
        food = resolve_category(await categories.list_active(user_id), "food")
        [t] = await ledger.record(user_id, [NewTransaction(
            date=datetime.now(),
            description="Smoke test groceries",
            amount=Decimal("150"),
            category_id=food.id,
        )])
        print(f"   Recorded {t.id}")

        # 4. Status
        print("\n4. Weekly status...")
        report = await engine.get_weekly_report(user_id)
        for s in report.budgets:
            print(
                f"   - {s.category_name}: {format_currency(s.spent)} / "
                f"{format_currency(s.weekly_limit)} ({s.percentage_used}%, {s.status.value})"
            )

        # 5. Alerts
        print("\n5. Threshold check...")
        alert = await engine.check_thresholds(food.id, user_id)
        print(f"   {alert.message if alert else 'No alert'}")

        # 6. Clean up the transaction
        print("\n6. Deleting the transaction...")
        await ledger.delete(t.id, user_id)
        [status] = [s for s in await engine.get_weekly_status(user_id) if s.category_id == food.id]
        print(f"   Spent is back to {format_currency(status.spent)}")

        print("\nAll smoke tests passed!")

    except HelmAPIError as e:
        print(f"\nAPI Error: {e}")
        sys.exit(1)
    finally:
        if helm is not None:
            await helm.close()
        if store is not None:
            await store.close()


if __name__ == "__main__":
    asyncio.run(main())
