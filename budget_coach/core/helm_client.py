"""Financial Helm API client wrapper.

Async HTTP client for the Financial Helm REST API, which owns categories
and transactions when the coach runs in ``remote`` storage mode. Payloads
use camelCase field names. Also provides repository adapters so the engine
can use the API as its category and transaction store.

The API only lists active categories, so archived categories are invisible
in remote mode. Transaction dates cannot be edited through it.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

import httpx
from pydantic.alias_generators import to_camel

from budget_coach.core.errors import ConstraintViolation, InvalidInputError, NotFoundError
from budget_coach.models.schemas import Category, Transaction, TransactionType

DEFAULT_TIMEOUT = 30.0

# Fields each PATCH route accepts, by our field name
_CATEGORY_PATCH_FIELDS = ("name", "emoji", "monthly_ceiling", "is_active")
_TRANSACTION_PATCH_FIELDS = ("category_id", "description", "amount", "type", "notes")


class HelmAPIError(Exception):
    """Base exception for Financial Helm API errors."""

    def __init__(self, status_code: int, name: str, detail: str):
        self.status_code = status_code
        self.name = name
        self.detail = detail
        super().__init__(f"Financial Helm API Error [{status_code}] {name}: {detail}")


def _wire(value: Any) -> Any:
    """A value as the API expects it in a JSON body."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _patch_payload(changes: dict[str, Any], allowed: tuple[str, ...]) -> dict[str, Any]:
    return {to_camel(k): _wire(v) for k, v in changes.items() if k in allowed}


def _error_detail(response: httpx.Response, default: str) -> str:
    """The ``error`` message of a JSON error body, if there is one."""
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return default


class HelmClient:
    """Async client for the Financial Helm API."""

    def __init__(self, base_url: str, api_token: str = ""):
        self.base_url = base_url.rstrip("/")
        self.api_token = api_token
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            headers = {"Authorization": f"Bearer {self.api_token}"} if self.api_token else {}
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=DEFAULT_TIMEOUT,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json_data: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Make an authenticated request and return the decoded JSON body."""
        try:
            response = await self.client.request(
                method=method,
                url=path,
                params=params,
                json=json_data,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise HelmAPIError(
                status_code=e.response.status_code,
                name=e.response.reason_phrase or "error",
                detail=_error_detail(e.response, str(e)),
            ) from e
        except httpx.TimeoutException as e:
            raise HelmAPIError(
                status_code=408,
                name="request_timeout",
                detail="Request to Financial Helm timed out. Please try again.",
            ) from e

        return response.json() if response.content else {}

    # --- Categories ---

    async def get_categories(self, user_id: str) -> list[Category]:
        """Get a user's active categories."""
        data = await self._request("GET", "/api/categories", params={"userId": user_id})
        return [Category.model_validate(c) for c in data.get("categories", [])]

    async def create_category(self, category: Category) -> Category:
        data = await self._request(
            "POST",
            "/api/categories",
            json_data={
                "userId": category.user_id,
                "name": category.name,
                "emoji": category.emoji,
                "monthlyCeiling": _wire(category.monthly_ceiling),
                "isCustom": category.is_custom,
            },
        )
        return Category.model_validate(data.get("category", {}))

    async def update_category(
        self, category_id: str, user_id: str, changes: dict[str, Any]
    ) -> Category:
        payload = _patch_payload(changes, _CATEGORY_PATCH_FIELDS)
        data = await self._request(
            "PATCH",
            "/api/categories",
            json_data={"id": category_id, "userId": user_id, **payload},
        )
        return Category.model_validate(data.get("category", {}))

    async def delete_category(self, category_id: str, user_id: str) -> None:
        """Permanently delete a category. The API uncategorizes its transactions."""
        await self._request(
            "DELETE",
            "/api/categories",
            params={"id": category_id, "userId": user_id, "permanent": "true"},
        )

    # --- Transactions ---

    async def get_transactions(
        self,
        user_id: str,
        category_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        type_: Optional[TransactionType] = None,
    ) -> list[Transaction]:
        """Get transactions, optionally filtered."""
        params: dict[str, Any] = {"userId": user_id}
        if category_id:
            params["categoryId"] = category_id
        if start_date:
            params["startDate"] = start_date.isoformat()
        if end_date:
            params["endDate"] = end_date.isoformat()
        if type_:
            params["type"] = type_.value

        data = await self._request("GET", "/api/transactions", params=params)
        return [Transaction.model_validate(t) for t in data.get("transactions", [])]

    async def get_transaction(self, transaction_id: str, user_id: str) -> Transaction | None:
        """Find one transaction. The API has no single-item route, so this scans the list."""
        for t in await self.get_transactions(user_id):
            if t.id == transaction_id:
                return t
        return None

    async def create_transactions(
        self, user_id: str, transactions: list[tuple[Transaction, Optional[str]]]
    ) -> list[Transaction]:
        """Create transactions given as ``(transaction, category_name)`` pairs.

        The API links transactions to categories by name and creates a
        category it does not know yet.
        """
        items = []
        for t, category_name in transactions:
            item = {
                "date": t.date.isoformat(),
                "description": t.description,
                "amount": _wire(t.amount),
                "type": t.type.value,
                "notes": t.notes,
            }
            if category_name:
                item["category"] = category_name
            items.append(item)

        data = await self._request(
            "POST",
            "/api/transactions",
            json_data={"userId": user_id, "transactions": items},
        )
        return [Transaction.model_validate(t) for t in data.get("transactions", [])]

    async def update_transaction(
        self, transaction_id: str, user_id: str, changes: dict[str, Any]
    ) -> Transaction:
        if "date" in changes:
            raise InvalidInputError("The Financial Helm API cannot change a transaction's date")
        payload = _patch_payload(changes, _TRANSACTION_PATCH_FIELDS)
        data = await self._request(
            "PATCH",
            "/api/transactions",
            json_data={"id": transaction_id, "userId": user_id, **payload},
        )
        return Transaction.model_validate(data.get("transaction", {}))

    async def delete_transaction(self, transaction_id: str, user_id: str) -> None:
        await self._request(
            "DELETE", "/api/transactions", params={"id": transaction_id, "userId": user_id}
        )


# --- Repository adapters ---


class RemoteCategoryRepository:
    """Category store backed by the Financial Helm API.

    Only active categories are visible, so ``list_all`` equals ``list_active``.
    """

    def __init__(self, client: HelmClient):
        self._client = client

    async def get(self, category_id: str, user_id: str) -> Category | None:
        for c in await self._client.get_categories(user_id):
            if c.id == category_id:
                return c
        return None

    async def list_active(self, user_id: str) -> list[Category]:
        return [c for c in await self._client.get_categories(user_id) if c.is_active]

    async def list_all(self, user_id: str) -> list[Category]:
        return await self._client.get_categories(user_id)

    async def add(self, category: Category) -> Category:
        try:
            return await self._client.create_category(category)
        except HelmAPIError as e:
            if e.status_code == 409:
                raise ConstraintViolation(
                    "category", (category.user_id, category.name), e.detail
                ) from e
            raise

    async def update(
        self, category_id: str, user_id: str, changes: dict[str, Any]
    ) -> Category | None:
        try:
            return await self._client.update_category(category_id, user_id, changes)
        except HelmAPIError as e:
            if e.status_code == 404:
                return None
            if e.status_code == 409:
                raise ConstraintViolation("category", (user_id, changes.get("name")), e.detail) from e
            raise

    async def delete(self, category_id: str, user_id: str) -> bool:
        try:
            await self._client.delete_category(category_id, user_id)
        except HelmAPIError as e:
            if e.status_code == 404:
                return False
            raise
        return True


class RemoteTransactionRepository:
    """Transaction store backed by the Financial Helm API."""

    def __init__(self, client: HelmClient):
        self._client = client

    async def get(self, transaction_id: str, user_id: str) -> Transaction | None:
        return await self._client.get_transaction(transaction_id, user_id)

    async def list_expenses(
        self, user_id: str, category_id: str, start: datetime, end: datetime
    ) -> list[Transaction]:
        transactions = await self._client.get_transactions(
            user_id,
            category_id=category_id,
            start_date=start,
            end_date=end,
            type_=TransactionType.EXPENSE,
        )
        # The API filters too; keep the window exact regardless of its date parsing
        return [
            t for t in transactions
            if t.type == TransactionType.EXPENSE and start <= t.date <= end
        ]

    async def _category_name(self, user_id: str, category_id: Optional[str]) -> Optional[str]:
        if category_id is None:
            return None
        for c in await self._client.get_categories(user_id):
            if c.id == category_id:
                return c.name
        raise NotFoundError("category", category_id)

    async def add(self, transaction: Transaction) -> Transaction:
        name = await self._category_name(transaction.user_id, transaction.category_id)
        created = await self._client.create_transactions(
            transaction.user_id, [(transaction, name)]
        )
        return created[0] if created else transaction

    async def update(
        self, transaction_id: str, user_id: str, changes: dict[str, Any]
    ) -> Transaction | None:
        try:
            return await self._client.update_transaction(transaction_id, user_id, changes)
        except HelmAPIError as e:
            if e.status_code == 404:
                return None
            raise

    async def delete(self, transaction_id: str, user_id: str) -> bool:
        try:
            await self._client.delete_transaction(transaction_id, user_id)
        except HelmAPIError as e:
            if e.status_code == 404:
                return False
            raise
        return True

    async def detach_category(self, user_id: str, category_id: str) -> int:
        transactions = await self._client.get_transactions(user_id, category_id=category_id)
        for t in transactions:
            await self._client.update_transaction(t.id, user_id, {"category_id": None})
        return len(transactions)
