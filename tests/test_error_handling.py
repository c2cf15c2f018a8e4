"""Tests for MCP error handling decorator."""

import httpx
from pydantic import ValidationError

from budget_coach.core.errors import ConstraintViolation, InvalidInputError, NotFoundError
from budget_coach.core.helm_client import HelmAPIError
from budget_coach.core.resolvers import ResolverError
from budget_coach.mcp.error_handling import handle_tool_errors
from budget_coach.models.schemas import UpdateTransactionInput


class TestHandleToolErrors:
    async def test_returns_result_on_success(self):
        @handle_tool_errors
        async def tool():
            return "ok"

        assert await tool() == "ok"

    async def test_catches_not_found(self):
        @handle_tool_errors
        async def tool():
            raise NotFoundError("transaction", "t-42")

        assert await tool() == "Transaction 't-42' not found."

    async def test_catches_resolver_error(self):
        @handle_tool_errors
        async def tool():
            raise ResolverError("category", "xyz", ["Housing", "Utilities"])

        result = await tool()
        assert "xyz" in result
        assert "Housing" in result

    async def test_catches_invalid_input(self):
        @handle_tool_errors
        async def tool():
            raise InvalidInputError("user_id is required")

        assert await tool() == "Invalid input: user_id is required"

    async def test_catches_conflict(self):
        @handle_tool_errors
        async def tool():
            raise ConstraintViolation("category", ("u", "Pets"), 'Category "Pets" already exists')

        assert await tool() == 'Conflict: Category "Pets" already exists'

    async def test_catches_helm_error(self):
        @handle_tool_errors
        async def tool():
            raise HelmAPIError(503, "Service Unavailable", "Maintenance window")

        assert "Maintenance window" in await tool()

    async def test_catches_connect_error(self):
        @handle_tool_errors
        async def tool():
            raise httpx.ConnectError("Connection refused")

        assert "Cannot connect" in await tool()

    async def test_catches_timeout(self):
        @handle_tool_errors
        async def tool():
            raise httpx.ReadTimeout("timed out")

        assert "timed out" in (await tool()).lower()

    async def test_catches_validation_error(self):
        @handle_tool_errors
        async def tool():
            UpdateTransactionInput(transaction_id="t1")

        result = await tool()
        assert result.startswith("Invalid data: 1 validation error")

    async def test_unexpected_error_is_logged(self, caplog):
        @handle_tool_errors
        async def tool():
            raise ValueError("boom")

        result = await tool()
        assert result == "Unexpected error: ValueError: boom"
        assert "Unexpected error in tool tool" in caplog.text

    async def test_preserves_function_name(self):
        @handle_tool_errors
        async def my_tool():
            return "ok"

        assert my_tool.__name__ == "my_tool"
