"""Consistent error handling for MCP tool functions."""

from __future__ import annotations

import functools
import logging
from typing import Callable

import httpx
from pydantic import ValidationError

from budget_coach.core.errors import ConstraintViolation, InvalidInputError, NotFoundError
from budget_coach.core.helm_client import HelmAPIError

logger = logging.getLogger("budget_coach_mcp")


def handle_tool_errors(fn: Callable) -> Callable:
    """Decorator that catches known exceptions and returns user-friendly error strings.

    MCP tools must return ``str``, not raise.  This ensures all tools
    follow that contract without duplicating try/except blocks.
    """

    @functools.wraps(fn)
    async def wrapper(*args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except NotFoundError as e:
            return str(e)
        except InvalidInputError as e:
            return f"Invalid input: {e}"
        except ConstraintViolation as e:
            return f"Conflict: {e}"
        except HelmAPIError as e:
            return f"Financial Helm API error: {e.detail}"
        except httpx.ConnectError:
            return "Cannot connect to the Financial Helm API. Check your network connection."
        except httpx.TimeoutException:
            return "Request to Financial Helm timed out. Please try again."
        except ValidationError as e:
            return f"Invalid data: {e.error_count()} validation error(s). Check your input."
        except Exception as e:
            logger.exception("Unexpected error in tool %s", fn.__name__)
            return f"Unexpected error: {type(e).__name__}: {e}"

    return wrapper
