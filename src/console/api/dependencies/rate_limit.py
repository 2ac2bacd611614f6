"""Per-employee rate limit dependencies for sensitive actions."""

from collections.abc import Awaitable, Callable

from fastapi import HTTPException, status

from src.console.api.dependencies.auth import CurrentEmployee
from src.console.core.logging import get_logger
from src.console.core.rate_limit import check_rate_limit, get_rate_limit_rule

logger = get_logger(__name__)


def rate_limited(action: str) -> Callable[[CurrentEmployee], Awaitable[None]]:
    """Build a dependency enforcing the named sliding-window rule per employee."""
    rule = get_rate_limit_rule(action)

    async def _enforce(employee: CurrentEmployee) -> None:
        result = await check_rate_limit(rule, str(employee.id))
        if not result.allowed:
            logger.warning(
                "Rate limit exceeded",
                action=action,
                employee_id=str(employee.id),
                retry_after=result.retry_after,
            )
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=f"Too many {action} requests. Try again later.",
                headers={"Retry-After": str(result.retry_after)},
            )

    return _enforce
