"""Retry decorator for GitHub API calls that run into rate limits.

Only rate limit responses are retried. Every other failure propagates to the
caller untouched so that discovery can treat it as fatal for the run.
"""

import asyncio
import functools
import time
from typing import Any, Awaitable, Callable, TypeVar

import structlog
from githubkit.exception import PrimaryRateLimitExceeded, RequestFailed, SecondaryRateLimitExceeded

logger = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


def is_rate_limit_response(exc: RequestFailed) -> bool:
    """Return True if a failed GitHub request was rejected because of rate limiting."""
    status_code = exc.response.status_code
    if status_code == 429:
        return True
    if status_code != 403:
        return False
    if exc.response.headers.get("x-ratelimit-remaining") == "0":
        return True
    return "rate limit" in str(exc).lower()


def wait_time_from_headers(exc: RequestFailed, fallback: float) -> float:
    """Derive how long to wait from the retry-after or x-ratelimit-reset headers."""
    retry_after = exc.response.headers.get("retry-after")
    if retry_after:
        try:
            return float(retry_after)
        except ValueError:
            logger.warning("Invalid retry-after header value", retry_after=retry_after)

    rate_limit_reset = exc.response.headers.get("x-ratelimit-reset")
    if rate_limit_reset:
        try:
            remaining = int(rate_limit_reset) - int(time.time())
        except ValueError:
            logger.warning("Invalid x-ratelimit-reset header value", rate_limit_reset=rate_limit_reset)
        else:
            if remaining > 0:
                return float(remaining + 1)
    return fallback


def retry_on_rate_limit(
    max_retries: int = 5,
    initial_delay: float = 10.0,
    max_delay: float = 300.0,
    exponential_base: float = 2.0,
) -> Callable[[F], F]:
    """Decorator retrying an async GitHub call while it is being rate limited.

    Args:
        max_retries: Maximum number of retry attempts (default: 5)
        initial_delay: Delay in seconds used when the response carries no hint (default: 10.0)
        max_delay: Upper bound for any single wait in seconds (default: 300.0)
        exponential_base: Growth factor of the fallback delay (default: 2.0)

    Returns:
        Decorated function with retry logic

    Example:
        @retry_on_rate_limit()
        async def list_page(page: int):
            return await client.rest.repos.async_list_for_authenticated_user(page=page)
    """

    def decorator(func: F) -> F:
        if not asyncio.iscoroutinefunction(func):
            raise TypeError(f"Function {func.__name__} decorated with @retry_on_rate_limit must be async")

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            delay = initial_delay
            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except (PrimaryRateLimitExceeded, SecondaryRateLimitExceeded) as exc:
                    if attempt == max_retries:
                        logger.error("Max retries reached for GitHub rate limit", function=func.__name__, attempt=attempt + 1)
                        raise
                    retry_after = getattr(exc, "retry_after", None)
                    wait_time = retry_after.total_seconds() if retry_after else delay
                except RequestFailed as exc:
                    if not is_rate_limit_response(exc):
                        raise
                    if attempt == max_retries:
                        logger.error(
                            "Max retries reached for GitHub rate limit",
                            function=func.__name__,
                            attempt=attempt + 1,
                            status_code=exc.response.status_code,
                        )
                        raise
                    wait_time = wait_time_from_headers(exc, delay)

                wait_time = min(wait_time, max_delay)
                logger.warning(
                    "GitHub rate limit exceeded, waiting before retrying",
                    function=func.__name__,
                    attempt=attempt + 1,
                    max_retries=max_retries,
                    wait_time=wait_time,
                )
                await asyncio.sleep(wait_time)
                delay = min(delay * exponential_base, max_delay)

        return wrapper  # type: ignore

    return decorator
