"""WHOIS-based domain availability verification."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from ..exceptions import InvalidServerError, WhoisError
from ..models import CheckTask, DomainCheckResult
from .classifier import is_available
from .whois_client import WhoisClient

logger = logging.getLogger(__name__)

T = TypeVar('T')


def is_transient(error: BaseException) -> bool:
    """True for failures worth another attempt; bad configuration is not."""
    if isinstance(error, InvalidServerError):
        return False
    return isinstance(error, (WhoisError, OSError, asyncio.TimeoutError))


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    delay: float = 1.0,
    should_retry: Callable[[Exception], bool] = lambda e: True
) -> T:
    """Await ``fn()`` until it succeeds, at most ``max_attempts`` times.

    Sleeps ``delay`` seconds between attempts and re-raises the last error
    once all attempts have failed. Errors for which ``should_retry`` returns
    False are re-raised immediately.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    for attempt in range(1, max_attempts + 1):
        try:
            return await fn()
        except Exception as e:
            if attempt == max_attempts or not should_retry(e):
                raise
            logger.debug("Attempt %d/%d failed: %s", attempt, max_attempts, e)
            await asyncio.sleep(delay)


class WhoisChecker:
    """Checks one domain against its TLD's WHOIS server.

    Failures are captured in the returned result instead of being raised,
    so a single unreachable server never aborts a batch.
    """

    def __init__(self, client: Optional[WhoisClient] = None):
        self.client = client or WhoisClient()

    async def check(self, task: CheckTask) -> DomainCheckResult:
        """Single attempt, used by the batch path."""
        return await self._check(task, lambda: self.client.query(task.server, task.domain))

    async def check_with_retry(
        self,
        task: CheckTask,
        max_attempts: int = 3,
        delay: float = 1.0
    ) -> DomainCheckResult:
        """Retrying variant for ad-hoc single lookups."""
        return await self._check(
            task,
            lambda: with_retry(
                lambda: self.client.query(task.server, task.domain),
                max_attempts=max_attempts,
                delay=delay,
                should_retry=is_transient
            )
        )

    async def _check(
        self,
        task: CheckTask,
        fetch: Callable[[], Awaitable[str]]
    ) -> DomainCheckResult:
        logger.debug("Checking domain: %s", task.domain)
        try:
            response = await fetch()
        except (WhoisError, OSError, asyncio.TimeoutError) as e:
            message = str(e) or type(e).__name__
            logger.warning("Error checking domain %s: %s", task.domain, message)
            return DomainCheckResult.failure(task, message)

        available = is_available(response, task.pattern)
        logger.info("Domain %s is %s", task.domain, "available" if available else "not available")
        return DomainCheckResult(domain=task.domain, tld=task.tld, available=available)
