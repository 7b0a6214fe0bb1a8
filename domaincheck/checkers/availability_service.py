"""Batch availability checking across keywords and TLDs."""

import asyncio
import logging
from typing import Callable, List, Optional, Sequence

from ..config import Settings
from ..exceptions import NoValidTldsError
from ..models import CheckTask, DomainCheckResult, TldConfig
from ..registry import TldRegistry
from .resolver import Resolver
from .whois_checker import WhoisChecker
from .whois_client import WhoisClient

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class AvailabilityService:
    """Unified service for checking domain availability.

    Tasks run in fixed-size windows: every task in a window is dispatched
    at once, the window settles completely, then the service pauses for
    ``window_delay`` before starting the next one. This bounds the number of
    simultaneous WHOIS connections and keeps servers from rate limiting us.
    """

    def __init__(
        self,
        registry: TldRegistry,
        checker: Optional[WhoisChecker] = None,
        window_size: int = 3,
        window_delay: float = 0.5,
        retry_attempts: int = 3,
        retry_delay: float = 1.0
    ):
        if window_size < 1:
            raise ValueError("window_size must be at least 1")
        self.registry = registry
        self.checker = checker or WhoisChecker()
        self.window_size = window_size
        self.window_delay = window_delay
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay

    @classmethod
    def from_settings(cls, settings: Settings, registry: TldRegistry) -> 'AvailabilityService':
        client = WhoisClient(
            resolver=Resolver(timeout=settings.dns_timeout),
            port=settings.port,
            connect_timeout=settings.connect_timeout,
            first_byte_timeout=settings.first_byte_timeout,
            idle_timeout=settings.idle_timeout
        )
        return cls(
            registry,
            checker=WhoisChecker(client),
            window_size=settings.window_size,
            window_delay=settings.window_delay,
            retry_attempts=settings.retry_attempts,
            retry_delay=settings.retry_delay
        )

    def get_enabled_tlds(self) -> List[TldConfig]:
        return self.registry.get_enabled_tlds()

    def build_tasks(self, keywords: Sequence[str], tld_names: Sequence[str]) -> List[CheckTask]:
        """Expand keywords x TLDs into check tasks, keyword-major.

        Raises:
            NoValidTldsError: no requested TLD is known and enabled.
        """
        valid_tlds = []
        for name in tld_names:
            config = self.registry.lookup(name)
            if config is not None and config.enabled:
                valid_tlds.append(config)
            else:
                logger.warning("Skipping unknown or disabled TLD: %s", name)

        if not valid_tlds:
            raise NoValidTldsError('No valid TLDs selected')

        return [CheckTask.for_keyword(keyword, tld) for keyword in keywords for tld in valid_tlds]

    async def check_domains(
        self,
        keywords: Sequence[str],
        tld_names: Sequence[str],
        progress_callback: Optional[ProgressCallback] = None,
        deadline: Optional[float] = None
    ) -> List[DomainCheckResult]:
        """Check every keyword under every requested TLD.

        Args:
            keywords: Bare labels, e.g. ``['example', 'my-shop']``
            tld_names: TLD names without the leading dot
            progress_callback: Optional callback(completed, total) after each window
            deadline: Optional overall time limit in seconds. This goes beyond
                      the plain windowed batch: when it expires the in-flight
                      checks are cancelled and every result settled so far
                      (including those of the unfinished window) is returned.

        Returns one result per task, in submission order. With a deadline the
        list may be shorter, but keeps submission order.
        """
        tasks = self.build_tasks(keywords, tld_names)
        logger.info("Checking %d domains...", len(tasks))

        slots: List[Optional[DomainCheckResult]] = [None] * len(tasks)
        if deadline is None:
            await self._run_windows(tasks, slots, progress_callback)
            return list(slots)

        try:
            await asyncio.wait_for(
                self._run_windows(tasks, slots, progress_callback),
                timeout=deadline
            )
        except asyncio.TimeoutError:
            settled = sum(1 for r in slots if r is not None)
            logger.warning(
                "Deadline of %.1fs reached, returning %d of %d results",
                deadline, settled, len(tasks)
            )
        return [r for r in slots if r is not None]

    async def _run_windows(
        self,
        tasks: List[CheckTask],
        slots: List[Optional[DomainCheckResult]],
        progress_callback: Optional[ProgressCallback]
    ):
        for index, offset in enumerate(range(0, len(tasks), self.window_size)):
            if index > 0 and self.window_delay > 0:
                await asyncio.sleep(self.window_delay)

            window = tasks[offset:offset + self.window_size]
            await self._run_window(window, slots, offset)

            if progress_callback:
                progress_callback(offset + len(window), len(tasks))

    async def _run_window(
        self,
        window: List[CheckTask],
        slots: List[Optional[DomainCheckResult]],
        offset: int
    ) -> List[DomainCheckResult]:
        """Run one window concurrently.

        Each task writes its own slot as soon as it settles, so results
        survive a cancellation of the rest of the window.
        """
        async def run_slot(position: int, task: CheckTask) -> DomainCheckResult:
            try:
                result = await self.checker.check(task)
            except Exception as e:
                logger.error("Unexpected error checking %s: %s", task.domain, e)
                result = DomainCheckResult.failure(task, f"Error: {e or 'Unknown error'}")
            slots[offset + position] = result
            return result

        return list(await asyncio.gather(
            *(run_slot(position, task) for position, task in enumerate(window))
        ))

    def run_check(
        self,
        keywords: Sequence[str],
        tld_names: Sequence[str],
        progress_callback: Optional[ProgressCallback] = None,
        deadline: Optional[float] = None
    ) -> List[DomainCheckResult]:
        """Synchronous wrapper for batch checking."""
        return asyncio.run(self.check_domains(
            keywords,
            tld_names,
            progress_callback=progress_callback,
            deadline=deadline
        ))

    async def check_single(self, domain: str) -> DomainCheckResult:
        """Check one full domain name, retrying transient failures.

        Raises:
            NoValidTldsError: the domain's TLD is unknown or disabled.
        """
        keyword, _, tld_name = domain.rpartition('.')
        config = self.registry.lookup(tld_name)
        if not keyword or config is None or not config.enabled:
            raise NoValidTldsError(f"TLD not supported: {tld_name or domain}")

        task = CheckTask.for_keyword(keyword, config)
        return await self.checker.check_with_retry(
            task,
            max_attempts=self.retry_attempts,
            delay=self.retry_delay
        )
