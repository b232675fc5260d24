"""
API Performance Correlator.

Attributes frontend rendering impact to individual API calls by replaying
each call's visible effect in a live page and differencing performance
snapshots taken before and after. Calls are processed strictly one at a
time: snapshots are global page state, so overlapping simulations would make
the attribution meaningless.
"""

import asyncio
import dataclasses
import logging
from typing import Awaitable, Callable, Iterable, List, Optional

from sitepulse.config import Config
from sitepulse.constants import DEFAULT_SIMULATED_CALL_MS
from sitepulse.infrastructure.performance_metrics import capture_snapshot, diff_snapshots
from sitepulse.models import ApiCallRecord, ImpactFailure
from sitepulse.navigator import Navigator, NavigatorUnavailableError

logger = logging.getLogger(__name__)


# Shows a loading element, then swaps it for a result element once the call's duration has passed
SIMULATE_CALL_SCRIPT = """
(call) => {
    const loadingElement = document.createElement('div');
    loadingElement.textContent = `Loading data from ${call.url}...`;
    document.body.appendChild(loadingElement);

    setTimeout(() => {
        loadingElement.remove();

        const resultElement = document.createElement('div');
        const paragraph = document.createElement('p');
        paragraph.textContent = `Data loaded from API: ${call.url}`;
        resultElement.appendChild(paragraph);
        document.body.appendChild(resultElement);
    }, call.durationMs);

    return true;
}
"""


class ImpactCorrelator:
    """Measures how each API call affects rendering of a page."""

    def __init__(
        self,
        navigator: Navigator,
        config: Optional[Config] = None,
        settle_ms: Optional[int] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the correlator.

        Args:
            navigator: Navigator providing a page session for the pass
            config: Runtime configuration (navigation timeout, wait policy)
            settle_ms: Wait after each simulated call; defaults to config.settle_ms
            sleep: Awaitable sleep, replaceable in tests
        """
        self.navigator = navigator
        self.config = config or Config()
        self.settle_ms = self.config.settle_ms if settle_ms is None else settle_ms
        self._sleep = sleep

    async def correlate(self, api_calls: Iterable[ApiCallRecord], page_url: str) -> List[ApiCallRecord]:
        """
        Attach a FrontendImpact to every call.

        Calls whose measurement fails are kept with an ImpactFailure. Input
        records are not modified; enriched copies are returned in input order.

        Args:
            api_calls: Calls to measure
            page_url: Page on which the calls' effects are replayed

        Returns:
            Enriched ApiCallRecords
        """
        calls = list(api_calls)
        if not calls:
            return []

        enhanced: List[ApiCallRecord] = []

        try:
            async with self.navigator.page() as page:
                navigation = await page.navigate(
                    page_url,
                    wait_until=self.config.wait_until,
                    timeout_ms=self.config.navigation_timeout_ms,
                )

                if not navigation.success:
                    logger.error(f"Could not open {page_url} for impact analysis: {navigation.error}")
                    return self._fail_all(calls, navigation.error or "Navigation failed")

                for call in calls:
                    enhanced.append(await self._measure_call(page, call))
        except NavigatorUnavailableError:
            raise
        except Exception as e:
            logger.error(f"Impact analysis aborted on {page_url}: {e}")
            remaining = calls[len(enhanced):]
            enhanced.extend(self._fail_all(remaining, str(e) or e.__class__.__name__))

        return enhanced

    async def _measure_call(self, page, call: ApiCallRecord) -> ApiCallRecord:
        try:
            before = await capture_snapshot(page)

            await self._simulate_api_call(page, call)

            await self._sleep(self.settle_ms / 1000)
            after = await capture_snapshot(page)

            impact = diff_snapshots(before, after)
            logger.debug(
                f"{call.method} {call.endpoint}: render delta {impact.render_delta_ms}ms "
                f"({impact.rendering_impact.value})"
            )
            return dataclasses.replace(call, frontend_impact=impact)

        except Exception as e:
            logger.error(f"Error measuring impact for API call {call.url}: {e}")
            return dataclasses.replace(call, frontend_impact=ImpactFailure(error=str(e) or e.__class__.__name__))

    async def _simulate_api_call(self, page, call: ApiCallRecord) -> None:
        duration_ms = call.duration_ms or DEFAULT_SIMULATED_CALL_MS
        await page.evaluate(SIMULATE_CALL_SCRIPT, {"url": call.url, "durationMs": duration_ms})
        await self._sleep(duration_ms / 1000)

    @staticmethod
    def _fail_all(calls: List[ApiCallRecord], error: str) -> List[ApiCallRecord]:
        return [
            dataclasses.replace(call, frontend_impact=ImpactFailure(error=error))
            for call in calls
        ]
