"""Breadth-first site crawler that captures the API calls each page makes."""

import asyncio
import logging
import random
from collections import deque
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Deque, List, Optional, Set

from bs4 import BeautifulSoup
from urllib.parse import urlparse, urljoin

from sitepulse.classifier import ApiClassifier
from sitepulse.config import Config
from sitepulse.constants import NON_CRAWLABLE_PREFIXES, SKIP_EXTENSIONS
from sitepulse.models import ApiCallRecord, CrawlResult, FrontierEntry, PageRecord
from sitepulse.navigator import Navigator, NavigatorUnavailableError
from sitepulse.network_capture import PendingRequestTable

logger = logging.getLogger(__name__)


# Scrolls half way down and clicks a few non-submit buttons to trigger lazy API calls
INTERACTION_SCRIPT = """
() => {
    window.scrollTo(0, document.body ? document.body.scrollHeight / 2 : 0);
    const clickable = Array.from(
        document.querySelectorAll("button:not([type='submit']), [role='button'], .btn")
    ).slice(0, 3);
    let clicked = 0;
    for (const element of clickable) {
        try {
            element.click();
            clicked += 1;
        } catch (e) {}
    }
    return clicked;
}
"""

INTERACTION_WAIT_SECONDS = 1.0


def normalize_url(url: str) -> str:
    """Normalize URL by removing fragments and trailing slashes.

    Scheme and host are lowercased and a bare host gets the root path, so
    ``https://X.com`` and ``https://x.com/`` name the same page.

    Args:
        url: URL to normalize

    Returns:
        Normalized URL
    """
    parsed = urlparse(url)
    path = parsed.path or '/'
    normalized = f"{parsed.scheme.lower()}://{parsed.netloc.lower()}{path}"
    if parsed.query:
        normalized += f"?{parsed.query}"
    # Remove trailing slash (except for root)
    if normalized.endswith('/') and len(parsed.path) > 1:
        normalized = normalized[:-1]
    return normalized


def should_skip_url(path: str) -> bool:
    """Check if a URL path points at a non-page resource."""
    path_lower = path.lower()
    return any(path_lower.endswith(ext) for ext in SKIP_EXTENSIONS)


@dataclass
class PageExtraction:
    """Metadata and same-host links pulled from rendered HTML."""

    title: str = ""
    description: str = ""
    h1_count: int = 0
    image_count: int = 0
    script_count: int = 0
    link_count: int = 0
    links: List[str] = field(default_factory=list)


def extract_page(html: str, page_url: str, base_domain: str) -> PageExtraction:
    """Parse rendered HTML into page metadata and internal links.

    Args:
        html: The HTML content to parse
        page_url: URL of the page, for resolving relative links
        base_domain: Host that links must share to be followed

    Returns:
        PageExtraction; ``links`` is de-duplicated and in document order
    """
    soup = BeautifulSoup(html, 'html.parser')

    title = soup.title.get_text(strip=True) if soup.title else ""
    description_tag = soup.find('meta', attrs={'name': 'description'})
    description = description_tag.get('content', '') if description_tag else ""

    link_count = 0
    links: List[str] = []
    seen: Set[str] = set()

    for a in soup.find_all('a', href=True):
        href = a['href'].strip()

        if not href or href.startswith(NON_CRAWLABLE_PREFIXES):
            continue

        try:
            normalized_url = normalize_url(urljoin(page_url, href))
            parsed = urlparse(normalized_url)
        except ValueError:
            # Skip malformed URLs
            continue

        if parsed.scheme not in ('http', 'https') or parsed.netloc != base_domain:
            continue

        link_count += 1

        if should_skip_url(parsed.path) or normalized_url in seen:
            continue

        seen.add(normalized_url)
        links.append(normalized_url)

    return PageExtraction(
        title=title,
        description=description or "",
        h1_count=len(soup.find_all('h1')),
        image_count=len(soup.find_all('img')),
        script_count=len(soup.find_all('script')),
        link_count=link_count,
        links=links,
    )


class CrawlScheduler:
    """Crawls a site breadth-first, one page at a time.

    Pages are processed level by level from the base URL. Each page is
    opened in its own navigator session with network interception attached,
    so every API call the page issues is recorded against it.

    Budgets are hard caps: at most ``max_pages`` URLs are visited, nothing
    deeper than ``max_depth`` is crawled, and no URL is visited twice.
    """

    def __init__(
        self,
        navigator: Navigator,
        config: Optional[Config] = None,
        classifier: Optional[ApiClassifier] = None,
        on_progress: Optional[Callable[[int, int, str], None]] = None,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the crawl scheduler.

        Args:
            navigator: Navigator providing page sessions
            config: Runtime configuration (budgets, timeouts, interaction)
            classifier: API classifier; defaults to the URL-pattern heuristic
            on_progress: Optional callback (pages_visited, max_pages, url)
            rng: Random source for estimated timings
            sleep: Awaitable sleep, replaceable in tests
        """
        self.navigator = navigator
        self.config = config or Config()
        self.classifier = classifier
        self.on_progress = on_progress
        self._rng = rng
        self._sleep = sleep

        self.visited_urls: Set[str] = set()
        self.discovered_urls: Set[str] = set()
        self.frontier: Deque[FrontierEntry] = deque()

    async def crawl(
        self,
        base_url: str,
        max_pages: Optional[int] = None,
        max_depth: Optional[int] = None,
    ) -> CrawlResult:
        """Crawl a site starting from ``base_url``.

        Args:
            base_url: The starting URL
            max_pages: Maximum number of URLs to visit
            max_depth: Maximum link depth from the base URL (base is 0)

        Returns:
            CrawlResult with pages in dequeue order and API calls in
            observation order

        Raises:
            NavigatorUnavailableError: If the navigator cannot open pages at all
        """
        max_pages = self.config.max_pages if max_pages is None else max_pages
        max_depth = self.config.max_depth if max_depth is None else max_depth

        start_url = normalize_url(base_url)
        base_domain = urlparse(start_url).netloc

        self.visited_urls = set()
        self.discovered_urls = {start_url}
        self.frontier = deque([FrontierEntry(url=start_url, depth=0, parent_url=None)])

        result = CrawlResult()

        logger.info(f"Starting crawl from {start_url} (max_pages={max_pages}, max_depth={max_depth})")

        while self.frontier and len(self.visited_urls) < max_pages:
            entry = self.frontier.popleft()

            if entry.url in self.visited_urls or entry.depth > max_depth:
                continue

            self.visited_urls.add(entry.url)
            result.visited_urls.append(entry.url)

            logger.info(f"[L{entry.depth}] Crawling ({len(self.visited_urls)}/{max_pages}): {entry.url}")

            record, calls, links = await self._crawl_page(entry, base_domain)
            result.page_data[entry.url] = record
            result.api_calls.extend(calls)

            if record.error:
                logger.warning(f"  Failed: {record.error}")
            else:
                logger.info(f"  Success - {record.link_count} internal links, {record.api_call_count} API calls")

            if entry.depth < max_depth:
                queued = self._enqueue_links(links, entry)
                if queued:
                    logger.debug(f"  Queued {queued} new links for L{entry.depth + 1}")

            if self.on_progress:
                self.on_progress(len(self.visited_urls), max_pages, entry.url)

        result.total_pages = sum(1 for page in result.page_data.values() if page.success)
        result.total_api_calls = len(result.api_calls)
        result.max_depth_reached = max(
            (page.depth for page in result.page_data.values()), default=0
        )

        logger.info(
            f"Crawl complete: {result.total_pages} pages loaded, "
            f"{len(result.visited_urls)} visited, {result.total_api_calls} API calls"
        )
        return result

    def _enqueue_links(self, links: List[str], parent: FrontierEntry) -> int:
        queued = 0
        for link in links:
            if link in self.visited_urls or link in self.discovered_urls:
                continue
            self.discovered_urls.add(link)
            self.frontier.append(FrontierEntry(url=link, depth=parent.depth + 1, parent_url=parent.url))
            queued += 1
        return queued

    async def _crawl_page(self, entry: FrontierEntry, base_domain: str):
        """Load one page and collect its record, API calls and links.

        Failures are isolated to the page: the record carries the error and
        no links are returned.
        """
        table = PendingRequestTable(
            page_url=entry.url,
            depth=entry.depth,
            classifier=self.classifier,
            rng=self._rng,
        )
        extraction: Optional[PageExtraction] = None
        error: Optional[str] = None

        try:
            async with self.navigator.page() as page:
                page.intercept_network(table.observe, table.resolve)

                navigation = await page.navigate(
                    entry.url,
                    wait_until=self.config.wait_until,
                    timeout_ms=self.config.navigation_timeout_ms,
                )

                if navigation.success:
                    html = await page.content()
                    extraction = extract_page(html or "", entry.url, base_domain)

                    if self.config.simulate_interactions:
                        await self._simulate_user_interactions(page, entry.url)
                else:
                    error = navigation.error or "Navigation failed"
        except NavigatorUnavailableError:
            raise
        except Exception as e:
            logger.error(f"Error crawling {entry.url}: {e}")
            error = str(e) or e.__class__.__name__

        calls: List[ApiCallRecord] = table.records()

        if error is not None or extraction is None:
            record = PageRecord(
                url=entry.url,
                depth=entry.depth,
                parent_url=entry.parent_url,
                api_call_count=len(calls),
                error=error or "Navigation failed",
            )
            return record, calls, []

        record = PageRecord(
            url=entry.url,
            depth=entry.depth,
            parent_url=entry.parent_url,
            title=extraction.title,
            description=extraction.description,
            link_count=extraction.link_count,
            h1_count=extraction.h1_count,
            image_count=extraction.image_count,
            script_count=extraction.script_count,
            api_call_count=len(calls),
        )
        return record, calls, extraction.links

    async def _simulate_user_interactions(self, page, url: str) -> None:
        """Scroll and click a few buttons so lazily triggered API calls are observed."""
        try:
            await page.evaluate(INTERACTION_SCRIPT)
            await self._sleep(INTERACTION_WAIT_SECONDS)
        except Exception as e:
            logger.debug(f"Interaction simulation failed on {url}: {e}")


def crawl_sync(navigator_factory: Callable[[], "Navigator"], base_url: str, **kwargs) -> CrawlResult:
    """
    Synchronous wrapper for crawling a site.

    Args:
        navigator_factory: Callable returning an async-context-managed navigator
            (e.g. ``lambda: PlaywrightNavigator(config)``)
        base_url: The starting URL
        **kwargs: ``config``, ``max_pages`` and ``max_depth``

    Returns:
        CrawlResult
    """
    config = kwargs.pop("config", None)

    async def _crawl():
        async with navigator_factory() as navigator:
            scheduler = CrawlScheduler(navigator, config=config)
            return await scheduler.crawl(base_url, **kwargs)

    return asyncio.run(_crawl())
