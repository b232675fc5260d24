"""
Headless-browser navigation capability.

The crawl scheduler and impact correlator only talk to the browser through
the ``Navigator`` and ``PageSession`` protocols defined here. The
``PlaywrightNavigator`` implementation manages its own browser lifecycle as
an async context manager and hands out one isolated page session at a time:

    async with PlaywrightNavigator(config) as navigator:
        async with navigator.page() as page:
            result = await page.navigate("https://example.com")
"""
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncContextManager, AsyncIterator, Callable, Dict, Optional, Protocol

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from sitepulse.browser_config import NavigatorConfig

logger = logging.getLogger(__name__)


@dataclass
class RequestEvent:
    """An outgoing request observed on a page."""

    url: str
    method: str
    resource_type: str
    timestamp: float  # epoch milliseconds
    headers: Dict[str, str] = field(default_factory=dict)
    post_data: Optional[str] = None


@dataclass
class ResponseEvent:
    """A response observed on a page, identified by its request's url and method."""

    url: str
    method: str
    status: int
    status_text: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    timestamp: Optional[float] = None  # epoch milliseconds
    body_size: Optional[int] = None


@dataclass
class NavigationResult:
    """Outcome of navigating a page session to a URL."""

    url: str
    final_url: Optional[str] = None
    status_code: int = 0
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


class NavigatorUnavailableError(RuntimeError):
    """Raised when a page session is requested from a navigator that is not running."""


RequestHandler = Callable[[RequestEvent], None]
ResponseHandler = Callable[[ResponseEvent], None]


class PageSession(Protocol):
    """One open browser page."""

    def intercept_network(self, on_request: RequestHandler, on_response: ResponseHandler) -> None:
        ...

    async def navigate(
        self, url: str, wait_until: Optional[str] = None, timeout_ms: Optional[int] = None
    ) -> NavigationResult:
        ...

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        ...

    async def content(self) -> str:
        ...

    async def close(self) -> None:
        ...


class Navigator(Protocol):
    """Factory for page sessions with guaranteed release."""

    def page(self) -> AsyncContextManager[PageSession]:
        ...


def now_ms() -> float:
    return time.time() * 1000


class PlaywrightPageSession:
    """PageSession backed by a Playwright page."""

    def __init__(self, page, config: NavigatorConfig):
        self._page = page
        self._config = config
        self._closed = False

    def intercept_network(self, on_request: RequestHandler, on_response: ResponseHandler) -> None:
        def _handle_request(request) -> None:
            on_request(RequestEvent(
                url=request.url,
                method=request.method,
                resource_type=request.resource_type,
                timestamp=now_ms(),
                headers=dict(request.headers),
                post_data=request.post_data,
            ))

        def _handle_response(response) -> None:
            headers = dict(response.headers)
            content_length = headers.get("content-length")
            body_size = int(content_length) if content_length and content_length.isdigit() else None
            on_response(ResponseEvent(
                url=response.request.url,
                method=response.request.method,
                status=response.status,
                status_text=response.status_text,
                headers=headers,
                timestamp=now_ms(),
                body_size=body_size,
            ))

        self._page.on("request", _handle_request)
        self._page.on("response", _handle_response)

    async def navigate(
        self, url: str, wait_until: Optional[str] = None, timeout_ms: Optional[int] = None
    ) -> NavigationResult:
        try:
            response = await self._page.goto(
                url,
                wait_until=wait_until or self._config.wait_until,
                timeout=timeout_ms or self._config.timeout,
            )
        except PlaywrightError as e:
            logger.warning(f"Navigation failed for {url}: {e}")
            return NavigationResult(url=url, error=str(e))

        return NavigationResult(
            url=url,
            final_url=self._page.url,
            status_code=response.status if response else 0,
        )

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        if arg is None:
            return await self._page.evaluate(script)
        return await self._page.evaluate(script, arg)

    async def content(self) -> str:
        return await self._page.content()

    async def close(self) -> None:
        if not self._closed:
            self._closed = True
            await self._page.close()


class PlaywrightNavigator:
    """
    Playwright-based Navigator.

    Launches the browser on ``__aenter__`` and closes it on ``__aexit__``.
    Every page session gets its own browser context so cookies and storage
    never leak between pages.
    """

    def __init__(self, config: Optional[NavigatorConfig] = None):
        self._config = config or NavigatorConfig()
        self._playwright = None
        self._browser = None

        logger.debug(f"PlaywrightNavigator initialized with config: {self._config}")

    @property
    def is_started(self) -> bool:
        return self._browser is not None

    async def __aenter__(self) -> "PlaywrightNavigator":
        """Enter async context manager, launching browser."""
        logger.info(f"Launching {self._config.browser_type} browser (headless={self._config.headless})")

        self._playwright = await async_playwright().start()
        browser_launcher = getattr(self._playwright, self._config.browser_type)

        launch_options = {"headless": self._config.headless}
        if self._config.launch_args:
            launch_options["args"] = self._config.launch_args

        try:
            self._browser = await browser_launcher.launch(**launch_options)
        except Exception:
            await self._playwright.stop()
            self._playwright = None
            raise

        logger.info("Browser launched successfully")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context manager, closing browser."""
        if self._browser:
            logger.info("Closing browser")
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    @asynccontextmanager
    async def page(self) -> AsyncIterator[PlaywrightPageSession]:
        """Open an isolated page session, closed when the block exits.

        Raises:
            NavigatorUnavailableError: If the browser is not running
        """
        if not self._browser:
            raise NavigatorUnavailableError(
                "Browser is not running. Use PlaywrightNavigator as an async context manager: "
                "async with PlaywrightNavigator(config) as navigator:"
            )

        context_options = {
            "viewport": {
                "width": self._config.viewport_width,
                "height": self._config.viewport_height,
            },
            "java_script_enabled": True,
        }
        if self._config.user_agent:
            context_options["user_agent"] = self._config.user_agent

        context = await self._browser.new_context(**context_options)
        try:
            session = PlaywrightPageSession(await context.new_page(), self._config)
            try:
                yield session
            finally:
                await session.close()
        finally:
            # Always close context to ensure isolation
            await context.close()
