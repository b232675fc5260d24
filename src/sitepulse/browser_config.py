"""
Browser configuration for the Playwright-backed navigator.

Provides a validated Pydantic model for browser settings and a factory that
derives one from the runtime Config.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from sitepulse.config import Config, settings


class NavigatorConfig(BaseModel):
    """
    Configuration for PlaywrightNavigator.

    All fields are validated by Pydantic to ensure type safety and valid values.
    """

    headless: bool = Field(
        default=True,
        description="Run browser in headless mode (no visible UI)"
    )

    browser_type: Literal["chromium", "firefox", "webkit"] = Field(
        default="chromium",
        description="Browser engine to use"
    )

    timeout: int = Field(
        default=30000,
        description="Default page navigation timeout in milliseconds",
        ge=1000,
        le=300000
    )

    wait_until: Literal["load", "domcontentloaded", "networkidle", "commit"] = Field(
        default="networkidle",
        description="When to consider navigation complete"
    )

    launch_args: List[str] = Field(
        default_factory=lambda: ["--no-sandbox", "--disable-dev-shm-usage"],
        description="Additional browser launch arguments"
    )

    user_agent: Optional[str] = Field(
        default=None,
        description="Custom user agent. None keeps the browser default."
    )

    viewport_width: int = Field(default=1366, ge=320, le=3840)
    viewport_height: int = Field(default=768, ge=240, le=2160)

    @classmethod
    def from_config(cls, config: Config, user_agent: Optional[str] = None) -> "NavigatorConfig":
        """Derive navigator settings from the runtime Config.

        ``user_agent`` falls back to the ``USER_AGENT`` environment variable.
        """
        return cls(
            headless=config.headless,
            browser_type=config.browser_type,
            timeout=config.navigation_timeout_ms,
            wait_until=config.wait_until,
            user_agent=user_agent or settings.USER_AGENT,
        )
