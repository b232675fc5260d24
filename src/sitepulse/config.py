from dotenv import load_dotenv
from dataclasses import dataclass
import os

from sitepulse import constants

load_dotenv()  # Loads variables from .env file


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """
    Manages application settings loaded from environment variables.
    """
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("LOG_FILE")
    USER_AGENT = os.getenv("USER_AGENT")


settings = Settings()


@dataclass
class Config:
    """Runtime configuration for crawl, correlation and analysis."""
    max_pages: int = constants.DEFAULT_MAX_PAGES
    max_depth: int = constants.DEFAULT_MAX_DEPTH
    navigation_timeout_ms: int = constants.DEFAULT_NAVIGATION_TIMEOUT_MS
    wait_until: str = constants.DEFAULT_WAIT_UNTIL
    settle_ms: int = constants.DEFAULT_SETTLE_MS
    headless: bool = True
    browser_type: str = "chromium"
    simulate_interactions: bool = True
    audit_pages: int = constants.DEFAULT_AUDIT_PAGES

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables.

        Returns:
            Config: Configuration instance with values from environment
        """
        return cls(
            max_pages=int(os.getenv("SITEPULSE_MAX_PAGES", str(constants.DEFAULT_MAX_PAGES))),
            max_depth=int(os.getenv("SITEPULSE_MAX_DEPTH", str(constants.DEFAULT_MAX_DEPTH))),
            navigation_timeout_ms=int(os.getenv(
                "SITEPULSE_NAVIGATION_TIMEOUT_MS", str(constants.DEFAULT_NAVIGATION_TIMEOUT_MS)
            )),
            wait_until=os.getenv("SITEPULSE_WAIT_UNTIL", constants.DEFAULT_WAIT_UNTIL),
            settle_ms=int(os.getenv("SITEPULSE_SETTLE_MS", str(constants.DEFAULT_SETTLE_MS))),
            headless=_env_bool("SITEPULSE_HEADLESS", True),
            browser_type=os.getenv("SITEPULSE_BROWSER", "chromium"),
            simulate_interactions=_env_bool("SITEPULSE_SIMULATE_INTERACTIONS", True),
            audit_pages=int(os.getenv("SITEPULSE_AUDIT_PAGES", str(constants.DEFAULT_AUDIT_PAGES))),
        )


@dataclass(frozen=True)
class AlertThresholds:
    """Fixed warning/critical thresholds used by the alert engine."""

    # Core Web Vitals (milliseconds for time-based, decimal for CLS)
    fcp_warning: float = constants.FCP_WARNING_MS
    fcp_critical: float = constants.FCP_CRITICAL_MS
    lcp_warning: float = constants.LCP_WARNING_MS
    lcp_critical: float = constants.LCP_CRITICAL_MS
    cls_warning: float = constants.CLS_WARNING
    cls_critical: float = constants.CLS_CRITICAL
    tbt_warning: float = constants.TBT_WARNING_MS
    tbt_critical: float = constants.TBT_CRITICAL_MS
    tti_warning: float = constants.TTI_WARNING_MS
    tti_critical: float = constants.TTI_CRITICAL_MS
    si_warning: float = constants.SI_WARNING_MS
    si_critical: float = constants.SI_CRITICAL_MS

    # Category scores (0-1)
    score_warning: float = constants.SCORE_WARNING
    score_critical: float = constants.SCORE_CRITICAL

    # API
    response_time_warning: float = constants.API_RESPONSE_WARNING_MS
    response_time_critical: float = constants.API_RESPONSE_CRITICAL_MS
    error_rate_warning: float = constants.API_ERROR_RATE_WARNING
    error_rate_critical: float = constants.API_ERROR_RATE_CRITICAL
    payload_size_warning: int = constants.API_PAYLOAD_WARNING_BYTES
    payload_size_critical: int = constants.API_PAYLOAD_CRITICAL_BYTES

    def to_dict(self) -> dict:
        """Convert thresholds to dictionary.

        Returns:
            Dictionary of all threshold values
        """
        return {
            field_name: getattr(self, field_name)
            for field_name in self.__dataclass_fields__
        }


# Global default thresholds instance
default_thresholds = AlertThresholds()
