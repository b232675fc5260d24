"""Shared fixtures."""

import random
from unittest.mock import AsyncMock

import pytest

from sitepulse.config import Config

from fakes import BASE, FakeCall, FakeNavigator, FakeSite, html_page


@pytest.fixture
def three_page_site():
    """Home links to B and C; B's orders endpoint fails slowly."""
    return FakeSite(
        pages={
            f"{BASE}/": html_page("Home", ["/b", "/c", "https://other.example.org/x", "mailto:hi@example.com"]),
            f"{BASE}/b": html_page("B", ["/", "/c"]),
            f"{BASE}/c": html_page("C", ["/b#reviews"]),
        },
        calls={
            f"{BASE}/": [FakeCall(url=f"{BASE}/api/items", duration_ms=120)],
            f"{BASE}/b": [
                FakeCall(url=f"{BASE}/api/orders", status=500, duration_ms=1200),
                FakeCall(url=f"{BASE}/static/app.js", resource_type="script"),
            ],
            f"{BASE}/c": [FakeCall(url=f"{BASE}/api/reviews", duration_ms=80)],
        },
    )


@pytest.fixture
def navigator(three_page_site):
    return FakeNavigator(three_page_site)


@pytest.fixture
def no_sleep():
    return AsyncMock(return_value=None)


@pytest.fixture
def config():
    return Config(settle_ms=500, simulate_interactions=False)


@pytest.fixture
def rng():
    return random.Random(1234)
