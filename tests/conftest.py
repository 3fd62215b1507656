"""Shared fixtures: fake Playwright object graph for BrowserService tests."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from playwright_ui_mcp.services.browser_service import BrowserService
from playwright_ui_mcp.services.capture_store import CaptureStore

FAKE_PNG = b"\x89PNG\r\n\x1a\nfake-image-bytes"


async def _write_fake_png(path: str, **kwargs) -> bytes:
    Path(path).write_bytes(FAKE_PNG)
    return FAKE_PNG


def make_fake_page(title: str = "Example Domain") -> MagicMock:
    """Build a MagicMock standing in for playwright.async_api.Page."""
    page = MagicMock(name="Page")
    page.goto = AsyncMock()
    page.title = AsyncMock(return_value=title)
    page.screenshot = AsyncMock(side_effect=_write_fake_png)
    page.query_selector = AsyncMock(return_value=None)
    page.content = AsyncMock(return_value="<html><body><p>Hello</p></body></html>")
    page.evaluate = AsyncMock(return_value="Hello")
    page.click = AsyncMock()
    page.fill = AsyncMock()
    page.wait_for_selector = AsyncMock()
    page.close = AsyncMock()
    return page


class FakePlaywright:
    """Records every object created during launch so tests can assert on them."""

    def __init__(self) -> None:
        self.pages: list[MagicMock] = []

        self.context = MagicMock(name="BrowserContext")
        self.context.new_page = AsyncMock(side_effect=self._new_page)
        self.context.close = AsyncMock()

        self.browser = MagicMock(name="Browser")
        self.browser.version = "120.0.0.0"
        self.browser.new_context = AsyncMock(return_value=self.context)
        self.browser.close = AsyncMock()

        self.driver = MagicMock(name="Playwright")
        self.driver.chromium.launch = AsyncMock(return_value=self.browser)
        self.driver.stop = AsyncMock()

        self.factory = MagicMock(name="async_playwright")
        self.factory.return_value.start = AsyncMock(return_value=self.driver)

    async def _new_page(self) -> MagicMock:
        page = make_fake_page()
        self.pages.append(page)
        return page


@pytest.fixture
def fake_playwright() -> FakePlaywright:
    return FakePlaywright()


@pytest.fixture
def capture_store(tmp_path: Path) -> CaptureStore:
    return CaptureStore(base_dir=tmp_path)


@pytest.fixture
def service(fake_playwright: FakePlaywright, capture_store: CaptureStore) -> BrowserService:
    return BrowserService(capture_store=capture_store, playwright_factory=fake_playwright.factory, headless=False)
