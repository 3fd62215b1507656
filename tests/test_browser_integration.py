"""End-to-end checks against a real Chromium (opt-in: RUN_BROWSER_TESTS=1)."""

import os
import struct
from pathlib import Path

import pytest
import pytest_asyncio

from playwright_ui_mcp.services.browser_service import BrowserService
from playwright_ui_mcp.services.capture_store import CaptureStore

pytestmark = [
    pytest.mark.browser,
    pytest.mark.skipif(os.getenv("RUN_BROWSER_TESTS") != "1", reason="set RUN_BROWSER_TESTS=1 to drive a real Chromium"),
]

PAGE_HTML = """<!doctype html>
<html>
<head><title>Fixture Page</title></head>
<body>
  <button id="go">Go</button>
  <div>
    <button class="btn">One</button>
    <button class="btn">Two</button>
  </div>
  <a class="solo" href="#anchor">Solo link</a>
  <button style="display: none">Hidden</button>
  <input id="q" type="text">
  <div style="height: 3000px">tall</div>
</body>
</html>
"""


def _png_size(path: str) -> tuple[int, int]:
    with open(path, "rb") as f:
        header = f.read(24)
    return struct.unpack(">II", header[16:24])


@pytest.fixture
def page_url(tmp_path: Path) -> str:
    html = tmp_path / "fixture.html"
    html.write_text(PAGE_HTML, encoding="utf-8")
    return html.as_uri()


@pytest_asyncio.fixture
async def real_service(tmp_path: Path):
    service = BrowserService(capture_store=CaptureStore(base_dir=tmp_path / "captures"), headless=True)
    yield service
    await service.close()


class TestRealBrowser:
    """Drives BrowserService against a local HTML file."""

    @pytest.mark.asyncio
    async def test_navigate_returns_title(self, real_service: BrowserService, page_url: str):
        await real_service.launch(width=800, height=600)
        await real_service.new_page("t")

        result = await real_service.navigate("t", page_url)

        assert result["title"] == "Fixture Page"

    @pytest.mark.asyncio
    async def test_visible_elements_selectors(self, real_service: BrowserService, page_url: str):
        await real_service.launch(width=800, height=600)
        await real_service.new_page("t")
        await real_service.navigate("t", page_url)

        elements = (await real_service.get_visible_elements("t"))["elements"]
        selectors = [e["selector"] for e in elements]

        assert selectors == ["#go", "button:nth-of-type(1)", "button:nth-of-type(2)", "a.solo", "#q"]
        assert "Hidden" not in [e["text"] for e in elements]
        assert elements[3]["href"].endswith("#anchor")

    @pytest.mark.asyncio
    async def test_full_page_screenshot_is_taller(self, real_service: BrowserService, page_url: str):
        await real_service.launch(width=800, height=600)
        await real_service.new_page("t")
        await real_service.navigate("t", page_url)

        viewport = await real_service.screenshot("t")
        full = await real_service.screenshot("t", full_page=True)

        assert _png_size(viewport["path"])[1] == 600
        assert _png_size(full["path"])[1] > 600

    @pytest.mark.asyncio
    async def test_type_click_and_evaluate(self, real_service: BrowserService, page_url: str):
        await real_service.launch()
        await real_service.new_page("t")
        await real_service.navigate("t", page_url)

        await real_service.type_text("t", "#q", "hello")
        await real_service.click("t", "#go")
        result = await real_service.evaluate("t", "() => document.querySelector('#q').value")

        assert result["result"] == "hello"

    @pytest.mark.asyncio
    async def test_close_removes_capture_dir(self, real_service: BrowserService, page_url: str):
        await real_service.launch()
        await real_service.new_page("t")
        await real_service.navigate("t", page_url)
        shot = await real_service.screenshot("t")
        root = real_service.capture_store.capture_dir

        closed = await real_service.close()

        assert closed["cleanedUp"] == [shot["path"]]
        assert not root.exists()
