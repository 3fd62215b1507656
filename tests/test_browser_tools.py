"""Unit tests for the browser_* tools registered in playwright_ui_mcp/tools/browser/browser.py."""

import base64

import pytest

from conftest import FAKE_PNG
from playwright_ui_mcp.schemas import MCPError
from playwright_ui_mcp.tools import registry
from playwright_ui_mcp.tools.browser import browser as browser_tools
from playwright_ui_mcp.utils import format_tool_result

EXPECTED_TOOLS = {
    "browser_launch",
    "browser_new_page",
    "browser_navigate",
    "browser_screenshot",
    "browser_get_visible_elements",
    "browser_get_content",
    "browser_click",
    "browser_type",
    "browser_wait_for",
    "browser_evaluate",
    "browser_close_page",
    "browser_close",
    "browser_status",
    "browser_list_captures",
}


@pytest.fixture
def tools_service(service, monkeypatch):
    """Point the tool handlers at the fake-backed BrowserService."""
    monkeypatch.setattr(browser_tools, "browser_service", service)
    return service


class TestRegistry:
    """Tests for tool registration and dispatch through the registry."""

    def test_all_browser_tools_registered(self):
        names = {tool["name"] for tool in registry.list_tools()}

        assert EXPECTED_TOOLS <= names

    def test_schemas_declare_required_params(self):
        schemas = {tool["name"]: tool for tool in registry.list_tools()}

        assert schemas["browser_navigate"]["inputSchema"]["required"] == ["pageId", "url"]
        assert schemas["browser_type"]["inputSchema"]["required"] == ["pageId", "selector", "text"]
        assert schemas["browser_launch"]["inputSchema"]["properties"]["width"]["default"] == 1280

    @pytest.mark.asyncio
    async def test_unknown_tool_raises(self):
        with pytest.raises(MCPError) as exc_info:
            await registry.execute("browser_teleport", {})

        assert exc_info.value.code == -32601

    @pytest.mark.asyncio
    async def test_non_object_arguments_raise(self):
        with pytest.raises(MCPError) as exc_info:
            await registry.execute("browser_status", ["not", "a", "dict"])

        assert exc_info.value.code == -32602

    @pytest.mark.asyncio
    async def test_execution_time_is_recorded(self, tools_service):
        result = await registry.execute("browser_status", None)

        assert result.success is True
        assert result.execution_time.endswith("s")


class TestToolResults:
    """Tests for success / error results returned by the tools."""

    @pytest.mark.asyncio
    async def test_operation_before_launch_is_error_result(self, tools_service):
        result = await registry.execute("browser_new_page", {})

        assert result.success is False
        assert result.error_type == "NoActiveSessionError"
        formatted = format_tool_result(result)
        assert formatted["isError"] is True
        assert "browser_launch" in formatted["content"][0]["text"]

    @pytest.mark.asyncio
    async def test_missing_required_param(self, tools_service):
        result = await registry.execute("browser_navigate", {"pageId": "page_1"})

        assert result.success is False
        assert result.error_type == "ValueError"
        assert "url" in result.error_message

    @pytest.mark.asyncio
    async def test_type_accepts_empty_text(self, tools_service, fake_playwright):
        await registry.execute("browser_launch", {})
        await registry.execute("browser_new_page", {"name": "t"})

        result = await registry.execute("browser_type", {"pageId": "t", "selector": "#q", "text": ""})

        assert result.success is True
        fake_playwright.pages[0].fill.assert_awaited_once_with("#q", "")

    @pytest.mark.asyncio
    async def test_type_without_text_is_error(self, tools_service):
        result = await registry.execute("browser_type", {"pageId": "t", "selector": "#q"})

        assert result.success is False
        assert "text" in result.error_message

    @pytest.mark.asyncio
    async def test_launch_and_new_page_flow(self, tools_service):
        launched = await registry.execute("browser_launch", {"width": 800, "height": 600})
        page = await registry.execute("browser_new_page", {})

        assert launched.metadata["sessionId"] == "default"
        assert page.metadata["pageId"] == "page_1"
        assert '"pageId": "page_1"' in page.stdout

    @pytest.mark.asyncio
    async def test_unknown_page_error_lists_pages(self, tools_service):
        await registry.execute("browser_launch", {})
        await registry.execute("browser_new_page", {"name": "main"})

        result = await registry.execute("browser_click", {"pageId": "other", "selector": "#go"})

        assert result.success is False
        assert result.error_type == "PageNotFoundError"
        assert "main" in result.error_message

    @pytest.mark.asyncio
    async def test_screenshot_returns_image_content(self, tools_service):
        await registry.execute("browser_launch", {})
        await registry.execute("browser_new_page", {"name": "t"})

        result = await registry.execute("browser_screenshot", {"pageId": "t", "fullPage": True})
        formatted = format_tool_result(result)

        assert result.success is True
        assert formatted["content"][0]["type"] == "text"
        assert result.metadata["path"] in formatted["content"][0]["text"]
        image = formatted["content"][1]
        assert image["type"] == "image"
        assert image["mimeType"] == "image/png"
        assert base64.b64decode(image["data"]) == FAKE_PNG

    @pytest.mark.asyncio
    async def test_screenshot_selector_miss_is_error(self, tools_service):
        await registry.execute("browser_launch", {})
        await registry.execute("browser_new_page", {"name": "t"})

        result = await registry.execute("browser_screenshot", {"pageId": "t", "selector": "#missing"})

        assert result.success is False
        assert result.error_type == "SelectorNotFoundError"
        assert result.images == []

    @pytest.mark.asyncio
    async def test_get_content_truncates_text(self, tools_service, fake_playwright, monkeypatch):
        monkeypatch.setattr(browser_tools, "BROWSER_CONTENT_MAX_CHARS", 10)
        await registry.execute("browser_launch", {})
        await registry.execute("browser_new_page", {"name": "t"})
        fake_playwright.pages[0].evaluate.return_value = "x" * 50
        fake_playwright.pages[0].content.return_value = "<html>" + "y" * 100 + "</html>"

        result = await registry.execute("browser_get_content", {"pageId": "t"})

        assert result.metadata["textContent"] == "x" * 10
        assert result.metadata["htmlLength"] == 113

    @pytest.mark.asyncio
    async def test_close_reports_cleaned_files(self, tools_service):
        await registry.execute("browser_launch", {})
        await registry.execute("browser_new_page", {"name": "t"})
        shot = await registry.execute("browser_screenshot", {"pageId": "t"})

        listed = await registry.execute("browser_list_captures", {})
        closed = await registry.execute("browser_close", {})
        status = await registry.execute("browser_status", {})

        assert listed.metadata["screenshots"] == [shot.metadata["path"]]
        assert closed.metadata["cleanedUp"] == [shot.metadata["path"]]
        assert status.metadata == {"running": False, "pageCount": 0, "pages": []}

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_error_result(self, tools_service, fake_playwright):
        await registry.execute("browser_launch", {})
        await registry.execute("browser_new_page", {"name": "t"})
        fake_playwright.pages[0].evaluate.side_effect = RuntimeError("ReferenceError: foo is not defined")

        result = await registry.execute("browser_evaluate", {"pageId": "t", "script": "foo()"})

        assert result.success is False
        assert result.error_type == "RuntimeError"
        assert "foo is not defined" in result.error_message
