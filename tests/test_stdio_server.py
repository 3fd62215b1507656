"""Tests for the newline-delimited stdio transport."""

import asyncio
import json

import pytest

from playwright_ui_mcp import stdio_server
from playwright_ui_mcp.tools.browser import browser as browser_tools


class TestHandleLine:
    """Tests for handle_line()."""

    @pytest.mark.asyncio
    async def test_blank_line_is_ignored(self):
        assert await stdio_server.handle_line("   \n") is None

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        response = await stdio_server.handle_line("{oops\n")

        assert response["error"]["code"] == -32700
        assert response["id"] is None

    @pytest.mark.asyncio
    async def test_request_is_dispatched(self):
        response = await stdio_server.handle_line(json.dumps({"jsonrpc": "2.0", "id": 7, "method": "ping"}) + "\n")

        assert response == {"jsonrpc": "2.0", "id": 7, "result": {}}

    @pytest.mark.asyncio
    async def test_notification_produces_no_output(self):
        line = json.dumps({"jsonrpc": "2.0", "method": "notifications/initialized"})

        assert await stdio_server.handle_line(line) is None


class TestWriteMessage:
    """Tests for _write_message()."""

    def test_one_json_object_per_line(self, capsys):
        stdio_server._write_message({"jsonrpc": "2.0", "id": 1, "result": {"text": "中文"}})

        out = capsys.readouterr().out
        assert out.endswith("\n")
        assert out.count("\n") == 1
        assert json.loads(out) == {"jsonrpc": "2.0", "id": 1, "result": {"text": "中文"}}


def _feed(reader: asyncio.StreamReader, *messages: dict) -> None:
    for message in messages:
        reader.feed_data((json.dumps(message) + "\n").encode("utf-8"))
    reader.feed_eof()


def _responses(capsys) -> list[dict]:
    return [json.loads(line) for line in capsys.readouterr().out.splitlines()]


class TestReadLoop:
    """Tests for _read_loop() framing and oversized messages."""

    @pytest.mark.asyncio
    async def test_large_request_within_limit_is_answered(self, service, monkeypatch, capsys):
        monkeypatch.setattr(browser_tools, "browser_service", service)
        reader = asyncio.StreamReader(limit=stdio_server.STDIO_READ_LIMIT)
        script = "() => '" + "x" * 70_000 + "'"
        _feed(
            reader,
            {"jsonrpc": "2.0", "id": 1, "method": "tools/call", "params": {"name": "browser_evaluate", "arguments": {"pageId": "p", "script": script}}},
            {"jsonrpc": "2.0", "id": 2, "method": "ping"},
        )

        await stdio_server._read_loop(reader)

        responses = _responses(capsys)
        assert [r["id"] for r in responses] == [1, 2]
        assert responses[0]["result"]["isError"] is True
        assert responses[1]["result"] == {}

    @pytest.mark.asyncio
    async def test_line_over_limit_is_rejected_and_reading_continues(self, capsys):
        reader = asyncio.StreamReader(limit=1024)
        _feed(
            reader,
            {"jsonrpc": "2.0", "id": 1, "method": "ping", "params": {"padding": "x" * 4096}},
            {"jsonrpc": "2.0", "id": 2, "method": "ping"},
        )

        await stdio_server._read_loop(reader)

        responses = _responses(capsys)
        assert responses[0]["error"]["code"] == -32600
        assert responses[-1] == {"jsonrpc": "2.0", "id": 2, "result": {}}


class TestServeStdio:
    """Tests for serve_stdio() shutdown handling."""

    @pytest.mark.asyncio
    async def test_eof_closes_running_browser(self, service, fake_playwright, monkeypatch, capsys):
        monkeypatch.setattr(browser_tools, "browser_service", service)
        monkeypatch.setattr(stdio_server, "browser_service", service)
        reader = asyncio.StreamReader(limit=stdio_server.STDIO_READ_LIMIT)
        _feed(
            reader,
            {"jsonrpc": "2.0", "id": 1, "method": "tools/call", "params": {"name": "browser_launch", "arguments": {}}},
            {"jsonrpc": "2.0", "id": 2, "method": "tools/call", "params": {"name": "browser_new_page", "arguments": {}}},
        )

        await stdio_server.serve_stdio(reader)

        responses = _responses(capsys)
        assert [r["result"]["isError"] for r in responses] == [False, False]
        assert service.is_running is False
        fake_playwright.context.close.assert_awaited_once()
        fake_playwright.browser.close.assert_awaited_once()
        fake_playwright.driver.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_eof_without_session_does_not_close(self, service, fake_playwright, monkeypatch):
        monkeypatch.setattr(stdio_server, "browser_service", service)
        reader = asyncio.StreamReader()
        reader.feed_eof()

        await stdio_server.serve_stdio(reader)

        fake_playwright.driver.stop.assert_not_awaited()
