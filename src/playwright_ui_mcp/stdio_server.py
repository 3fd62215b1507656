"""
stdio 傳輸

每行一則 JSON-RPC 訊息：從 stdin 讀取請求、回應寫到 stdout。
stdout 僅供協定使用，日誌一律走 stderr。
"""

import asyncio
import json
import logging
import signal
import sys
from typing import Any

from playwright_ui_mcp.protocol import dispatch, jsonrpc_error
from playwright_ui_mcp.services.browser_service import browser_service

logger = logging.getLogger(__name__)

# 單行訊息上限；大型 evaluate 腳本或輸入文字會超過 asyncio 預設的 64 KiB
STDIO_READ_LIMIT = 16 * 1024 * 1024


def _write_message(message: dict[str, Any]) -> None:
    sys.stdout.write(json.dumps(message, ensure_ascii=False) + "\n")
    sys.stdout.flush()


async def handle_line(line: str) -> dict[str, Any] | None:
    """解析並處理一行輸入，回傳要寫出的回應（空行或 notification 為 None）"""
    line = line.strip()
    if not line:
        return None
    try:
        body = json.loads(line)
    except json.JSONDecodeError:
        logger.warning("請求 JSON 解析失敗")
        return jsonrpc_error(None, -32700, "Parse error: Invalid JSON")
    return await dispatch(body)


async def _read_loop(reader: asyncio.StreamReader) -> None:
    while True:
        try:
            raw = await reader.readline()
        except ValueError as e:
            # 單行超過上限：reader 已丟棄該行，回報錯誤後繼續讀取
            logger.warning(f"請求超過長度上限 ({STDIO_READ_LIMIT} bytes)，已捨棄: {e}")
            _write_message(jsonrpc_error(None, -32600, "Invalid Request: message exceeds size limit"))
            continue
        if not raw:
            logger.info("stdin 已關閉")
            return
        response = await handle_line(raw.decode("utf-8", errors="replace"))
        if response is not None:
            _write_message(response)


async def _open_stdin_reader() -> asyncio.StreamReader:
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=STDIO_READ_LIMIT)
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
    return reader


async def serve_stdio(reader: asyncio.StreamReader | None = None) -> None:
    """
    執行 stdio 伺服器，直到輸入結束或收到 SIGINT / SIGTERM

    Args:
        reader: 輸入串流，預設為 stdin
    """
    loop = asyncio.get_running_loop()
    if reader is None:
        reader = await _open_stdin_reader()

    stop_event = asyncio.Event()
    installed_signals: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
            installed_signals.append(sig)
        except (NotImplementedError, RuntimeError):
            # Windows 的事件迴圈不支援 add_signal_handler
            pass

    logger.info("🚀 Playwright UI MCP Server running on stdio")
    read_task = asyncio.create_task(_read_loop(reader))
    stop_task = asyncio.create_task(stop_event.wait())
    try:
        await asyncio.wait({read_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        if read_task.done() and not read_task.cancelled() and read_task.exception() is not None:
            logger.error(f"❌ stdin 讀取迴圈異常結束: {read_task.exception()!r}")
    finally:
        for task in (read_task, stop_task):
            task.cancel()
        for sig in installed_signals:
            loop.remove_signal_handler(sig)
        if browser_service.is_running:
            logger.info("🛑 正在關閉瀏覽器工作階段...")
            try:
                await browser_service.close()
            except Exception as e:
                logger.exception(f"關閉瀏覽器工作階段時發生錯誤: {e}")
