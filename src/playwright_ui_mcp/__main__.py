"""
MCP Server 主入口

可透過 python -m playwright_ui_mcp 或 playwright-ui-mcp 指令啟動伺服器。
MCP_TRANSPORT=http（預設）啟動 FastAPI；MCP_TRANSPORT=stdio 走標準輸入輸出。
"""

import asyncio
import logging
import sys

from playwright_ui_mcp.base.logging_config import setup_logging
from playwright_ui_mcp.config import (
    API_KEYS,
    BROWSER_HEADLESS,
    CAPTURE_BASE_DIR,
    MCP_HOST,
    MCP_PORT,
    MCP_TRANSPORT,
    SERVER_VERSION,
)


def main():
    """主函式"""
    stdio_mode = MCP_TRANSPORT == "stdio"

    # 設定日誌（stdio 模式下 stdout 留給協定）
    setup_logging(console_stream=sys.stderr if stdio_mode else sys.stdout)
    logger = logging.getLogger(__name__)

    from playwright_ui_mcp.tools import registry

    logger.info(f"🚀 Playwright UI MCP 伺服器啟動 [v{SERVER_VERSION}]")
    logger.info(f"🐍 Python: {sys.version}")
    logger.info(f"📂 截圖暫存區上層目錄: {CAPTURE_BASE_DIR}")
    logger.info(f"🖥️ Headless: {BROWSER_HEADLESS}")
    logger.info(f"🔧 已載入 {registry.get_tool_count()} 個 Tools")

    if stdio_mode:
        from playwright_ui_mcp.stdio_server import serve_stdio

        asyncio.run(serve_stdio())
        return

    if MCP_TRANSPORT != "http":
        logger.error(f"❌ 未知的 MCP_TRANSPORT: {MCP_TRANSPORT}（可用: http、stdio）")
        sys.exit(2)

    if API_KEYS:
        logger.info(f"🔐 API Key 認證: 已啟用，共 {len(API_KEYS)} 組 Key")
    else:
        logger.warning("⚠️ API Key 認證: 已停用（開發模式）")

    import uvicorn

    from playwright_ui_mcp.app import app

    uvicorn.run(app, host=MCP_HOST, port=MCP_PORT)


if __name__ == "__main__":
    main()
