"""
Tools 模組入口

集中管理所有 MCP Tools，自動載入並註冊到 Registry
"""

import logging

from playwright_ui_mcp.tools.base import ToolDefinition, ToolHandler, ToolRegistry, registry

# 自動載入所有 Tool 模組（副作用：自動註冊到 registry）
from playwright_ui_mcp.tools.browser import browser  # noqa: F401

logger = logging.getLogger(__name__)
logger.info(f"🧰 已載入 {registry.get_tool_count()} 個 Tool")

__all__ = [
    "registry",
    "ToolRegistry",
    "ToolDefinition",
    "ToolHandler",
]
