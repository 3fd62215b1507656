"""
Tool Registry 基礎架構

提供 Tool 註冊與執行的核心機制
"""

import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, ClassVar

from fastapi import Request

from playwright_ui_mcp.schemas import ExecutionResult, MCPError

logger = logging.getLogger(__name__)

ToolHandler = Callable[..., Awaitable[ExecutionResult]]


@dataclass
class ToolDefinition:
    """Tool 定義，包含 schema 與 handler"""

    name: str
    description: str
    input_schema: dict[str, Any]
    handler: ToolHandler

    def to_schema(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description, "inputSchema": self.input_schema}


class ToolRegistry:
    """
    Tool 註冊表：集中管理所有 MCP Tools

    使用單例模式，確保全域只有一個 registry
    """

    _instance: ClassVar["ToolRegistry | None"] = None

    _tools: dict[str, ToolDefinition]

    def __new__(cls) -> "ToolRegistry":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._tools = {}
        return cls._instance

    def register(self, name: str, description: str, input_schema: dict[str, Any]) -> Callable[[ToolHandler], ToolHandler]:
        """
        Decorator 用於註冊 Tool

        使用方式:
            @registry.register(
                name="browser_status",
                description="取得瀏覽器狀態",
                input_schema={...}
            )
            async def handle_browser_status(args: dict) -> ExecutionResult:
                ...
        """

        def decorator(handler: ToolHandler) -> ToolHandler:
            if name in self._tools:
                logger.warning(f"Tool {name} 重複註冊，將覆蓋先前的定義")
            self._tools[name] = ToolDefinition(name=name, description=description, input_schema=input_schema, handler=handler)
            return handler

        return decorator

    def list_tools(self) -> list[dict[str, Any]]:
        """列出所有 Tool 的 schema"""
        return [t.to_schema() for t in self._tools.values()]

    def get(self, name: str) -> ToolDefinition | None:
        return self._tools.get(name)

    async def execute(self, name: str, args: dict[str, Any] | None, request: Request | None = None) -> ExecutionResult:
        """
        執行指定的 Tool

        Args:
            name: Tool 名稱
            args: Tool 參數
            request: FastAPI Request（stdio 模式為 None）

        Returns:
            ExecutionResult: 執行結果（含耗時）

        Raises:
            MCPError: Tool 不存在或參數格式錯誤
        """
        tool = self._tools.get(name)
        if not tool:
            raise MCPError(-32601, f"Tool not found: {name}")
        if args is None:
            args = {}
        if not isinstance(args, dict):
            raise MCPError(-32602, f"Invalid params: arguments of {name} must be an object")

        start_time = time.perf_counter()

        # 檢查 handler 是否需要 request 參數
        params = inspect.signature(tool.handler).parameters
        if "request" in params and request is not None:
            result = await tool.handler(args, request=request)
        else:
            result = await tool.handler(args)

        result.execution_time = f"{time.perf_counter() - start_time:.3f}s"
        return result

    def get_tool_count(self) -> int:
        """取得已註冊的工具數量"""
        return len(self._tools)


# 全域註冊表（單例）
registry = ToolRegistry()
