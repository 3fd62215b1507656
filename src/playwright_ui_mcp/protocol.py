"""
MCP JSON-RPC 協議處理

HTTP 與 stdio 兩種傳輸共用同一套 method 路由。
"""

import logging
from typing import Any

from fastapi import Request

from playwright_ui_mcp.config import MCP_PROTOCOL_VERSION, SERVER_NAME, SERVER_VERSION
from playwright_ui_mcp.schemas import MCPError
from playwright_ui_mcp.security import filter_allowed_tools, is_tool_allowed
from playwright_ui_mcp.tools import registry
from playwright_ui_mcp.utils import format_tool_result

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"


def jsonrpc_error(req_id: Any, code: int, message: str, data: Any = None) -> dict[str, Any]:
    error: dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": JSONRPC_VERSION, "id": req_id, "error": error}


async def dispatch(body: Any, request: Request | None = None) -> dict[str, Any] | None:
    """
    處理單一 JSON-RPC 訊息

    Args:
        body: 已解析的 JSON 訊息
        request: FastAPI Request（HTTP 模式，用於權限檢查）；stdio 模式為 None

    Returns:
        dict | None: JSON-RPC 回應；notification 不需回應時為 None
    """
    if not isinstance(body, dict):
        return jsonrpc_error(None, -32600, "Invalid Request")

    req_id = body.get("id")
    method = body.get("method")

    # notification（沒有 id）不回應
    if isinstance(method, str) and method.startswith("notifications/"):
        logger.debug(f"收到通知: {method}")
        return None

    try:
        if method == "initialize":
            result = _handle_initialize()
        elif method == "ping":
            result = {}
        elif method == "tools/list":
            result = {"tools": filter_allowed_tools(request, registry.list_tools())}
        elif method == "tools/call":
            result = await _handle_tools_call(body, request)
        else:
            raise MCPError(-32601, f"Method not found: {method}")

        return {"jsonrpc": JSONRPC_VERSION, "id": req_id, "result": result}

    except MCPError as e:
        return jsonrpc_error(req_id, e.code, e.message, e.data)
    except ValueError as e:
        logger.exception(f"參數錯誤: {e}")
        return jsonrpc_error(req_id, -32602, f"Invalid params: {e}")
    except Exception as e:
        logger.exception(f"處理請求失敗: {e}")
        return jsonrpc_error(req_id, -32603, f"Internal error: {e}")


def _handle_initialize() -> dict[str, Any]:
    """處理 initialize method"""
    return {
        "protocolVersion": MCP_PROTOCOL_VERSION,
        "capabilities": {"tools": {}},
        "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
    }


async def _handle_tools_call(body: dict[str, Any], request: Request | None) -> dict[str, Any]:
    """
    處理 tools/call method - 委派給 registry，並檢查權限

    Raises:
        MCPError: 權限不足或 Tool 不存在
    """
    params = body.get("params") or {}
    tool_name = params.get("name")
    args = params.get("arguments") or {}

    if not tool_name:
        raise MCPError(-32602, "Invalid params: missing tool name")

    if not is_tool_allowed(request, tool_name):
        logger.warning(f"Tool '{tool_name}' 權限不足")
        raise MCPError(
            code=-32603,
            message=f"Permission denied: Tool '{tool_name}' is not allowed for this API Key",
            data={"tool": tool_name},
        )

    exec_result = await registry.execute(tool_name, args, request)
    logger.info(f"✅ Tool {tool_name} 執行完成 ({exec_result.execution_time}, success={exec_result.success})")
    return format_tool_result(exec_result)
