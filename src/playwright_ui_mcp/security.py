"""
安全與認證模組

處理 API Key 驗證與 Tool 權限過濾，支援多 Key 權限管理
"""
import fnmatch
import logging

from fastapi import HTTPException, Request, status

from playwright_ui_mcp.config import API_KEYS

logger = logging.getLogger(__name__)

# 用於儲存 request state 的 key
STATE_ALLOWED_TOOLS = "allowed_tools"
STATE_EXCLUDED_TOOLS = "excluded_tools"


async def verify_api_key(request: Request) -> list[str]:
    """
    驗證 API Key 並回傳允許的 Tools 清單

    Args:
        request: FastAPI Request 物件

    Returns:
        list[str]: 允許的 tool 名稱列表，若為 ["*"] 表示所有 tools

    Raises:
        HTTPException: 驗證失敗時拋出 401 或 403
    """
    # 若無設定任何 API Key，則跳過認證（開發模式）
    if not API_KEYS:
        request.state.allowed_tools = ["*"]
        request.state.excluded_tools = []
        return ["*"]

    client_host = request.client.host if request.client else "unknown"
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        logger.warning(f"Authorization Header 缺失: {client_host}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Authorization Header. Expected format: 'Authorization: Bearer <token>'",
            headers={"WWW-Authenticate": "Bearer"},
        )

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        logger.warning(f"無效的 Authorization 格式: {client_host}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Authorization format. Expected 'Bearer <token>'",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = parts[1]
    if token not in API_KEYS:
        logger.warning(f"無效的 API Key 嘗試: {client_host}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid API Key")

    allowed_tools: list[str] = API_KEYS[token].get("tools", ["*"])
    excluded_tools: list[str] = API_KEYS[token].get("exclude_tools", [])
    request.state.allowed_tools = allowed_tools
    request.state.excluded_tools = excluded_tools
    return allowed_tools


def get_allowed_tools(request: Request | None) -> list[str]:
    """從 request state 取得允許的 tools 清單（stdio 模式沒有 request，全部允許）"""
    if request is None:
        return ["*"]
    return getattr(request.state, STATE_ALLOWED_TOOLS, ["*"])


def get_excluded_tools(request: Request | None) -> list[str]:
    """從 request state 取得排除的 tools 清單"""
    if request is None:
        return []
    return getattr(request.state, STATE_EXCLUDED_TOOLS, [])


def _matches(tool_name: str, patterns: list[str]) -> bool:
    return any(fnmatch.fnmatch(tool_name, pattern) for pattern in patterns)


def is_tool_allowed(request: Request | None, tool_name: str) -> bool:
    """
    檢查指定的 tool 是否被允許執行

    支援 wildcard 模式匹配：
    - ["*"] 表示所有 tools 都允許
    - ["browser_*"] 表示所有 browser_ 開頭的 tools 都允許

    exclude_tools 排除清單優先於允許清單，例如 ["browser_evaluate"]。
    """
    if _matches(tool_name, get_excluded_tools(request)):
        return False

    allowed_tools = get_allowed_tools(request)
    if "*" in allowed_tools:
        return True
    return _matches(tool_name, allowed_tools)


def filter_allowed_tools(request: Request | None, all_tools: list[dict]) -> list[dict]:
    """根據權限過濾 tools 清單（每個 tool 為含 "name" 鍵的 dict）"""
    return [tool for tool in all_tools if is_tool_allowed(request, tool.get("name", ""))]
