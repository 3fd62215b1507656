"""
PLAYWRIGHT-UI-MCP HTTP 伺服器

FastAPI 應用：POST /mcp 處理 MCP JSON-RPC，GET /mcp 為健康檢查。
"""

import logging
import platform
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from playwright_ui_mcp.config import API_KEYS, MCP_PROTOCOL_VERSION, SERVER_NAME, SERVER_VERSION
from playwright_ui_mcp.protocol import dispatch, jsonrpc_error
from playwright_ui_mcp.schemas import MCPError
from playwright_ui_mcp.security import verify_api_key
from playwright_ui_mcp.services.browser_service import browser_service
from playwright_ui_mcp.tools import registry

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Lifespan 管理 - 關閉時收掉瀏覽器與暫存區
# ═══════════════════════════════════════════════════════════════════════════════
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI Lifespan 管理器

    uvicorn 收到 SIGINT / SIGTERM 時會走到關閉階段，此時盡力關閉瀏覽器工作階段。
    """
    logger.info(f"🚀 MCP 伺服器初始化中，已載入 {registry.get_tool_count()} 個 Tools")

    yield  # FastAPI 運行中

    if browser_service.is_running:
        logger.info("🛑 正在關閉瀏覽器工作階段...")
        try:
            await browser_service.close()
        except Exception as e:
            logger.exception(f"關閉瀏覽器工作階段時發生錯誤: {e}")


# ═══════════════════════════════════════════════════════════════════════════════
# FastAPI 應用實例
# ═══════════════════════════════════════════════════════════════════════════════
app = FastAPI(
    title="PLAYWRIGHT-UI-MCP",
    description="MCP Server exposing a headed Playwright browser",
    version=SERVER_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"]
)


# ═══════════════════════════════════════════════════════════════════════════════
# HTTP 異常處理
# ═══════════════════════════════════════════════════════════════════════════════
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """自定義 HTTP 異常處理，確保 MCP 協議格式"""
    return JSONResponse(
        status_code=exc.status_code,
        headers=exc.headers,
        content={
            "jsonrpc": "2.0",
            "id": None,
            "error": {
                "code": -32000 if exc.status_code == 401 else -32001,
                "message": exc.detail,
                "status_code": exc.status_code
            }
        }
    )


@app.exception_handler(MCPError)
async def mcp_exception_handler(request: Request, exc: MCPError):
    """處理 MCPError 異常"""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonrpc_error(None, exc.code, exc.message, exc.data),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# MCP 端點
# ═══════════════════════════════════════════════════════════════════════════════
@app.post("/mcp")
async def mcp_endpoint(req: Request):
    """MCP 協議端點，受 Bearer Token 保護"""
    await verify_api_key(req)

    try:
        body = await req.json()
    except ValueError:
        logger.warning("請求 JSON 解析失敗")
        return jsonrpc_error(None, -32700, "Parse error: Invalid JSON")

    response = await dispatch(body, req)
    if response is None:
        # notification：無回應內容
        return Response(status_code=status.HTTP_202_ACCEPTED)
    return response


@app.get("/mcp")
async def mcp_get(req: Request) -> dict:
    """健康檢查端點，受 Bearer Token 保護。"""
    await verify_api_key(req)

    return {
        "status": "ok",
        "authenticated": True,
        "protocol": f"MCP {MCP_PROTOCOL_VERSION}",
        "server": SERVER_NAME,
        "version": SERVER_VERSION,
        "tools_loaded": registry.get_tool_count(),
        "security": {
            "api_key_required": bool(API_KEYS),
            "api_keys_count": len(API_KEYS),
            "auth_method": "Authorization: Bearer <token>" if API_KEYS else "None (Development Mode)"
        },
        "python": {
            "version": platform.python_version(),
            "implementation": platform.python_implementation(),
            "platform": platform.platform(),
        },
        "browser": browser_service.status(),
    }
