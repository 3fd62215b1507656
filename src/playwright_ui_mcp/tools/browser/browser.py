"""
Browser Tools

以 Playwright 啟動可見（有頭）的 Chromium，讓 AI 能開頁面、導航、截圖、點擊、輸入與執行腳本。
每個 Tool 對應 BrowserService 的一個方法，所有例外都轉為 isError 結果回傳，不會中斷 MCP 連線。
"""

import logging
from typing import Any

from playwright_ui_mcp.config import BROWSER_CONTENT_MAX_CHARS, BROWSER_DEFAULT_HEIGHT, BROWSER_DEFAULT_WIDTH, BROWSER_WAIT_TIMEOUT
from playwright_ui_mcp.schemas import BrowserToolError, ExecutionResult
from playwright_ui_mcp.services.browser_service import browser_service
from playwright_ui_mcp.tools.base import registry
from playwright_ui_mcp.utils import to_json_text, truncate_string

logger = logging.getLogger(__name__)

PAGE_ID_PROPERTY = {"type": "string", "description": "頁面 ID（由 browser_new_page 回傳）"}


# ═══════════════════════════════════════════════════════════════════════════════
# 輔助函數
# ═══════════════════════════════════════════════════════════════════════════════
def _ok(payload: dict[str, Any]) -> ExecutionResult:
    return ExecutionResult(success=True, stdout=to_json_text(payload), metadata=payload)


def _error(action: str, e: Exception) -> ExecutionResult:
    """將例外轉為錯誤結果；可預期的錯誤只記 warning"""
    if isinstance(e, BrowserToolError):
        logger.warning(f"{action}失敗: {e}")
    else:
        logger.exception(f"{action}失敗: {e}")
    return ExecutionResult(success=False, error_type=type(e).__name__, error_message=str(e))


def _require(args: dict[str, Any], *names: str) -> ExecutionResult | None:
    """檢查必填參數，缺少時回傳錯誤結果"""
    missing = [name for name in names if not args.get(name)]
    if missing:
        return ExecutionResult(success=False, error_type="ValueError", error_message=f"缺少必要參數: {', '.join(missing)}")
    return None


# ═══════════════════════════════════════════════════════════════════════════════
# Tool: browser_launch
# ═══════════════════════════════════════════════════════════════════════════════
@registry.register(
    name="browser_launch",
    description=(
        "啟動可見（有頭）的瀏覽器供 UI 截圖與分析。預設為輕量模式（不錄影），"
        "只有需要記錄一連串操作（除錯、示範）時才開啟 recordVideo。已啟動時會回報既有工作階段。"
    ),
    input_schema={
        "type": "object",
        "properties": {
            "width": {"type": "integer", "default": BROWSER_DEFAULT_WIDTH, "description": f"Viewport 寬度（像素），預設 {BROWSER_DEFAULT_WIDTH}"},
            "height": {"type": "integer", "default": BROWSER_DEFAULT_HEIGHT, "description": f"Viewport 高度（像素），預設 {BROWSER_DEFAULT_HEIGHT}"},
            "slowMo": {"type": "number", "description": "每個操作延遲的毫秒數，只在需要肉眼觀察操作時使用"},
            "recordVideo": {"type": "boolean", "default": False, "description": "是否錄製整個工作階段的影片，預設 false"},
        },
        "required": [],
    },
)
async def handle_browser_launch(args: dict[str, Any]) -> ExecutionResult:
    """處理 browser_launch 請求"""
    try:
        result = await browser_service.launch(
            width=args.get("width"),
            height=args.get("height"),
            slow_mo=args.get("slowMo"),
            record_video=bool(args.get("recordVideo", False)),
        )
        return _ok(result)
    except Exception as e:
        return _error("啟動瀏覽器", e)


# ═══════════════════════════════════════════════════════════════════════════════
# Tool: browser_new_page
# ═══════════════════════════════════════════════════════════════════════════════
@registry.register(
    name="browser_new_page",
    description="在瀏覽器中開啟新分頁。可指定名稱作為頁面 ID，未指定時自動產生 page_1、page_2…",
    input_schema={
        "type": "object",
        "properties": {
            "name": {"type": "string", "description": "頁面名稱 / ID（可選，不可與現有頁面重複）"},
        },
        "required": [],
    },
)
async def handle_browser_new_page(args: dict[str, Any]) -> ExecutionResult:
    """處理 browser_new_page 請求"""
    try:
        return _ok(await browser_service.new_page(args.get("name") or None))
    except Exception as e:
        return _error("建立頁面", e)


# ═══════════════════════════════════════════════════════════════════════════════
# Tool: browser_navigate
# ═══════════════════════════════════════════════════════════════════════════════
@registry.register(
    name="browser_navigate",
    description="在指定頁面導航到 URL，等待網路閒置（networkidle）後回傳頁面標題。",
    input_schema={
        "type": "object",
        "properties": {
            "pageId": PAGE_ID_PROPERTY,
            "url": {"type": "string", "description": "要導航的 URL"},
        },
        "required": ["pageId", "url"],
    },
)
async def handle_browser_navigate(args: dict[str, Any]) -> ExecutionResult:
    """處理 browser_navigate 請求"""
    invalid = _require(args, "pageId", "url")
    if invalid:
        return invalid
    try:
        return _ok(await browser_service.navigate(args["pageId"], args["url"]))
    except Exception as e:
        return _error("導航", e)


# ═══════════════════════════════════════════════════════════════════════════════
# Tool: browser_screenshot
# ═══════════════════════════════════════════════════════════════════════════════
@registry.register(
    name="browser_screenshot",
    description="對頁面截圖供 UI 分析。回傳檔案路徑與 Base64 圖片，支援整頁截圖或以 CSS Selector 截取單一元素。",
    input_schema={
        "type": "object",
        "properties": {
            "pageId": PAGE_ID_PROPERTY,
            "fullPage": {"type": "boolean", "default": False, "description": "是否截取完整頁面（含滾動區域），預設只截可視區域"},
            "selector": {"type": "string", "description": "CSS Selector，截取特定元素（可選）"},
        },
        "required": ["pageId"],
    },
)
async def handle_browser_screenshot(args: dict[str, Any]) -> ExecutionResult:
    """處理 browser_screenshot 請求"""
    invalid = _require(args, "pageId")
    if invalid:
        return invalid
    try:
        result = await browser_service.screenshot(
            args["pageId"],
            full_page=bool(args.get("fullPage", False)),
            selector=args.get("selector") or None,
        )
    except Exception as e:
        return _error("截圖", e)

    return ExecutionResult(
        success=True,
        stdout=f"📷 Screenshot captured: {result['path']}",
        metadata={"path": result["path"], "base64": result["base64"], "message": result["message"]},
        images=[{"data": result["base64"], "mimeType": result["mimeType"]}],
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Tool: browser_get_visible_elements
# ═══════════════════════════════════════════════════════════════════════════════
@registry.register(
    name="browser_get_visible_elements",
    description="列出頁面上所有可見的互動元素（按鈕、連結、輸入框等，最多 100 個），並附上可用於後續操作的 CSS Selector。",
    input_schema={
        "type": "object",
        "properties": {"pageId": PAGE_ID_PROPERTY},
        "required": ["pageId"],
    },
)
async def handle_browser_get_visible_elements(args: dict[str, Any]) -> ExecutionResult:
    """處理 browser_get_visible_elements 請求"""
    invalid = _require(args, "pageId")
    if invalid:
        return invalid
    try:
        return _ok(await browser_service.get_visible_elements(args["pageId"]))
    except Exception as e:
        return _error("取得可見元素", e)


# ═══════════════════════════════════════════════════════════════════════════════
# Tool: browser_get_content
# ═══════════════════════════════════════════════════════════════════════════════
@registry.register(
    name="browser_get_content",
    description=f"取得頁面的可見文字（最多 {BROWSER_CONTENT_MAX_CHARS} 字元）與 HTML 長度。",
    input_schema={
        "type": "object",
        "properties": {"pageId": PAGE_ID_PROPERTY},
        "required": ["pageId"],
    },
)
async def handle_browser_get_content(args: dict[str, Any]) -> ExecutionResult:
    """處理 browser_get_content 請求"""
    invalid = _require(args, "pageId")
    if invalid:
        return invalid
    try:
        content = await browser_service.get_page_content(args["pageId"])
    except Exception as e:
        return _error("取得頁面內容", e)

    return _ok(
        {
            "textContent": truncate_string(content["text"], BROWSER_CONTENT_MAX_CHARS, suffix=""),
            "htmlLength": len(content["html"]),
        }
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Tool: browser_click
# ═══════════════════════════════════════════════════════════════════════════════
@registry.register(
    name="browser_click",
    description="點擊頁面元素（CSS Selector），元素 10 秒內無法點擊即失敗。",
    input_schema={
        "type": "object",
        "properties": {
            "pageId": PAGE_ID_PROPERTY,
            "selector": {"type": "string", "description": "要點擊元素的 CSS Selector，例如 '#submit-btn'"},
        },
        "required": ["pageId", "selector"],
    },
)
async def handle_browser_click(args: dict[str, Any]) -> ExecutionResult:
    """處理 browser_click 請求"""
    invalid = _require(args, "pageId", "selector")
    if invalid:
        return invalid
    try:
        return _ok(await browser_service.click(args["pageId"], args["selector"]))
    except Exception as e:
        return _error("點擊", e)


# ═══════════════════════════════════════════════════════════════════════════════
# Tool: browser_type
# ═══════════════════════════════════════════════════════════════════════════════
@registry.register(
    name="browser_type",
    description="將文字填入輸入框（取代原有內容）。",
    input_schema={
        "type": "object",
        "properties": {
            "pageId": PAGE_ID_PROPERTY,
            "selector": {"type": "string", "description": "輸入框的 CSS Selector"},
            "text": {"type": "string", "description": "要填入的文字"},
        },
        "required": ["pageId", "selector", "text"],
    },
)
async def handle_browser_type(args: dict[str, Any]) -> ExecutionResult:
    """處理 browser_type 請求"""
    invalid = _require(args, "pageId", "selector")
    if invalid:
        return invalid
    if not isinstance(args.get("text"), str):
        return ExecutionResult(success=False, error_type="ValueError", error_message="缺少必要參數: text")
    try:
        return _ok(await browser_service.type_text(args["pageId"], args["selector"], args["text"]))
    except Exception as e:
        return _error("輸入", e)


# ═══════════════════════════════════════════════════════════════════════════════
# Tool: browser_wait_for
# ═══════════════════════════════════════════════════════════════════════════════
@registry.register(
    name="browser_wait_for",
    description="等待元素出現並可見。",
    input_schema={
        "type": "object",
        "properties": {
            "pageId": PAGE_ID_PROPERTY,
            "selector": {"type": "string", "description": "要等待的 CSS Selector"},
            "timeout": {"type": "integer", "default": BROWSER_WAIT_TIMEOUT, "description": f"超時時間（毫秒），預設 {BROWSER_WAIT_TIMEOUT}"},
        },
        "required": ["pageId", "selector"],
    },
)
async def handle_browser_wait_for(args: dict[str, Any]) -> ExecutionResult:
    """處理 browser_wait_for 請求"""
    invalid = _require(args, "pageId", "selector")
    if invalid:
        return invalid
    try:
        return _ok(await browser_service.wait_for_selector(args["pageId"], args["selector"], args.get("timeout")))
    except Exception as e:
        return _error("等待元素", e)


# ═══════════════════════════════════════════════════════════════════════════════
# Tool: browser_evaluate
# ═══════════════════════════════════════════════════════════════════════════════
@registry.register(
    name="browser_evaluate",
    description="在頁面中執行 JavaScript 並回傳結果，例如 'document.title' 或 '() => window.location.href'。",
    input_schema={
        "type": "object",
        "properties": {
            "pageId": PAGE_ID_PROPERTY,
            "script": {"type": "string", "description": "要執行的 JavaScript 表達式或函式"},
        },
        "required": ["pageId", "script"],
    },
)
async def handle_browser_evaluate(args: dict[str, Any]) -> ExecutionResult:
    """處理 browser_evaluate 請求"""
    invalid = _require(args, "pageId", "script")
    if invalid:
        return invalid
    try:
        return _ok(await browser_service.evaluate(args["pageId"], args["script"]))
    except Exception as e:
        return _error("JavaScript 執行", e)


# ═══════════════════════════════════════════════════════════════════════════════
# Tool: browser_close_page
# ═══════════════════════════════════════════════════════════════════════════════
@registry.register(
    name="browser_close_page",
    description="關閉指定的頁面 / 分頁。",
    input_schema={
        "type": "object",
        "properties": {"pageId": PAGE_ID_PROPERTY},
        "required": ["pageId"],
    },
)
async def handle_browser_close_page(args: dict[str, Any]) -> ExecutionResult:
    """處理 browser_close_page 請求"""
    invalid = _require(args, "pageId")
    if invalid:
        return invalid
    try:
        return _ok(await browser_service.close_page(args["pageId"]))
    except Exception as e:
        return _error("關閉頁面", e)


# ═══════════════════════════════════════════════════════════════════════════════
# Tool: browser_close
# ═══════════════════════════════════════════════════════════════════════════════
@registry.register(
    name="browser_close",
    description="關閉瀏覽器並刪除所有截圖與錄影。UI 分析結束後務必呼叫，確保暫存檔被清理。",
    input_schema={"type": "object", "properties": {}, "required": []},
)
async def handle_browser_close(args: dict[str, Any]) -> ExecutionResult:
    """處理 browser_close 請求"""
    try:
        return _ok(await browser_service.close())
    except Exception as e:
        return _error("關閉瀏覽器", e)


# ═══════════════════════════════════════════════════════════════════════════════
# Tool: browser_status
# ═══════════════════════════════════════════════════════════════════════════════
@registry.register(
    name="browser_status",
    description="取得目前瀏覽器工作階段狀態（是否執行中、頁面清單、暫存目錄）。",
    input_schema={"type": "object", "properties": {}, "required": []},
)
async def handle_browser_status(args: dict[str, Any]) -> ExecutionResult:
    """處理 browser_status 請求"""
    return _ok(browser_service.status())


# ═══════════════════════════════════════════════════════════════════════════════
# Tool: browser_list_captures
# ═══════════════════════════════════════════════════════════════════════════════
@registry.register(
    name="browser_list_captures",
    description="列出暫存區中目前的截圖與錄影檔案路徑。",
    input_schema={"type": "object", "properties": {}, "required": []},
)
async def handle_browser_list_captures(args: dict[str, Any]) -> ExecutionResult:
    """處理 browser_list_captures 請求"""
    return _ok(browser_service.list_captures())
