"""
輔助函數工具箱

包含通用工具函數與格式化功能
"""
import json
import logging
from typing import Any

from playwright_ui_mcp.schemas import ExecutionResult

logger = logging.getLogger(__name__)


def format_tool_result(result: ExecutionResult) -> dict[str, Any]:
    """
    格式化 ExecutionResult 為 MCP 回應格式

    截圖結果會額外附上 image content，讓支援圖片的 client 直接顯示。

    Args:
        result: 執行結果

    Returns:
        MCP 格式的字典
    """
    text_output = result.to_text_output()
    content: list[dict[str, Any]] = [{"type": "text", "text": text_output}]
    for image in result.images:
        content.append({"type": "image", "data": image["data"], "mimeType": image.get("mimeType", "image/png")})

    response: dict[str, Any] = {"content": content, "isError": not result.success}
    if result.metadata:
        response["metadata"] = result.metadata

    logger.debug(
        f"📊 MCP 回覆格式化完成 | "
        f"文本長度: {len(text_output):,} 字符 | "
        f"圖片: {len(result.images)} | "
        f"成功: {result.success}"
    )
    return response


def to_json_text(data: Any) -> str:
    """將結果轉為縮排 JSON 文字（保留非 ASCII 字元）"""
    return json.dumps(data, ensure_ascii=False, indent=2, default=str)


def truncate_string(text: str, max_length: int = 100, suffix: str = "...") -> str:
    """截斷過長的字串"""
    if len(text) > max_length:
        return text[:max_length] + suffix
    return text
