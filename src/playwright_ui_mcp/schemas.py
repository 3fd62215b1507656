"""
資料模型定義

包含 ExecutionResult、MCPError 與瀏覽器操作的錯誤類型
"""
from dataclasses import dataclass, field
from typing import Any


@dataclass
class ExecutionResult:
    """統一的執行結果格式"""
    success: bool
    stdout: str = ""
    execution_time: str = "0.000s"
    metadata: dict[str, Any] = field(default_factory=dict)
    images: list[dict[str, str]] = field(default_factory=list)
    error_type: str = ""
    error_message: str = ""

    def to_text_output(self) -> str:
        """轉換為人類可讀的文字格式"""
        lines: list[str] = []
        if not self.success:
            lines.append(f"❌ Error: [{self.error_type}] {self.error_message}")
        if self.stdout:
            lines.append(self.stdout)
        lines.append(f"⏱️ Execution Time: {self.execution_time}")
        return "\n".join(lines)


class MCPError(Exception):
    """MCP 協議專用的錯誤類型"""
    def __init__(
        self,
        code: int,
        message: str,
        data: dict[str, Any] | None = None
    ):
        self.code = code
        self.message = message
        self.data = data
        super().__init__(message)


# ═══════════════════════════════════════════════════════════════════════════════
# 瀏覽器操作錯誤
# ═══════════════════════════════════════════════════════════════════════════════
class BrowserToolError(Exception):
    """瀏覽器工具可預期的錯誤（前置條件不成立、逾時等）"""


class NoActiveSessionError(BrowserToolError):
    def __init__(self, operation: str = "") -> None:
        prefix = f"{operation}: " if operation else ""
        super().__init__(f"{prefix}沒有執行中的瀏覽器工作階段，請先呼叫 browser_launch")


class PageNotFoundError(BrowserToolError):
    def __init__(self, page_id: str, available: list[str], operation: str = "") -> None:
        self.page_id = page_id
        self.available = list(available)
        self.operation = operation
        known = ", ".join(self.available) or "none"
        prefix = f"{operation}: " if operation else ""
        super().__init__(f'{prefix}找不到頁面 "{page_id}"，目前可用頁面: {known}')


class PageIdInUseError(BrowserToolError):
    def __init__(self, page_id: str) -> None:
        self.page_id = page_id
        super().__init__(f'頁面 ID "{page_id}" 已被使用，請先關閉該頁面或改用其他名稱')


class SelectorNotFoundError(BrowserToolError):
    def __init__(self, selector: str) -> None:
        self.selector = selector
        super().__init__(f'找不到元素: "{selector}"')


class BrowserTimeoutError(BrowserToolError):
    """click / type / wait_for 超過等待時間"""


class CaptureIOError(BrowserToolError):
    """截圖暫存區無法建立或讀取檔案"""
