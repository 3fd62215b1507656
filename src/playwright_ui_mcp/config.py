"""
環境設定與常數

集中管理所有配置項，從環境變數載入。
匯入本模組不會建立任何目錄（截圖暫存區採延遲建立）。
"""

import base64
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# 基本設定
# ═══════════════════════════════════════════════════════════════════════════════
# 專案根目錄
PROJECT_ROOT = Path(__file__).parent.parent.parent

# 載入 .env 檔案
ENV_PATH = PROJECT_ROOT / ".env"
if ENV_PATH.exists():
    load_dotenv(ENV_PATH)
    logger.info(f"📁 已載入環境設定檔: {ENV_PATH}")

SERVER_NAME = "playwright-ui-mcp"
SERVER_VERSION = "1.0.0"
MCP_PROTOCOL_VERSION = "2024-11-05"


def _get_bool(key: str, default: bool) -> bool:
    """從環境變數讀取布林值"""
    value = os.getenv(key)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _get_log_level(key: str, default: int) -> int:
    """從環境變數讀取日誌等級（名稱或數字）"""
    value = os.getenv(key, "").strip()
    if not value:
        return default
    if value.isdigit():
        return int(value)
    level = logging.getLevelName(value.upper())
    return level if isinstance(level, int) else default


# ═══════════════════════════════════════════════════════════════════════════════
# 認證設定 - 多 API Key 權限管理
# ═══════════════════════════════════════════════════════════════════════════════
# MCP_API_KEYS 結構（JSON 陣列，可 Base64 編碼）:
# [
#     {
#         "api_key": "xxx",
#         "tools": ["*"] 或 ["browser_*", ...],   # 允許的 tools
#         "exclude_tools": ["browser_evaluate"]    # 排除的 tools（可選）
#     }
# ]


class APIKeyManager:
    """API Keys 管理類別"""

    @staticmethod
    def _load_json_env(key: str, default: Any = None) -> Any:
        """從環境變數載入 JSON 格式的值（支援 Base64 編碼）"""
        value = os.getenv(key, "")
        if not value:
            return default
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            try:
                return json.loads(base64.b64decode(value).decode("utf-8"))
            except (ValueError, UnicodeDecodeError):
                logger.warning(f"⚠️ 無法解析環境變數 {key}，已忽略")
                return default

    @classmethod
    def get_api_keys(cls) -> dict[str, dict]:
        """取得 MCP API Keys"""
        raw = cls._load_json_env("MCP_API_KEYS", [])
        if not raw:
            return {}
        return {item["api_key"]: {k: v for k, v in item.items() if k != "api_key"} for item in raw if item.get("api_key")}


API_KEYS = APIKeyManager.get_api_keys()

# ═══════════════════════════════════════════════════════════════════════════════
# 伺服器設定
# ═══════════════════════════════════════════════════════════════════════════════
MCP_TRANSPORT = os.getenv("MCP_TRANSPORT", "http").strip().lower()
MCP_HOST = os.getenv("MCP_HOST", "0.0.0.0")
MCP_PORT = int(os.getenv("MCP_PORT", "8000"))

# ═══════════════════════════════════════════════════════════════════════════════
# Playwright 瀏覽器設定
# ═══════════════════════════════════════════════════════════════════════════════
# 預設有頭模式：讓使用者能即時觀看瀏覽器畫面，僅 CI 環境才設為 true
BROWSER_HEADLESS = _get_bool("BROWSER_HEADLESS", False)
BROWSER_DEFAULT_WIDTH = int(os.getenv("BROWSER_DEFAULT_WIDTH", "1280"))
BROWSER_DEFAULT_HEIGHT = int(os.getenv("BROWSER_DEFAULT_HEIGHT", "720"))
BROWSER_CLICK_TIMEOUT = int(os.getenv("BROWSER_CLICK_TIMEOUT", "10000"))  # 10 秒
BROWSER_WAIT_TIMEOUT = int(os.getenv("BROWSER_WAIT_TIMEOUT", "30000"))  # 30 秒
BROWSER_CONTENT_MAX_CHARS = int(os.getenv("BROWSER_CONTENT_MAX_CHARS", "10000"))
BROWSER_LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
]

# ═══════════════════════════════════════════════════════════════════════════════
# 截圖 / 錄影暫存區
# ═══════════════════════════════════════════════════════════════════════════════
CAPTURE_BASE_DIR = Path(os.getenv("CAPTURE_BASE_DIR", "") or tempfile.gettempdir())
CAPTURE_DIR_PREFIX = "playwright-ui-mcp"

# ═══════════════════════════════════════════════════════════════════════════════
# 日誌設定
# ═══════════════════════════════════════════════════════════════════════════════
LOG_DIR = Path(os.getenv("LOG_DIR", "") or PROJECT_ROOT / "logs")
LOG_FILE = os.getenv("LOG_FILE", "playwright_ui_mcp.log")
LOG_CONSOLE_LEVEL = _get_log_level("LOG_CONSOLE_LEVEL", logging.DEBUG)
LOG_FILE_LEVEL = _get_log_level("LOG_FILE_LEVEL", logging.WARNING)
