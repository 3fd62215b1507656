"""截圖 / 錄影暫存區服務層

每個伺服器行程擁有一個私有暫存目錄，目錄在第一次需要時才建立，
關閉工作階段時整個刪除。
"""

import base64
import logging
import mimetypes
import secrets
import shutil
import threading
import time
from pathlib import Path

from playwright_ui_mcp.config import CAPTURE_BASE_DIR, CAPTURE_DIR_PREFIX
from playwright_ui_mcp.schemas import CaptureIOError

logger = logging.getLogger(__name__)


class CaptureStore:
    """
    截圖暫存區

    目錄結構：
        <base_dir>/playwright-ui-mcp-<epoch_ms>-<token>/
            screenshots/
            videos/
    """

    def __init__(self, base_dir: str | Path | None = None) -> None:
        self._base_dir = Path(base_dir) if base_dir is not None else CAPTURE_BASE_DIR
        self._capture_dir: Path | None = None
        self._screenshot_counter = 0
        self._initialized = False
        self._init_lock = threading.Lock()
        self._counter_lock = threading.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def capture_dir(self) -> Path | None:
        """暫存根目錄，尚未建立時為 None"""
        return self._capture_dir if self._initialized else None

    @property
    def screenshot_dir(self) -> Path | None:
        return self._capture_dir / "screenshots" if self._initialized and self._capture_dir else None

    @property
    def video_dir(self) -> Path | None:
        return self._capture_dir / "videos" if self._initialized and self._capture_dir else None

    def initialize(self) -> Path:
        """
        建立暫存目錄（冪等）

        同時間多次呼叫只會建立一組目錄。

        Returns:
            Path: 暫存根目錄

        Raises:
            CaptureIOError: 目錄建立失敗
        """
        with self._init_lock:
            if self._initialized and self._capture_dir is not None:
                return self._capture_dir

            timestamp = int(time.time() * 1000)
            capture_dir = self._base_dir / f"{CAPTURE_DIR_PREFIX}-{timestamp}-{secrets.token_hex(4)}"
            try:
                (capture_dir / "screenshots").mkdir(parents=True, exist_ok=True)
                (capture_dir / "videos").mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.error(f"❌ 無法建立截圖暫存區 {capture_dir}: {e}")
                raise CaptureIOError(f"無法建立截圖暫存區: {e}") from e

            self._capture_dir = capture_dir
            self._initialized = True
            logger.info(f"📂 已建立截圖暫存區: {capture_dir}")
            return capture_dir

    def ensure_initialized(self) -> Path:
        """延遲初始化：只有真的需要寫檔時才建立目錄"""
        if self._initialized and self._capture_dir is not None:
            return self._capture_dir
        return self.initialize()

    def next_screenshot_path(self, name: str | None = None) -> Path:
        """
        取得下一個截圖檔案路徑

        Args:
            name: 指定檔名；未指定時以遞增序號加上時間戳產生

        Returns:
            Path: screenshots/ 目錄下的檔案路徑
        """
        screenshot_dir = self.ensure_initialized() / "screenshots"
        if name:
            return screenshot_dir / name
        with self._counter_lock:
            self._screenshot_counter += 1
            counter = self._screenshot_counter
        return screenshot_dir / f"screenshot_{counter}_{int(time.time() * 1000)}.png"

    def read_file_as_base64(self, file_path: str | Path) -> str:
        """
        讀取檔案並回傳 Base64 字串

        Raises:
            CaptureIOError: 檔案不存在或無法讀取
        """
        try:
            data = Path(file_path).read_bytes()
        except OSError as e:
            raise CaptureIOError(f"無法讀取檔案 {file_path}: {e}") from e
        return base64.b64encode(data).decode("ascii")

    def image_for_analysis(self, file_path: str | Path) -> dict[str, str]:
        """回傳可直接放入 MCP image content 的 Base64 與 MIME 類型"""
        mime_type, _ = mimetypes.guess_type(str(file_path))
        return {
            "base64": self.read_file_as_base64(file_path),
            "mimeType": mime_type or "image/png",
        }

    def list_captures(self) -> dict[str, list[str]]:
        """列出目前暫存區內的截圖與影片（不存在的目錄回傳空清單）"""
        if self._capture_dir is None:
            return {"screenshots": [], "videos": []}
        return {
            "screenshots": self._list_files(self._capture_dir / "screenshots"),
            "videos": self._list_files(self._capture_dir / "videos"),
        }

    @staticmethod
    def _list_files(directory: Path) -> list[str]:
        try:
            return [str(p.absolute()) for p in directory.iterdir()]
        except OSError:
            return []

    def cleanup(self) -> list[str]:
        """
        刪除所有截圖與影片，並移除暫存目錄

        個別檔案刪除失敗會被忽略（不列入回傳清單），本方法不會拋出例外。

        Returns:
            list[str]: 成功刪除的檔案路徑
        """
        with self._init_lock:
            if not self._initialized or self._capture_dir is None:
                return []

            capture_dir = self._capture_dir
            captures = self.list_captures()
            cleaned_up: list[str] = []

            for file_path in captures["screenshots"] + captures["videos"]:
                try:
                    Path(file_path).unlink()
                    cleaned_up.append(file_path)
                except OSError as e:
                    logger.warning(f"無法刪除 {file_path}: {e}")

            try:
                (capture_dir / "screenshots").rmdir()
                (capture_dir / "videos").rmdir()
                capture_dir.rmdir()
            except OSError:
                # 目錄非空（例如其他行程同時寫入），改用遞迴刪除
                shutil.rmtree(capture_dir, ignore_errors=True)

            self._initialized = False
            self._capture_dir = None
            logger.info(f"🧹 已清理截圖暫存區: 移除 {len(cleaned_up)} 個檔案")
            return cleaned_up
