"""瀏覽器工作階段服務層

管理單一 Playwright 瀏覽器工作階段（一個瀏覽器行程、一個 context、多個具名頁面），
每個 MCP Tool 對應一個方法。檔案暫存交由 CaptureStore 處理。

狀態機：absent → launching → running → closing → absent
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from playwright_ui_mcp.config import (
    BROWSER_CLICK_TIMEOUT,
    BROWSER_DEFAULT_HEIGHT,
    BROWSER_DEFAULT_WIDTH,
    BROWSER_HEADLESS,
    BROWSER_LAUNCH_ARGS,
    BROWSER_WAIT_TIMEOUT,
)
from playwright_ui_mcp.schemas import (
    BrowserTimeoutError,
    NoActiveSessionError,
    PageIdInUseError,
    PageNotFoundError,
    SelectorNotFoundError,
)
from playwright_ui_mcp.services.capture_store import CaptureStore
from playwright_ui_mcp.services.page_scripts import (
    ELEMENT_TEXT_MAX_CHARS,
    INTERACTIVE_SELECTORS,
    VISIBLE_ELEMENTS_JS,
    VISIBLE_ELEMENTS_LIMIT,
    VISIBLE_TEXT_JS,
)

logger = logging.getLogger(__name__)

SESSION_ID = "default"


@dataclass
class BrowserSession:
    """執行中的瀏覽器工作階段"""

    playwright: Playwright
    browser: Browser
    context: BrowserContext
    record_video: bool
    width: int
    height: int
    pages: dict[str, Page] = field(default_factory=dict)


class BrowserService:
    """
    瀏覽器工作階段控制器

    一個行程只持有一個工作階段；launch/new_page/close_page/close 以 asyncio.Lock 序列化。
    """

    def __init__(
        self,
        capture_store: CaptureStore | None = None,
        playwright_factory: Callable[[], Any] = async_playwright,
        headless: bool = BROWSER_HEADLESS,
    ) -> None:
        self.capture_store = capture_store if capture_store is not None else CaptureStore()
        self._playwright_factory = playwright_factory
        self._headless = headless
        self._session: BrowserSession | None = None
        self._page_counter = 0
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._session is not None

    def _require_session(self, operation: str) -> BrowserSession:
        if self._session is None:
            raise NoActiveSessionError(operation)
        return self._session

    def get_page(self, page_id: str, operation: str = "") -> Page:
        """
        以 page_id 取得頁面

        Raises:
            NoActiveSessionError: 尚未 launch
            PageNotFoundError: page_id 不存在
        """
        session = self._require_session(operation)
        page = session.pages.get(page_id)
        if page is None:
            raise PageNotFoundError(page_id, list(session.pages), operation)
        return page

    # ───────────────────────────────────────────────────────────────────────────
    # 工作階段
    # ───────────────────────────────────────────────────────────────────────────
    async def launch(
        self,
        width: int | None = None,
        height: int | None = None,
        slow_mo: float | None = None,
        record_video: bool = False,
    ) -> dict[str, Any]:
        """
        啟動有頭瀏覽器並建立 context

        已有工作階段時直接回報，不會開第二個瀏覽器。
        record_video=False 時不建立任何暫存目錄。
        """
        async with self._lock:
            if self._session is not None:
                return {
                    "sessionId": SESSION_ID,
                    "message": "Browser already running. Close it first or use the existing session.",
                }

            width = width or BROWSER_DEFAULT_WIDTH
            height = height or BROWSER_DEFAULT_HEIGHT

            context_options: dict[str, Any] = {"viewport": {"width": width, "height": height}}
            if record_video:
                self.capture_store.initialize()
                context_options["record_video_dir"] = str(self.capture_store.video_dir)
                context_options["record_video_size"] = {"width": width, "height": height}

            launch_options: dict[str, Any] = {
                "headless": self._headless,
                "args": [f"--window-size={width},{height}", *BROWSER_LAUNCH_ARGS],
            }
            if slow_mo:
                launch_options["slow_mo"] = slow_mo

            logger.info(f"正在啟動 Chromium 瀏覽器 ({width}x{height}, headless={self._headless}, video={record_video})...")
            playwright: Playwright | None = None
            browser: Browser | None = None
            try:
                playwright = await self._playwright_factory().start()
                browser = await playwright.chromium.launch(**launch_options)
                context = await browser.new_context(**context_options)
            except Exception:
                # 啟動失敗：逐一釋放已建立的資源，維持 absent 狀態
                if browser is not None:
                    try:
                        await browser.close()
                    except Exception as e:
                        logger.warning(f"啟動失敗後關閉瀏覽器失敗: {e}")
                if playwright is not None:
                    try:
                        await playwright.stop()
                    except Exception as e:
                        logger.warning(f"啟動失敗後停止 Playwright driver 失敗: {e}")
                if record_video:
                    self.capture_store.cleanup()
                raise

            self._session = BrowserSession(
                playwright=playwright,
                browser=browser,
                context=context,
                record_video=record_video,
                width=width,
                height=height,
            )
            self._page_counter = 0
            logger.info(f"✅ 已啟動瀏覽器: {browser.version}")

            message = (
                "Headed browser launched with video recording enabled."
                if record_video
                else "Headed browser launched (lightweight mode, no video recording)."
            )
            return {"sessionId": SESSION_ID, "message": message}

    async def close(self) -> dict[str, Any]:
        """
        關閉所有頁面、context、瀏覽器，並清理暫存區

        context 必須在 browser 之前關閉，錄影檔才會完整寫出。
        """
        async with self._lock:
            session = self._session
            if session is None:
                return {"message": "No browser session to close", "cleanedUp": []}

            for page_id, page in list(session.pages.items()):
                try:
                    await page.close()
                except Exception as e:
                    logger.warning(f"關閉頁面 {page_id} 失敗: {e}")
            session.pages.clear()

            try:
                await session.context.close()
                await session.browser.close()
            finally:
                try:
                    await session.playwright.stop()
                except Exception as e:
                    logger.warning(f"停止 Playwright driver 失敗: {e}")
                finally:
                    # 無論 driver 是否正常結束，都要回到 absent 狀態
                    cleaned_up = self.capture_store.cleanup()
                    self._session = None
                    self._page_counter = 0

            logger.info(f"🛑 瀏覽器已關閉，清理 {len(cleaned_up)} 個檔案")
            return {"message": "Browser closed and all captures cleaned up", "cleanedUp": cleaned_up}

    def status(self) -> dict[str, Any]:
        """回報工作階段狀態；暫存區尚未建立時不含 captureDir"""
        if self._session is None:
            return {"running": False, "pageCount": 0, "pages": []}

        info: dict[str, Any] = {
            "running": True,
            "pageCount": len(self._session.pages),
            "pages": list(self._session.pages),
        }
        if self.capture_store.is_initialized:
            info["captureDir"] = str(self.capture_store.capture_dir)
        return info

    def list_captures(self) -> dict[str, list[str]]:
        return self.capture_store.list_captures()

    # ───────────────────────────────────────────────────────────────────────────
    # 頁面管理
    # ───────────────────────────────────────────────────────────────────────────
    def _next_page_id(self, session: BrowserSession) -> str:
        while True:
            self._page_counter += 1
            page_id = f"page_{self._page_counter}"
            if page_id not in session.pages:
                return page_id

    async def new_page(self, name: str | None = None) -> dict[str, Any]:
        """開新分頁；name 重複時拋出 PageIdInUseError"""
        async with self._lock:
            session = self._require_session("new_page")
            if name:
                if name in session.pages:
                    raise PageIdInUseError(name)
                page_id = name
            else:
                page_id = self._next_page_id(session)

            session.pages[page_id] = await session.context.new_page()
            logger.info(f"建立新 Page: {page_id}")
            return {"pageId": page_id, "message": f"New page created with ID: {page_id}"}

    async def close_page(self, page_id: str) -> dict[str, Any]:
        async with self._lock:
            session = self._require_session("close_page")
            page = self.get_page(page_id, "close_page")
            await page.close()
            session.pages.pop(page_id, None)
            return {"message": f'Page "{page_id}" closed'}

    # ───────────────────────────────────────────────────────────────────────────
    # 頁面操作
    # ───────────────────────────────────────────────────────────────────────────
    async def navigate(self, page_id: str, url: str) -> dict[str, Any]:
        """導航並等待網路閒置，確保後續截圖看到穩定的頁面"""
        page = self.get_page(page_id, "navigate")
        await page.goto(url, wait_until="networkidle")
        title = await page.title()
        return {"message": f"Navigated to {url}", "title": title}

    async def screenshot(
        self,
        page_id: str,
        full_page: bool = False,
        selector: str | None = None,
    ) -> dict[str, Any]:
        """
        截圖並同時回傳檔案路徑與 Base64

        指定 selector 時先確認元素存在，找不到就不寫任何檔案。
        """
        page = self.get_page(page_id, "screenshot")

        element = None
        if selector:
            element = await page.query_selector(selector)
            if element is None:
                raise SelectorNotFoundError(selector)

        self.capture_store.ensure_initialized()
        screenshot_path = self.capture_store.next_screenshot_path()

        if element is not None:
            await element.screenshot(path=str(screenshot_path))
        else:
            await page.screenshot(path=str(screenshot_path), full_page=full_page)

        image = self.capture_store.image_for_analysis(screenshot_path)
        return {
            "path": str(screenshot_path),
            "base64": image["base64"],
            "mimeType": image["mimeType"],
            "message": f"Screenshot saved to {screenshot_path}",
        }

    async def get_page_content(self, page_id: str) -> dict[str, str]:
        page = self.get_page(page_id, "get_content")
        html = await page.content()
        text = await page.evaluate(VISIBLE_TEXT_JS)
        return {"html": html, "text": text or ""}

    async def get_visible_elements(self, page_id: str) -> dict[str, list[dict[str, Any]]]:
        page = self.get_page(page_id, "get_visible_elements")
        raw = await page.evaluate(
            VISIBLE_ELEMENTS_JS,
            {"selectors": INTERACTIVE_SELECTORS, "limit": VISIBLE_ELEMENTS_LIMIT, "maxText": ELEMENT_TEXT_MAX_CHARS},
        )
        # undefined 欄位會以 None 回傳，移除以保持選填語意
        elements = [{k: v for k, v in item.items() if v is not None} for item in raw or []]
        return {"elements": elements}

    async def click(self, page_id: str, selector: str) -> dict[str, str]:
        page = self.get_page(page_id, "click")
        try:
            await page.click(selector, timeout=BROWSER_CLICK_TIMEOUT)
        except PlaywrightTimeoutError as e:
            raise BrowserTimeoutError(f'click: 元素 "{selector}" 在 {BROWSER_CLICK_TIMEOUT}ms 內無法點擊') from e
        return {"message": f'Clicked on "{selector}"'}

    async def type_text(self, page_id: str, selector: str, text: str) -> dict[str, str]:
        """以 fill 語意取代輸入框內容（非逐字按鍵）"""
        page = self.get_page(page_id, "type")
        try:
            await page.fill(selector, text)
        except PlaywrightTimeoutError as e:
            raise BrowserTimeoutError(f'type: 元素 "{selector}" 在等待時間內無法輸入') from e
        return {"message": f'Typed "{text}" into "{selector}"'}

    async def wait_for_selector(self, page_id: str, selector: str, timeout: int | None = None) -> dict[str, str]:
        page = self.get_page(page_id, "wait_for")
        timeout = timeout or BROWSER_WAIT_TIMEOUT
        try:
            await page.wait_for_selector(selector, state="visible", timeout=timeout)
        except PlaywrightTimeoutError as e:
            raise BrowserTimeoutError(f'wait_for: 元素 "{selector}" 在 {timeout}ms 內未出現') from e
        return {"message": f'Element "{selector}" is now visible'}

    async def evaluate(self, page_id: str, script: str) -> dict[str, Any]:
        page = self.get_page(page_id, "evaluate")
        result = await page.evaluate(script)
        return {"result": result}


# 全域服務實例
browser_service = BrowserService()
