"""
下单助手：Playwright 浏览器会话
每次运行独占一个浏览器实例与一个页面，运行结束（无论成功、暂停、拦截还是异常）都会关闭。
不使用全局单例，不在请求之间复用。
"""
import base64
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from app.core.config import settings

logger = logging.getLogger(__name__)

# 安全相关启动参数：始终附带，不依赖配置是否填写
REQUIRED_BROWSER_ARGS: Tuple[str, ...] = ("--disable-extensions", "--disable-file-system")


@dataclass(frozen=True)
class BrowserLaunchConfig:
    """浏览器启动配置：沙箱与禁用项集中在这里，便于审计和单独测试"""
    headless: bool = True
    chromium_sandbox: bool = True
    args: Tuple[str, ...] = field(default=REQUIRED_BROWSER_ARGS)
    viewport_width: int = 1024
    viewport_height: int = 768

    def __post_init__(self):
        merged = list(self.args)
        for arg in REQUIRED_BROWSER_ARGS:
            if arg not in merged:
                merged.append(arg)
        object.__setattr__(self, "args", tuple(merged))

    @classmethod
    def from_settings(cls) -> "BrowserLaunchConfig":
        return cls(
            headless=settings.ORDER_BROWSER_HEADLESS,
            chromium_sandbox=settings.ORDER_BROWSER_SANDBOX,
            args=tuple(settings.order_browser_args_list),
            viewport_width=settings.ORDER_VIEWPORT_WIDTH,
            viewport_height=settings.ORDER_VIEWPORT_HEIGHT,
        )

    def launch_kwargs(self) -> Dict[str, Any]:
        """传给 chromium.launch 的参数"""
        return {
            "headless": self.headless,
            "chromium_sandbox": self.chromium_sandbox,
            "args": list(self.args),
        }

    def viewport(self) -> Dict[str, int]:
        return {"width": self.viewport_width, "height": self.viewport_height}


def _playwright_friendly_error(e: Exception) -> Optional[str]:
    """将 Playwright 常见环境错误转为用户可读提示。"""
    msg = str(e)
    if "No module named 'playwright'" in msg or ("ModuleNotFoundError" in msg and "playwright" in msg):
        return "未安装 playwright。请执行: pip install playwright && playwright install chromium"
    if "Executable doesn't exist" in msg or "playwright install" in msg:
        return "浏览器未安装。请在服务器上执行: playwright install chromium（仅需执行一次）"
    if "XServer" in msg or "headed browser" in msg:
        return "当前环境无图形界面，请设置 ORDER_BROWSER_HEADLESS=true 使用无头模式。"
    return None


class BrowserSession:
    """一次运行独占的浏览器会话"""

    def __init__(self, config: Optional[BrowserLaunchConfig] = None):
        self.config = config or BrowserLaunchConfig.from_settings()
        self._playwright = None
        self._browser = None
        self._page = None

    @property
    def page(self):
        if self._page is None:
            raise RuntimeError("浏览器尚未启动，请先调用 launch()")
        return self._page

    async def launch(self) -> None:
        try:
            from playwright.async_api import async_playwright
        except ModuleNotFoundError as e:
            raise RuntimeError(_playwright_friendly_error(e) or str(e))
        if self._browser is not None:
            return
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(**self.config.launch_kwargs())
        except Exception as e:
            friendly = _playwright_friendly_error(e)
            if friendly:
                raise RuntimeError(friendly) from e
            raise
        self._page = await self._browser.new_page(viewport=self.config.viewport())
        logger.info("浏览器已启动（chromium, headless=%s）", self.config.headless)

    async def goto(self, url: str) -> None:
        await self.page.goto(url)

    def current_url(self) -> str:
        return self.page.url or ""

    async def screenshot_base64(self) -> str:
        """仅截取当前视口，返回 PNG 的 base64 字符串"""
        png = await self.page.screenshot(full_page=False, type="png")
        return base64.b64encode(png).decode("ascii")

    async def click(self, x: int, y: int, button: str = "left") -> None:
        await self.page.mouse.click(x, y, button=button)

    async def move(self, x: int, y: int) -> None:
        await self.page.mouse.move(x, y)

    async def scroll_by(self, delta_x: int, delta_y: int) -> None:
        # 页面级滚动，而非滚轮事件
        await self.page.evaluate("([dx, dy]) => window.scrollBy(dx, dy)", [delta_x, delta_y])

    async def press(self, key: str) -> None:
        await self.page.keyboard.press(key)

    async def type_text(self, text: str) -> None:
        await self.page.keyboard.type(text)

    async def pause(self, ms: int) -> None:
        await self.page.wait_for_timeout(ms)

    async def close(self) -> None:
        """尽力关闭；关闭过程中的异常只记录，不向上抛，避免掩盖主错误。"""
        browser, pw = self._browser, self._playwright
        self._browser = None
        self._page = None
        self._playwright = None
        if browser is not None:
            try:
                await browser.close()
            except Exception as e:
                logger.warning("关闭浏览器失败: %s", e)
        if pw is not None:
            try:
                await pw.stop()
            except Exception as e:
                logger.warning("停止 playwright 失败: %s", e)
