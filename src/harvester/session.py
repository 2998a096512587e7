"""
Browser session over Playwright.

BrowserSession is the only place that talks to Playwright. The rest of the
harvester sees a small async surface (navigate, evaluate, query, click,
type, wait) so it can be exercised with a fake session in tests.
"""

import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List, Optional, Union

from playwright.async_api import (
    ElementHandle,
    Error as PlaywrightError,
    Page,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from src.core.config import Config
from src.core.exceptions import RenderDelayError, SelectionError, SessionFatalError
from src.core.logging import get_logger
from src.harvester.markup import SiteMarkup
from src.utils.retry import RetryConfig, retry_async_with_backoff

logger = get_logger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

IS_ENABLED_JS = """
(el) => !(el.disabled || el.classList.contains('disabled') || el.hasAttribute('disabled'))
"""

SET_VALUE_JS = """
([selector, value]) => {
  const el = document.querySelector(selector);
  if (!el) return false;
  el.value = value;
  el.dispatchEvent(new Event('input', { bubbles: true }));
  el.dispatchEvent(new Event('change', { bubbles: true }));
  return true;
}
"""


class BrowserSession:
    """Thin async wrapper around one Playwright page."""

    def __init__(self, page: Page, config: Config, markup: SiteMarkup):
        self.page = page
        self.config = config
        self.markup = markup

    @property
    def url(self) -> str:
        return self.page.url

    def is_closed(self) -> bool:
        return self.page.is_closed()

    def _fatal_if_closed(self, what: str, exc: Exception) -> None:
        if self.page.is_closed():
            raise SessionFatalError(f"browser session closed during {what}: {exc}") from exc

    # ---------------
    # Navigation
    # ---------------
    async def navigate(self, url: str, wait_until: str = "domcontentloaded") -> None:
        """
        Navigate with exponential-backoff retries.

        Raises:
            SessionFatalError: If the page was closed
            RenderDelayError: If every attempt failed
        """
        full_url = self.config.url(url)
        goto = retry_async_with_backoff(
            self.page.goto,
            RetryConfig(max_retries=self.config.nav_max_retries, base_delay=2.0, max_delay=20.0),
            retry_on=(PlaywrightError,),
        )
        logger.debug(f"[nav] {full_url}")
        try:
            await goto(full_url, wait_until=wait_until, timeout=self.config.nav_timeout_ms)
        except PlaywrightError as e:
            self._fatal_if_closed("navigation", e)
            raise RenderDelayError(f"navigation failed: {e}", target=full_url) from e

    async def wait_for_load_settled(self, timeout_ms: Optional[int] = None) -> bool:
        """Wait for network idle. Returns False on timeout."""
        try:
            await self.page.wait_for_load_state("networkidle", timeout=timeout_ms or self.config.nav_timeout_ms)
            return True
        except PlaywrightTimeoutError:
            return False
        except PlaywrightError as e:
            self._fatal_if_closed("load wait", e)
            return False

    async def wait_for_selector(self, selector: str, timeout_ms: int, state: str = "visible") -> bool:
        """Wait for a selector. Returns False on timeout."""
        try:
            await self.page.wait_for_selector(selector, timeout=timeout_ms, state=state)
            return True
        except PlaywrightTimeoutError:
            return False
        except PlaywrightError as e:
            self._fatal_if_closed("selector wait", e)
            return False

    # ---------------
    # Reading
    # ---------------
    async def content(self) -> str:
        try:
            return await self.page.content()
        except PlaywrightError as e:
            self._fatal_if_closed("content read", e)
            # Page is mid-navigation; an empty read is a skipped sample
            return ""

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        if arg is None:
            return await self.page.evaluate(script)
        return await self.page.evaluate(script, arg)

    async def query(self, selector: str, within: Optional[ElementHandle] = None) -> Optional[ElementHandle]:
        root = within or self.page
        try:
            return await root.query_selector(selector)
        except PlaywrightError as e:
            self._fatal_if_closed("query", e)
            raise RenderDelayError(f"query failed: {e}", target=selector) from e

    async def query_all(self, selector: str, within: Optional[ElementHandle] = None) -> List[ElementHandle]:
        root = within or self.page
        try:
            return await root.query_selector_all(selector)
        except PlaywrightError as e:
            self._fatal_if_closed("query", e)
            raise RenderDelayError(f"query failed: {e}", target=selector) from e

    async def inner_text(self, handle: ElementHandle) -> str:
        return (await handle.inner_text()) or ""

    async def is_visible(self, selector: str) -> bool:
        handle = await self.page.query_selector(selector)
        return handle is not None and await handle.is_visible()

    async def is_enabled(self, handle: ElementHandle) -> bool:
        try:
            return bool(await handle.evaluate(IS_ENABLED_JS))
        except PlaywrightError as e:
            self._fatal_if_closed("enabled check", e)
            raise RenderDelayError(f"enabled check failed: {e}") from e

    # ---------------
    # Acting
    # ---------------
    async def click(self, target: Union[str, ElementHandle], force: bool = False) -> None:
        """
        Click an element handle or the first match of a selector.

        Raises:
            SelectionError: If the selector matches nothing or the click fails
        """
        handle = await self.query(target) if isinstance(target, str) else target
        if handle is None:
            raise SelectionError("nothing to click", target=str(target))
        try:
            await handle.click(force=force, timeout=10_000)
        except PlaywrightError as e:
            self._fatal_if_closed("click", e)
            raise SelectionError(f"click failed: {e}", target=str(target)) from e

    async def scripted_click(self, handle: ElementHandle) -> None:
        await handle.evaluate(self.markup.scripted_click)

    async def press(self, key: str) -> None:
        await self.page.keyboard.press(key)

    async def type_or_set_value(self, selector: str, value: str) -> None:
        """
        Fill an input; fall back to setting the value from script.

        Raises:
            SelectionError: If the input does not exist
        """
        try:
            await self.page.fill(selector, value, timeout=5_000)
            return
        except PlaywrightError as e:
            self._fatal_if_closed("fill", e)
            logger.debug(f"[input] fill failed for {selector}, setting value from script: {e}")
        if not await self.evaluate(SET_VALUE_JS, [selector, value]):
            raise SelectionError("input not found", target=selector)

    # ---------------
    # Authentication
    # ---------------
    async def check_auth(self) -> bool:
        """True if the console shows a logged-in user."""
        try:
            await self.navigate(self.config.base_url)
            return bool(await self.evaluate(self.markup.auth_check_script))
        except (PlaywrightError, RenderDelayError) as e:
            logger.error(f"Auth check failed: {e}")
            return False

    async def login(self) -> None:
        """
        Interactive login: press the VK login button and wait for the user.

        Raises:
            SessionFatalError: If login does not complete within LOGIN_TIMEOUT_MS
        """
        logger.info("Not authorized, starting VK login")
        await self.navigate(self.config.base_url)
        button = await self.query(self.markup.login_button)
        timeout = self.config.login_timeout_ms
        try:
            if button is not None:
                await button.click()
                logger.info("Waiting for VK authorization in the browser window...")
                await self.page.wait_for_url(lambda u: "vk.com" not in u, timeout=timeout)
            else:
                logger.warning("VK login button not found, please log in manually")
                await self.page.wait_for_url(lambda u: "login" not in u, timeout=timeout)
        except PlaywrightError as e:
            raise SessionFatalError(f"login not completed: {e}") from e
        logger.info("Authorization complete")
        await self.save_state()

    async def ensure_authenticated(self) -> None:
        if await self.check_auth():
            logger.info("Already authorized")
            return
        await self.login()

    async def save_state(self) -> None:
        """Persist cookies and local storage to the session file."""
        state_file = self.config.state_file
        state_file.parent.mkdir(parents=True, exist_ok=True)
        state = await self.page.context.storage_state()
        state_file.write_text(json.dumps(state), encoding="utf-8")
        logger.info(f"Session saved to {state_file}")


@asynccontextmanager
async def open_session(config: Config, markup: SiteMarkup) -> AsyncIterator[BrowserSession]:
    """
    Launch Chromium and yield a BrowserSession.

    The storage state is loaded from the session file when present and is
    written back when the block exits, including on errors.
    """
    async with async_playwright() as pw:
        browser = await pw.chromium.launch(headless=config.headless, slow_mo=50)
        ctx_kwargs = {
            "viewport": {"width": 1920, "height": 1080},
            "user_agent": USER_AGENT,
            "locale": "ru-RU",
        }
        if config.state_file.exists():
            ctx_kwargs["storage_state"] = json.loads(config.state_file.read_text("utf-8"))
        context = await browser.new_context(**ctx_kwargs)
        page = await context.new_page()
        logger.info(f"Browser started (headless={config.headless})")
        session = BrowserSession(page, config, markup)
        try:
            yield session
        finally:
            try:
                await session.save_state()
            except PlaywrightError as e:
                logger.warning(f"Could not save session state: {e}")
            await context.close()
            await browser.close()
