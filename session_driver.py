"""
Headless browser session for the WebKiosk portal.

A SessionDriver owns exactly one Playwright browser, context and page. All of
its operations are coroutines and must be awaited one at a time: the page has
a single DOM state and concurrent navigations would corrupt each other.
"""

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from config import DEFAULT_SETTINGS

logger = logging.getLogger("session_driver")


class SessionLaunchError(RuntimeError):
    """Raised when the browser session cannot be started."""


class SessionDriver:
    """
    Manage one headless browser and one page.

    Usable as an async context manager; the session is released on every exit
    path, including cancellation.
    """

    def __init__(self, headless: bool = DEFAULT_SETTINGS['headless'],
                 timeout: int = DEFAULT_SETTINGS['timeout'],
                 viewport: Optional[Dict[str, int]] = None,
                 user_agent: str = DEFAULT_SETTINGS['user_agent'],
                 browser_args: Optional[list] = None,
                 save_debug: bool = DEFAULT_SETTINGS['save_debug'],
                 debug_dir: str = DEFAULT_SETTINGS['debug_dir']):
        """
        Initialize the driver settings. No browser is started here.

        Args:
            headless: Whether to run the browser headless
            timeout: Default timeout in seconds for page operations
            viewport: Fixed viewport size
            user_agent: User agent presented to the portal
            browser_args: Extra Chromium command line flags
            save_debug: Whether to save page HTML at debug checkpoints
            debug_dir: Directory for debug snapshots
        """
        self.headless = headless
        self.timeout = timeout
        self.viewport = dict(viewport or DEFAULT_SETTINGS['viewport'])
        self.user_agent = user_agent
        self.browser_args = list(browser_args if browser_args is not None else DEFAULT_SETTINGS['browser_args'])
        self.save_debug = save_debug
        self.debug_dir = Path(debug_dir)

        self.playwright = None
        self.browser = None
        self.context = None
        self.page = None

    @property
    def is_initialized(self) -> bool:
        return self.page is not None

    async def __aenter__(self) -> "SessionDriver":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.cleanup()

    async def initialize(self) -> None:
        """
        Launch the browser and open the page. Does nothing if already running.

        Raises:
            SessionLaunchError: If the browser cannot be started
        """
        if self.is_initialized:
            return

        try:
            logger.info(f"Launching browser (headless: {self.headless})")
            self.playwright = await async_playwright().start()
            self.browser = await self.playwright.chromium.launch(
                headless=self.headless,
                args=self.browser_args
            )
            self.context = await self.browser.new_context(
                viewport=self.viewport,
                user_agent=self.user_agent
            )
            self.page = await self.context.new_page()
            self.page.set_default_timeout(self.timeout * 1000)
            logger.info("Browser initialized successfully")
        except Exception as e:
            logger.error(f"Error initializing browser: {e}")
            await self.cleanup()
            raise SessionLaunchError(f"Failed to launch browser: {e}") from e

    def _require_page(self):
        if self.page is None:
            raise SessionLaunchError("Browser session is not initialized")
        return self.page

    async def navigate(self, url: str, timeout: Optional[float] = None) -> bool:
        """
        Load a URL and wait for network activity to settle.

        A timeout or navigation error is logged and swallowed: the portal often
        never goes fully idle, so the caller inspects whatever loaded.

        Args:
            url: URL to load
            timeout: Timeout in seconds (defaults to the driver timeout)

        Returns:
            True if the page settled, False if the wait was cut short
        """
        page = self._require_page()
        timeout_ms = (timeout or self.timeout) * 1000
        try:
            await page.goto(url, wait_until="networkidle", timeout=timeout_ms)
            return True
        except PlaywrightTimeoutError:
            logger.warning(f"Timed out waiting for {url} to settle, inspecting current state")
        except PlaywrightError as e:
            logger.warning(f"Navigation to {url} failed: {e}")
        return False

    async def click_and_wait(self, selector: str, timeout: Optional[float] = None) -> bool:
        """
        Click an element and wait for the navigation it triggers.

        Returns:
            True if a navigation completed, False on timeout
        """
        page = self._require_page()
        timeout_ms = (timeout or self.timeout) * 1000
        try:
            async with page.expect_navigation(wait_until="networkidle", timeout=timeout_ms):
                await page.click(selector)
            return True
        except PlaywrightTimeoutError:
            logger.warning("Navigation timeout, checking current state...")
            return False

    async def settle(self, seconds: float) -> None:
        """Fixed wait for pages whose readiness signals are unreliable."""
        if seconds > 0:
            await asyncio.sleep(seconds)

    @property
    def url(self) -> str:
        return self.page.url if self.page is not None else ""

    async def title(self) -> str:
        return await self._require_page().title()

    async def content(self) -> str:
        return await self._require_page().content()

    async def has_selector(self, selector: str) -> bool:
        return await self._require_page().query_selector(selector) is not None

    async def text_of(self, selector: str) -> Optional[str]:
        """Text content of the first element matching ``selector``, or None."""
        element = await self._require_page().query_selector(selector)
        if element is None:
            return None
        return await element.text_content() or ""

    async def fill(self, selector: str, value: str) -> None:
        await self._require_page().fill(selector, value)

    async def select_option(self, selector: str, value: str) -> None:
        await self._require_page().select_option(selector, value)

    async def save_snapshot(self, name: str) -> Optional[Path]:
        """
        Save the current page HTML when debug saving is enabled.

        Args:
            name: Checkpoint name used in the file name

        Returns:
            Path of the written file, or None if nothing was saved
        """
        if not self.save_debug or self.page is None:
            return None
        try:
            self.debug_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            filepath = self.debug_dir / f"{stamp}_{name}.html"
            filepath.write_text(await self.page.content(), encoding="utf-8")
            logger.debug(f"Saved HTML content to {filepath}")
            return filepath
        except Exception as e:
            logger.error(f"Error saving debug snapshot {name}: {e}")
            return None

    async def cleanup(self) -> None:
        """
        Close the page, context, browser and Playwright driver.

        Safe to call any number of times; never raises for already released
        or broken resources.
        """
        if self.page is not None:
            try:
                await self.page.close()
                logger.debug("Page closed successfully")
            except Exception as e:
                logger.error(f"Error closing page: {str(e)}")
            finally:
                self.page = None

        if self.context is not None:
            try:
                await self.context.close()
                logger.debug("Browser context closed successfully")
            except Exception as e:
                logger.error(f"Error closing browser context: {str(e)}")
            finally:
                self.context = None

        if self.browser is not None:
            try:
                await self.browser.close()
                logger.debug("Browser closed successfully")
            except Exception as e:
                logger.error(f"Error closing browser: {str(e)}")
            finally:
                self.browser = None

        if self.playwright is not None:
            try:
                await self.playwright.stop()
                logger.debug("Playwright stopped successfully")
            except Exception as e:
                logger.error(f"Error stopping playwright: {str(e)}")
            finally:
                self.playwright = None
