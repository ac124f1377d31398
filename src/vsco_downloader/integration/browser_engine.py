"""
Playwright browser engine: launches Chromium once and creates isolated contexts.
"""

import logging
from typing import Any, List, Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Playwright,
    async_playwright,
)

from ..models.config_models import DownloaderConfig

logger = logging.getLogger(__name__)

CHROME_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--no-sandbox",
    "--disable-dev-shm-usage",
]


class BrowserEngineError(Exception):
    """Raised when the browser engine cannot be used."""

    pass


class PlaywrightBrowserEngine:
    """Owns the Playwright driver and a single Chromium browser process."""

    def __init__(self, config: DownloaderConfig):
        self.config = config
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    @property
    def is_running(self) -> bool:
        return self._browser is not None

    def _launch_args(self) -> List[str]:
        args = list(CHROME_ARGS)
        if self.config.browser.debug:
            args.append("--auto-open-devtools-for-tabs")
        return args

    async def launch(self) -> None:
        """Start Playwright and launch Chromium."""
        if self._browser is not None:
            return

        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=self.config.browser.headless, args=self._launch_args()
            )
        except Exception:
            await self._playwright.stop()
            self._playwright = None
            raise

        logger.info(
            f"Launched Chromium (headless={self.config.browser.headless}, "
            f"version={self._browser.version})"
        )

    async def new_context(self) -> BrowserContext:
        """Create a fresh isolated context with configured timeouts."""
        if self._browser is None:
            raise BrowserEngineError("Browser not launched. Call launch() first.")

        context = await self._browser.new_context(**self.config.context_options())
        context.set_default_navigation_timeout(self.config.navigation_timeout_ms)
        context.set_default_timeout(self.config.action_timeout_ms)
        return context

    async def close_context(self, context: Any) -> None:
        await context.close()

    async def close(self) -> None:
        """Close the browser and stop the Playwright driver."""
        try:
            if self._browser is not None:
                await self._browser.close()
        finally:
            self._browser = None
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None
