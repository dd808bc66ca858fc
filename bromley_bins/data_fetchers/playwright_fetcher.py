import logging
from typing import Optional

from playwright.async_api import async_playwright

from .base_fetcher import PageFetcher, DEFAULT_ATTEMPTS

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 120000
BROWSER_ARGS = [
    # Required when running as root inside a container
    '--no-sandbox',
    '--disable-setuid-sandbox',
    # Write shared memory files into /tmp; Docker's default /dev/shm is only 64MB
    '--disable-dev-shm-usage',
]


class PlaywrightPageFetcher(PageFetcher):
    """Renders pages with headless Chromium, one fresh browser per attempt."""

    def __init__(self, executable_path: Optional[str] = None, timeout_ms: int = DEFAULT_TIMEOUT_MS,
                 attempts: int = DEFAULT_ATTEMPTS):
        super().__init__(attempts=attempts)
        self.executable_path = executable_path or None
        self.timeout_ms = timeout_ms

    async def render(self, url: str, ready_predicate: str) -> str:
        async with async_playwright() as p:
            browser = await p.chromium.launch(
                headless=True,
                executable_path=self.executable_path,
                args=BROWSER_ARGS,
            )
            try:
                context = await browser.new_context()
                page = await context.new_page()
                await page.goto(url, wait_until="networkidle", timeout=self.timeout_ms)
                await page.wait_for_function(ready_predicate, timeout=self.timeout_ms)
                return await page.content()
            finally:
                # A failure here propagates and fails the attempt
                await browser.close()
                logger.debug(f"Browser closed for {url}")
