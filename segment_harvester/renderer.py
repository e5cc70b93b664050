"""
Browser rendering for JavaScript-heavy pages.

The search listing and some episode pages only carry their content after
client-side rendering. PageRenderer is the capability the discoverer and the
resolver's last-resort strategy depend on; PlaywrightRenderer is the real one.
"""
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from loguru import logger as log

from segment_harvester.constants import CHROMIUM_PATH, NAVIGATION_TIMEOUT, SELECTOR_TIMEOUT, USER_AGENT


@dataclass(frozen=True)
class ObservedResponse:
    """A network response seen while the page loaded."""
    url: str
    status: int

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


@dataclass
class RenderedPage:
    url: str
    html: str
    # In arrival order
    responses: list[ObservedResponse] = field(default_factory=list)


@runtime_checkable
class PageRenderer(Protocol):
    def render(self, url: str, wait_selector: str = None) -> RenderedPage:
        ...


class PlaywrightRenderer:
    """Headless Chromium via Playwright's sync API. One browser per render."""

    def __init__(self, executable_path: str = CHROMIUM_PATH,
                 navigation_timeout: int = NAVIGATION_TIMEOUT,
                 selector_timeout: int = SELECTOR_TIMEOUT,
                 user_agent: str = USER_AGENT):
        self.executable_path = executable_path or None
        self.navigation_timeout = navigation_timeout
        self.selector_timeout = selector_timeout
        self.user_agent = user_agent

    def render(self, url: str, wait_selector: str = None) -> RenderedPage:
        """
        Load `url`, wait for the network to settle and return the live DOM.

        A missing `wait_selector` is logged and ignored. Navigation failures
        (including timeout) propagate as playwright errors.
        """
        from playwright.sync_api import TimeoutError as PlaywrightTimeout
        from playwright.sync_api import sync_playwright

        responses = []
        with sync_playwright() as p:
            browser = p.chromium.launch(
                headless=True,
                executable_path=self.executable_path,
                args=['--no-sandbox', '--disable-setuid-sandbox'],
            )
            try:
                context = browser.new_context(user_agent=self.user_agent)
                page = context.new_page()
                page.on('response', lambda r: responses.append(ObservedResponse(r.url, r.status)))

                log.debug(f"Rendering {url}")
                page.goto(url, wait_until='networkidle', timeout=self.navigation_timeout * 1000)

                if wait_selector:
                    try:
                        page.wait_for_selector(wait_selector, timeout=self.selector_timeout * 1000)
                    except PlaywrightTimeout:
                        log.info(f"Selector {wait_selector} not found on {url}, proceeding anyway")

                html = page.content()
            finally:
                browser.close()

        log.debug(f"Rendered {url}: {len(html)} bytes, {len(responses)} responses observed")
        return RenderedPage(url=url, html=html, responses=responses)
