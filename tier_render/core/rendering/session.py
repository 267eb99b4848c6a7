"""
Render Sessions
===============

Playwright-backed render engine and reusable render sessions.
A session is one browser context and page, configured once to abort
non-essential subresource requests and to run with scripts disabled,
then reused for many documents.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Collection, Dict, Optional, Union
import asyncio

from playwright.async_api import (
    async_playwright,
    Browser,
    BrowserContext,
    Page,
    Playwright,
    Error as PlaywrightError,
    TimeoutError as PlaywrightTimeoutError,
)

from tier_render.config.logging import get_logger
from tier_render.config.settings import Settings, get_settings

logger = get_logger(__name__)

SUPPRESSED_RESOURCE_TYPES = frozenset({"image", "stylesheet", "font", "media"})

EXTRACT_TEXT_SCRIPT = "() => document.body ? document.body.innerText : ''"


class RenderError(Exception):
    """Base class for render engine failures."""

    pass


class EngineStartupError(RenderError):
    """The engine or a session could not be started."""

    pass


class NavigationError(RenderError):
    """Loading a document failed or timed out."""

    pass


class ScreenshotError(RenderError):
    """Capturing the viewport failed or timed out."""

    pass


class ExtractionError(RenderError):
    """Reading the document's visible text failed."""

    pass


def should_suppress(
    resource_type: str, blocked: Collection[str] = SUPPRESSED_RESOURCE_TYPES
) -> bool:
    """Return True if requests of ``resource_type`` must be aborted."""
    return resource_type in blocked


def document_uri(path: Union[str, Path]) -> str:
    """Resolve a local document path to a ``file://`` URI."""
    return Path(path).resolve().as_uri()


class RenderSession(ABC):
    """One reusable handle to the render engine. Not safe for concurrent use."""

    @abstractmethod
    async def navigate(self, path: Union[str, Path], timeout_ms: int) -> None:
        """Load a document, waiting until its DOM is parsed."""

    @abstractmethod
    async def screenshot(self, destination: Union[str, Path], timeout_ms: int) -> None:
        """Capture the current viewport to ``destination``."""

    @abstractmethod
    async def extract_text(self) -> str:
        """Return the current document's visible text."""

    @abstractmethod
    async def close(self) -> None:
        """Release the session."""


class RenderEngine(ABC):
    """Factory for render sessions bound to one engine instance."""

    @abstractmethod
    async def start(self) -> None:
        """Start the engine."""

    @abstractmethod
    async def open_session(self) -> RenderSession:
        """Open a new, configured session."""

    @abstractmethod
    async def stop(self) -> None:
        """Stop the engine."""


class PlaywrightRenderSession(RenderSession):
    """Render session over a Playwright browser context and page."""

    def __init__(self, context: BrowserContext, page: Page, settings: Optional[Settings] = None):
        self.context = context
        self.page = page
        self.settings = settings or get_settings()
        self.logger: Any = logger.bind(component="render_session")

    async def navigate(self, path: Union[str, Path], timeout_ms: int) -> None:
        try:
            await self.page.goto(
                document_uri(path), wait_until="domcontentloaded", timeout=timeout_ms
            )
        except PlaywrightTimeoutError as e:
            raise NavigationError(f"Navigation timeout of {timeout_ms} ms exceeded") from e
        except PlaywrightError as e:
            raise NavigationError(f"Navigation failed: {e.message}") from e

    async def screenshot(self, destination: Union[str, Path], timeout_ms: int) -> None:
        options: Dict[str, Any] = {
            "path": str(destination),
            "type": self.settings.screenshot_type,
            "full_page": False,
            "timeout": timeout_ms,
        }
        if self.settings.screenshot_type == "jpeg":
            options["quality"] = self.settings.screenshot_quality

        try:
            # Playwright's own timeout may not cover every stall, so bound the await too
            await asyncio.wait_for(self.page.screenshot(**options), timeout=timeout_ms / 1000)
        except (asyncio.TimeoutError, PlaywrightTimeoutError) as e:
            raise ScreenshotError(f"Screenshot timeout of {timeout_ms} ms exceeded") from e
        except PlaywrightError as e:
            raise ScreenshotError(f"Screenshot failed: {e.message}") from e

    async def extract_text(self) -> str:
        try:
            text = await self.page.evaluate(EXTRACT_TEXT_SCRIPT)
        except PlaywrightError as e:
            raise ExtractionError(f"Text extraction failed: {e.message}") from e
        return text if isinstance(text, str) else ""

    async def close(self) -> None:
        try:
            await self.context.close()
        except PlaywrightError as e:
            self.logger.warning("Failed to close session", error=e.message)


class PlaywrightRenderEngine(RenderEngine):
    """Headless Chromium engine producing resource-suppressing sessions."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.blocked_resource_types = frozenset(self.settings.blocked_resource_types)
        self._playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.logger: Any = logger.bind(component="render_engine")

    async def start(self) -> None:
        """Launch Playwright and a headless Chromium instance."""
        try:
            self._playwright = await async_playwright().start()
            self.browser = await self._playwright.chromium.launch(
                headless=self.settings.playwright_headless,
                args=self.settings.browser_args,
            )
        except Exception as e:
            self.logger.error("Failed to start render engine", error=str(e))
            await self.stop()
            raise EngineStartupError(f"Render engine startup failed: {e}") from e

        self.logger.info("Render engine started", headless=self.settings.playwright_headless)

    async def open_session(self) -> PlaywrightRenderSession:
        if not self.browser:
            raise EngineStartupError("Render engine not started")

        try:
            context = await self.browser.new_context(
                viewport={
                    "width": self.settings.viewport_width,
                    "height": self.settings.viewport_height,
                },
                device_scale_factor=self.settings.device_scale_factor,
                java_script_enabled=False,
            )
            await context.route("**/*", self._handle_route)
            page = await context.new_page()
        except PlaywrightError as e:
            raise EngineStartupError(f"Failed to open render session: {e.message}") from e

        return PlaywrightRenderSession(context, page, self.settings)

    async def _handle_route(self, route: Any) -> None:
        """Abort suppressed resource types, let everything else through."""
        if should_suppress(route.request.resource_type, self.blocked_resource_types):
            await route.abort()
        else:
            await route.continue_()

    async def stop(self) -> None:
        """Close the browser and stop Playwright."""
        if self.browser:
            try:
                await self.browser.close()
            except PlaywrightError as e:
                self.logger.warning("Failed to close browser", error=e.message)
            self.browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

        self.logger.info("Render engine stopped")
