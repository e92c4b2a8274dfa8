"""
Owns the single shared Chromium process.

The browser is launched lazily on first use. Concurrent acquirers during
startup share one launch attempt. Restarts close the current browser
(ignoring close errors), wait a short fixed backoff and leave the relaunch
to the next acquire(). A failed launch is never retried here: it is raised
as SessionLaunchError and reported to the supervisor hook, which decides
whether the whole process should be restarted.
"""

import asyncio
import logging
import time

from playwright.async_api import async_playwright

from variant_stock.errors import SessionLaunchError

logger = logging.getLogger(__name__)


class Session:
    """A live browser plus the Playwright driver that launched it."""

    def __init__(self, browser, playwright=None):
        self.browser = browser
        self.playwright = playwright
        self.started_at = time.time()

    async def new_context(self, **kwargs):
        return await self.browser.new_context(**kwargs)

    def is_connected(self) -> bool:
        return self.browser.is_connected()

    async def close(self):
        try:
            await self.browser.close()
        finally:
            if self.playwright is not None:
                await self.playwright.stop()


class PlaywrightLauncher:
    def __init__(self, settings):
        self.settings = settings

    async def __call__(self) -> Session:
        playwright = await async_playwright().start()
        try:
            browser = await playwright.chromium.launch(
                headless=self.settings.headless,
                args=list(self.settings.browser_args),
            )
        except Exception:
            await playwright.stop()
            raise
        return Session(browser, playwright)


class SessionManager:
    def __init__(self, launcher, restart_backoff_ms: int = 750, on_launch_failure=None, sleep=asyncio.sleep):
        self.launcher = launcher
        self.restart_backoff_ms = restart_backoff_ms
        self.on_launch_failure = on_launch_failure
        self._sleep = sleep

        self.session = None
        self.jobs_completed = 0
        self.restarts = 0
        self._launching: asyncio.Future | None = None
        self._last_preventive_at = 0

    @property
    def is_live(self) -> bool:
        return self.session is not None and self.session.is_connected()

    async def acquire(self):
        """Return the live Session, launching one if needed."""
        if self.is_live:
            return self.session
        if self.session is not None:
            logger.warning("[session] Browser disconnected, discarding session")
            await self._close_current()

        if self._launching is None:
            self._launching = asyncio.ensure_future(self._launch())
        launching = self._launching
        try:
            return await asyncio.shield(launching)
        finally:
            if self._launching is launching and launching.done():
                self._launching = None

    async def _launch(self):
        started = time.monotonic()
        try:
            session = await self.launcher()
        except Exception as e:
            logger.error("[session] Browser launch failed: %s", e)
            if self.on_launch_failure is not None:
                self.on_launch_failure(e)
            raise SessionLaunchError(f"Browser launch failed: {e}") from e
        self.session = session
        logger.info("[session] Browser launched in %.1fs", time.monotonic() - started)
        return session

    async def restart(self, reason: str):
        self.restarts += 1
        logger.warning("[session] Restarting browser (%s), restart #%d", reason, self.restarts)
        await self._close_current()
        await self._sleep(self.restart_backoff_ms / 1000)

    def mark_job_completed(self):
        self.jobs_completed += 1

    def preventive_restart_due(self, every: int) -> bool:
        return (
            every > 0
            and self.jobs_completed > 0
            and self.jobs_completed % every == 0
            and self._last_preventive_at != self.jobs_completed
        )

    async def maybe_preventive_restart(self, every: int) -> bool:
        """Restart once every `every` completed jobs. Returns True if it restarted."""
        if not self.preventive_restart_due(every):
            return False
        self._last_preventive_at = self.jobs_completed
        await self.restart(f"preventive after {self.jobs_completed} jobs")
        return True

    async def _close_current(self):
        session, self.session = self.session, None
        if session is None:
            return
        try:
            await session.close()
        except Exception as e:
            logger.debug("[session] Close failed (ignored): %s", e)

    async def close(self):
        await self._close_current()

    def status(self) -> dict:
        return {
            "session_live": self.is_live,
            "jobs_completed": self.jobs_completed,
            "restarts": self.restarts,
        }
