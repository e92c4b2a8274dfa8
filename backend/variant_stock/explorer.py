"""
Per-job exploration: load one product page on the shared browser, discover
its option dimensions and walk every combination within the job's budget,
reading the buy button after each selection.

States only move forward:
    idle -> navigated -> discovered -> iterating -> done
and any error moves to failed. The page and its context are closed on every
exit path.
"""

import enum
import logging
import math
import time

from variant_stock.classifier import choose_primary
from variant_stock.combos import build_assignments
from variant_stock.errors import NavigationError
from variant_stock.labels import fallback_label
from variant_stock.models import CheckResult, ComboResult

logger = logging.getLogger(__name__)

SECONDARY_SEPARATOR = " / "


class JobState(enum.Enum):
    IDLE = "idle"
    NAVIGATED = "navigated"
    DISCOVERED = "discovered"
    ITERATING = "iterating"
    DONE = "done"
    FAILED = "failed"


_ORDER = [JobState.IDLE, JobState.NAVIGATED, JobState.DISCOVERED, JobState.ITERATING, JobState.DONE]


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class VariantExplorer:
    def __init__(self, template, settings, clock=monotonic_ms):
        self.template = template
        self.policy = template.policy
        self.settings = settings
        self.clock = clock
        self.state = JobState.IDLE

    def _advance(self, state: JobState):
        if state is not JobState.FAILED and _ORDER.index(state) <= _ORDER.index(self.state):
            raise RuntimeError(f"Invalid job state transition {self.state.value} -> {state.value}")
        logger.debug("[explorer] %s -> %s", self.state.value, state.value)
        self.state = state

    async def run(self, browser, job) -> CheckResult:
        started = self.clock()
        deadline = started + job.max_ms
        context = page = None
        self.state = JobState.IDLE

        try:
            context, page = await self._open(browser, job)
            await self._navigate(page, job)
            self._advance(JobState.NAVIGATED)

            dimensions = await self.template.discover_dimensions(page)
            self._advance(JobState.DISCOVERED)
            logger.info(
                "[explorer] %s: %d dimension(s) %s",
                job.url, len(dimensions), [(d.name, d.size) for d in dimensions],
            )

            if not dimensions:
                result = await self._read_unmodified(page, job, started)
            else:
                result = await self._iterate(page, job, dimensions, started, deadline)

            self._advance(JobState.DONE)
            return result
        except Exception:
            self._advance(JobState.FAILED)
            raise
        finally:
            await self._close(page, context)

    # ------------------------------------------------------------------
    # Page lifecycle
    # ------------------------------------------------------------------

    async def _open(self, browser, job):
        s = self.settings
        context = await browser.new_context(
            viewport={"width": s.viewport_width, "height": s.viewport_height},
            user_agent=s.user_agent,
            service_workers="block",
            extra_http_headers={"Cache-Control": "no-cache", "Pragma": "no-cache"},
        )
        try:
            page = await context.new_page()
        except Exception:
            await self._close(None, context)
            raise
        page.set_default_timeout(s.page_timeout_ms(job.max_ms))
        return context, page

    async def _navigate(self, page, job):
        timeout = self.settings.page_timeout_ms(job.max_ms)
        try:
            await page.goto(job.url, wait_until="networkidle")
            await page.wait_for_selector(self.template.ready_selector, timeout=timeout)
        except Exception as e:
            raise NavigationError(job.url, e) from e

    async def _close(self, page, context):
        for closable in (page, context):
            if closable is None:
                continue
            try:
                await closable.close()
            except Exception as e:
                logger.debug("[explorer] close failed (ignored): %s", e)

    # ------------------------------------------------------------------
    # Driving
    # ------------------------------------------------------------------

    async def _select(self, page, name: str, value: str):
        await self.template.apply_option(page, name, value)
        # The storefront updates price/stock asynchronously after `change`
        await page.wait_for_timeout(self.settings.settle_ms)

    async def _fallback_secondary(self, page, job) -> str:
        title = await self.template.read_title(page)
        return fallback_label(job.url, title, self.policy) or self.policy.no_secondary_label

    async def _read_unmodified(self, page, job, started) -> CheckResult:
        available = await self.template.read_availability(page)
        combos = [ComboResult(
            primary_label=self.policy.no_primary_label,
            secondary_label=await self._fallback_secondary(page, job),
            available=available,
        )]
        return self._result(job, combos, started, talles=0, colores=0, dimensions=[])

    async def _iterate(self, page, job, dimensions, started, deadline) -> CheckResult:
        primary, secondaries = choose_primary(dimensions, self.policy)
        assignments = build_assignments(secondaries, job.max_combos)
        fallback = None if secondaries else await self._fallback_secondary(page, job)

        self._advance(JobState.ITERATING)
        combos = []
        for option in primary.options:
            if self.clock() > deadline:
                break
            await self._select(page, primary.name, option.value)

            for assignment in assignments:
                if self.clock() > deadline:
                    break
                for name, chosen in assignment.items():
                    await self._select(page, name, chosen.value)

                available = await self.template.read_availability(page)
                secondary = SECONDARY_SEPARATOR.join(o.display for o in assignment.values()) or fallback
                combos.append(ComboResult(option.display, secondary, available))
                if len(combos) >= job.max_combos:
                    break

            if len(combos) >= job.max_combos:
                break

        return self._result(
            job, combos, started,
            talles=primary.size,
            colores=math.prod(d.size for d in secondaries) if secondaries else 0,
            dimensions=[primary] + secondaries,
        )

    def _result(self, job, combos, started, talles, colores, dimensions) -> CheckResult:
        elapsed = self.clock() - started
        return CheckResult(
            product_url=job.url,
            combos=combos,
            talles_count=talles,
            colores_count=colores,
            limited=len(combos) >= job.max_combos or elapsed > job.max_ms,
            max_combos=job.max_combos,
            max_ms=job.max_ms,
            elapsed_ms=elapsed,
            dimensions=dimensions,
        )
