import asyncio

import pytest
from conftest import FakeLauncher

from variant_stock.errors import (
    FatalSessionError,
    NavigationError,
    QueueFullError,
    SessionLaunchError,
    UnrecognizedError,
)
from variant_stock.job_queue import JobQueue
from variant_stock.models import CheckResult, Job
from variant_stock.session import SessionManager


async def no_sleep(seconds):
    pass


def ok_result(job):
    return CheckResult(
        product_url=job.url, combos=[], talles_count=0, colores_count=0, limited=False,
        max_combos=job.max_combos, max_ms=job.max_ms, elapsed_ms=0,
    )


class Runner:
    """Records jobs in execution order; `plan` maps url -> exception to raise."""

    def __init__(self, plan=None, gate=None):
        self.plan = plan or {}
        self.gate = gate
        self.order = []
        self.active = 0
        self.max_active = 0
        self.sessions_seen = []

    async def __call__(self, session, job):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            self.order.append(job.url)
            self.sessions_seen.append(session)
            if self.gate is not None:
                await self.gate.wait()
            await asyncio.sleep(0)
            if job.url in self.plan:
                raise self.plan[job.url]
            return ok_result(job)
        finally:
            self.active -= 1


def make_queue(runner, launcher=None, capacity=10, restart_every=0):
    launcher = launcher or FakeLauncher()
    sessions = SessionManager(launcher, sleep=no_sleep)
    return JobQueue(sessions, runner, capacity=capacity, restart_every=restart_every), sessions, launcher


async def test_jobs_run_one_at_a_time_in_arrival_order():
    runner = Runner()
    queue, sessions, launcher = make_queue(runner)

    futures = [queue.submit(Job(url=f"u{i}")) for i in range(5)]
    results = await asyncio.gather(*futures)

    assert runner.order == [f"u{i}" for i in range(5)]
    assert [r.product_url for r in results] == runner.order
    assert runner.max_active == 1
    assert launcher.launches == 1
    assert sessions.jobs_completed == 5
    assert not queue.worker_active


async def test_submit_rejects_over_capacity_immediately():
    gate = asyncio.Event()
    queue, _, _ = make_queue(Runner(gate=gate), capacity=2)

    first = queue.submit(Job(url="a"))
    second = queue.submit(Job(url="b"))
    with pytest.raises(QueueFullError):
        queue.submit(Job(url="c"))

    gate.set()
    await asyncio.gather(first, second)

    # room again once drained
    await queue.submit(Job(url="d"))


async def test_failure_is_isolated_to_its_job():
    runner = Runner(plan={"bad": NavigationError("bad", RuntimeError("timeout"))})
    queue, sessions, _ = make_queue(runner)

    bad = queue.submit(Job(url="bad"))
    good = queue.submit(Job(url="good"))

    with pytest.raises(NavigationError):
        await bad
    assert (await good).product_url == "good"
    assert sessions.restarts == 0


async def test_unknown_errors_are_wrapped_and_leave_session_alone():
    runner = Runner(plan={"x": KeyError("variation[0]")})
    queue, sessions, launcher = make_queue(runner)

    with pytest.raises(UnrecognizedError):
        await queue.submit(Job(url="x"))
    await queue.submit(Job(url="y"))

    assert sessions.restarts == 0
    assert launcher.launches == 1


async def test_fatal_error_restarts_session_before_surfacing():
    runner = Runner(plan={"x": RuntimeError("Target page, context or browser has been closed")})
    queue, sessions, launcher = make_queue(runner)

    future = queue.submit(Job(url="x"))
    with pytest.raises(FatalSessionError):
        await future

    # restart already happened when the caller saw the error
    assert sessions.restarts == 1
    assert launcher.browsers[0].close_calls == 1

    await queue.submit(Job(url="y"))
    assert launcher.launches == 2
    assert runner.sessions_seen[1] is not runner.sessions_seen[0]


async def test_preventive_restart_after_every_k_jobs():
    runner = Runner()
    queue, sessions, launcher = make_queue(runner, restart_every=3)

    for i in range(3):
        await queue.submit(Job(url=f"a{i}"))
    assert sessions.restarts == 0

    await queue.submit(Job(url="b0"))
    assert sessions.restarts == 1
    assert launcher.browsers[0].close_calls == 1
    assert runner.sessions_seen[3] is not runner.sessions_seen[2]

    await queue.submit(Job(url="b1"))
    assert sessions.restarts == 1


async def test_launch_failure_surfaces_without_restart():
    runner = Runner()
    launcher = FakeLauncher(fail_with=RuntimeError("Executable doesn't exist at /ms-playwright"))
    queue, sessions, _ = make_queue(runner, launcher=launcher)

    with pytest.raises(SessionLaunchError):
        await queue.submit(Job(url="x"))

    assert sessions.restarts == 0
    assert runner.order == []


async def test_cancelled_jobs_are_skipped():
    gate = asyncio.Event()
    runner = Runner(gate=gate)
    queue, _, _ = make_queue(runner)

    first = queue.submit(Job(url="a"))
    dropped = queue.submit(Job(url="b"))
    last = queue.submit(Job(url="c"))
    dropped.cancel()
    gate.set()
    await asyncio.gather(first, last)

    assert runner.order == ["a", "c"]


async def test_status():
    gate = asyncio.Event()
    queue, _, _ = make_queue(Runner(gate=gate), capacity=4)

    first = queue.submit(Job(url="a"))
    queue.submit(Job(url="b"))
    await asyncio.sleep(0)
    await asyncio.sleep(0)

    status = queue.status()
    assert status["in_flight"] is True
    assert status["queue_length"] == 1
    assert status["worker_active"] is True
    assert status["capacity"] == 4
    assert status["session_live"] is True

    gate.set()
    await first
    await queue.close()
