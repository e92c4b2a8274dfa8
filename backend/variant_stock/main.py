import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from variant_stock.config import get_settings
from variant_stock.errors import QueueFullError, StockCheckError
from variant_stock.explorer import VariantExplorer, monotonic_ms
from variant_stock.job_queue import JobQueue
from variant_stock.labels import normalize_text
from variant_stock.models import Job
from variant_stock.session import PlaywrightLauncher, SessionManager
from variant_stock.templates import get_template

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class CheckRequest(BaseModel):
    product_url: str = ""
    max_combos: int | None = Field(default=None, ge=1)
    max_ms: int | None = Field(default=None, ge=1)


def make_runner(template, settings, clock=monotonic_ms):
    """Runner used by the queue: one fresh explorer per job on the shared session."""
    async def run(session, job):
        return await VariantExplorer(template, settings, clock).run(session, job)
    return run


def exit_after_launch_failure(settings):
    """
    Supervisor hook: a browser that cannot launch will not heal in-process,
    so exit and let the platform restart the container.
    """
    def on_launch_failure(exc):
        if not settings.exit_on_launch_failure:
            return
        delay = settings.launch_failure_exit_delay_ms / 1000
        logger.critical("[api] Browser launch failed (%s); exiting in %.1fs", exc, delay)
        asyncio.get_running_loop().call_later(delay, os._exit, 1)
    return on_launch_failure


def create_app(settings=None, launcher=None, template=None, clock=monotonic_ms) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cfg = settings or get_settings()
        logging.basicConfig(
            level=cfg.log_level.upper(),
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
        tpl = template or get_template(cfg.storefront_template)
        sessions = SessionManager(
            launcher or PlaywrightLauncher(cfg),
            restart_backoff_ms=cfg.restart_backoff_ms,
            on_launch_failure=exit_after_launch_failure(cfg),
        )
        app.state.settings = cfg
        app.state.sessions = sessions
        app.state.queue = JobQueue(
            sessions,
            make_runner(tpl, cfg, clock),
            capacity=cfg.queue_capacity,
            restart_every=cfg.restart_every_jobs,
        )
        logger.info("[api] Ready (template=%s, capacity=%d)", tpl.name, cfg.queue_capacity)
        yield
        await app.state.queue.close()
        await sessions.close()

    app = FastAPI(title="Variant Stock API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------------------------------------------------------------------------
    # Routes
    # ---------------------------------------------------------------------------

    @app.get("/health")
    async def health():
        return {"ok": True}

    @app.get("/status")
    async def status(request: Request):
        return request.app.state.queue.status()

    @app.post("/check-variants")
    async def check_variants(body: CheckRequest, request: Request):
        started = time.monotonic()
        cfg = request.app.state.settings

        product_url = normalize_text(body.product_url)
        if not product_url:
            return JSONResponse(status_code=400, content={"error": "product_url requerido"})

        job = Job(
            url=product_url,
            max_combos=body.max_combos if body.max_combos is not None else cfg.default_max_combos,
            max_ms=body.max_ms if body.max_ms is not None else cfg.default_max_ms,
        )

        try:
            future = request.app.state.queue.submit(job)
        except QueueFullError:
            return JSONResponse(
                status_code=429,
                content={"error": "busy", "retry_after_ms": cfg.busy_retry_after_ms},
            )

        try:
            result = await future
        except StockCheckError as e:
            return JSONResponse(
                status_code=500,
                content={
                    "product_url": product_url,
                    "error": str(e),
                    "elapsed_ms": int((time.monotonic() - started) * 1000),
                },
            )
        return result.to_dict()

    return app


app = create_app()
