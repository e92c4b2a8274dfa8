from pydantic_settings import BaseSettings
from functools import lru_cache
import os


class Settings(BaseSettings):
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    # Job queue
    queue_capacity: int = 20
    busy_retry_after_ms: int = 3000

    # Session lifecycle
    restart_every_jobs: int = 25  # 0 disables preventive restarts
    restart_backoff_ms: int = 750
    exit_on_launch_failure: bool = True
    launch_failure_exit_delay_ms: int = 1500

    # Per-job defaults and budgets
    default_max_combos: int = 200
    default_max_ms: int = 20000
    settle_ms: int = 40  # milliseconds
    min_page_timeout_ms: int = 5000
    max_page_timeout_ms: int = 20000

    # Browser
    headless: bool = True
    viewport_width: int = 1280
    viewport_height: int = 800
    user_agent: str = (
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120 Safari/537.36"
    )
    browser_args: list[str] = [
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-dev-shm-usage",
        "--disable-gpu",
    ]

    storefront_template: str = "tiendanube"

    class Config:
        # Look for .env in the repo root (two levels up from backend/variant_stock/)
        _env_path = os.path.join(os.path.dirname(__file__), "..", "..", ".env")
        env_file = _env_path if os.path.exists(_env_path) else None
        env_file_encoding = "utf-8"
        extra = "ignore"

    def page_timeout_ms(self, max_ms: int) -> int:
        """Default page-operation timeout for a job with the given budget."""
        return min(self.max_page_timeout_ms, max(self.min_page_timeout_ms, max_ms))


@lru_cache()
def get_settings():
    return Settings()
