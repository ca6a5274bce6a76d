import os
from collections.abc import Callable, Mapping
from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field


class Settings(BaseModel):
    timezone: str = "Europe/Brussels"
    log_level: str = "INFO"
    admin_uid: str | None = Field(default=None)
    admin_email: str | None = Field(default=None)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            timezone=env.get("PLANNER_TIMEZONE", "Europe/Brussels"),
            log_level=env.get("PLANNER_LOG_LEVEL", "INFO"),
            admin_uid=env.get("PLANNER_ADMIN_UID") or None,
            admin_email=env.get("PLANNER_ADMIN_EMAIL") or None,
        )

    def today_fn(self, now_fn: Callable[[], datetime]) -> Callable[[], date]:
        """Local calendar date derived from ``now_fn``."""
        zone = ZoneInfo(self.timezone)

        def _today() -> date:
            now = now_fn()
            if now.tzinfo is None:
                now = now.replace(tzinfo=UTC)
            return now.astimezone(zone).date()

        return _today
