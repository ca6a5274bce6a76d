from collections.abc import Callable
from datetime import date, datetime

from planner.auth import AuthContext
from planner.models import ActivityLogEntry, UserActionType
from planner.repository import USER_LOGS, PlannerRepository

NowFn = Callable[[], datetime]


class AuditLog:
    """Append-only trail of user actions under ``user_logs``."""

    def __init__(self, repository: PlannerRepository, *, now_fn: NowFn) -> None:
        self.repository = repository
        self.now_fn = now_fn

    def record(
        self,
        auth: AuthContext,
        action: UserActionType,
        details: str | None = None,
        *,
        target_type: str | None = None,
        target_id: str | None = None,
        target_name: str | None = None,
    ) -> ActivityLogEntry:
        entry = ActivityLogEntry(
            id="",
            timestamp=self.now_fn(),
            user_email=auth.email,
            action=action,
            details=details,
            target_type=target_type,
            target_id=target_id,
            target_name=target_name,
        )
        document = entry.model_dump(
            mode="json", by_alias=True, exclude={"id"}, exclude_none=True
        )
        key = self.repository.store.push(USER_LOGS, document)
        return entry.model_copy(update={"id": key})

    def entries_on(self, day: date) -> list[ActivityLogEntry]:
        entries = [e for e in self.repository.list_activity_logs() if e.day == day]
        return sorted(entries, key=lambda e: e.timestamp, reverse=True)
