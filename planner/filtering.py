"""
Search, date filter and chronological sort for planning tables.

All functions here are pure: they return new lists and never touch the
plannings they are given.
"""

from collections.abc import Iterable, Sequence
from datetime import date
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from planner.models import Planning
from planner.repository import PlannerSnapshot


class SortDirection(StrEnum):
    ASC = "asc"
    DESC = "desc"


class SortState(BaseModel):
    """
    Sort toggle for a planning table.

    The first toggle enables sorting ascending, further toggles flip the
    direction. ``disable()`` restores store order.
    """

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    direction: SortDirection = SortDirection.ASC

    @classmethod
    def from_param(cls, value: SortDirection | None) -> "SortState":
        if value is None:
            return cls()
        return cls(enabled=True, direction=value)

    def toggle(self) -> "SortState":
        if not self.enabled:
            return SortState(enabled=True, direction=SortDirection.ASC)
        flipped = (
            SortDirection.DESC
            if self.direction == SortDirection.ASC
            else SortDirection.ASC
        )
        return SortState(enabled=True, direction=flipped)

    def disable(self) -> "SortState":
        return SortState()


def matches_query(
    planning: Planning, query: str, snapshot: PlannerSnapshot
) -> bool:
    needle = query.strip().lower()
    if not needle:
        return True
    volunteer_name = (snapshot.volunteer_name(planning.volunteer_id) or "").lower()
    room_name = (snapshot.room_name(planning.room_id) or "").lower()
    return needle in volunteer_name or needle in room_name


def matches_date(planning: Planning, on: date | None) -> bool:
    return on is None or planning.covers(on)


def filter_plannings(
    plannings: Iterable[Planning],
    snapshot: PlannerSnapshot,
    query: str = "",
    on: date | None = None,
) -> list[Planning]:
    return [
        p
        for p in plannings
        if matches_query(p, query, snapshot) and matches_date(p, on)
    ]


def sort_plannings(
    plannings: Sequence[Planning], sort: SortState
) -> list[Planning]:
    if not sort.enabled:
        return list(plannings)
    return sorted(
        plannings,
        key=lambda p: (p.start_date, p.end_date),
        reverse=sort.direction == SortDirection.DESC,
    )


def apply_view(
    plannings: Iterable[Planning],
    snapshot: PlannerSnapshot,
    query: str = "",
    on: date | None = None,
    sort: SortState | None = None,
) -> list[Planning]:
    filtered = filter_plannings(plannings, snapshot, query, on)
    return sort_plannings(filtered, sort or SortState())
