import logging
from collections.abc import Iterable, Sequence
from datetime import date, timedelta
from typing import TypeAlias

from planner.models import Planning, Room
from planner.repository import PlannerSnapshot

logger = logging.getLogger(__name__)

UNASSIGNED = "Unassigned"
NO_ASSIGNMENTS = "No assignments"

RoomPlannings: TypeAlias = dict[str, list[Planning]]


def week_start(day: date) -> date:
    """Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


def iso_week_start(year: int, week: int) -> date:
    return date.fromisocalendar(year, week, 1)


def week_days(start: date) -> list[date]:
    return [start + timedelta(days=i) for i in range(7)]


def plannings_for_day(plannings: Iterable[Planning], day: date) -> list[Planning]:
    return [p for p in plannings if p.covers(day)]


def plannings_by_room(
    plannings: Iterable[Planning], rooms: Sequence[Room], day: date
) -> RoomPlannings:
    """
    Plannings covering ``day`` grouped per room, in room order.

    Rooms without plannings that day are left out, and so are plannings whose
    room is unknown. Responsible plannings come first within a room.
    """
    day_plannings = plannings_for_day(plannings, day)
    grouped: RoomPlannings = {}
    for room in rooms:
        in_room = [p for p in day_plannings if p.room_id == room.id]
        if in_room:
            grouped[room.id] = sorted(in_room, key=lambda p: not p.is_responsible)
    return grouped


def aggregate_week(
    start: date, plannings: Sequence[Planning], rooms: Sequence[Room]
) -> dict[date, RoomPlannings]:
    return {day: plannings_by_room(plannings, rooms, day) for day in week_days(start)}


def render_week(snapshot: PlannerSnapshot, start: date, today: date) -> dict:
    """Week view payload for the public calendar."""
    start = week_start(start)
    for planning in snapshot.plannings:
        if planning.start_date > planning.end_date:
            logger.warning(
                "planning %s ends (%s) before it starts (%s), not on the calendar",
                planning.id,
                planning.end_date,
                planning.start_date,
            )
    days = []
    for day, by_room in aggregate_week(
        start, snapshot.plannings, snapshot.rooms
    ).items():
        rooms = []
        for room_id, room_plannings in by_room.items():
            room = snapshot.room(room_id)
            rooms.append(
                {
                    "room_id": room_id,
                    "name": room.name if room else "-",
                    "channel": room.channel if room else None,
                    "assignments": [
                        {
                            "planning_id": p.id,
                            "volunteer": _volunteer_label(snapshot, p),
                            "is_responsible": p.is_responsible,
                        }
                        for p in room_plannings
                    ],
                }
            )
        days.append(
            {
                "date": day.isoformat(),
                "weekday": day.strftime("%A"),
                "is_today": day == today,
                "rooms": rooms,
                "message": None if rooms else NO_ASSIGNMENTS,
            }
        )
    return {"week_start": start.isoformat(), "days": days}


def _volunteer_label(snapshot: PlannerSnapshot, planning: Planning) -> str:
    volunteer = snapshot.volunteer(planning.volunteer_id)
    return volunteer.short_name if volunteer else UNASSIGNED
