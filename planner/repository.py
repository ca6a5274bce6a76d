import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeVar

from pydantic import ValidationError

from planner.database import InMemoryHierarchicalStore, Snapshot, Unsubscribe
from planner.models import (
    ActivityLogEntry,
    PendingVolunteer,
    Planning,
    Room,
    StoreRecord,
    User,
    Volunteer,
)

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=StoreRecord)

VOLUNTEERS = "volunteers"
ROOMS = "rooms"
PLANNINGS = "plannings"
USERS = "users"
USER_LOGS = "user_logs"
PENDING_VOLUNTEERS = "pending_volunteers"


def records_from_snapshot(
    snapshot: Snapshot, model: type[R], key_field: str = "id"
) -> list[R]:
    """
    Turn a keyed-map snapshot into an ordered list of records.

    Entries that do not validate are logged and left out.
    """
    if not isinstance(snapshot, Mapping):
        return []

    records: list[R] = []
    for key, value in snapshot.items():
        if not isinstance(value, Mapping):
            logger.warning("skipping non-record %s/%s", model.__name__, key)
            continue
        try:
            records.append(model.model_validate({**value, key_field: key}))
        except ValidationError as exc:
            logger.warning(
                "skipping malformed %s %s: %s",
                model.__name__,
                key,
                exc.errors(include_url=False),
            )
    return records


@dataclass(frozen=True, slots=True)
class PlannerSnapshot:
    """Point-in-time view of volunteers, rooms and plannings."""

    volunteers: tuple[Volunteer, ...] = ()
    rooms: tuple[Room, ...] = ()
    plannings: tuple[Planning, ...] = ()

    def volunteer(self, volunteer_id: str) -> Volunteer | None:
        return next((v for v in self.volunteers if v.id == volunteer_id), None)

    def room(self, room_id: str) -> Room | None:
        return next((r for r in self.rooms if r.id == room_id), None)

    def volunteer_name(self, volunteer_id: str) -> str | None:
        volunteer = self.volunteer(volunteer_id)
        return volunteer.full_name if volunteer else None

    def room_name(self, room_id: str) -> str | None:
        room = self.room(room_id)
        return room.name if room else None


class PlannerRepository:
    """Typed fetch/list/watch access to the entity store."""

    def __init__(self, store: InMemoryHierarchicalStore) -> None:
        self.store = store

    def list_volunteers(self) -> list[Volunteer]:
        return records_from_snapshot(self.store.get(VOLUNTEERS), Volunteer)

    def list_rooms(self) -> list[Room]:
        return records_from_snapshot(self.store.get(ROOMS), Room)

    def list_plannings(self) -> list[Planning]:
        return records_from_snapshot(self.store.get(PLANNINGS), Planning)

    def list_users(self) -> list[User]:
        return records_from_snapshot(self.store.get(USERS), User, "uid")

    def list_activity_logs(self) -> list[ActivityLogEntry]:
        return records_from_snapshot(
            self.store.get(USER_LOGS), ActivityLogEntry
        )

    def list_pending_volunteers(self) -> list[PendingVolunteer]:
        return records_from_snapshot(
            self.store.get(PENDING_VOLUNTEERS), PendingVolunteer
        )

    def get_planning(self, planning_id: str) -> Planning | None:
        return self._get(f"{PLANNINGS}/{planning_id}", Planning, planning_id)

    def get_volunteer(self, volunteer_id: str) -> Volunteer | None:
        return self._get(f"{VOLUNTEERS}/{volunteer_id}", Volunteer, volunteer_id)

    def get_room(self, room_id: str) -> Room | None:
        return self._get(f"{ROOMS}/{room_id}", Room, room_id)

    def get_user(self, uid: str) -> User | None:
        return self._get(f"{USERS}/{uid}", User, uid, "uid")

    def snapshot(self) -> PlannerSnapshot:
        return PlannerSnapshot(
            volunteers=tuple(self.list_volunteers()),
            rooms=tuple(self.list_rooms()),
            plannings=tuple(self.list_plannings()),
        )

    def watch_volunteers(
        self, callback: Callable[[list[Volunteer]], None]
    ) -> Unsubscribe:
        return self._watch(VOLUNTEERS, Volunteer, callback)

    def watch_rooms(self, callback: Callable[[list[Room]], None]) -> Unsubscribe:
        return self._watch(ROOMS, Room, callback)

    def watch_plannings(
        self, callback: Callable[[list[Planning]], None]
    ) -> Unsubscribe:
        return self._watch(PLANNINGS, Planning, callback)

    def _get(
        self, path: str, model: type[R], key: str, key_field: str = "id"
    ) -> R | None:
        value = self.store.get(path)
        if value is None:
            return None
        found = records_from_snapshot({key: value}, model, key_field)
        return found[0] if found else None

    def _watch(
        self,
        path: str,
        model: type[R],
        callback: Callable[[list[R]], None],
    ) -> Unsubscribe:
        return self.store.subscribe(
            path, lambda snap: callback(records_from_snapshot(snap, model))
        )


@dataclass
class PlannerFeed:
    """
    Keeps the latest volunteers, rooms and plannings from three independent
    live subscriptions. The callbacks arrive in no particular order, so a
    snapshot may briefly reference ids that are not loaded yet.
    """

    repository: PlannerRepository
    volunteers: list[Volunteer] = field(default_factory=list)
    rooms: list[Room] = field(default_factory=list)
    plannings: list[Planning] = field(default_factory=list)
    _unsubscribers: list[Unsubscribe] = field(default_factory=list, repr=False)

    def open(self) -> "PlannerFeed":
        if self._unsubscribers:
            return self
        self._unsubscribers = [
            self.repository.watch_volunteers(self._on("volunteers")),
            self.repository.watch_rooms(self._on("rooms")),
            self.repository.watch_plannings(self._on("plannings")),
        ]
        return self

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    @property
    def is_open(self) -> bool:
        return bool(self._unsubscribers)

    def snapshot(self) -> PlannerSnapshot:
        return PlannerSnapshot(
            volunteers=tuple(self.volunteers),
            rooms=tuple(self.rooms),
            plannings=tuple(self.plannings),
        )

    def _on(self, attr: str) -> Callable[[list[Any]], None]:
        def _update(records: list[Any]) -> None:
            setattr(self, attr, records)

        return _update
