from collections.abc import Callable
from datetime import datetime

from planner.audit import AuditLog
from planner.auth import AuthContext
from planner.exceptions import NotFound
from planner.models import (
    PendingVolunteer,
    RegistrationForm,
    Room,
    RoomDraft,
    UserActionType,
    Volunteer,
    VolunteerDraft,
)
from planner.repository import (
    PENDING_VOLUNTEERS,
    ROOMS,
    VOLUNTEERS,
    PlannerRepository,
)

NowFn = Callable[[], datetime]


class DirectoryService:
    """Volunteers, rooms and the self-registration queue."""

    def __init__(
        self, repository: PlannerRepository, audit: AuditLog, *, now_fn: NowFn
    ) -> None:
        self.repository = repository
        self.audit = audit
        self.now_fn = now_fn

    def create_volunteer(
        self, auth: AuthContext, draft: VolunteerDraft
    ) -> Volunteer:
        auth.require_admin()
        key = self.repository.store.push(VOLUNTEERS, draft.to_document())
        volunteer = Volunteer(id=key, **draft.model_dump())
        self.audit.record(
            auth,
            UserActionType.CREATE_VOLUNTEER,
            f"Added volunteer {volunteer.full_name}",
            target_type="volunteer",
            target_id=key,
            target_name=volunteer.full_name,
        )
        return volunteer

    def delete_volunteer(self, auth: AuthContext, volunteer_id: str) -> Volunteer:
        # plannings keep pointing at the removed id and render as unassigned
        auth.require_admin()
        volunteer = self.repository.get_volunteer(volunteer_id)
        if volunteer is None:
            raise NotFound(f"Volunteer {volunteer_id} not found")
        self.repository.store.remove(f"{VOLUNTEERS}/{volunteer_id}")
        self.audit.record(
            auth,
            UserActionType.DELETE_VOLUNTEER,
            f"Removed volunteer {volunteer.full_name}",
            target_type="volunteer",
            target_id=volunteer_id,
            target_name=volunteer.full_name,
        )
        return volunteer

    def create_room(self, auth: AuthContext, draft: RoomDraft) -> Room:
        auth.require_admin()
        key = self.repository.store.push(
            ROOMS, draft.model_dump(mode="json", by_alias=True, exclude_none=True)
        )
        room = Room(id=key, **draft.model_dump())
        self.audit.record(
            auth,
            UserActionType.CREATE_ROOM,
            f"Added room {room.name}",
            target_type="room",
            target_id=key,
            target_name=room.name,
        )
        return room

    def delete_room(self, auth: AuthContext, room_id: str) -> Room:
        auth.require_admin()
        room = self.repository.get_room(room_id)
        if room is None:
            raise NotFound(f"Room {room_id} not found")
        self.repository.store.remove(f"{ROOMS}/{room_id}")
        self.audit.record(
            auth,
            UserActionType.DELETE_ROOM,
            f"Removed room {room.name}",
            target_type="room",
            target_id=room_id,
            target_name=room.name,
        )
        return room

    def register(self, form: RegistrationForm) -> PendingVolunteer:
        """Public sign-up; lands in the pending queue for an admin to review."""
        pending = PendingVolunteer(
            id="", submitted_at=self.now_fn(), **form.model_dump()
        )
        key = self.repository.store.push(
            PENDING_VOLUNTEERS, pending.to_document()
        )
        return pending.model_copy(update={"id": key})

    def pending_registrations(self, auth: AuthContext) -> list[PendingVolunteer]:
        auth.require_admin()
        return self.repository.list_pending_volunteers()
