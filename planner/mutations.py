import logging

from planner.audit import AuditLog
from planner.auth import AuthContext
from planner.exceptions import NotFound, StoreError
from planner.models import (
    BulkPlanningDraft,
    Planning,
    PlanningDraft,
    UserActionType,
)
from planner.repository import PLANNINGS, PlannerRepository

logger = logging.getLogger(__name__)

TARGET_TYPE = "planning"


class PlanningService:
    """
    Create, edit and delete plannings, writing an audit entry for each.

    Writes are unconditional; the store decides the final state when two
    admins edit the same planning.
    """

    def __init__(self, repository: PlannerRepository, audit: AuditLog) -> None:
        self.repository = repository
        self.audit = audit

    def create(self, auth: AuthContext, draft: PlanningDraft) -> Planning:
        auth.require_admin()
        planning = self._push(draft.to_document())

        volunteer, room = self._names(planning)
        self.audit.record(
            auth,
            UserActionType.CREATE,
            f"Planned {volunteer} in {room} "
            f"({planning.start_date} to {planning.end_date})",
            target_type=TARGET_TYPE,
            target_id=planning.id,
            target_name=volunteer,
        )
        return planning

    def create_bulk(
        self, auth: AuthContext, draft: BulkPlanningDraft
    ) -> list[Planning]:
        """One planning per volunteer and room pair, all for the same dates."""
        auth.require_admin()
        created: list[Planning] = []
        for volunteer_id in draft.volunteer_ids:
            for room_id in draft.room_ids:
                single = PlanningDraft(
                    volunteer_id=volunteer_id,
                    room_id=room_id,
                    start_date=draft.start_date,
                    end_date=draft.end_date,
                )
                created.append(self._push(single.to_document()))

        self.audit.record(
            auth,
            UserActionType.BULK_CREATE,
            f"Bulk planned {len(draft.volunteer_ids)} volunteers in "
            f"{len(draft.room_ids)} rooms ({draft.start_date} to "
            f"{draft.end_date}): {len(created)} plannings",
            target_type=TARGET_TYPE,
        )
        return created

    def begin_edit(self, auth: AuthContext, planning_id: str) -> Planning:
        auth.require_admin()
        planning = self._require(planning_id)
        volunteer, room = self._names(planning)
        self.audit.record(
            auth,
            UserActionType.EDIT,
            f"Opened planning of {volunteer} in {room} for editing",
            target_type=TARGET_TYPE,
            target_id=planning_id,
            target_name=volunteer,
        )
        return planning

    def update(
        self, auth: AuthContext, planning_id: str, draft: PlanningDraft
    ) -> Planning:
        auth.require_admin()
        self._require(planning_id)
        self.repository.store.set(
            f"{PLANNINGS}/{planning_id}", draft.to_document()
        )
        planning = Planning(id=planning_id, **draft.model_dump())

        volunteer, room = self._names(planning)
        self.audit.record(
            auth,
            UserActionType.UPDATE,
            f"Updated planning of {volunteer} in {room} "
            f"({planning.start_date} to {planning.end_date})",
            target_type=TARGET_TYPE,
            target_id=planning_id,
            target_name=volunteer,
        )
        return planning

    def delete(self, auth: AuthContext, planning_id: str) -> bool:
        """
        Remove a planning and log what was removed.

        Store failures are logged and reported as False. Deleting an unknown
        id still writes a log entry, without names or dates.
        """
        auth.require_admin()
        try:
            planning = self.repository.get_planning(planning_id)
            self.repository.store.remove(f"{PLANNINGS}/{planning_id}")
        except StoreError:
            logger.exception("Error deleting planning %s", planning_id)
            return False

        if planning is None:
            details = f"Deleted planning {planning_id}"
            volunteer = None
        else:
            volunteer, room = self._names(planning, placeholder=None)
            details = (
                f"Deleted planning of {volunteer or '-'} in {room or '-'} "
                f"({planning.start_date} to {planning.end_date})"
            )
        self.audit.record(
            auth,
            UserActionType.DELETE,
            details,
            target_type=TARGET_TYPE,
            target_id=planning_id,
            target_name=volunteer,
        )
        return True

    def _push(self, document: dict) -> Planning:
        key = self.repository.store.push(PLANNINGS, document)
        return Planning.model_validate({**document, "id": key})

    def _require(self, planning_id: str) -> Planning:
        planning = self.repository.get_planning(planning_id)
        if planning is None:
            raise NotFound(f"Planning {planning_id} not found")
        return planning

    def _names(
        self, planning: Planning, placeholder: str | None = "-"
    ) -> tuple[str | None, str | None]:
        volunteer = self.repository.get_volunteer(planning.volunteer_id)
        room = self.repository.get_room(planning.room_id)
        return (
            volunteer.full_name if volunteer else placeholder,
            room.name if room else placeholder,
        )
