import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import UTC, date, datetime

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from planner.audit import AuditLog
from planner.auth import AuthContext, InMemoryAuthService, resolve_auth_context
from planner.calendar_view import iso_week_start, render_week
from planner.classify import EMPTY_MESSAGES, PlanningBucket, partition
from planner.config import Settings
from planner.database import InMemoryHierarchicalStore
from planner.directory import DirectoryService
from planner.exceptions import AccountError, NotFound, PermissionDenied, PlannerError
from planner.filtering import SortDirection, SortState, apply_view
from planner.models import (
    BulkPlanningDraft,
    NewUserForm,
    PasswordResetRequest,
    Planning,
    PlanningDraft,
    RegistrationForm,
    RoleChange,
    RoomDraft,
    VolunteerDraft,
)
from planner.mutations import PlanningService
from planner.repository import PlannerFeed, PlannerRepository, PlannerSnapshot
from planner.users import UserAdminService

logger = logging.getLogger(__name__)

router = APIRouter()

NowFn = Callable[[], datetime]
TodayFn = Callable[[], date]

ERROR_STATUS: dict[type[PlannerError], int] = {
    PermissionDenied: 403,
    NotFound: 404,
    AccountError: 400,
}


def get_auth_context(
    request: Request, x_user_id: str | None = Header(None)
) -> AuthContext:
    auth = resolve_auth_context(request.app.state.repository, x_user_id)
    if auth is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return auth


def _snapshot(request: Request) -> PlannerSnapshot:
    return request.app.state.feed.snapshot()


def _planning_row(planning: Planning, snapshot: PlannerSnapshot) -> dict:
    return {
        "id": planning.id,
        "volunteer_id": planning.volunteer_id,
        "volunteer": snapshot.volunteer_name(planning.volunteer_id) or "-",
        "room_id": planning.room_id,
        "room": snapshot.room_name(planning.room_id) or "-",
        "start_date": planning.start_date.isoformat(),
        "end_date": planning.end_date.isoformat(),
        "is_responsible": planning.is_responsible,
    }


@router.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/me")
async def me(auth: AuthContext = Depends(get_auth_context)) -> dict:
    return auth.model_dump()


@router.get("/plannings/summary")
async def planning_summary(request: Request) -> dict:
    today = request.app.state.today_fn()
    buckets = partition(_snapshot(request).plannings, today)
    return {"today": today.isoformat(), **buckets.counts()}


@router.get("/plannings")
async def list_plannings(
    request: Request,
    bucket: PlanningBucket = PlanningBucket.ACTIVE,
    q: str = "",
    on: date | None = Query(None, alias="date"),
    sort: SortDirection | None = None,
) -> dict:
    snapshot = _snapshot(request)
    today = request.app.state.today_fn()
    rows = apply_view(
        partition(snapshot.plannings, today).bucket(bucket),
        snapshot,
        query=q,
        on=on,
        sort=SortState.from_param(sort),
    )
    return {
        "bucket": bucket.value,
        "today": today.isoformat(),
        "count": len(rows),
        "plannings": [_planning_row(p, snapshot) for p in rows],
        "message": None if rows else EMPTY_MESSAGES[bucket],
    }


@router.post("/plannings", status_code=201)
async def create_planning(
    draft: PlanningDraft,
    request: Request,
    auth: AuthContext = Depends(get_auth_context),
) -> dict:
    service: PlanningService = request.app.state.planning_service
    planning = service.create(auth, draft)
    return _planning_row(planning, _snapshot(request))


@router.post("/plannings/bulk", status_code=201)
async def create_plannings_bulk(
    draft: BulkPlanningDraft,
    request: Request,
    auth: AuthContext = Depends(get_auth_context),
) -> dict:
    service: PlanningService = request.app.state.planning_service
    created = service.create_bulk(auth, draft)
    snapshot = _snapshot(request)
    return {
        "created": len(created),
        "plannings": [_planning_row(p, snapshot) for p in created],
    }


@router.post("/plannings/{planning_id}/edit")
async def begin_planning_edit(
    planning_id: str,
    request: Request,
    auth: AuthContext = Depends(get_auth_context),
) -> dict:
    service: PlanningService = request.app.state.planning_service
    planning = service.begin_edit(auth, planning_id)
    return _planning_row(planning, _snapshot(request))


@router.put("/plannings/{planning_id}")
async def update_planning(
    planning_id: str,
    draft: PlanningDraft,
    request: Request,
    auth: AuthContext = Depends(get_auth_context),
) -> dict:
    service: PlanningService = request.app.state.planning_service
    planning = service.update(auth, planning_id, draft)
    return _planning_row(planning, _snapshot(request))


@router.delete("/plannings/{planning_id}")
async def delete_planning(
    planning_id: str,
    request: Request,
    auth: AuthContext = Depends(get_auth_context),
) -> dict:
    service: PlanningService = request.app.state.planning_service
    deleted = service.delete(auth, planning_id)
    return {"planning_id": planning_id, "deleted": deleted}


@router.get("/calendar")
async def week_calendar(
    request: Request,
    on: date | None = Query(None, alias="date"),
    year: int | None = None,
    week: int | None = Query(None, ge=1, le=53),
) -> dict:
    today = request.app.state.today_fn()
    if (year is None) != (week is None):
        raise HTTPException(
            status_code=422, detail="year and week must be given together"
        )
    if year is not None and week is not None:
        try:
            start = iso_week_start(year, week)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
    else:
        start = on or today
    return render_week(_snapshot(request), start, today)


@router.get("/volunteers")
async def list_volunteers(request: Request) -> list[dict]:
    return [v.model_dump() for v in _snapshot(request).volunteers]


@router.post("/volunteers", status_code=201)
async def create_volunteer(
    draft: VolunteerDraft,
    request: Request,
    auth: AuthContext = Depends(get_auth_context),
) -> dict:
    service: DirectoryService = request.app.state.directory_service
    return service.create_volunteer(auth, draft).model_dump()


@router.delete("/volunteers/{volunteer_id}")
async def delete_volunteer(
    volunteer_id: str,
    request: Request,
    auth: AuthContext = Depends(get_auth_context),
) -> dict:
    service: DirectoryService = request.app.state.directory_service
    return service.delete_volunteer(auth, volunteer_id).model_dump()


@router.get("/rooms")
async def list_rooms(request: Request) -> list[dict]:
    return [r.model_dump() for r in _snapshot(request).rooms]


@router.post("/rooms", status_code=201)
async def create_room(
    draft: RoomDraft,
    request: Request,
    auth: AuthContext = Depends(get_auth_context),
) -> dict:
    service: DirectoryService = request.app.state.directory_service
    return service.create_room(auth, draft).model_dump()


@router.delete("/rooms/{room_id}")
async def delete_room(
    room_id: str,
    request: Request,
    auth: AuthContext = Depends(get_auth_context),
) -> dict:
    service: DirectoryService = request.app.state.directory_service
    return service.delete_room(auth, room_id).model_dump()


@router.post("/register", status_code=201)
async def register_volunteer(form: RegistrationForm, request: Request) -> dict:
    service: DirectoryService = request.app.state.directory_service
    pending = service.register(form)
    return pending.model_dump(mode="json")


@router.get("/pending-volunteers")
async def list_pending_volunteers(
    request: Request, auth: AuthContext = Depends(get_auth_context)
) -> list[dict]:
    service: DirectoryService = request.app.state.directory_service
    return [p.model_dump(mode="json") for p in service.pending_registrations(auth)]


@router.get("/users")
async def list_users(
    request: Request, auth: AuthContext = Depends(get_auth_context)
) -> list[dict]:
    service: UserAdminService = request.app.state.user_service
    return [u.model_dump() for u in service.list_users(auth)]


@router.post("/users", status_code=201)
async def create_user(
    form: NewUserForm,
    request: Request,
    auth: AuthContext = Depends(get_auth_context),
) -> dict:
    service: UserAdminService = request.app.state.user_service
    return service.create_user(auth, form).model_dump()


@router.put("/users/{uid}/role")
async def change_user_role(
    uid: str,
    change: RoleChange,
    request: Request,
    auth: AuthContext = Depends(get_auth_context),
) -> dict:
    service: UserAdminService = request.app.state.user_service
    return service.change_role(auth, uid, change).model_dump()


@router.post("/users/password-reset")
async def send_password_reset(
    payload: PasswordResetRequest,
    request: Request,
    auth: AuthContext = Depends(get_auth_context),
) -> dict:
    service: UserAdminService = request.app.state.user_service
    service.send_password_reset(auth, payload.email)
    return {"status": "sent", "email": payload.email}


@router.delete("/users/{uid}")
async def delete_user(
    uid: str,
    request: Request,
    auth: AuthContext = Depends(get_auth_context),
) -> dict:
    service: UserAdminService = request.app.state.user_service
    return service.delete_user(auth, uid).model_dump()


@router.get("/activity-logs")
async def activity_logs(
    request: Request,
    on: date | None = Query(None, alias="date"),
    auth: AuthContext = Depends(get_auth_context),
) -> dict:
    service: UserAdminService = request.app.state.user_service
    day = on or request.app.state.now_fn().astimezone(UTC).date()
    entries = service.activity_log(auth, day)
    return {
        "date": day.isoformat(),
        "entries": [e.model_dump(mode="json") for e in entries],
    }


async def _planner_error(request: Request, exc: Exception) -> JSONResponse:
    status = next(
        (code for kind, code in ERROR_STATUS.items() if isinstance(exc, kind)),
        500,
    )
    if status >= 500:
        logger.error("unhandled planner error: %s", exc, exc_info=exc)
    return JSONResponse(status_code=status, content={"detail": str(exc)})


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        app.state.feed.close()

    app = FastAPI(title="Volunteer Planner", lifespan=lifespan)
    app.state.settings = settings

    app.state.now_fn = lambda: datetime.now(UTC)
    app.state.today_fn = settings.today_fn(lambda: app.state.now_fn())

    store = InMemoryHierarchicalStore()
    repository = PlannerRepository(store)
    audit = AuditLog(repository, now_fn=lambda: app.state.now_fn())
    app.state.store = store
    app.state.repository = repository
    app.state.audit = audit
    app.state.auth_service = InMemoryAuthService()

    app.state.planning_service = PlanningService(repository, audit)
    app.state.directory_service = DirectoryService(
        repository, audit, now_fn=lambda: app.state.now_fn()
    )
    app.state.user_service = UserAdminService(
        repository, audit, app.state.auth_service
    )

    if settings.admin_uid and settings.admin_email:
        app.state.user_service.bootstrap_admin(
            settings.admin_uid, settings.admin_email
        )

    app.state.feed = PlannerFeed(repository).open()

    app.add_exception_handler(PlannerError, _planner_error)
    app.include_router(router)
    return app
