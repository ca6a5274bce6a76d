from datetime import UTC, date, datetime

import pytest

from planner.audit import AuditLog
from planner.auth import AuthContext, InMemoryAuthService, resolve_auth_context
from planner.directory import DirectoryService
from planner.exceptions import AccountError, NotFound, PermissionDenied
from planner.models import (
    NewUserForm,
    RegistrationForm,
    RoleChange,
    RoomDraft,
    UserActionType,
    VolunteerDraft,
)
from planner.repository import PlannerRepository
from planner.users import UserAdminService

from conftest import NOW


@pytest.fixture
def auth_service() -> InMemoryAuthService:
    return InMemoryAuthService()


@pytest.fixture
def users(
    repository: PlannerRepository, audit: AuditLog, auth_service: InMemoryAuthService
) -> UserAdminService:
    return UserAdminService(repository, audit, auth_service)


@pytest.fixture
def directory(repository: PlannerRepository, audit: AuditLog) -> DirectoryService:
    return DirectoryService(repository, audit, now_fn=lambda: NOW)


def test_resolve_auth_context_reads_role_from_user_record(
    repository: PlannerRepository,
) -> None:
    admin = resolve_auth_context(repository, "admin-uid")
    staff = resolve_auth_context(repository, "staff-uid")

    assert admin == AuthContext(uid="admin-uid", email="admin@example.org", is_admin=True)
    assert staff.is_admin is False
    assert resolve_auth_context(repository, "nobody") is None
    assert resolve_auth_context(repository, None) is None


def test_create_user_registers_account_and_role(
    users: UserAdminService,
    repository: PlannerRepository,
    auth_service: InMemoryAuthService,
    admin: AuthContext,
) -> None:
    user = users.create_user(
        admin, NewUserForm(email="new@example.org", password="s3cret!", is_admin=True)
    )

    assert repository.get_user(user.uid).admin is True
    assert auth_service.check_password("new@example.org", "s3cret!")
    assert not auth_service.check_password("new@example.org", "wrong")
    assert repository.list_activity_logs()[0].action == UserActionType.CREATE_USER

    with pytest.raises(AccountError):
        users.create_user(
            admin, NewUserForm(email="NEW@example.org", password="another1")
        )


def test_new_user_form_validation() -> None:
    with pytest.raises(ValueError):
        NewUserForm(email="not-an-email", password="longenough")
    with pytest.raises(ValueError):
        NewUserForm(email="ok@example.org", password="short")


def test_change_role_and_delete(
    users: UserAdminService, repository: PlannerRepository, admin: AuthContext
) -> None:
    users.change_role(
        admin, "staff-uid", RoleChange(email="staff@example.org", admin=True)
    )
    assert repository.get_user("staff-uid").admin is True

    removed = users.delete_user(admin, "staff-uid")
    assert removed.email == "staff@example.org"
    assert repository.get_user("staff-uid") is None

    with pytest.raises(NotFound):
        users.delete_user(admin, "staff-uid")

    actions = [e.action for e in repository.list_activity_logs()]
    assert actions == [UserActionType.UPDATE_ROLE, UserActionType.DELETE_USER]


def test_password_reset_goes_through_auth_service(
    users: UserAdminService, auth_service: InMemoryAuthService, admin: AuthContext
) -> None:
    auth_service.create_user("someone@example.org", "password1")
    users.send_password_reset(admin, "someone@example.org")
    assert auth_service.outbox == ["someone@example.org"]

    with pytest.raises(AccountError):
        users.send_password_reset(admin, "ghost@example.org")


def test_user_admin_requires_admin(users: UserAdminService, staff: AuthContext) -> None:
    with pytest.raises(PermissionDenied):
        users.list_users(staff)
    with pytest.raises(PermissionDenied):
        users.activity_log(staff, date(2024, 6, 11))


def test_bootstrap_admin_is_idempotent(
    users: UserAdminService, repository: PlannerRepository
) -> None:
    assert users.bootstrap_admin("root-uid", "root@example.org") is True
    assert users.bootstrap_admin("root-uid", "root@example.org") is False
    assert repository.get_user("root-uid").admin is True


def test_activity_log_filters_by_day_newest_first(
    repository: PlannerRepository, admin: AuthContext
) -> None:
    stamps = iter(
        [
            datetime(2024, 6, 10, 23, 59, tzinfo=UTC),
            datetime(2024, 6, 11, 8, 0, tzinfo=UTC),
            datetime(2024, 6, 11, 17, 0, tzinfo=UTC),
        ]
    )
    audit = AuditLog(repository, now_fn=lambda: next(stamps))
    audit.record(admin, UserActionType.CREATE, "yesterday")
    audit.record(admin, UserActionType.CREATE, "morning")
    audit.record(admin, UserActionType.DELETE, "evening")

    entries = audit.entries_on(date(2024, 6, 11))
    assert [e.details for e in entries] == ["evening", "morning"]


def test_activity_log_mixes_naive_and_aware_timestamps(
    repository: PlannerRepository, audit: AuditLog
) -> None:
    repository.store.set(
        "user_logs/a",
        {
            "timestamp": "2024-06-11T09:00:00Z",
            "userEmail": "admin@example.org",
            "action": "CREATE",
            "details": "aware",
        },
    )
    repository.store.set(
        "user_logs/b",
        {
            "timestamp": "2024-06-11T10:00:00",
            "userEmail": "admin@example.org",
            "action": "DELETE",
            "details": "naive",
        },
    )

    entries = audit.entries_on(date(2024, 6, 11))

    assert [e.details for e in entries] == ["naive", "aware"]
    assert entries[0].timestamp == datetime(2024, 6, 11, 10, 0, tzinfo=UTC)


def test_directory_volunteers_and_rooms(
    directory: DirectoryService, repository: PlannerRepository, admin: AuthContext
) -> None:
    volunteer = directory.create_volunteer(
        admin, VolunteerDraft(first_name="Dirk", last_name="Claes")
    )
    room = directory.create_room(admin, RoomDraft(name="Attic", channel="CH9"))

    assert repository.get_volunteer(volunteer.id).full_name == "Dirk Claes"
    assert repository.get_room(room.id).channel == "CH9"

    directory.delete_room(admin, room.id)
    assert repository.get_room(room.id) is None
    with pytest.raises(NotFound):
        directory.delete_volunteer(admin, "ghost-id")

    actions = [e.action for e in repository.list_activity_logs()]
    assert actions == [
        UserActionType.CREATE_VOLUNTEER,
        UserActionType.CREATE_ROOM,
        UserActionType.DELETE_ROOM,
    ]


def test_registration_is_public_and_pending(
    directory: DirectoryService,
    repository: PlannerRepository,
    admin: AuthContext,
    staff: AuthContext,
) -> None:
    pending = directory.register(
        RegistrationForm(first_name="Eva", last_name="Wouters", phone_number="0470")
    )

    stored = repository.store.get(f"pending_volunteers/{pending.id}")
    assert stored["status"] == "pending"
    assert stored["phoneNumber"] == "0470"
    assert [p.first_name for p in directory.pending_registrations(admin)] == ["Eva"]
    with pytest.raises(PermissionDenied):
        directory.pending_registrations(staff)
    # registrations are not volunteers
    assert all(v.first_name != "Eva" for v in repository.list_volunteers())
