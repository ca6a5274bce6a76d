import logging
from datetime import date

from planner.audit import AuditLog
from planner.auth import AuthContext, AuthService
from planner.exceptions import NotFound
from planner.models import (
    ActivityLogEntry,
    NewUserForm,
    RoleChange,
    User,
    UserActionType,
)
from planner.repository import USERS, PlannerRepository

logger = logging.getLogger(__name__)

TARGET_TYPE = "user"


def _role_label(admin: bool) -> str:
    return "admin" if admin else "staff"


class UserAdminService:
    """Account management for the settings screen. Admin only."""

    def __init__(
        self,
        repository: PlannerRepository,
        audit: AuditLog,
        auth_service: AuthService,
    ) -> None:
        self.repository = repository
        self.audit = audit
        self.auth_service = auth_service

    def list_users(self, auth: AuthContext) -> list[User]:
        auth.require_admin()
        return self.repository.list_users()

    def create_user(self, auth: AuthContext, form: NewUserForm) -> User:
        auth.require_admin()
        uid = self.auth_service.create_user(form.email, form.password)
        user = self._write_role(uid, form.email, form.is_admin)
        self.audit.record(
            auth,
            UserActionType.CREATE_USER,
            f"Created {_role_label(form.is_admin)} account {form.email}",
            target_type=TARGET_TYPE,
            target_id=uid,
            target_name=form.email,
        )
        return user

    def change_role(
        self, auth: AuthContext, uid: str, change: RoleChange
    ) -> User:
        auth.require_admin()
        user = self._write_role(uid, change.email, change.admin)
        self.audit.record(
            auth,
            UserActionType.UPDATE_ROLE,
            f"{change.email} is now {_role_label(change.admin)}",
            target_type=TARGET_TYPE,
            target_id=uid,
            target_name=change.email,
        )
        return user

    def send_password_reset(self, auth: AuthContext, email: str) -> None:
        auth.require_admin()
        self.auth_service.send_password_reset(email)
        self.audit.record(
            auth,
            UserActionType.PASSWORD_RESET,
            f"Sent password reset link to {email}",
            target_type=TARGET_TYPE,
            target_name=email,
        )

    def delete_user(self, auth: AuthContext, uid: str) -> User:
        """Remove the user record. The login itself stays with the auth service."""
        auth.require_admin()
        user = self.repository.get_user(uid)
        if user is None:
            raise NotFound(f"User {uid} not found")
        self.repository.store.remove(f"{USERS}/{uid}")
        self.audit.record(
            auth,
            UserActionType.DELETE_USER,
            f"Deleted user {user.email}",
            target_type=TARGET_TYPE,
            target_id=uid,
            target_name=user.email,
        )
        return user

    def activity_log(
        self, auth: AuthContext, day: date
    ) -> list[ActivityLogEntry]:
        auth.require_admin()
        return self.audit.entries_on(day)

    def bootstrap_admin(self, uid: str, email: str) -> bool:
        """Make sure a configured admin user record exists."""
        existing = self.repository.get_user(uid)
        if existing is not None and existing.admin:
            return False
        self._write_role(uid, email, True)
        logger.info("bootstrapped admin user %s (%s)", uid, email)
        return True

    def _write_role(self, uid: str, email: str, admin: bool) -> User:
        user = User(uid=uid, email=email, admin=admin)
        self.repository.store.set(f"{USERS}/{uid}", user.to_document())
        return user
