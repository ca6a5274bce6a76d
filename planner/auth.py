import hashlib
import logging
import uuid
from typing import Protocol

from pydantic import BaseModel, ConfigDict

from planner.exceptions import AccountError, PermissionDenied
from planner.repository import PlannerRepository

logger = logging.getLogger(__name__)


class AuthContext(BaseModel):
    """Identity and role of the user performing an operation."""

    model_config = ConfigDict(frozen=True)

    uid: str
    email: str
    is_admin: bool = False

    def require_admin(self) -> None:
        if not self.is_admin:
            raise PermissionDenied(f"{self.email} is not an admin")


def resolve_auth_context(
    repository: PlannerRepository, uid: str | None
) -> AuthContext | None:
    """Look up the role stored alongside the user record."""
    if not uid:
        return None
    user = repository.get_user(uid)
    if user is None:
        return None
    return AuthContext(uid=user.uid, email=user.email, is_admin=user.admin)


class AuthService(Protocol):
    def create_user(self, email: str, password: str) -> str: ...

    def send_password_reset(self, email: str) -> None: ...


def hash_password(password: str, salt: str | None = None) -> str:
    salt = salt or uuid.uuid4().hex
    h = hashlib.sha256((salt + password).encode()).hexdigest()
    return f"{salt}${h}"


def verify_password(password: str, password_hash: str) -> bool:
    salt, sep, _ = password_hash.partition("$")
    if not sep:
        return False
    return hash_password(password, salt) == password_hash


class InMemoryAuthService:
    """
    Credential store standing in for the external authentication service.
    Password reset emails are collected in ``outbox`` instead of being sent.
    """

    def __init__(self) -> None:
        self._accounts: dict[str, tuple[str, str]] = {}  # email -> (uid, hash)
        self.outbox: list[str] = []

    def create_user(self, email: str, password: str) -> str:
        key = email.lower()
        if key in self._accounts:
            raise AccountError(f"An account for {email} already exists")
        uid = uuid.uuid4().hex
        self._accounts[key] = (uid, hash_password(password))
        logger.info("created account %s for %s", uid, email)
        return uid

    def send_password_reset(self, email: str) -> None:
        if email.lower() not in self._accounts:
            raise AccountError(f"No account found for {email}")
        self.outbox.append(email)
        logger.info("password reset link sent to %s", email)

    def check_password(self, email: str, password: str) -> bool:
        account = self._accounts.get(email.lower())
        return account is not None and verify_password(password, account[1])
