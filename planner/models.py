"""
Records kept in the entity store.

Store documents use camelCase keys (``firstName``, ``startDate``); the models
accept both those and the snake_case field names.
"""

from datetime import UTC, date, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class StoreRecord(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict:
        """Store document for this record, without its key."""
        return self.model_dump(
            mode="json", by_alias=True, exclude={"id", "uid"}
        )


class Volunteer(StoreRecord):
    id: str
    first_name: str
    last_name: str

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def short_name(self) -> str:
        # "Anna J." as shown on the public calendar
        initial = self.last_name[:1]
        return f"{self.first_name} {initial}." if initial else self.first_name


class Room(StoreRecord):
    id: str
    name: str
    channel: str | None = None  # radio channel label


class Planning(StoreRecord):
    id: str
    volunteer_id: str
    room_id: str
    start_date: date
    end_date: date
    is_responsible: bool = False

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


class User(StoreRecord):
    uid: str
    email: str
    admin: bool = False


class UserActionType(StrEnum):
    CREATE = "CREATE"
    BULK_CREATE = "BULK_CREATE"
    EDIT = "EDIT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    CREATE_USER = "CREATE_USER"
    UPDATE_ROLE = "UPDATE_ROLE"
    DELETE_USER = "DELETE_USER"
    PASSWORD_RESET = "PASSWORD_RESET"
    CREATE_VOLUNTEER = "CREATE_VOLUNTEER"
    DELETE_VOLUNTEER = "DELETE_VOLUNTEER"
    CREATE_ROOM = "CREATE_ROOM"
    DELETE_ROOM = "DELETE_ROOM"


class ActivityLogEntry(StoreRecord):
    id: str
    timestamp: datetime
    user_email: str
    action: UserActionType
    details: str | None = None
    target_type: str | None = None
    target_id: str | None = None
    target_name: str | None = None

    @field_validator("timestamp")
    @classmethod
    def timestamp_as_utc(cls, value: datetime) -> datetime:
        # naive timestamps in the store are UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    @property
    def day(self) -> date:
        return self.timestamp.date()


class PendingStatus(StrEnum):
    PENDING = "pending"


class PendingVolunteer(StoreRecord):
    id: str
    first_name: str
    last_name: str
    phone_number: str
    submitted_at: datetime
    status: PendingStatus = PendingStatus.PENDING


# Form payloads validated before anything is written.


class PlanningDraft(StoreRecord):
    volunteer_id: str = Field(min_length=1)
    room_id: str = Field(min_length=1)
    start_date: date
    end_date: date
    is_responsible: bool = False


class BulkPlanningDraft(StoreRecord):
    volunteer_ids: list[str] = Field(min_length=1)
    room_ids: list[str] = Field(min_length=1)
    start_date: date
    end_date: date


class VolunteerDraft(StoreRecord):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)


class RoomDraft(StoreRecord):
    name: str = Field(min_length=1)
    channel: str | None = None


class RegistrationForm(StoreRecord):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone_number: str = Field(min_length=1)


EMAIL_PATTERN = r"^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9.-]+$"


class NewUserForm(StoreRecord):
    email: str = Field(pattern=EMAIL_PATTERN)
    password: str = Field(min_length=6)
    is_admin: bool = False


class RoleChange(StoreRecord):
    email: str = Field(pattern=EMAIL_PATTERN)
    admin: bool


class PasswordResetRequest(StoreRecord):
    email: str = Field(pattern=EMAIL_PATTERN)
