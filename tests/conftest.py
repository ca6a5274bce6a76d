from datetime import UTC, date, datetime
from itertools import count

import pytest

from planner.audit import AuditLog
from planner.auth import AuthContext
from planner.database import InMemoryHierarchicalStore
from planner.repository import PlannerRepository

VOLUNTEERS = {
    "anna-id": {"firstName": "Anna", "lastName": "Jansen"},
    "bram-id": {"firstName": "Bram", "lastName": "Peeters"},
    "chloe-id": {"firstName": "Chloe", "lastName": "Maes"},
}

ROOMS = {
    "hall-id": {"name": "Main Hall", "channel": "CH1"},
    "kitchen-id": {"name": "Kitchen"},
    "entrance-id": {"name": "Entrance", "channel": "CH3"},
}

PLANNINGS = {
    "active-id": {
        "volunteerId": "anna-id",
        "roomId": "hall-id",
        "startDate": "2024-06-10",
        "endDate": "2024-06-12",
    },
    "upcoming-id": {
        "volunteerId": "bram-id",
        "roomId": "kitchen-id",
        "startDate": "2024-06-20",
        "endDate": "2024-06-22",
    },
    "past-id": {
        "volunteerId": "chloe-id",
        "roomId": "entrance-id",
        "startDate": "2024-06-01",
        "endDate": "2024-06-05",
    },
}

USERS = {
    "admin-uid": {"email": "admin@example.org", "admin": True},
    "staff-uid": {"email": "staff@example.org", "admin": False},
}

TODAY = date(2024, 6, 11)
NOW = datetime(2024, 6, 11, 9, 30, tzinfo=UTC)


def seed(store: InMemoryHierarchicalStore) -> None:
    store.set("volunteers", VOLUNTEERS)
    store.set("rooms", ROOMS)
    store.set("plannings", PLANNINGS)
    store.set("users", USERS)


@pytest.fixture
def store() -> InMemoryHierarchicalStore:
    keys = count(1)
    return InMemoryHierarchicalStore(key_fn=lambda: f"key-{next(keys):03d}")


@pytest.fixture
def repository(store) -> PlannerRepository:
    seed(store)
    return PlannerRepository(store)


@pytest.fixture
def audit(repository) -> AuditLog:
    return AuditLog(repository, now_fn=lambda: NOW)


@pytest.fixture
def admin() -> AuthContext:
    return AuthContext(uid="admin-uid", email="admin@example.org", is_admin=True)


@pytest.fixture
def staff() -> AuthContext:
    return AuthContext(uid="staff-uid", email="staff@example.org", is_admin=False)
