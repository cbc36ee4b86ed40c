"""Pytest fixtures and configuration."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from itertools import count
from typing import Any
from unittest.mock import MagicMock

import pytest

from gigledger.core.config import Settings
from gigledger.schemas.models import SourceUser, TargetUser

FIXED_NOW = datetime(2024, 3, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def propagate_gigledger_logs():
    """Let caplog see records from the gigledger logger tree.

    Handlers installed by setup_logging during a test are dropped afterwards,
    since they hold on to that test's captured stdout.
    """
    logger = logging.getLogger("gigledger")
    previous_handlers = list(logger.handlers)
    logger.propagate = True
    yield
    logger.handlers = previous_handlers
    logger.propagate = True


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def commit_settings() -> Settings:
    return Settings(
        firebase_credentials="/secrets/firebase.json",
        supabase_url="https://example.supabase.co",
        supabase_service_role_key="service-role-key",
        dry_run=False,
    )


@pytest.fixture
def dry_run_settings(commit_settings) -> Settings:
    return Settings(
        firebase_credentials=commit_settings.firebase_credentials,
        supabase_url=commit_settings.supabase_url,
        supabase_service_role_key=commit_settings.supabase_service_role_key,
        dry_run=True,
    )


@pytest.fixture
def source_users() -> list[SourceUser]:
    return [
        SourceUser(id="fb-alice", email="alice@example.com"),
        SourceUser(id="fb-bob", email="bob@example.com"),
        SourceUser(id="fb-carol", email="carol@example.com"),
    ]


@pytest.fixture
def target_users() -> list[TargetUser]:
    # Carol has no Supabase account
    return [
        TargetUser(id="sb-alice", email="alice@example.com"),
        TargetUser(id="sb-bob", email="bob@example.com"),
        TargetUser(id="sb-dave", email="dave@example.com"),
    ]


@pytest.fixture
def source_vehicles() -> list[tuple[str, dict[str, Any]]]:
    return [
        (
            "veh-1",
            {
                "userId": "fb-alice",
                "name": "Onix",
                "brand": "Chevrolet",
                "model": "Onix LT",
                "year": 2021,
                "licensePlate": "ABC1D23",
                "type": "CAR",
                "currentOdometer": 45210,
                "tanks": [{"fuelType": "FLEX", "capacity": 44}],
                "createdAt": datetime(2024, 1, 10, 8, 30, tzinfo=timezone.utc),
                "updatedAt": "2024-02-01T10:00:00.000Z",
            },
        ),
        ("veh-2", {"userId": "fb-bob"}),
        ("veh-3", {"userId": "fb-carol", "name": "Orphan bike"}),
    ]


@pytest.fixture
def source_transactions() -> list[tuple[str, dict[str, Any]]]:
    return [
        (
            "txn-1",
            {
                "userId": "fb-alice",
                "vehicleId": "veh-1",
                "type": "EXPENSE",
                "category": "FUEL",
                "amount": 25000,
                "date": "2024-03-01T00:00:00.000Z",
                "fuelType": "GASOLINE",
                "liters": "42.5",
                "pricePerLiter": 5.89,
                "fullTank": True,
                "stationName": "Posto Central",
                "odometer": 45000,
            },
        ),
        (
            "txn-2",
            {
                "userId": "fb-alice",
                "vehicleId": "veh-1",
                "type": "INCOME",
                "platform": "UBER",
                "amount": 18050,
                "date": "2024-03-02T00:00:00.000Z",
                "distanceDriven": 120,
                "onlineDurationMinutes": 300,
            },
        ),
        # Vehicle belongs to an orphaned owner, so it never migrates
        ("txn-3", {"userId": "fb-alice", "vehicleId": "veh-3", "amount": 1000}),
        # Owner unmatched
        ("txn-4", {"userId": "fb-carol", "vehicleId": "veh-1", "amount": 1000}),
        ("txn-5", {"userId": "fb-bob", "vehicleId": "veh-2"}),
    ]


@pytest.fixture
def source_goals() -> list[tuple[str, dict[str, Any]]]:
    return [
        (
            "goal-1",
            {
                "userId": "fb-alice",
                "title": "New tires",
                "targetAmount": 120000,
                "currentAmount": 30000,
                "status": "ACTIVE",
                "deadline": "2024-06-30T00:00:00.000Z",
                "linkedVehicleIds": ["veh-1", "veh-3"],
            },
        ),
        ("goal-2", {"userId": "fb-carol", "title": "Orphan goal"}),
    ]


@pytest.fixture
def mock_source(source_users, source_vehicles, source_transactions, source_goals) -> MagicMock:
    """Mock FirestoreSourceRepository."""
    source = MagicMock()
    source.list_users.return_value = source_users
    source.list_vehicles.return_value = source_vehicles
    source.list_transactions.return_value = source_transactions
    source.list_goals.return_value = source_goals
    return source


@pytest.fixture
def mock_target(target_users) -> MagicMock:
    """Mock SupabaseTargetRepository that hands out sequential ids."""
    target = MagicMock()
    target.list_users.return_value = target_users
    ids = count(1)
    target.insert_one.side_effect = lambda table, row: f"{table}-uuid-{next(ids)}"
    target.insert_many.side_effect = lambda table, rows: len(rows)
    return target
