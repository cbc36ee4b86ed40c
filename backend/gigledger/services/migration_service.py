"""
Firestore to Supabase Migration

One-off, operator-supervised copy of vehicles, transactions and goals from
the Firestore project to Supabase. Stages run strictly in order because each
one consumes the identity map produced by the previous one:

    Users -> Vehicles -> Transactions -> Goals

Records whose owner (or vehicle) did not migrate are skipped. Running the
migration twice inserts everything twice; there is no natural-key upsert.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Protocol

from pydantic import ValidationError

from gigledger.core.config import Settings
from gigledger.core.dates import Clock, to_canonical_timestamp, utc_now
from gigledger.core.exceptions import InvalidTimestampError, NoUsersReconciledError, TargetWriteError
from gigledger.core.logging import get_logger
from gigledger.core.numbers import coerce_number, coerce_optional_number
from gigledger.schemas.enums import ExpenseCategory, GoalStatus, TransactionType, VehicleType
from gigledger.schemas.models import (
    DEFAULT_VEHICLE_NAME,
    GoalRow,
    MigrationSummary,
    SourceUser,
    StageReport,
    TargetUser,
    TransactionRow,
    VehicleRow,
)
from gigledger.services.identity import IdentityMap, Resolved, build_user_identity_map

logger = get_logger("gigledger.services.migration")

VEHICLES_TABLE = "vehicles"
TRANSACTIONS_TABLE = "transactions"
GOALS_TABLE = "goals"

SIMULATED_ID_PREFIX = "simulated-"

# Errors that make a single record fail without stopping its stage
RECORD_ERRORS = (TargetWriteError, InvalidTimestampError, ValidationError)


class SourceStore(Protocol):
    def list_users(self) -> list[SourceUser]: ...

    def list_vehicles(self) -> list[tuple[str, dict[str, Any]]]: ...

    def list_transactions(self) -> list[tuple[str, dict[str, Any]]]: ...

    def list_goals(self) -> list[tuple[str, dict[str, Any]]]: ...


class TargetStore(Protocol):
    def list_users(self) -> list[TargetUser]: ...

    def insert_one(self, table: str, row: dict[str, Any]) -> str: ...

    def insert_many(self, table: str, rows: list[dict[str, Any]]) -> int: ...


# =============================================================================
# Row builders
# =============================================================================


def _text(value: Any, default: str = "") -> str:
    return str(value) if value else default


def _optional_text(value: Any) -> Optional[str]:
    return str(value) if value else None


def build_vehicle_row(data: dict[str, Any], owner_id: str, now: Clock = utc_now) -> VehicleRow:
    """Map a Firestore vehicle document to a Supabase row, defaulting every optional field."""
    tanks = data.get("tanks")
    return VehicleRow(
        user_id=owner_id,
        name=_text(data.get("name"), DEFAULT_VEHICLE_NAME),
        brand=_text(data.get("brand")),
        model=_text(data.get("model")),
        year=int(coerce_number(data.get("year"), now().year)),
        license_plate=_text(data.get("licensePlate")),
        type=_text(data.get("type"), VehicleType.CAR.value),
        current_odometer=coerce_number(data.get("currentOdometer"), 0),
        tanks=tanks if isinstance(tanks, list) else [],
        created_at=to_canonical_timestamp(data.get("createdAt"), now),
        updated_at=to_canonical_timestamp(data.get("updatedAt"), now),
    )


def build_transaction_row(
    data: dict[str, Any],
    owner_id: str,
    vehicle_id: str,
    now: Clock = utc_now,
) -> TransactionRow:
    """Map a Firestore transaction document to a Supabase row."""
    return TransactionRow(
        user_id=owner_id,
        vehicle_id=vehicle_id,
        type=_text(data.get("type"), TransactionType.EXPENSE.value),
        category=_text(data.get("category"), ExpenseCategory.OTHER.value),
        description=_text(data.get("description")),
        amount=coerce_number(data.get("amount"), 0),
        date=to_canonical_timestamp(data.get("date"), now),
        fuel_type=_optional_text(data.get("fuelType")),
        liters=coerce_optional_number(data.get("liters")),
        price_per_liter=coerce_optional_number(data.get("pricePerLiter")),
        is_full_tank=bool(data.get("fullTank")),
        station_name=_optional_text(data.get("stationName")),
        platform=_optional_text(data.get("platform")),
        distance_driven=coerce_optional_number(data.get("distanceDriven")),
        online_duration_minutes=coerce_optional_number(data.get("onlineDurationMinutes")),
        trips_count=coerce_optional_number(data.get("tripsCount")),
        cluster_km_per_liter=coerce_optional_number(data.get("clusterKmPerLiter")),
        is_fixed_cost=bool(data.get("isFixedCost")),
        odometer=coerce_optional_number(data.get("odometer")),
        created_at=to_canonical_timestamp(data.get("createdAt"), now),
    )


def build_goal_row(
    data: dict[str, Any],
    owner_id: str,
    linked_vehicle_ids: list[str],
    now: Clock = utc_now,
) -> GoalRow:
    """Map a Firestore goal document to a Supabase row."""
    deadline = data.get("deadline")
    return GoalRow(
        user_id=owner_id,
        title=_optional_text(data.get("title")),
        description=_text(data.get("description")),
        target_amount=coerce_number(data.get("targetAmount"), 0),
        current_amount=coerce_number(data.get("currentAmount"), 0),
        status=_text(data.get("status"), GoalStatus.ACTIVE.value),
        deadline=to_canonical_timestamp(deadline, now) if deadline else None,
        linked_vehicle_ids=linked_vehicle_ids,
        created_at=to_canonical_timestamp(data.get("createdAt"), now),
        updated_at=to_canonical_timestamp(data.get("updatedAt"), now),
    )


# =============================================================================
# Runner
# =============================================================================


class MigrationRunner:
    """Runs the four migration stages against a source and a target store."""

    def __init__(
        self,
        source: SourceStore,
        target: TargetStore,
        settings: Settings,
        clock: Optional[Clock] = None,
    ) -> None:
        self.source = source
        self.target = target
        self.settings = settings
        self.dry_run = settings.dry_run
        self.clock = clock or utc_now
        self.summary = MigrationSummary(dry_run=self.dry_run)

    def _now(self) -> datetime:
        return self.clock()

    def _report(self, entity: str) -> StageReport:
        report = StageReport(entity=entity)
        self.summary.stages.append(report)
        return report

    # -------------------------------------------------------------------------
    # Stage 1: users
    # -------------------------------------------------------------------------

    def build_user_identity_map(self) -> IdentityMap:
        """
        Map Firebase uids to Supabase user ids through their email.

        Raises:
            NoUsersReconciledError: If no source user has a target counterpart
        """
        logger.info("[1/4] Reconciling users...")
        source_users = self.source.list_users()
        target_users = self.target.list_users()

        user_map, matched, unmatched = build_user_identity_map(source_users, target_users)

        for user in unmatched:
            logger.warning(f"Firebase user {user.id} ({user.email or 'no email'}) does not exist in Supabase")

        self.summary.users_mapped = len(user_map)
        self.summary.users_unmatched = len(unmatched)
        logger.info(f"{len(matched)} users mapped, {len(unmatched)} unmatched")

        if not user_map:
            raise NoUsersReconciledError(
                "No Firebase user matched a Supabase user. "
                "Create the Supabase accounts with the same emails before migrating.",
                details={"source_users": len(source_users), "target_users": len(target_users)},
            )
        return user_map

    # -------------------------------------------------------------------------
    # Stage 2: vehicles
    # -------------------------------------------------------------------------

    def migrate_vehicles(self, user_map: IdentityMap) -> IdentityMap:
        """
        Insert vehicles one at a time and record their new ids.

        Returns:
            Map of Firestore vehicle id -> Supabase vehicle id. Vehicles that
            were skipped or failed are absent and treated as nonexistent.
        """
        logger.info("[2/4] Migrating vehicles...")
        report = self._report(VEHICLES_TABLE)
        vehicle_map = IdentityMap(VEHICLES_TABLE)

        for source_id, data in self.source.list_vehicles():
            owner = user_map.resolve(data.get("userId"))
            if not isinstance(owner, Resolved):
                report.skipped += 1
                continue

            name = data.get("name") or source_id
            try:
                row = build_vehicle_row(data, owner.target_id, self.clock)
                report.prepared += 1
                if self.dry_run:
                    vehicle_map.record(source_id, f"{SIMULATED_ID_PREFIX}{source_id}")
                    continue
                target_id = self.target.insert_one(VEHICLES_TABLE, row.model_dump(mode="json"))
            except RECORD_ERRORS as e:
                report.failed += 1
                logger.error(f"Failed to migrate vehicle '{name}' ({source_id}): {e}")
                continue

            vehicle_map.record(source_id, target_id)
            report.inserted += 1
            logger.info(f"Vehicle '{name}' migrated ({source_id} -> {target_id})")

        logger.info(report.describe(self.dry_run))
        return vehicle_map

    # -------------------------------------------------------------------------
    # Stage 3: transactions
    # -------------------------------------------------------------------------

    def migrate_transactions(self, user_map: IdentityMap, vehicle_map: IdentityMap) -> int:
        """
        Build every resolvable transaction and insert them in bulk.

        Returns:
            Number of transactions prepared for insertion
        """
        logger.info("[3/4] Migrating transactions...")
        report = self._report(TRANSACTIONS_TABLE)
        rows: list[dict[str, Any]] = []

        for source_id, data in self.source.list_transactions():
            owner = user_map.resolve(data.get("userId"))
            vehicle = vehicle_map.resolve(data.get("vehicleId"))
            if not isinstance(owner, Resolved) or not isinstance(vehicle, Resolved):
                report.skipped += 1
                continue

            try:
                row = build_transaction_row(data, owner.target_id, vehicle.target_id, self.clock)
            except RECORD_ERRORS as e:
                report.failed += 1
                logger.error(f"Failed to prepare transaction {source_id}: {e}")
                continue
            rows.append(row.model_dump(mode="json"))

        report.prepared = len(rows)

        if self.dry_run:
            logger.info(report.describe(self.dry_run))
            return len(rows)

        batch_size = self.settings.transactions_batch_size
        for start in range(0, len(rows), batch_size):
            batch = rows[start:start + batch_size]
            try:
                report.inserted += self.target.insert_many(TRANSACTIONS_TABLE, batch)
            except TargetWriteError as e:
                report.failed += len(batch)
                logger.error(f"Bulk insert of transactions {start}-{start + len(batch) - 1} failed: {e}")

        logger.info(report.describe(self.dry_run))
        return len(rows)

    # -------------------------------------------------------------------------
    # Stage 4: goals
    # -------------------------------------------------------------------------

    def migrate_goals(self, user_map: IdentityMap, vehicle_map: IdentityMap) -> None:
        """Insert goals one at a time, keeping only linked vehicles that migrated."""
        logger.info("[4/4] Migrating goals...")
        report = self._report(GOALS_TABLE)

        for source_id, data in self.source.list_goals():
            owner = user_map.resolve(data.get("userId"))
            if not isinstance(owner, Resolved):
                report.skipped += 1
                continue

            linked = data.get("linkedVehicleIds")
            linked_vehicle_ids = vehicle_map.resolve_many(linked) if isinstance(linked, list) else []

            title = data.get("title") or source_id
            try:
                row = build_goal_row(data, owner.target_id, linked_vehicle_ids, self.clock)
                report.prepared += 1
                if self.dry_run:
                    continue
                target_id = self.target.insert_one(GOALS_TABLE, row.model_dump(mode="json"))
            except RECORD_ERRORS as e:
                report.failed += 1
                logger.error(f"Failed to migrate goal '{title}' ({source_id}): {e}")
                continue

            report.inserted += 1
            logger.info(f"Goal '{title}' migrated ({source_id} -> {target_id})")

        logger.info(report.describe(self.dry_run))

    # -------------------------------------------------------------------------

    def run(self) -> MigrationSummary:
        """
        Run all stages in order.

        Raises:
            NoUsersReconciledError: If no user could be mapped; nothing is written
            SourceReadError: If a Firestore read fails
            TargetReadError: If the Supabase user listing fails
        """
        logger.info(f"Starting migration | mode: {self.settings.mode_label}")
        if not self.dry_run:
            logger.warning("Commit mode: running the migration again will duplicate every migrated row")

        user_map = self.build_user_identity_map()
        vehicle_map = self.migrate_vehicles(user_map)
        self.migrate_transactions(user_map, vehicle_map)
        self.migrate_goals(user_map, vehicle_map)

        logger.info(f"Migration finished | {self.summary.describe()}")
        return self.summary
