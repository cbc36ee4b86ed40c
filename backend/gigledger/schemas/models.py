"""
Migration Models

Pydantic models for user identities, Supabase target rows and run reports.
Row field names are the Supabase column names.
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, Field

from gigledger.schemas.enums import ExpenseCategory, GoalStatus, TransactionType, VehicleType

Number = Union[int, float]

DEFAULT_VEHICLE_NAME = "Veículo sem nome"


# =============================================================================
# User identities
# =============================================================================


class SourceUser(BaseModel):
    """A Firebase Auth user."""

    id: str
    email: Optional[str] = None


class TargetUser(BaseModel):
    """A Supabase Auth user."""

    id: str
    email: Optional[str] = None


class UserIdentity(BaseModel):
    """A source user joined to its target counterpart by email."""

    source_id: str
    email: str
    target_id: str


# =============================================================================
# Target rows
# =============================================================================


class VehicleRow(BaseModel):
    user_id: str
    name: str = DEFAULT_VEHICLE_NAME
    brand: str = ""
    model: str = ""
    year: int
    license_plate: str = ""
    type: str = VehicleType.CAR.value
    current_odometer: Number = 0
    tanks: list[Any] = Field(default_factory=list)
    created_at: str
    updated_at: str


class TransactionRow(BaseModel):
    user_id: str
    vehicle_id: str
    type: str = TransactionType.EXPENSE.value
    category: str = ExpenseCategory.OTHER.value
    description: str = ""
    amount: Number = Field(0, description="Minor currency units (cents).")
    date: str

    # Fuel
    fuel_type: Optional[str] = None
    liters: Optional[Number] = None
    price_per_liter: Optional[Number] = None
    is_full_tank: bool = False
    station_name: Optional[str] = None

    # Income
    platform: Optional[str] = None
    distance_driven: Optional[Number] = None
    online_duration_minutes: Optional[Number] = None
    trips_count: Optional[Number] = None
    cluster_km_per_liter: Optional[Number] = None

    is_fixed_cost: bool = False
    odometer: Optional[Number] = None
    created_at: str


class GoalRow(BaseModel):
    user_id: str
    title: Optional[str] = None
    description: str = ""
    target_amount: Number = 0
    current_amount: Number = 0
    status: str = GoalStatus.ACTIVE.value
    deadline: Optional[str] = None
    linked_vehicle_ids: list[str] = Field(default_factory=list)
    created_at: str
    updated_at: str


# =============================================================================
# Run reports
# =============================================================================


class StageReport(BaseModel):
    """Per-entity outcome of one migration stage.

    prepared counts rows that were built for insertion; inserted counts rows
    the target store accepted. Orphans are counted in skipped.
    """

    entity: str
    prepared: int = 0
    inserted: int = 0
    failed: int = 0
    skipped: int = 0

    def describe(self, dry_run: bool) -> str:
        if dry_run:
            return f"{self.entity}: {self.prepared} prepared (simulated), {self.skipped} skipped"
        return (
            f"{self.entity}: {self.inserted}/{self.prepared} inserted, "
            f"{self.failed} failed, {self.skipped} skipped"
        )


class MigrationSummary(BaseModel):
    dry_run: bool
    users_mapped: int = 0
    users_unmatched: int = 0
    stages: list[StageReport] = Field(default_factory=list)

    def stage(self, entity: str) -> Optional[StageReport]:
        return next((s for s in self.stages if s.entity == entity), None)

    @property
    def total_failed(self) -> int:
        return sum(s.failed for s in self.stages)

    def describe(self) -> str:
        parts = [f"users: {self.users_mapped} mapped, {self.users_unmatched} unmatched"]
        parts.extend(s.describe(self.dry_run) for s in self.stages)
        return " | ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
