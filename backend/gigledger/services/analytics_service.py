"""
Driver and admin analytics.

Pure aggregations over already-fetched Supabase rows. Transactions use the
snake_case column names and store amounts in cents; every figure returned here
is in currency units.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

import pandas as pd

from gigledger.core.dates import utc_now
from gigledger.schemas.enums import (
    LEGACY_FUEL_CATEGORY,
    ExpenseCategory,
    SubscriptionPlan,
    SubscriptionStatus,
    TransactionType,
)

# Average monthly price of a PRO subscription, used for the MRR estimate
PRO_TICKET = 19.90

CHURN_WINDOW_DAYS = 30

PERIODS = ("DAY", "WEEK", "MONTH")


@dataclass
class DashboardMetrics:
    income: float = 0.0
    expense: float = 0.0
    profit: float = 0.0
    km: float = 0.0
    hours: float = 0.0
    # Operational (fuel estimated from efficiency, maintenance real)
    profit_per_hour: float = 0.0
    profit_per_km: float = 0.0
    fuel_cost_per_km: float = 0.0
    maintenance_cost_per_km: float = 0.0
    # Gross productivity
    gross_per_hour: float = 0.0
    gross_per_km: float = 0.0
    avg_daily_income: float = 0.0
    # Efficiency in km/l
    cluster_avg: float = 0.0
    real_avg: float = 0.0
    best_platform: Optional[str] = None
    best_platform_amount: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class OdometerStats:
    has_data: bool = False
    readings: int = 0
    first_km: float = 0.0
    last_km: float = 0.0
    total_km: float = 0.0
    avg_km_per_day: int = 0


@dataclass
class AdminMetrics:
    total_users: int = 0
    active_pros: int = 0
    new_pros_month: int = 0
    churn_count: int = 0
    churn_rate: float = 0.0
    mrr: float = 0.0
    plan_distribution: dict[str, int] = field(default_factory=dict)
    cancellations_by_month: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# =============================================================================
# Helpers
# =============================================================================


def _to_timestamp(value: Any) -> Optional[pd.Timestamp]:
    if value is None or value == "":
        return None
    parsed = pd.to_datetime(value, errors="coerce", utc=True)
    if pd.isna(parsed):
        return None
    return parsed


def _number(value: Any) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(parsed) else parsed


def _money(cents: Any) -> float:
    return _number(cents) / 100


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def is_fuel(txn: dict[str, Any]) -> bool:
    """Fuel expenses are tagged FUEL, or with the old Portuguese label."""
    return txn.get("type") == TransactionType.EXPENSE.value and txn.get("category") in (
        ExpenseCategory.FUEL.value,
        LEGACY_FUEL_CATEGORY,
    )


def period_bounds(reference: datetime, period: str) -> tuple[datetime, datetime]:
    """
    Start and end (inclusive) of the DAY, WEEK or MONTH containing reference.

    Weeks start on Monday.
    """
    if period not in PERIODS:
        raise ValueError(f"Unknown period: {period!r}")

    start = reference.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "DAY":
        end = start + timedelta(days=1)
    elif period == "WEEK":
        start = start - timedelta(days=start.weekday())
        end = start + timedelta(days=7)
    else:
        start = start.replace(day=1)
        if start.month == 12:
            end = start.replace(year=start.year + 1, month=1)
        else:
            end = start.replace(month=start.month + 1)
    return start, end - timedelta(microseconds=1)


# =============================================================================
# Driver dashboard
# =============================================================================


def last_fuel_price(transactions: Iterable[dict[str, Any]]) -> float:
    """Price per liter of the most recent fuel expense that has one, else 0."""
    latest: Optional[pd.Timestamp] = None
    price = 0.0
    for txn in transactions:
        if not is_fuel(txn) or not _number(txn.get("price_per_liter")):
            continue
        when = _to_timestamp(txn.get("date"))
        if when is None:
            continue
        if latest is None or when > latest:
            latest = when
            price = _number(txn["price_per_liter"])
    return price


def build_dashboard_metrics(
    transactions: list[dict[str, Any]],
    fuel_price: float = 0.0,
) -> DashboardMetrics:
    """
    Aggregate a period's transactions into the dashboard cards.

    Args:
        transactions: Rows of a single period (day, week or month)
        fuel_price: Last known price per liter, used to estimate fuel cost per km

    Operational profit charges fuel at fuel_cost_per_km * km instead of the
    period's refuels, so filling the tank on a single day does not distort it.
    """
    metrics = DashboardMetrics()
    minutes = 0.0
    liters = 0.0
    cluster_sum = 0.0
    cluster_count = 0
    maintenance = 0.0
    platform_income: dict[str, float] = {}
    active_days: set[Any] = set()

    for txn in transactions:
        value = _money(txn.get("amount"))
        when = _to_timestamp(txn.get("date"))
        if when is not None:
            active_days.add(when.date())

        if txn.get("type") == TransactionType.INCOME.value:
            metrics.income += value
            platform = txn.get("platform")
            if platform:
                platform_income[platform] = platform_income.get(platform, 0.0) + value
            metrics.km += _number(txn.get("distance_driven"))
            minutes += _number(txn.get("online_duration_minutes"))
            cluster = _number(txn.get("cluster_km_per_liter"))
            if cluster > 0:
                cluster_sum += cluster
                cluster_count += 1
        else:
            metrics.expense += value
            if is_fuel(txn):
                liters += _number(txn.get("liters"))
            else:
                maintenance += value

    metrics.profit = metrics.income - metrics.expense
    metrics.hours = minutes / 60

    metrics.real_avg = metrics.km / liters if liters > 0 else 0.0
    metrics.cluster_avg = cluster_sum / cluster_count if cluster_count else 0.0

    metrics.gross_per_hour = metrics.income / metrics.hours if metrics.hours > 0 else 0.0
    metrics.gross_per_km = metrics.income / metrics.km if metrics.km > 0 else 0.0
    metrics.avg_daily_income = metrics.income / (len(active_days) or 1)

    # Dashboard (cluster) efficiency wins over the refuel-based one
    efficiency = metrics.cluster_avg or metrics.real_avg
    if efficiency > 0 and fuel_price > 0:
        metrics.fuel_cost_per_km = fuel_price / efficiency
    metrics.maintenance_cost_per_km = maintenance / metrics.km if metrics.km > 0 else 0.0

    operational_profit = metrics.income - (metrics.fuel_cost_per_km * metrics.km + maintenance)
    metrics.profit_per_hour = operational_profit / metrics.hours if metrics.hours > 0 else 0.0
    metrics.profit_per_km = operational_profit / metrics.km if metrics.km > 0 else 0.0

    for platform, amount in platform_income.items():
        if amount > metrics.best_platform_amount:
            metrics.best_platform = platform
            metrics.best_platform_amount = amount

    return metrics


def daily_cash_flow(transactions: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Income and expense per day of month, sorted by day."""
    df = pd.DataFrame(transactions)
    if df.empty or "date" not in df.columns:
        return []

    df["date"] = pd.to_datetime(df["date"], errors="coerce", utc=True, format="ISO8601")
    df = df.dropna(subset=["date"])
    if df.empty:
        return []

    for column in ("amount", "type"):
        if column not in df.columns:
            df[column] = None

    df["day"] = df["date"].dt.day
    df["value"] = pd.to_numeric(df["amount"], errors="coerce").fillna(0) / 100
    df["kind"] = df["type"].where(df["type"] == TransactionType.INCOME.value, TransactionType.EXPENSE.value)

    table = df.pivot_table(index="day", columns="kind", values="value", aggfunc="sum", fill_value=0)
    table = table.reindex(
        columns=[TransactionType.INCOME.value, TransactionType.EXPENSE.value], fill_value=0
    ).sort_index()

    return [
        {
            "day": int(day),
            "income": round(float(row[TransactionType.INCOME.value]), 2),
            "expense": round(float(row[TransactionType.EXPENSE.value]), 2),
        }
        for day, row in table.iterrows()
    ]


def group_by_month(records: list[dict[str, Any]], date_field: str = "date") -> dict[str, list[dict[str, Any]]]:
    """
    Group records by YYYY-MM for the timeline.

    Months and the records inside them are ordered newest first. Records
    without a parsable date are left out.
    """
    if not records:
        return {}

    dates = pd.to_datetime(
        pd.Series([record.get(date_field) for record in records], dtype="object"),
        errors="coerce",
        utc=True,
        format="ISO8601",
    )
    dates = dates.dropna().sort_values(ascending=False, kind="stable")

    grouped: dict[str, list[dict[str, Any]]] = {}
    for index, when in dates.items():
        grouped.setdefault(when.strftime("%Y-%m"), []).append(records[index])
    return grouped


def odometer_stats(transactions: list[dict[str, Any]]) -> OdometerStats:
    """Mileage growth between the first and last odometer readings."""
    readings = []
    for txn in transactions:
        km = _number(txn.get("odometer"))
        when = _to_timestamp(txn.get("date"))
        if km > 0 and when is not None:
            readings.append((when, km))

    stats = OdometerStats(readings=len(readings))
    if len(readings) < 2:
        return stats

    readings.sort(key=lambda reading: reading[0])
    (first_date, first_km), (last_date, last_km) = readings[0], readings[-1]

    stats.has_data = True
    stats.first_km = first_km
    stats.last_km = last_km
    stats.total_km = last_km - first_km

    elapsed_days = abs((last_date - first_date).total_seconds()) / 86400
    days = max(1, math.ceil(elapsed_days))
    stats.avg_km_per_day = _round_half_up(stats.total_km / days)
    return stats


def fuel_cost_per_liter(transactions: Iterable[dict[str, Any]]) -> float:
    """Average price paid per liter across fuel expenses, 0 without refuels."""
    spent = 0.0
    liters = 0.0
    for txn in transactions:
        if not is_fuel(txn):
            continue
        txn_liters = _number(txn.get("liters"))
        if txn_liters <= 0:
            continue
        spent += _money(txn.get("amount"))
        liters += txn_liters
    return spent / liters if liters > 0 else 0.0


# =============================================================================
# Admin
# =============================================================================


def admin_metrics(
    profiles: list[dict[str, Any]],
    now: Optional[datetime] = None,
    pro_ticket: float = PRO_TICKET,
) -> AdminMetrics:
    """
    Subscription health across all user profiles.

    Churn rate is recent cancellations (last 30 days) over the active PRO
    base plus those cancellations, in percent. MRR is active PROs times the
    average ticket.
    """
    now = now or utc_now()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    churn_window_start = pd.Timestamp(now - timedelta(days=CHURN_WINDOW_DAYS))
    month_start = pd.Timestamp(now.replace(day=1, hour=0, minute=0, second=0, microsecond=0))

    metrics = AdminMetrics(total_users=len(profiles))
    total_free = 0

    for profile in profiles:
        is_active_pro = (
            profile.get("plan") == SubscriptionPlan.PRO.value
            and profile.get("subscription_status") == SubscriptionStatus.ACTIVE.value
        )
        if is_active_pro:
            metrics.active_pros += 1
            created_at = _to_timestamp(profile.get("created_at"))
            if created_at is not None and created_at >= month_start:
                metrics.new_pros_month += 1
        else:
            total_free += 1

        canceled_at = _to_timestamp(profile.get("canceled_at"))
        if canceled_at is not None:
            if canceled_at >= churn_window_start:
                metrics.churn_count += 1
            month = canceled_at.strftime("%Y-%m")
            metrics.cancellations_by_month[month] = metrics.cancellations_by_month.get(month, 0) + 1

    base = metrics.active_pros + metrics.churn_count
    metrics.churn_rate = metrics.churn_count / base * 100 if base > 0 else 0.0
    metrics.mrr = round(metrics.active_pros * pro_ticket, 2)
    metrics.plan_distribution = {"Free": total_free, "Pro": metrics.active_pros}
    metrics.cancellations_by_month = dict(sorted(metrics.cancellations_by_month.items()))
    return metrics
