"""
Domain enums

Values match what the web app stores in Firestore and Supabase.
"""

from enum import Enum


class TransactionType(str, Enum):
    """Direction of a transaction."""

    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class ExpenseCategory(str, Enum):
    FUEL = "FUEL"
    MAINTENANCE = "MAINTENANCE"
    INSURANCE = "INSURANCE"
    TAXES = "TAXES"
    CLEANING = "CLEANING"
    FOOD = "FOOD"
    PHONE = "PHONE"
    FINANCING = "FINANCING"
    OTHER = "OTHER"


# Fuel expenses recorded before the category enum existed
LEGACY_FUEL_CATEGORY = "Combustível"


class FuelType(str, Enum):
    FLEX = "FLEX"
    GASOLINE = "GASOLINE"
    ETHANOL = "ETHANOL"
    DIESEL = "DIESEL"
    CNG = "CNG"
    ELECTRIC = "ELECTRIC"


class Platform(str, Enum):
    """Ride-hail and delivery platforms an income can come from."""

    UBER = "UBER"
    NINETY_NINE = "99"
    INDRIVER = "INDRIVER"
    IFOOD = "IFOOD"
    RAPPI = "RAPPI"
    LOGGI = "LOGGI"
    LALAMOVE = "LALAMOVE"
    MERCADO_LIVRE = "MERCADO_LIVRE"
    CORNER_SHOP = "CORNERSHOP"
    PARTICULAR = "PARTICULAR"


class VehicleType(str, Enum):
    CAR = "CAR"
    MOTORCYCLE = "MOTORCYCLE"
    BICYCLE = "BICYCLE"
    OTHER = "OTHER"


class GoalStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"


class SubscriptionPlan(str, Enum):
    FREE = "FREE"
    PRO = "PRO"


class SubscriptionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CANCELED = "CANCELED"
    PAST_DUE = "PAST_DUE"
