"""MealSplit - Split a shared apartment's food costs by meals eaten."""

__version__ = "0.1.0"

from .calculator import compute_settlement, per_meal_price
from .config import Settings, load_settings
from .db import Database
from .models import (
    ExpenseRecord,
    MealRecord,
    Member,
    MemberStatement,
    Period,
    PeriodExport,
    SettlementEntry,
    SettlementReport,
)
from .service import LedgerService

__all__ = [
    "Settings",
    "load_settings",
    "Database",
    "ExpenseRecord",
    "MealRecord",
    "Member",
    "MemberStatement",
    "Period",
    "PeriodExport",
    "SettlementEntry",
    "SettlementReport",
    "compute_settlement",
    "per_meal_price",
    "LedgerService",
]
