"""SQLite database operations for MealSplit."""

import logging
import sqlite3
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

from .exceptions import (
    DuplicateMemberError,
    InvalidRecordError,
    RecordNotFoundError,
)
from .models import ExpenseRecord, MealRecord, Member, Period

logger = logging.getLogger(__name__)


class Database:
    """SQLite database manager."""

    def __init__(self, db_path: Path | str):
        """Initialize database connection."""
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path))
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        cursor = self.conn.cursor()

        # Members table
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS members (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        # Expenses table (amount stored as decimal text)
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS expenses (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                member_id INTEGER NOT NULL,
                amount TEXT NOT NULL,
                description TEXT NOT NULL DEFAULT '',
                month INTEGER NOT NULL,
                year INTEGER NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (member_id) REFERENCES members (id)
            )
        """
        )

        # Meals table: one row per member per day
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS meals (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                member_id INTEGER NOT NULL,
                date DATE NOT NULL,
                count INTEGER NOT NULL DEFAULT 1,
                month INTEGER NOT NULL,
                year INTEGER NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (member_id) REFERENCES members (id),
                UNIQUE (member_id, date)
            )
        """
        )

        # Config table
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS config (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        self.conn.commit()

    def close(self):
        """Close database connection."""
        self.conn.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    # ========================================================================
    # Config operations
    # ========================================================================

    def get_config(self, key: str) -> str | None:
        """Get a config value by key."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM config WHERE key = ?", (key,))
        row = cursor.fetchone()
        return str(row["value"]) if row else None

    def set_config(self, key: str, value: str):
        """Set a config value."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO config (key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
            """,
            (key, value, datetime.now().isoformat()),
        )
        self.conn.commit()

    # ========================================================================
    # Member operations
    # ========================================================================

    def add_member(self, name: str) -> Member:
        """Add a member to the roster."""
        cursor = self.conn.cursor()
        try:
            cursor.execute(
                "INSERT INTO members (name, created_at) VALUES (?, ?)",
                (name, datetime.now().isoformat()),
            )
        except sqlite3.IntegrityError as e:
            raise DuplicateMemberError(f"Member {name!r} already exists") from e
        self.conn.commit()
        row_id = cursor.lastrowid
        if row_id is None:
            raise RuntimeError("Failed to insert member")
        logger.info(f"Added member {name!r} (id {row_id})")
        return Member(id=row_id, name=name)

    def seed_members(self, names: list[str]) -> list[Member]:
        """Insert any roster names that are missing, returning the new members."""
        cursor = self.conn.cursor()
        added = []
        for name in names:
            cursor.execute(
                "INSERT INTO members (name, created_at) VALUES (?, ?) "
                "ON CONFLICT(name) DO NOTHING",
                (name, datetime.now().isoformat()),
            )
            if cursor.rowcount and cursor.lastrowid is not None:
                added.append(Member(id=cursor.lastrowid, name=name))
        self.conn.commit()
        return added

    def get_member(self, member_id: int) -> Member | None:
        """Get a member by id."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT id, name FROM members WHERE id = ?", (member_id,))
        row = cursor.fetchone()
        return Member(id=row["id"], name=row["name"]) if row else None

    def get_member_by_name(self, name: str) -> Member | None:
        """Get a member by exact name."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT id, name FROM members WHERE name = ?", (name,))
        row = cursor.fetchone()
        return Member(id=row["id"], name=row["name"]) if row else None

    def fetch_members(self) -> list[Member]:
        """Get the full roster ordered by id."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT id, name FROM members ORDER BY id")
        return [Member(id=row["id"], name=row["name"]) for row in cursor.fetchall()]

    # ========================================================================
    # Expense operations
    # ========================================================================

    def add_expense(
        self, member_id: int, amount: Decimal, description: str, period: Period
    ) -> ExpenseRecord:
        """Save a new expense."""
        created_at = datetime.now()
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO expenses (
                member_id, amount, description, month, year, created_at
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                member_id,
                str(amount),
                description,
                period.month,
                period.year,
                created_at.isoformat(),
            ),
        )
        self.conn.commit()
        row_id = cursor.lastrowid
        if row_id is None:
            raise RuntimeError("Failed to insert expense")

        return ExpenseRecord(
            id=row_id,
            member_id=member_id,
            amount=amount,
            description=description,
            period=period,
            created_at=created_at,
        )

    def get_expense(self, expense_id: int) -> ExpenseRecord:
        """Get an expense by id."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT id, member_id, amount, description, month, year, created_at
            FROM expenses
            WHERE id = ?
            """,
            (expense_id,),
        )
        row = cursor.fetchone()
        if not row:
            raise RecordNotFoundError("expense", expense_id)
        return _expense_from_row(row)

    def update_expense(
        self, expense_id: int, amount: Decimal, description: str
    ) -> ExpenseRecord:
        """Change an expense's amount and description."""
        cursor = self.conn.cursor()
        cursor.execute(
            "UPDATE expenses SET amount = ?, description = ? WHERE id = ?",
            (str(amount), description, expense_id),
        )
        if cursor.rowcount == 0:
            raise RecordNotFoundError("expense", expense_id)
        self.conn.commit()
        return self.get_expense(expense_id)

    def delete_expense(self, expense_id: int):
        """Delete an expense."""
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM expenses WHERE id = ?", (expense_id,))
        if cursor.rowcount == 0:
            raise RecordNotFoundError("expense", expense_id)
        self.conn.commit()

    def fetch_expenses(
        self, period: Period, member_id: int | None = None
    ) -> list[ExpenseRecord]:
        """Get a period's expenses, newest first, optionally for one member."""
        query = """
            SELECT id, member_id, amount, description, month, year, created_at
            FROM expenses
            WHERE month = ? AND year = ?
        """
        params: list[int] = [period.month, period.year]
        if member_id is not None:
            query += " AND member_id = ?"
            params.append(member_id)
        query += " ORDER BY created_at DESC, id DESC"

        cursor = self.conn.cursor()
        cursor.execute(query, params)
        return [_expense_from_row(row) for row in cursor.fetchall()]

    # ========================================================================
    # Meal operations
    # ========================================================================

    def log_meal(self, member_id: int, meal_date: date, count: int) -> MealRecord:
        """Record a member's meal count for a day, replacing any earlier count."""
        period = Period.from_date(meal_date)
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO meals (member_id, date, count, month, year, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(member_id, date) DO UPDATE SET
                count = excluded.count
            """,
            (
                member_id,
                meal_date.isoformat(),
                count,
                period.month,
                period.year,
                datetime.now().isoformat(),
            ),
        )
        self.conn.commit()

        cursor.execute(
            """
            SELECT id, member_id, date, count, month, year, created_at
            FROM meals
            WHERE member_id = ? AND date = ?
            """,
            (member_id, meal_date.isoformat()),
        )
        return _meal_from_row(cursor.fetchone())

    def get_meal(self, meal_id: int) -> MealRecord:
        """Get a meal entry by id."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT id, member_id, date, count, month, year, created_at
            FROM meals
            WHERE id = ?
            """,
            (meal_id,),
        )
        row = cursor.fetchone()
        if not row:
            raise RecordNotFoundError("meal", meal_id)
        return _meal_from_row(row)

    def update_meal(self, meal_id: int, meal_date: date, count: int) -> MealRecord:
        """Change a meal entry's date and count. The period is left untouched."""
        cursor = self.conn.cursor()
        try:
            cursor.execute(
                "UPDATE meals SET date = ?, count = ? WHERE id = ?",
                (meal_date.isoformat(), count, meal_id),
            )
        except sqlite3.IntegrityError as e:
            raise InvalidRecordError(
                f"Member already has a meal entry on {meal_date.isoformat()}"
            ) from e
        if cursor.rowcount == 0:
            raise RecordNotFoundError("meal", meal_id)
        self.conn.commit()
        return self.get_meal(meal_id)

    def delete_meal(self, meal_id: int):
        """Delete a meal entry."""
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM meals WHERE id = ?", (meal_id,))
        if cursor.rowcount == 0:
            raise RecordNotFoundError("meal", meal_id)
        self.conn.commit()

    def fetch_meals(
        self,
        period: Period,
        member_id: int | None = None,
        newest_first: bool = False,
    ) -> list[MealRecord]:
        """
        Get a period's meal entries by date, optionally for one member.

        With newest_first, entries come latest date first and same-day
        entries by most recently logged.
        """
        query = """
            SELECT id, member_id, date, count, month, year, created_at
            FROM meals
            WHERE month = ? AND year = ?
        """
        params: list[int] = [period.month, period.year]
        if member_id is not None:
            query += " AND member_id = ?"
            params.append(member_id)
        if newest_first:
            query += " ORDER BY date DESC, created_at DESC, id DESC"
        else:
            query += " ORDER BY date ASC, member_id ASC"

        cursor = self.conn.cursor()
        cursor.execute(query, params)
        return [_meal_from_row(row) for row in cursor.fetchall()]

    # ========================================================================
    # Period operations
    # ========================================================================

    def fetch_periods(self) -> list[Period]:
        """Get every period with at least one expense or meal, newest first."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT DISTINCT month, year FROM (
                SELECT month, year FROM expenses
                UNION
                SELECT month, year FROM meals
            )
            ORDER BY year DESC, month DESC
            """
        )
        return [
            Period(month=row["month"], year=row["year"]) for row in cursor.fetchall()
        ]


def _expense_from_row(row: sqlite3.Row) -> ExpenseRecord:
    return ExpenseRecord(
        id=row["id"],
        member_id=row["member_id"],
        amount=Decimal(row["amount"]),
        description=row["description"],
        period=Period(month=row["month"], year=row["year"]),
        created_at=datetime.fromisoformat(row["created_at"]),
    )


def _meal_from_row(row: sqlite3.Row) -> MealRecord:
    return MealRecord(
        id=row["id"],
        member_id=row["member_id"],
        meal_date=date.fromisoformat(row["date"]),
        count=row["count"],
        period=Period(month=row["month"], year=row["year"]),
        created_at=datetime.fromisoformat(row["created_at"]),
    )
