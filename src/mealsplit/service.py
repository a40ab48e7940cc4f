"""Service layer that composes the store and the settlement calculator.

This module validates entries before they are stored and builds reports
from the store's period snapshots. The calculation itself stays a pure
function in ``calculator``.
"""

import hashlib
import hmac
import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from . import __version__
from .calculator import compute_settlement
from .config import Settings
from .db import Database
from .exceptions import AuthenticationError, InvalidRecordError, MemberNotFoundError
from .models import (
    ExpenseRecord,
    MealRecord,
    Member,
    MemberStatement,
    Period,
    PeriodExport,
    SettlementReport,
)

logger = logging.getLogger(__name__)

LAST_BACKUP_KEY = "last_backup"


class LedgerService:
    """Service for recording household expenses and meals and settling periods."""

    def __init__(self, settings: Settings, database: Database):
        """Initialize the ledger service."""
        self.settings = settings
        self.db = database

    # ========================================================================
    # Members
    # ========================================================================

    def members(self) -> list[Member]:
        """Get the roster ordered by id."""
        return self.db.fetch_members()

    def add_member(self, name: str) -> Member:
        """Add a member after trimming and checking the name."""
        name = name.strip()
        if not name:
            raise InvalidRecordError("Member name must not be empty")
        return self.db.add_member(name)

    def seed_members(self) -> list[Member]:
        """
        Insert the configured default roster, skipping names already present.

        Raises:
            InvalidRecordError: If any configured name is blank
        """
        names = [name.strip() for name in self.settings.default_members]
        if not all(names):
            raise InvalidRecordError(
                "MEALSPLIT_DEFAULT_MEMBERS must not contain blank names"
            )
        added = self.db.seed_members(names)
        logger.info(f"Seeded {len(added)} new members")
        return added

    def get_member(self, member_id: int) -> Member:
        """Get a member or raise if the id is not on the roster."""
        member = self.db.get_member(member_id)
        if member is None:
            raise MemberNotFoundError(member_id)
        return member

    def find_member(self, name_or_id: str) -> Member:
        """Resolve a member from a CLI argument (id or exact name)."""
        value = name_or_id.strip()
        if value.isdigit():
            return self.get_member(int(value))
        member = self.db.get_member_by_name(value)
        if member is None:
            raise MemberNotFoundError(value)
        return member

    # ========================================================================
    # Ingestion
    # ========================================================================

    def record_expense(
        self,
        member_id: int,
        amount: Decimal | str | float,
        description: str = "",
        period: Period | None = None,
    ) -> ExpenseRecord:
        """
        Validate and store an expense.

        Args:
            member_id: Member who paid
            amount: Non-negative amount
            description: Optional free text
            period: Accounting period (defaults to the current month)

        Returns:
            The stored expense

        Raises:
            MemberNotFoundError: If the member is not on the roster
            InvalidRecordError: If the amount is negative or not a number
        """
        self.get_member(member_id)
        value = validate_amount(amount)
        period = period or Period.current()

        expense = self.db.add_expense(member_id, value, description.strip(), period)
        logger.info(
            f"Recorded expense {expense.id}: member {member_id} paid {value} "
            f"in {period}"
        )
        return expense

    def record_meal(
        self, member_id: int, meal_date: date | None = None, count: int = 1
    ) -> MealRecord:
        """
        Validate and store a day's meal count.

        Logging the same member and day again replaces the earlier count.

        Raises:
            MemberNotFoundError: If the member is not on the roster
            InvalidRecordError: If the count is below 1
        """
        self.get_member(member_id)
        validate_count(count)
        meal_date = meal_date or date.today()

        meal = self.db.log_meal(member_id, meal_date, count)
        logger.info(
            f"Logged {count} meals for member {member_id} on {meal_date} "
            f"(entry {meal.id})"
        )
        return meal

    # ========================================================================
    # Reports
    # ========================================================================

    def settle(self, period: Period) -> SettlementReport:
        """
        Compute the settlement for a period from the store's current records.

        The report is never stored; each call reads a fresh snapshot.
        """
        members = self.db.fetch_members()
        expenses = self.db.fetch_expenses(period)
        meals = self.db.fetch_meals(period)

        logger.debug(
            f"Settling {period}: {len(members)} members, "
            f"{len(expenses)} expenses, {len(meals)} meal entries"
        )

        return compute_settlement(members, expenses, meals, period=period)

    def member_statement(self, member_id: int, period: Period) -> MemberStatement:
        """Build a member's own view of a period."""
        member = self.get_member(member_id)
        report = self.settle(period)
        entry = report.entry_for(member_id)
        if entry is None:
            raise MemberNotFoundError(member_id)

        return MemberStatement(
            member=member,
            period=period,
            expenses=self.db.fetch_expenses(period, member_id=member_id),
            meals=self.db.fetch_meals(period, member_id=member_id),
            entry=entry,
            per_meal_price=report.per_meal_price,
        )

    def expenses(self, period: Period) -> list[ExpenseRecord]:
        """Get every expense in a period, newest first."""
        return self.db.fetch_expenses(period)

    def meals(self, period: Period, newest_first: bool = False) -> list[MealRecord]:
        """Get every meal entry in a period, by date or newest first."""
        return self.db.fetch_meals(period, newest_first=newest_first)

    def get_expense(self, expense_id: int) -> ExpenseRecord:
        """Get an expense or raise if the id does not exist."""
        return self.db.get_expense(expense_id)

    def get_meal(self, meal_id: int) -> MealRecord:
        """Get a meal entry or raise if the id does not exist."""
        return self.db.get_meal(meal_id)

    def available_periods(self) -> list[Period]:
        """Get periods with any recorded data, newest first."""
        return self.db.fetch_periods()

    def export_period(self, period: Period) -> PeriodExport:
        """
        Collect everything recorded for a period into one exportable model.

        The export time is remembered as the last backup.
        """
        export = PeriodExport(
            version=__version__,
            period=period,
            members=self.db.fetch_members(),
            expenses=self.db.fetch_expenses(period),
            meals=self.db.fetch_meals(period),
            settlement=self.settle(period),
        )
        self.db.set_config(LAST_BACKUP_KEY, export.exported_at.isoformat())
        logger.info(f"Exported {period} ({len(export.expenses)} expenses)")
        return export

    def last_backup(self) -> datetime | None:
        """Get the time of the most recent export, if any."""
        value = self.db.get_config(LAST_BACKUP_KEY)
        return datetime.fromisoformat(value) if value else None

    # ========================================================================
    # Admin edits
    # ========================================================================

    def verify_admin(self, passcode: str | None):
        """
        Check an admin passcode against the configured SHA-256 hash.

        Admin commands are open when no hash is configured.

        Raises:
            AuthenticationError: If a hash is configured and the passcode
                does not match
        """
        expected = self.settings.admin_passcode_hash
        if not expected:
            return
        if passcode is None or not hmac.compare_digest(
            hash_passcode(passcode), expected.strip().lower()
        ):
            logger.warning("Rejected admin passcode")
            raise AuthenticationError("Invalid admin passcode")

    def requires_admin(self) -> bool:
        """Check whether admin commands need a passcode."""
        return bool(self.settings.admin_passcode_hash)

    def edit_expense(
        self,
        expense_id: int,
        amount: Decimal | str | float | None = None,
        description: str | None = None,
    ) -> ExpenseRecord:
        """Change an expense's amount and/or description."""
        current = self.db.get_expense(expense_id)
        value = validate_amount(amount) if amount is not None else current.amount
        text = description.strip() if description is not None else current.description

        updated = self.db.update_expense(expense_id, value, text)
        logger.info(f"Updated expense {expense_id}: {current.amount} -> {value}")
        return updated

    def remove_expense(self, expense_id: int) -> ExpenseRecord:
        """Delete an expense, returning what was removed."""
        expense = self.db.get_expense(expense_id)
        self.db.delete_expense(expense_id)
        logger.info(f"Deleted expense {expense_id}")
        return expense

    def edit_meal(
        self,
        meal_id: int,
        meal_date: date | None = None,
        count: int | None = None,
    ) -> MealRecord:
        """
        Change a meal entry's date and/or count.

        Raises:
            InvalidRecordError: If the count is below 1, or the new date
                falls outside the entry's period
        """
        current = self.db.get_meal(meal_id)
        new_date = meal_date or current.meal_date
        new_count = current.count if count is None else count

        validate_count(new_count)
        if not current.period.contains(new_date):
            raise InvalidRecordError(
                f"Date {new_date} is outside the entry's period "
                f"({current.period.label})"
            )

        updated = self.db.update_meal(meal_id, new_date, new_count)
        logger.info(f"Updated meal entry {meal_id}: {new_date} x{new_count}")
        return updated

    def remove_meal(self, meal_id: int) -> MealRecord:
        """Delete a meal entry, returning what was removed."""
        meal = self.db.get_meal(meal_id)
        self.db.delete_meal(meal_id)
        logger.info(f"Deleted meal entry {meal_id}")
        return meal


def validate_amount(amount: Decimal | str | float) -> Decimal:
    """
    Coerce an expense amount to Decimal and reject bad values.

    Raises:
        InvalidRecordError: If the amount is not a finite, non-negative number
    """
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except InvalidOperation as e:
        raise InvalidRecordError(f"Amount {amount!r} is not a number") from e

    if not value.is_finite():
        raise InvalidRecordError(f"Amount {amount!r} is not a finite number")
    if value < 0:
        raise InvalidRecordError(f"Amount must not be negative (got {value})")
    # "-0" compares equal to zero but keeps its sign
    return value.copy_abs()


def validate_count(count: int):
    """
    Reject meal counts below one.

    Raises:
        InvalidRecordError: If the count is not a positive integer
    """
    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise InvalidRecordError(f"Meal count must be at least 1 (got {count!r})")


def hash_passcode(passcode: str) -> str:
    """Return the hex SHA-256 of a passcode, as stored in settings."""
    return hashlib.sha256(passcode.encode()).hexdigest()
