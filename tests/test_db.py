"""Tests for the SQLite store."""

import sqlite3
from datetime import date
from decimal import Decimal

import pytest

from mealsplit.db import Database
from mealsplit.exceptions import (
    DuplicateMemberError,
    InvalidRecordError,
    RecordNotFoundError,
)
from mealsplit.models import Period

MARCH = Period(month=3, year=2025)
APRIL = Period(month=4, year=2025)


@pytest.fixture
def db(tmp_path):
    """Create a temporary database."""
    database = Database(tmp_path / "test.db")
    yield database
    database.close()


@pytest.fixture
def roster(db):
    """Two members."""
    return db.add_member("Kayes"), db.add_member("Arafat")


class TestMembers:
    """Tests for roster operations."""

    def test_fetch_members_ordered_by_id(self, db, roster):
        members = db.fetch_members()

        assert [m.name for m in members] == ["Kayes", "Arafat"]
        assert members[0].id < members[1].id

    def test_duplicate_name_rejected(self, db, roster):
        with pytest.raises(DuplicateMemberError):
            db.add_member("Kayes")

    def test_seed_skips_existing_names(self, db, roster):
        added = db.seed_members(["Kayes", "Ayon", "Rashed"])

        assert [m.name for m in added] == ["Ayon", "Rashed"]
        assert len(db.fetch_members()) == 4

    def test_seed_twice_is_a_no_op(self, db):
        db.seed_members(["Ayon"])

        assert db.seed_members(["Ayon"]) == []
        assert len(db.fetch_members()) == 1

    def test_get_member_by_id_and_name(self, db, roster):
        kayes, _ = roster

        assert db.get_member(kayes.id) == kayes
        assert db.get_member_by_name("Kayes") == kayes
        assert db.get_member(999) is None
        assert db.get_member_by_name("Nobody") is None


class TestExpenses:
    """Tests for expense storage."""

    def test_add_and_get_round_trip(self, db, roster):
        kayes, _ = roster

        saved = db.add_expense(kayes.id, Decimal("120.50"), "Rice", MARCH)
        loaded = db.get_expense(saved.id)

        assert loaded.amount == Decimal("120.50")
        assert loaded.description == "Rice"
        assert loaded.period == MARCH
        assert loaded.member_id == kayes.id

    def test_fetch_filters_by_period_and_member(self, db, roster):
        kayes, arafat = roster
        db.add_expense(kayes.id, Decimal("10"), "", MARCH)
        db.add_expense(arafat.id, Decimal("20"), "", MARCH)
        db.add_expense(kayes.id, Decimal("30"), "", APRIL)

        assert len(db.fetch_expenses(MARCH)) == 2
        assert [e.amount for e in db.fetch_expenses(MARCH, member_id=kayes.id)] == [
            Decimal("10")
        ]
        assert [e.amount for e in db.fetch_expenses(APRIL)] == [Decimal("30")]

    def test_fetch_newest_first(self, db, roster):
        kayes, _ = roster
        first = db.add_expense(kayes.id, Decimal("1"), "first", MARCH)
        second = db.add_expense(kayes.id, Decimal("2"), "second", MARCH)

        ids = [e.id for e in db.fetch_expenses(MARCH)]

        assert ids.index(second.id) < ids.index(first.id)

    def test_update_keeps_period(self, db, roster):
        kayes, _ = roster
        saved = db.add_expense(kayes.id, Decimal("10"), "old", MARCH)

        updated = db.update_expense(saved.id, Decimal("15"), "new")

        assert updated.amount == Decimal("15")
        assert updated.description == "new"
        assert updated.period == MARCH

    def test_delete(self, db, roster):
        kayes, _ = roster
        saved = db.add_expense(kayes.id, Decimal("10"), "", MARCH)

        db.delete_expense(saved.id)

        assert db.fetch_expenses(MARCH) == []
        with pytest.raises(RecordNotFoundError):
            db.get_expense(saved.id)

    @pytest.mark.parametrize("operation", ["get", "update", "delete"])
    def test_missing_id_raises(self, db, operation):
        with pytest.raises(RecordNotFoundError) as exc_info:
            if operation == "get":
                db.get_expense(42)
            elif operation == "update":
                db.update_expense(42, Decimal("1"), "")
            else:
                db.delete_expense(42)

        assert exc_info.value.record_id == 42

    def test_unknown_member_rejected_by_foreign_key(self, db):
        with pytest.raises(sqlite3.IntegrityError):
            db.add_expense(999, Decimal("1"), "", MARCH)


class TestMeals:
    """Tests for meal storage."""

    def test_relogging_a_day_replaces_count(self, db, roster):
        """Logging 2 then 5 for the same day leaves a single entry with 5."""
        kayes, _ = roster

        first = db.log_meal(kayes.id, date(2025, 3, 10), 2)
        second = db.log_meal(kayes.id, date(2025, 3, 10), 5)

        meals = db.fetch_meals(MARCH, member_id=kayes.id)
        assert len(meals) == 1
        assert meals[0].count == 5
        assert second.id == first.id

    def test_same_day_different_members_kept_apart(self, db, roster):
        kayes, arafat = roster

        db.log_meal(kayes.id, date(2025, 3, 10), 2)
        db.log_meal(arafat.id, date(2025, 3, 10), 3)

        assert sorted(m.count for m in db.fetch_meals(MARCH)) == [2, 3]

    def test_period_comes_from_date(self, db, roster):
        kayes, _ = roster

        meal = db.log_meal(kayes.id, date(2025, 4, 1), 1)

        assert meal.period == APRIL
        assert db.fetch_meals(MARCH) == []

    def test_fetch_ordered_by_date(self, db, roster):
        kayes, _ = roster
        db.log_meal(kayes.id, date(2025, 3, 20), 1)
        db.log_meal(kayes.id, date(2025, 3, 5), 2)

        dates = [m.meal_date for m in db.fetch_meals(MARCH)]

        assert dates == [date(2025, 3, 5), date(2025, 3, 20)]

    def test_fetch_newest_first(self, db, roster):
        """Latest date first; same-day entries by most recently logged."""
        kayes, arafat = roster
        early = db.log_meal(arafat.id, date(2025, 3, 5), 2)
        first_same_day = db.log_meal(kayes.id, date(2025, 3, 20), 1)
        second_same_day = db.log_meal(arafat.id, date(2025, 3, 20), 3)

        ids = [m.id for m in db.fetch_meals(MARCH, newest_first=True)]

        assert ids == [second_same_day.id, first_same_day.id, early.id]

    def test_update_and_delete(self, db, roster):
        kayes, _ = roster
        meal = db.log_meal(kayes.id, date(2025, 3, 5), 2)

        updated = db.update_meal(meal.id, date(2025, 3, 6), 3)
        assert (updated.meal_date, updated.count) == (date(2025, 3, 6), 3)

        db.delete_meal(meal.id)
        with pytest.raises(RecordNotFoundError):
            db.get_meal(meal.id)

    def test_update_onto_taken_day_rejected(self, db, roster):
        kayes, _ = roster
        db.log_meal(kayes.id, date(2025, 3, 5), 2)
        other = db.log_meal(kayes.id, date(2025, 3, 6), 1)

        with pytest.raises(InvalidRecordError):
            db.update_meal(other.id, date(2025, 3, 5), 1)

    def test_missing_meal_raises(self, db):
        with pytest.raises(RecordNotFoundError):
            db.delete_meal(7)


class TestPeriodsAndConfig:
    """Tests for period listing and the config table."""

    def test_periods_newest_first(self, db, roster):
        kayes, _ = roster
        db.add_expense(kayes.id, Decimal("1"), "", Period(month=12, year=2024))
        db.log_meal(kayes.id, date(2025, 3, 1), 1)
        db.add_expense(kayes.id, Decimal("1"), "", MARCH)
        db.log_meal(kayes.id, date(2025, 1, 15), 1)

        assert db.fetch_periods() == [
            MARCH,
            Period(month=1, year=2025),
            Period(month=12, year=2024),
        ]

    def test_no_periods_when_empty(self, db):
        assert db.fetch_periods() == []

    def test_config_round_trip(self, db):
        assert db.get_config("theme") is None

        db.set_config("theme", "dark")
        db.set_config("theme", "light")

        assert db.get_config("theme") == "light"

    def test_context_manager_closes(self, tmp_path):
        with Database(tmp_path / "ctx.db") as database:
            database.add_member("Ayon")

        with pytest.raises(sqlite3.ProgrammingError):
            database.fetch_members()
