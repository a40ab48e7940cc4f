"""Tests for the interactive member picker helpers."""

from unittest.mock import MagicMock, patch

import pytest
from prompt_toolkit.document import Document

from mealsplit.models import Member
from mealsplit.ui import (
    MemberCompleter,
    confirm_action,
    fuzzy_match,
    select_member_interactive,
)

ROSTER = [
    Member(id=1, name="S.M Kayes Zaman"),
    Member(id=2, name="Arafat Hossain"),
    Member(id=3, name="Ayon Roy"),
]


class TestFuzzyMatch:
    """Characters must appear in order."""

    @pytest.mark.parametrize(
        "query,text",
        [("ayr", "ayon roy"), ("kz", "s.m kayes zaman"), ("", "anything")],
    )
    def test_matches(self, query, text):
        assert fuzzy_match(query, text)

    def test_order_matters(self):
        assert not fuzzy_match("ry", "yr")


class TestMemberCompleter:
    """Completions offered while typing."""

    def test_empty_query_lists_everyone(self):
        completer = MemberCompleter(ROSTER)

        completions = list(completer.get_completions(Document(""), None))

        assert [c.text for c in completions] == [m.name for m in ROSTER]

    def test_filters_by_query(self):
        completer = MemberCompleter(ROSTER)

        completions = list(completer.get_completions(Document("ay"), None))

        assert [c.text for c in completions] == ["S.M Kayes Zaman", "Ayon Roy"]
        assert all(c.start_position == -2 for c in completions)


class TestSelectMember:
    """Prompt loop."""

    @patch("mealsplit.ui.PromptSession")
    def test_selects_by_name(self, mock_session_class):
        mock_session = MagicMock()
        mock_session.prompt.return_value = "Ayon Roy"
        mock_session_class.return_value = mock_session

        assert select_member_interactive(ROSTER) == ROSTER[2]

    @patch("mealsplit.ui.PromptSession")
    def test_retries_then_accepts_id(self, mock_session_class):
        mock_session = MagicMock()
        mock_session.prompt.side_effect = ["Nobody", "2"]
        mock_session_class.return_value = mock_session

        assert select_member_interactive(ROSTER) == ROSTER[1]
        assert mock_session.prompt.call_count == 2

    @patch("mealsplit.ui.PromptSession")
    def test_ctrl_c_cancels(self, mock_session_class):
        mock_session = MagicMock()
        mock_session.prompt.side_effect = KeyboardInterrupt
        mock_session_class.return_value = mock_session

        assert select_member_interactive(ROSTER) is None

    def test_empty_roster(self):
        assert select_member_interactive([]) is None


class TestConfirmAction:
    """Yes/no prompt defaults to no."""

    @pytest.mark.parametrize("answer,expected", [("y", True), ("YES", True), ("", False), ("n", False)])
    def test_answers(self, monkeypatch, answer, expected):
        monkeypatch.setattr("builtins.input", lambda _prompt: answer)

        assert confirm_action("Delete?") is expected
