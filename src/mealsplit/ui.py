"""Interactive UI components for picking members and confirming edits."""

import logging
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from .models import Member

logger = logging.getLogger(__name__)


class MemberCompleter(Completer):
    """Fuzzy search completer for household members."""

    def __init__(self, members: list[Member]):
        """Initialize the completer with the roster."""
        self.members = members
        self.name_to_member = {member.name: member for member in members}

    def get_completions(self, document: Document, complete_event: Any):
        """Get fuzzy-matched completions."""
        query = document.text.lower()

        for member in self.members:
            if not query or fuzzy_match(query, member.name.lower()):
                yield Completion(
                    text=member.name,
                    start_position=-len(document.text),
                    display=f"{member.name} (#{member.id})",
                )


def fuzzy_match(query: str, text: str) -> bool:
    """
    Fuzzy match: all characters in query must appear in order in text.

    Example:
        query="ayr" matches "ayon roy"
    """
    query_idx = 0
    for char in text:
        if query_idx < len(query) and char == query[query_idx]:
            query_idx += 1
    return query_idx == len(query)


def select_member_interactive(members: list[Member]) -> Member | None:
    """
    Interactive member selection with fuzzy search.

    Args:
        members: The roster

    Returns:
        Selected member, or None to cancel
    """
    if not members:
        print("\n⚠️  No members yet. Add one with `mealsplit add-member NAME`.")
        return None

    print("\n👥 Who are you?")
    print("   Type to search, press Enter to confirm, Ctrl+C to cancel\n")

    completer = MemberCompleter(members)
    session: PromptSession[str] = PromptSession(completer=completer)

    try:
        while True:
            result = session.prompt("Member: ", complete_while_typing=True).strip()

            if not result:
                return None

            member = completer.name_to_member.get(result)
            if member is None and result.isdigit():
                member = next((m for m in members if m.id == int(result)), None)
            if member:
                logger.debug(f"User selected member: {member.name}")
                return member

            print("❌ Unknown member. Pick a name from the list or press Tab.")

    except KeyboardInterrupt:
        print("\n⏭️  Cancelled")
        return None
    except EOFError:
        return None


def prompt_passcode() -> str | None:
    """Ask for the admin passcode without echoing it."""
    session: PromptSession[str] = PromptSession()
    try:
        return session.prompt("Admin passcode: ", is_password=True)
    except (KeyboardInterrupt, EOFError):
        return None


def confirm_action(message: str) -> bool:
    """
    Simple yes/no confirmation, defaulting to no.

    Args:
        message: What is about to happen

    Returns:
        True if confirmed, False otherwise
    """
    print(f"\n{message}")
    response = input("   Continue? [y/N] ").strip().lower()
    return response in ("y", "yes")
