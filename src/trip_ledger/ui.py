"""Interactive UI components for picking a group."""

import logging
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from .models import Group

logger = logging.getLogger(__name__)


def fuzzy_match(query: str, text: str) -> bool:
    """
    Fuzzy match: all characters in query must appear in order in text.

    Example:
        query="gst" matches "Goa Summer Trip"
    """
    query_idx = 0
    for char in text:
        if query_idx < len(query) and char == query[query_idx]:
            query_idx += 1
    return query_idx == len(query)


class GroupCompleter(Completer):
    """Fuzzy search completer for group names."""

    def __init__(self, groups: list[Group]):
        """Initialize the completer with available groups."""
        self.groups = groups
        self.name_to_id = {group.name: group.id for group in groups}

    def get_completions(self, document: Document, complete_event: Any):
        """Get fuzzy-matched completions."""
        query = document.text.lower()

        for group in self.groups:
            if query and not fuzzy_match(query, group.name.lower()):
                continue
            yield Completion(
                text=group.name,
                start_position=-len(document.text),
                display=group.name,
                display_meta=f"{len(group.members)} members",
            )


def select_group_interactive(groups: list[Group]) -> str | None:
    """
    Interactive group selection with fuzzy search.

    Args:
        groups: Available groups

    Returns:
        Selected group ID, or None to cancel
    """
    if not groups:
        print("\n⚠️  No groups found")
        return None

    print("\n🧳 Select a group")
    print("   Type to search, press Enter to confirm, Ctrl+C to cancel\n")

    completer = GroupCompleter(groups)
    session: PromptSession[str] = PromptSession(completer=completer)

    try:
        while True:
            result = session.prompt("Group: ", complete_while_typing=True)

            if not result:
                return None

            group_id = completer.name_to_id.get(result)
            if group_id:
                logger.info(f"User selected group: {result}")
                return group_id

            print("❌ Unknown group. Please select from the list or press Tab to complete.")

    except KeyboardInterrupt:
        print("\n⏭️  Cancelled")
        return None
    except EOFError:
        return None


def confirm_action(message: str) -> bool:
    """Simple yes/no confirmation, defaulting to no."""
    response = input(f"{message} [y/N] ").strip().lower()
    return response in ("y", "yes")
