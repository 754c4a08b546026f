"""Interactive prompts for entering transactions."""

import logging
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from .categories import category_names
from .models import CategoryDefinition
from .money import to_cents

logger = logging.getLogger(__name__)


class CategoryCompleter(Completer):
    """Fuzzy search completer for registered categories."""

    def __init__(self, categories: list[CategoryDefinition]):
        """Initialize the completer with available categories."""
        self.categories = categories
        self.names = category_names(categories)

    def get_completions(self, document: Document, complete_event: Any):
        """Get fuzzy-matched completions."""
        query = document.text.lower()

        for cat in self.categories:
            if not query or self._fuzzy_match(query, cat.name.lower()):
                yield Completion(
                    text=cat.name,
                    start_position=-len(document.text),
                    display=f"{cat.icon} {cat.name}".strip(),
                )

    def _fuzzy_match(self, query: str, text: str) -> bool:
        """
        Fuzzy match: all characters in query must appear in order in text.

        Example:
            query="fd" matches "Food & Dining"
            query="trn" matches "Transport"
        """
        query_idx = 0
        for char in text:
            if query_idx < len(query) and char == query[query_idx]:
                query_idx += 1
        return query_idx == len(query)


def prompt_splits(categories: list[CategoryDefinition]) -> list[tuple[str, str]]:
    """
    Interactively collect (category, amount) pairs.

    Leaving the category empty finishes entry. Ctrl+C abandons the
    transaction and returns no splits.

    Args:
        categories: Category registry offered for completion

    Returns:
        Entered (category, amount) pairs
    """
    completer = CategoryCompleter(categories)
    session: PromptSession[str] = PromptSession(completer=completer)
    amount_session: PromptSession[str] = PromptSession()
    splits: list[tuple[str, str]] = []

    print("   Type to search categories, Enter on an empty line to finish\n")

    try:
        while True:
            category = session.prompt("Category: ", complete_while_typing=True).strip()
            if not category:
                return splits

            if category not in completer.names:
                print("❌ Unknown category. Press Tab to see the list.")
                continue

            amount = amount_session.prompt("Amount: $").strip()
            try:
                to_cents(amount)
            except ValueError:
                print("❌ Not an amount.")
                continue

            logger.debug(f"Entered split {category} ${amount}")
            splits.append((category, amount))

    except KeyboardInterrupt:
        print("\n⏭️  Cancelled")
        return []
    except EOFError:
        return splits
