"""Pagination cursor state."""

from dataclasses import dataclass

from ..models import ConversationPage


@dataclass
class PaginationCursor:
    """Continuation token and completion flag reported by the backend."""

    cursor: str | None = None
    is_done: bool = False

    def can_load_more(self) -> bool:
        """True while the backend has handed out a cursor and is not done."""
        return self.cursor is not None and not self.is_done

    def apply(self, page: ConversationPage) -> None:
        """Replace cursor and is_done wholesale from a page response."""
        self.cursor = page.cursor
        self.is_done = page.is_done
