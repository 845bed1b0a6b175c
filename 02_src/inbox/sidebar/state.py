"""List state owned by the sidebar controller."""

from dataclasses import dataclass, field

from ..models import ConversationMeta, ConversationPage
from .merge import merge_conversations
from .pagination import PaginationCursor


@dataclass
class ListState:
    """Ordered conversations plus pagination progress."""

    items: list[ConversationMeta] = field(default_factory=list)
    pagination: PaginationCursor = field(default_factory=PaginationCursor)

    @classmethod
    def from_page(cls, page: ConversationPage) -> "ListState":
        """Seed state from a server-provided first page."""
        return cls(
            items=merge_conversations([], page.items),
            pagination=PaginationCursor(cursor=page.cursor, is_done=page.is_done),
        )

    @property
    def cursor(self) -> str | None:
        return self.pagination.cursor

    @property
    def is_done(self) -> bool:
        return self.pagination.is_done

    def apply_page(self, page: ConversationPage) -> None:
        """Merge a page into items and take over its pagination metadata."""
        self.items = merge_conversations(self.items, page.items)
        self.pagination.apply(page)
