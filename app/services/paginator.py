"""Page arithmetic for list views, including the window of direct page links.

The paginator is built per render from the current page, the page size and the
total row count; nothing here is persisted. Pages are numbered from ``base``
(0 for the CRUD widget). ``direct_links_to`` is an exclusive bound so that
``range(direct_links_from, direct_links_to)`` yields the page links to show.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

DEFAULT_DIRECT_LINKS_COUNT = 3


@dataclass(frozen=True)
class Paginator:
    requested_page: int
    items_per_page: int
    item_count: int
    direct_links_count: int = DEFAULT_DIRECT_LINKS_COUNT
    base: int = 0

    def __post_init__(self) -> None:
        if self.items_per_page < 1:
            object.__setattr__(self, "items_per_page", 1)
        if self.item_count < 0:
            object.__setattr__(self, "item_count", 0)
        if self.direct_links_count < 1:
            object.__setattr__(self, "direct_links_count", 1)

    @property
    def page_count(self) -> int:
        return math.ceil(self.item_count / self.items_per_page)

    @property
    def first_page(self) -> int:
        return self.base

    @property
    def last_page(self) -> int:
        return self.base + max(0, self.page_count - 1)

    @property
    def page_index(self) -> int:
        index = self.requested_page - self.base
        return max(0, min(index, max(0, self.page_count - 1)))

    @property
    def page(self) -> int:
        """Requested page clamped into ``[first_page, last_page]``."""
        return self.base + self.page_index

    @property
    def is_first(self) -> bool:
        return self.page_index == 0

    @property
    def is_last(self) -> bool:
        return self.page_count == 0 or self.page_index >= self.page_count - 1

    @property
    def offset(self) -> int:
        return self.page_index * self.items_per_page

    @property
    def length(self) -> int:
        return max(0, min(self.items_per_page, self.item_count - self.offset))

    @property
    def direct_links_from(self) -> int:
        if self.direct_links_count >= self.page_count:
            return self.first_page
        start = self.page - self.direct_links_count // 2
        return max(start, self.first_page)

    @property
    def direct_links_to(self) -> int:
        if self.direct_links_count >= self.page_count:
            # last_page + 1, or an empty window when there are no pages at all
            return self.first_page + self.page_count
        return min(self.direct_links_from + self.direct_links_count, self.last_page + 1)

    @property
    def direct_links(self) -> range:
        return range(self.direct_links_from, self.direct_links_to)


def build_paginator(
    page: int,
    items_per_page: int,
    item_count: int,
    direct_links_count: int = DEFAULT_DIRECT_LINKS_COUNT,
) -> Paginator:
    return Paginator(
        requested_page=page,
        items_per_page=items_per_page,
        item_count=item_count,
        direct_links_count=direct_links_count,
        base=0,
    )
