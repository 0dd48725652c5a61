"""
Listing, search and pagination helpers for blog posts.

Everything here works on the full list of posts fetched from the store;
nothing is pushed down to the store's query layer.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, TypeVar

from photosite.records import BlogPost

POSTS_PER_PAGE = 10
MAX_VISIBLE_PAGES = 5
RECENT_POSTS_LIMIT = 3

T = TypeVar("T")

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(title: str) -> str:
    """Derive a URL-safe slug: lower-case, hyphen-joined alphanumeric runs."""
    return _NON_ALNUM.sub("-", (title or "").lower()).strip("-")


def parse_tags(raw: str | Iterable[str] | None) -> list[str]:
    if raw is None:
        return []
    parts = raw.split(",") if isinstance(raw, str) else list(raw)
    return [part.strip() for part in parts if part and part.strip()]


def split_paragraphs(content: str) -> list[str]:
    return (content or "").split("\n\n")


def _unique(values: Iterable[str]) -> list[str]:
    seen: dict[str, None] = {}
    for value in values:
        seen.setdefault(value, None)
    return list(seen)


def list_categories(posts: Iterable[BlogPost]) -> list[str]:
    return _unique(post.category for post in posts)


def list_tags(posts: Iterable[BlogPost]) -> list[str]:
    return _unique(tag for post in posts for tag in post.tags)


def recent_posts(posts: Sequence[BlogPost], limit: int = RECENT_POSTS_LIMIT) -> list[BlogPost]:
    return list(posts[:limit])


def _matches_query(post: BlogPost, lowered: str) -> bool:
    return (
        lowered in post.title.lower()
        or lowered in post.excerpt.lower()
        or lowered in post.content.lower()
        or any(lowered in tag.lower() for tag in post.tags)
    )


def search_posts(
    posts: Iterable[BlogPost],
    query: str = "",
    *,
    category: Optional[str] = None,
    tags: Optional[Iterable[str]] = None,
) -> list[BlogPost]:
    """
    Filter posts by free text, category and tags.

    The query matches case-insensitively against title, excerpt, content
    and each tag. A post passes the tag filter when it carries any of the
    selected tags. All supplied filters must hold.
    """
    results = list(posts)
    if query and query.strip():
        lowered = query.lower()
        results = [post for post in results if _matches_query(post, lowered)]
    if category:
        results = [post for post in results if post.category == category]
    wanted = list(tags or [])
    if wanted:
        results = [
            post for post in results if any(tag in post.tags for tag in wanted)
        ]
    return results


@dataclass(frozen=True)
class Page:
    items: list
    page: int
    per_page: int
    total: int
    total_pages: int

    @property
    def start_index(self) -> int:
        """1-based position of the first item on this page (0 when empty)."""
        if not self.total:
            return 0
        return (self.page - 1) * self.per_page + 1

    @property
    def end_index(self) -> int:
        return min(self.page * self.per_page, self.total)

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def visible_pages(self) -> list[int]:
        start = max(1, self.page - MAX_VISIBLE_PAGES // 2)
        end = min(self.total_pages, start + MAX_VISIBLE_PAGES - 1)
        if end - start < MAX_VISIBLE_PAGES - 1:
            start = max(1, end - MAX_VISIBLE_PAGES + 1)
        return list(range(start, end + 1))


def paginate(items: Sequence[T], page: int = 1, per_page: int = POSTS_PER_PAGE) -> Page:
    """Slice one page out of ``items``, clamping ``page`` into the valid range."""
    if per_page < 1:
        raise ValueError("per_page must be positive")
    total = len(items)
    total_pages = max(1, math.ceil(total / per_page))
    page = min(max(page, 1), total_pages)
    offset = (page - 1) * per_page
    return Page(
        items=list(items[offset : offset + per_page]),
        page=page,
        per_page=per_page,
        total=total,
        total_pages=total_pages,
    )
