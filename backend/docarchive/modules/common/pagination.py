"""Pagination arithmetic and request validation shared by every listing."""

import math
from typing import List, Optional, Tuple

from .constants import MAX_LIMIT, PAGE_WINDOW_SIZE, SEARCH_MAX_LENGTH, SEARCH_MIN_LENGTH
from .exceptions import ValidationError


def total_pages(total: int, limit: int) -> int:
    """Number of pages needed for ``total`` items, ``ceil(total / limit)``."""
    if limit <= 0:
        raise ValueError("limit must be positive")
    return math.ceil(total / limit) if total > 0 else 0


def page_window(current: int, pages: int, size: int = PAGE_WINDOW_SIZE) -> List[int]:
    """Page numbers to show around ``current``.

    The window holds ``size`` entries, never starts below 1 and never runs past
    ``pages``. It is centred on the current page and shifts as the current page
    approaches either end.

    >>> page_window(1, 10)
    [1, 2, 3, 4, 5]
    >>> page_window(6, 10)
    [4, 5, 6, 7, 8]
    >>> page_window(10, 10)
    [6, 7, 8, 9, 10]
    """
    if pages <= 0:
        return []
    if size <= 0:
        raise ValueError("size must be positive")
    if pages <= size:
        return list(range(1, pages + 1))

    current = min(max(current, 1), pages)
    start = current - size // 2
    start = max(1, min(start, pages - size + 1))
    return list(range(start, start + size))


def offset_for(page: int, limit: int) -> int:
    return (page - 1) * limit


def validate_pagination(page: int, limit: int) -> Tuple[int, int]:
    """Check page and limit bounds.

    Raises:
        ValidationError: If ``page < 1`` or ``limit`` is outside ``1..100``.
    """
    details = []
    if page < 1:
        details.append({"field": "page", "message": "Page must be greater than 0"})
    if limit < 1 or limit > MAX_LIMIT:
        details.append({"field": "limit", "message": f"Limit must be between 1 and {MAX_LIMIT}"})
    if details:
        raise ValidationError("Invalid pagination parameters", details=details)
    return page, limit


def normalize_search_query(query: Optional[str]) -> str:
    """Trim a search query and check its length.

    Raises:
        ValidationError: If the trimmed query is shorter than 2 or longer than 100 characters.
    """
    cleaned = (query or "").strip()
    if len(cleaned) < SEARCH_MIN_LENGTH:
        raise ValidationError(
            f"Search query must be at least {SEARCH_MIN_LENGTH} characters long",
            details=[{"field": "q", "message": "too short"}],
        )
    if len(cleaned) > SEARCH_MAX_LENGTH:
        raise ValidationError(
            f"Search query must be at most {SEARCH_MAX_LENGTH} characters long",
            details=[{"field": "q", "message": "too long"}],
        )
    return cleaned


def is_search_query(query: Optional[str]) -> bool:
    """True when ``query`` is long enough to select the search path."""
    return len((query or "").strip()) >= SEARCH_MIN_LENGTH
