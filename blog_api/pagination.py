import math
import re
from typing import Any, Dict, NamedTuple, Optional, Union

RawParam = Optional[Union[int, str]]

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class PageRequest(NamedTuple):
    page: int
    limit: int


class Paginator:
    """Clamps page/limit query parameters into a safe range. Never raises."""

    def __init__(
        self,
        default_page: int = 1,
        default_limit: int = 10,
        min_limit: int = 1,
        max_limit: int = 100,
    ):
        if min_limit > max_limit:
            raise ValueError("min_limit cannot be greater than max_limit")
        self.default_page = max(1, default_page)
        self.min_limit = min_limit
        self.max_limit = max_limit
        self.default_limit = min(max_limit, max(min_limit, default_limit))

    def clamp(self, page: RawParam = None, limit: RawParam = None) -> PageRequest:
        page_value = _to_int(page, self.default_page)
        limit_value = _to_int(limit, self.default_limit)
        return PageRequest(
            page=max(1, page_value),
            limit=min(self.max_limit, max(self.min_limit, limit_value)),
        )


def _to_int(value: RawParam, default: int) -> int:
    """Leading integer of value; 0 when there is none, default when absent."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else 0


def page_metadata(page: int, limit: int, total: int) -> Dict[str, Any]:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "current_page": page,
        "total_pages": total_pages,
        "total_items": total,
        "items_per_page": limit,
        "has_next_page": page < total_pages,
        "has_previous_page": page > 1,
    }
