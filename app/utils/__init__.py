"""Utilities package"""

from .helpers import utcnow, ensure_utc, enum_value, parse_uuid
from .pagination import paginate, paginate_list

__all__ = [
    "utcnow",
    "ensure_utc",
    "enum_value",
    "parse_uuid",
    "paginate",
    "paginate_list",
]
