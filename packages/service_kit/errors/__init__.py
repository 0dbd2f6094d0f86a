"""Public shared error API."""

from .normalize import exception_to_status
from .status import (
    Item,
    Status,
    is_status,
    new_status,
    new_status_with_cause,
    new_status_with_items,
    status_code,
    status_text,
    statusf,
)

__all__ = [
    "Item",
    "Status",
    "exception_to_status",
    "is_status",
    "new_status",
    "new_status_with_cause",
    "new_status_with_items",
    "status_code",
    "status_text",
    "statusf",
]
