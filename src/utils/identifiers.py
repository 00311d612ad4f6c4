"""Item identifiers.

Local stories and comments are addressed by UUID4 strings. Items mirrored from
Hacker News keep their numeric IDs, carried as strings.
"""

from uuid import uuid4


def is_external_id(item_id: str | None) -> bool:
    """True when ``item_id`` is a non-empty run of ASCII digits.

    >>> is_external_id("8863")
    True
    >>> is_external_id("3f0c2d4e-9a51-4c6f-8f0e-8f4d1c3b7a10")
    False
    >>> is_external_id("")
    False
    """
    return bool(item_id) and item_id.isascii() and item_id.isdigit()


def new_item_id() -> str:
    """Generate a local item ID."""
    return str(uuid4())
