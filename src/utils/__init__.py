"""Small helpers shared across features."""

from src.utils.identifiers import is_external_id, new_item_id
from src.utils.timestamps import ensure_utc_aware, epoch_seconds, iso_or_none, utc_now


__all__ = [
    "ensure_utc_aware",
    "epoch_seconds",
    "is_external_id",
    "iso_or_none",
    "new_item_id",
    "utc_now",
]
