"""Storage module."""

from .histogram import BUCKET_WIDTH_LADDER, build_buckets, choose_bucket_width
from .storage import EventStore, IEventStore, StoreUnavailableError, parse_json_field

__all__ = [
    "EventStore",
    "IEventStore",
    "StoreUnavailableError",
    "parse_json_field",
    "BUCKET_WIDTH_LADDER",
    "choose_bucket_width",
    "build_buckets",
]
