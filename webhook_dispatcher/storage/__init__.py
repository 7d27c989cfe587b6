"""Subscription storage for the webhook dispatcher."""

from .memory_store import InMemorySubscriptionStore
from .models import Subscription, SubscriptionStore
from .sqlite_store import SQLiteConfig, SQLiteSubscriptionStore

__all__ = [
    "InMemorySubscriptionStore",
    "SQLiteConfig",
    "SQLiteSubscriptionStore",
    "Subscription",
    "SubscriptionStore",
]
