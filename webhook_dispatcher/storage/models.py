"""Data models for subscription storage."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Protocol

from webhook_dispatcher.core.errors import ValidationError


@dataclass(frozen=True)
class Subscription:
    """A registered webhook endpoint.

    Attributes:
        id: Unique, immutable subscription identifier
        url: Endpoint that receives the POST
        events: Event names this subscription matches, compared exactly
        secret: Optional HMAC key; deliveries are unsigned without it
        enabled: Disabled subscriptions are skipped by the router
        created_at: Registration time (UTC)
    """

    id: str
    url: str
    events: FrozenSet[str]
    secret: Optional[str] = None
    enabled: bool = True
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def matches(self, event: str) -> bool:
        """Return True if this subscription should receive ``event``."""
        return self.enabled and event in self.events

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serializable view. The secret itself is never included."""
        return {
            "id": self.id,
            "url": self.url,
            "events": sorted(self.events),
            "has_secret": self.secret is not None,
            "enabled": self.enabled,
            "created_at": self.created_at.isoformat(),
        }


def new_subscription_id() -> str:
    return uuid.uuid4().hex


def validate_registration(
    url: str,
    events: Iterable[str],
    secret: Optional[str] = None,
    require_secret: bool = False,
) -> FrozenSet[str]:
    """Check registration input and return the normalized event set.

    Raises:
        ValidationError: If url or events are empty, or a secret is required but missing
    """
    if not isinstance(url, str) or not url.strip():
        raise ValidationError("url is required", details={"field": "url"})

    if isinstance(events, str) or events is None:
        raise ValidationError("events must be a list of event names", details={"field": "events"})

    event_list: List[str] = list(events)
    if not event_list:
        raise ValidationError("events must not be empty", details={"field": "events"})
    for event in event_list:
        if not isinstance(event, str) or not event:
            raise ValidationError(
                "event names must be non-empty strings", details={"field": "events"}
            )

    if secret is not None and not isinstance(secret, str):
        raise ValidationError("secret must be a string", details={"field": "secret"})
    if require_secret and not secret:
        raise ValidationError("a signing secret is required", details={"field": "secret"})

    return frozenset(event_list)


class SubscriptionStore(Protocol):
    """Capability interface shared by every subscription store."""

    def register(
        self,
        url: str,
        events: Iterable[str],
        secret: Optional[str] = None,
        enabled: bool = True,
    ) -> Subscription: ...

    def get(self, subscription_id: str) -> Subscription: ...

    def list(self) -> List[Subscription]: ...

    def delete(self, subscription_id: str) -> bool: ...

    def set_enabled(self, subscription_id: str, enabled: bool) -> Subscription: ...
