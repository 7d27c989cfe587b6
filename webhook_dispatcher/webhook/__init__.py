"""Webhook signing, routing and delivery."""

from .delivery import DeliveryOutcome, DeliveryResult, DeliveryWorkerPool
from .observer import CallbackObserver, DeliveryObserver, LoggingObserver
from .retry import RetryPolicy, parse_retry_after
from .router import EventRouter, serialize_payload
from .signer import build_signature_header, sign, verify

__all__ = [
    "CallbackObserver",
    "DeliveryObserver",
    "DeliveryOutcome",
    "DeliveryResult",
    "DeliveryWorkerPool",
    "EventRouter",
    "LoggingObserver",
    "RetryPolicy",
    "build_signature_header",
    "parse_retry_after",
    "serialize_payload",
    "sign",
    "verify",
]
