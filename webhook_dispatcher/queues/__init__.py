"""Queue implementations for the webhook dispatcher."""

from .delivery_queue import DeliveryQueue, DeliveryTask

__all__ = ["DeliveryQueue", "DeliveryTask"]
