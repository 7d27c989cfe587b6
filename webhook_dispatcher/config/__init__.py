"""Configuration management for dispatcher components."""

from .dispatcher_config import DispatcherConfig

__all__ = ["DispatcherConfig"]
