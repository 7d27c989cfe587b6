"""Core definitions shared across the dispatcher."""
