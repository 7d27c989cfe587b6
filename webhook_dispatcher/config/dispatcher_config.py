"""Configuration settings for webhook dispatch."""

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from dotenv import find_dotenv, load_dotenv


@dataclass
class DispatcherConfig:
    """Configuration for the webhook dispatcher.

    Attributes:
        worker_count: Number of concurrent delivery workers
        max_attempts: Total delivery attempts per task, first one included
        request_timeout: Per-attempt HTTP timeout in seconds
        backoff_base: Delay before the second attempt, doubled for each further one
        max_backoff: Upper bound for the computed retry delay in seconds
        jitter: Fractional random spread applied to each retry delay
        max_queue_size: Maximum pending tasks before pushes are rejected
        poll_interval: Longest time an idle worker waits before re-checking shutdown
        require_secret: Reject registrations that carry no signing secret
        user_agent: User-Agent header sent with every delivery
        db_path: SQLite file for durable subscriptions; in-memory when unset
        metrics_port: Port for the Prometheus metrics server
        log_level: Root log level
        log_json: Render log lines as JSON instead of console output
    """

    worker_count: int = 4
    max_attempts: int = 5
    request_timeout: float = 10.0
    backoff_base: float = 1.0
    max_backoff: float = 300.0
    jitter: float = 0.2
    max_queue_size: Optional[int] = 10000
    poll_interval: float = 0.5
    require_secret: bool = False
    user_agent: str = "WebhookDispatcher/1.0"
    db_path: Optional[str] = None
    metrics_port: int = 8000
    log_level: str = "INFO"
    log_json: bool = False

    def __post_init__(self):
        if self.worker_count < 1:
            raise ValueError("worker_count must be at least 1")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")
        if self.backoff_base <= 0 or self.max_backoff < self.backoff_base:
            raise ValueError("backoff_base must be positive and not exceed max_backoff")
        if not 0 <= self.jitter < 1:
            raise ValueError("jitter must be in [0, 1)")
        if self.max_queue_size is not None and self.max_queue_size < 1:
            raise ValueError("max_queue_size must be at least 1 when set")

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "DispatcherConfig":
        """Create a DispatcherConfig instance from a dictionary.

        Unknown keys are ignored.

        Args:
            config_dict: Dictionary containing configuration values

        Returns:
            DispatcherConfig instance with values from dictionary
        """
        return cls(**{k: v for k, v in config_dict.items() if k in cls.__dataclass_fields__})

    @classmethod
    def from_env(cls) -> "DispatcherConfig":
        """Create config from environment variables, reading ``.env`` first.

        Environment Variables:
            WEBHOOK_WORKER_COUNT, WEBHOOK_MAX_ATTEMPTS, WEBHOOK_REQUEST_TIMEOUT,
            WEBHOOK_BACKOFF_BASE, WEBHOOK_MAX_BACKOFF, WEBHOOK_JITTER,
            WEBHOOK_MAX_QUEUE_SIZE, WEBHOOK_POLL_INTERVAL, WEBHOOK_REQUIRE_SECRET,
            WEBHOOK_USER_AGENT, WEBHOOK_DB_PATH, WEBHOOK_METRICS_PORT,
            WEBHOOK_LOG_LEVEL, WEBHOOK_LOG_JSON

        Returns:
            DispatcherConfig instance

        Raises:
            ValueError: If a variable holds an invalid value
        """
        load_dotenv(find_dotenv(usecwd=True))
        default = cls()
        queue_size = os.getenv("WEBHOOK_MAX_QUEUE_SIZE")

        return cls(
            worker_count=int(os.getenv("WEBHOOK_WORKER_COUNT", default.worker_count)),
            max_attempts=int(os.getenv("WEBHOOK_MAX_ATTEMPTS", default.max_attempts)),
            request_timeout=float(os.getenv("WEBHOOK_REQUEST_TIMEOUT", default.request_timeout)),
            backoff_base=float(os.getenv("WEBHOOK_BACKOFF_BASE", default.backoff_base)),
            max_backoff=float(os.getenv("WEBHOOK_MAX_BACKOFF", default.max_backoff)),
            jitter=float(os.getenv("WEBHOOK_JITTER", default.jitter)),
            max_queue_size=int(queue_size) if queue_size else default.max_queue_size,
            poll_interval=float(os.getenv("WEBHOOK_POLL_INTERVAL", default.poll_interval)),
            require_secret=_env_flag("WEBHOOK_REQUIRE_SECRET", default.require_secret),
            user_agent=os.getenv("WEBHOOK_USER_AGENT", default.user_agent),
            db_path=os.getenv("WEBHOOK_DB_PATH") or None,
            metrics_port=int(os.getenv("WEBHOOK_METRICS_PORT", default.metrics_port)),
            log_level=os.getenv("WEBHOOK_LOG_LEVEL", default.log_level),
            log_json=_env_flag("WEBHOOK_LOG_JSON", default.log_json),
        )


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")
