"""Configuration contract for the SiteGate authorization engine.

Provides Pydantic-validated settings for logging, cache lifetimes,
audit capacity and monetary approval thresholds.

Services embedding the engine construct a ``GateConfig`` directly or call
``load_gate_config_from_env()``. Direct os.environ/os.getenv usage is
FORBIDDEN anywhere else in the package.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class LogLevel(str, Enum):
    """Standard log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class GateConfig(BaseModel):
    """Settings shared by every SiteGate service and guard.

    All durations are in seconds.
    """

    # Logging
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level for the engine",
    )
    log_json: bool = Field(
        default=True,
        description="Use JSON log format",
    )
    service_name: Optional[str] = Field(
        default=None,
        description="Service name attached to log output (e.g., 'projects-api')",
    )

    # Caches
    permission_cache_ttl: float = Field(
        default=15 * 60,
        description="Lifetime of per-(user, project) permission cache entries",
    )
    guard_cache_ttl: float = Field(
        default=5 * 60,
        description="Lifetime of cached guard decisions",
    )
    guard_cache_cleanup_interval: float = Field(
        default=60,
        description="Interval of the background guard cache sweep",
    )

    # Audit
    audit_log_capacity: int = Field(
        default=10_000,
        description="Maximum number of denial entries kept in memory",
    )

    # Expiration
    expiring_soon_days: int = Field(
        default=7,
        description="Window in days for flagging memberships as expiring soon",
    )

    # Budget approval thresholds (currency units)
    change_order_approval_threshold: float = Field(
        default=10_000,
        description="Change orders above this amount require PROJECT_ADMIN",
    )
    payment_approval_threshold: float = Field(
        default=50_000,
        description="Payments above this amount require PROJECT_ADMIN",
    )

    # Secondary-check failure policy
    fail_open_on_lookup_error: bool = Field(
        default=True,
        description="Allow when expiration/scope lookups fail after the role check passed",
    )

    @field_validator(
        "permission_cache_ttl",
        "guard_cache_ttl",
        "guard_cache_cleanup_interval",
    )
    @classmethod
    def validate_positive_duration(cls, v: float) -> float:
        """Durations must be positive."""
        if v <= 0:
            raise ValueError("Duration must be greater than zero")
        return v

    @field_validator("audit_log_capacity", "expiring_soon_days")
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Value must be at least 1")
        return v

    @field_validator("change_order_approval_threshold", "payment_approval_threshold")
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Approval threshold cannot be negative")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Convert string to LogLevel enum."""
        if isinstance(v, LogLevel):
            return v
        if isinstance(v, str):
            try:
                return LogLevel[v.upper()]
            except KeyError:
                raise ValueError(f"Invalid log level: {v}. Must be one of {[e.value for e in LogLevel]}")
        raise ValueError(f"Log level must be string or LogLevel enum, got {type(v)}")

    model_config = {
        "use_enum_values": True,
        "extra": "forbid",
    }


_TRUTHY = ("true", "1", "yes", "on")


def load_gate_config_from_env() -> GateConfig:
    """Load configuration from environment variables.

    This is the ONLY place where os.getenv is allowed.

    Environment variables:
    - SITEGATE_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - SITEGATE_LOG_JSON: Use JSON log format (default: true)
    - SITEGATE_SERVICE_NAME: Service name for log output
    - SITEGATE_PERMISSION_CACHE_TTL: Permission cache TTL in seconds
    - SITEGATE_GUARD_CACHE_TTL: Guard cache TTL in seconds
    - SITEGATE_GUARD_CACHE_CLEANUP_INTERVAL: Guard cache sweep interval
    - SITEGATE_AUDIT_LOG_CAPACITY: Audit ring buffer size
    - SITEGATE_EXPIRING_SOON_DAYS: Expiring-soon window
    - SITEGATE_CHANGE_ORDER_THRESHOLD: Admin-only change order threshold
    - SITEGATE_PAYMENT_THRESHOLD: Admin-only payment threshold
    - SITEGATE_FAIL_OPEN: Allow on secondary lookup errors (default: true)

    Returns:
        GateConfig instance with values from environment or defaults.
    """
    import os

    return GateConfig(
        log_level=os.getenv("SITEGATE_LOG_LEVEL", "INFO"),
        log_json=os.getenv("SITEGATE_LOG_JSON", "true").lower() in _TRUTHY,
        service_name=os.getenv("SITEGATE_SERVICE_NAME"),
        permission_cache_ttl=float(os.getenv("SITEGATE_PERMISSION_CACHE_TTL", "900")),
        guard_cache_ttl=float(os.getenv("SITEGATE_GUARD_CACHE_TTL", "300")),
        guard_cache_cleanup_interval=float(os.getenv("SITEGATE_GUARD_CACHE_CLEANUP_INTERVAL", "60")),
        audit_log_capacity=int(os.getenv("SITEGATE_AUDIT_LOG_CAPACITY", "10000")),
        expiring_soon_days=int(os.getenv("SITEGATE_EXPIRING_SOON_DAYS", "7")),
        change_order_approval_threshold=float(os.getenv("SITEGATE_CHANGE_ORDER_THRESHOLD", "10000")),
        payment_approval_threshold=float(os.getenv("SITEGATE_PAYMENT_THRESHOLD", "50000")),
        fail_open_on_lookup_error=os.getenv("SITEGATE_FAIL_OPEN", "true").lower() in _TRUTHY,
    )


__all__ = [
    "GateConfig",
    "LogLevel",
    "load_gate_config_from_env",
]
