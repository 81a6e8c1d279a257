"""
Lifecycle settings loaded from environment variables.

Uses Pydantic Settings for type-safe configuration with validation. Every
field can be overridden via ``VAULT_LIFECYCLE_<FIELD>`` environment
variables or a .env file.
"""

from datetime import timedelta
from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from vault_lifecycle.lease.strategy import LeaseStrategy
from vault_lifecycle.scheduling.trigger import (
    FixedTimeoutRefreshTrigger,
    JitteredRefreshTrigger,
    RefreshTrigger,
)

LeaseStrategyName = Literal["drop-on-error", "retain-on-error", "retain-on-io-error"]


class LifecycleSettings(BaseSettings):
    """
    Session and lease lifecycle configuration.

    All settings are loaded from environment variables (prefix
    ``VAULT_LIFECYCLE_``) or .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="VAULT_LIFECYCLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Vault connection
    vault_addr: str = Field(
        default="http://127.0.0.1:8200",
        description="Vault server address",
    )
    vault_namespace: str | None = Field(
        default=None,
        description="Vault Enterprise namespace",
    )
    vault_verify: bool = Field(
        default=True,
        description="Verify Vault TLS certificates (disable only for local development)",
    )
    vault_timeout_seconds: int = Field(
        default=30,
        ge=1,
        le=300,
        description="Per-request HTTP timeout",
    )

    # Authentication
    vault_token: SecretStr | None = Field(
        default=None,
        description="Pre-issued token (used when no AppRole is configured)",
    )
    vault_role_id: str | None = Field(
        default=None,
        description="AppRole role id",
    )
    vault_secret_id: SecretStr | None = Field(
        default=None,
        description="AppRole secret id",
    )
    vault_approle_mount: str = Field(
        default="approle",
        description="AppRole auth mount path",
    )

    # Refresh policy
    lead_time_seconds: float = Field(
        default=5,
        ge=0,
        description="Renew this long before a token or lease expires",
    )
    valid_ttl_threshold_seconds: float | None = Field(
        default=None,
        ge=0,
        description="Remaining TTL at or below which an item counts as expired (default: lead time + 2)",
    )
    min_renewal_seconds: float = Field(
        default=1,
        ge=0,
        description="Lower bound for every computed renewal delay",
    )
    renewal_jitter_seconds: float = Field(
        default=0,
        ge=0,
        description="Maximum random jitter subtracted from renewal delays",
    )

    # Session behaviour
    token_self_lookup_enabled: bool = Field(
        default=True,
        description="Look up TTL/renewability of externally supplied tokens",
    )
    login_timeout_seconds: float = Field(
        default=30,
        gt=0,
        description="How long get_token() waits for an in-flight login",
    )
    revoke_on_destroy: bool = Field(
        default=True,
        description="Revoke login tokens and leases on shutdown",
    )

    # Lease behaviour
    lease_strategy: LeaseStrategyName = Field(
        default="drop-on-error",
        description="What to do with a lease whose renewal failed",
    )

    # Scheduler
    scheduler_pool_size: int = Field(
        default=4,
        ge=1,
        le=64,
        description="Worker threads running renewals",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    service_name: str = Field(
        default="vault-lifecycle",
        description="Service name reported in JSON logs",
    )

    @model_validator(mode="after")
    def _check_threshold(self) -> "LifecycleSettings":
        if (
            self.valid_ttl_threshold_seconds is not None
            and self.valid_ttl_threshold_seconds < self.lead_time_seconds
        ):
            raise ValueError("valid_ttl_threshold_seconds must not be below lead_time_seconds")
        return self

    @property
    def login_timeout(self) -> timedelta:
        return timedelta(seconds=self.login_timeout_seconds)

    def build_refresh_trigger(self) -> RefreshTrigger:
        """Create the refresh trigger described by these settings."""
        trigger: RefreshTrigger = FixedTimeoutRefreshTrigger(
            lead_time=timedelta(seconds=self.lead_time_seconds),
            valid_ttl_threshold=(
                timedelta(seconds=self.valid_ttl_threshold_seconds)
                if self.valid_ttl_threshold_seconds is not None
                else None
            ),
            min_delay=timedelta(seconds=self.min_renewal_seconds),
        )
        if self.renewal_jitter_seconds > 0:
            trigger = JitteredRefreshTrigger(
                trigger, max_jitter=timedelta(seconds=self.renewal_jitter_seconds)
            )
        return trigger

    def build_lease_strategy(self) -> LeaseStrategy:
        return LeaseStrategy.from_name(self.lease_strategy)


@lru_cache
def get_settings() -> LifecycleSettings:
    """
    Get cached settings instance.

    Returns:
        LifecycleSettings instance (cached after first call)

    Example:
        >>> settings = get_settings()
        >>> settings.lead_time_seconds
        5.0
    """
    return LifecycleSettings()
