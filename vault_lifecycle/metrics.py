"""Prometheus metrics for session and lease lifecycle management."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# Session (token) lifecycle
vault_session_logins_total = Counter(
    "vault_session_logins_total",
    "Login attempts by the session engine",
    ["status"],
)

vault_session_renewals_total = Counter(
    "vault_session_renewals_total",
    "Session token renewal attempts",
    ["status"],
)

vault_session_login_latency_seconds = Histogram(
    "vault_session_login_latency_seconds",
    "Latency of authenticator login calls",
    buckets=[0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30],
)

# Lease lifecycle
vault_lease_renewals_total = Counter(
    "vault_lease_renewals_total",
    "Secret lease renewal attempts",
    ["status"],
)

vault_lease_rotations_total = Counter(
    "vault_lease_rotations_total",
    "Secrets re-fetched after lease expiry",
    ["status"],
)

vault_lease_expirations_total = Counter(
    "vault_lease_expirations_total",
    "Leases and session tokens that expired or were dropped",
    ["kind"],
)

vault_managed_leases = Gauge(
    "vault_managed_leases",
    "Secrets currently registered with a lease engine",
)

# Event delivery
vault_event_listener_failures_total = Counter(
    "vault_event_listener_failures_total",
    "Listener callbacks that raised while handling a lifecycle event",
    ["domain"],
)


__all__ = [
    "vault_session_logins_total",
    "vault_session_renewals_total",
    "vault_session_login_latency_seconds",
    "vault_lease_renewals_total",
    "vault_lease_rotations_total",
    "vault_lease_expirations_total",
    "vault_managed_leases",
    "vault_event_listener_failures_total",
]
