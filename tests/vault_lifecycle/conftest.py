"""
Shared fixtures for vault_lifecycle tests.

ManualScheduler captures scheduled tasks instead of running them on
threads, so tests decide exactly when a renewal fires.
"""

from collections.abc import Callable
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from vault_lifecycle.domain.credential import Credential
from vault_lifecycle.domain.lease import Lease, SecretResponse
from vault_lifecycle.scheduling.scheduler import RenewalScheduler, ScheduledTask
from vault_lifecycle.transport.base import (
    ClientAuthenticator,
    CredentialTransport,
    LeaseTransport,
)


class ManualScheduler(RenewalScheduler):
    """Scheduler double: records tasks, runs them only when asked."""

    def __init__(self) -> None:
        self.tasks: list[ScheduledTask] = []
        self.is_shut_down = False

    def schedule(
        self, fn: Callable[[], None], delay: timedelta, name: str | None = None
    ) -> ScheduledTask:
        task = ScheduledTask(fn, delay, name)
        self.tasks.append(task)
        return task

    def shutdown(self, wait: bool = True) -> None:
        self.is_shut_down = True
        for task in self.tasks:
            task.cancel()

    @property
    def pending(self) -> list[ScheduledTask]:
        return [task for task in self.tasks if not task.done]

    def run_pending(self) -> int:
        """Run every task pending right now (not ones scheduled while running)."""
        due = self.pending
        for task in due:
            task.run()
        return len(due)

    def run_next(self) -> ScheduledTask:
        task = self.pending[0]
        task.run()
        return task


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture(autouse=True)
def fast_retry_sleep(monkeypatch):
    """Eliminate tenacity backoff delays in tests to keep the suite fast."""
    monkeypatch.setattr("tenacity.nap.sleep", lambda *args, **kwargs: None)


@pytest.fixture()
def login_credential() -> Callable[..., Credential]:
    """Factory for login-derived credentials."""

    def make(
        token: str = "hvs.login",
        ttl_seconds: int = 30,
        renewable: bool = True,
    ) -> Credential:
        return Credential.login(token, timedelta(seconds=ttl_seconds), renewable=renewable)

    return make


@pytest.fixture()
def mock_authenticator(login_credential) -> MagicMock:
    authenticator = MagicMock(spec=ClientAuthenticator)
    authenticator.supports_relogin = True
    authenticator.login.return_value = login_credential()
    return authenticator


@pytest.fixture()
def mock_credential_transport() -> MagicMock:
    transport = MagicMock(spec=CredentialTransport)
    transport.renew_self.side_effect = lambda credential: credential.renewed(
        credential.lease_duration
    )
    transport.lookup_self.side_effect = lambda credential: credential
    return transport


@pytest.fixture()
def mock_lease_transport() -> MagicMock:
    transport = MagicMock(spec=LeaseTransport)
    transport.renew.side_effect = lambda lease, increment: Lease(
        lease_id=lease.lease_id,
        lease_duration=lease.lease_duration,
        renewable=True,
    )
    return transport


@pytest.fixture()
def secret_fetcher() -> Callable[..., MagicMock]:
    """Factory for fetch callbacks returning successive leases for a path."""

    def make(ttl_seconds: int = 60, renewable: bool = True, data: dict | None = None) -> MagicMock:
        counter = {"n": 0}

        def fetch(path: str) -> SecretResponse:
            counter["n"] += 1
            return SecretResponse(
                data=data if data is not None else {"username": f"user-{counter['n']}"},
                lease=Lease.from_seconds(f"{path}/lease-{counter['n']}", ttl_seconds, renewable),
            )

        return MagicMock(side_effect=fetch)

    return make
