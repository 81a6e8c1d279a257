"""
Tests for vault_lifecycle/scheduling/renewal.py - SingleFlightRenewal.

Test Coverage:
    - At most one pending task per slot
    - Superseded tasks do nothing when they fire
    - cancel() and close() semantics
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from vault_lifecycle.scheduling.renewal import SingleFlightRenewal


class TestSingleFlightRenewal:
    """Test the single-flight slot over the manual scheduler."""

    @pytest.mark.unit()
    def test_schedule_runs_action_with_target(self, scheduler) -> None:
        slot: SingleFlightRenewal[str] = SingleFlightRenewal(scheduler, "session")
        action = MagicMock()

        task = slot.schedule("cred-1", action, timedelta(seconds=55))

        assert slot.pending is task
        assert slot.target == "cred-1"
        assert task.delay == timedelta(seconds=55)
        assert task.name == "session"
        task.run()
        action.assert_called_once_with("cred-1")
        assert slot.pending is None

    @pytest.mark.unit()
    def test_rescheduling_cancels_previous(self, scheduler) -> None:
        slot: SingleFlightRenewal[str] = SingleFlightRenewal(scheduler, "session")
        action = MagicMock()

        first = slot.schedule("cred-1", action, timedelta(seconds=55))
        second = slot.schedule("cred-2", action, timedelta(seconds=55))

        assert first.cancelled
        assert scheduler.pending == [second]
        scheduler.run_pending()
        action.assert_called_once_with("cred-2")

    @pytest.mark.unit()
    def test_superseded_task_that_escaped_cancellation_is_skipped(self, scheduler) -> None:
        """
        A task already handed to a worker cannot be cancelled.

        When it finally runs after a newer task replaced it in the slot, it
        must not call the action.
        """
        slot: SingleFlightRenewal[str] = SingleFlightRenewal(scheduler, "lease:db")
        action = MagicMock()
        first = slot.schedule("lease-1", action, timedelta(seconds=1))
        scheduled_run = first.fn

        slot.schedule("lease-2", action, timedelta(seconds=1))
        scheduled_run()

        action.assert_not_called()

    @pytest.mark.unit()
    def test_cancel(self, scheduler) -> None:
        slot: SingleFlightRenewal[str] = SingleFlightRenewal(scheduler, "session")
        task = slot.schedule("cred-1", MagicMock(), timedelta(seconds=55))

        assert slot.cancel() is True
        assert task.cancelled
        assert slot.target is None
        assert slot.cancel() is False

    @pytest.mark.unit()
    def test_cancel_allows_rescheduling(self, scheduler) -> None:
        slot: SingleFlightRenewal[str] = SingleFlightRenewal(scheduler, "session")
        slot.schedule("cred-1", MagicMock(), timedelta(seconds=55))
        slot.cancel()

        assert slot.schedule("cred-2", MagicMock(), timedelta(seconds=55)) is not None

    @pytest.mark.unit()
    def test_close_refuses_further_scheduling(self, scheduler) -> None:
        slot: SingleFlightRenewal[str] = SingleFlightRenewal(scheduler, "session")
        task = slot.schedule("cred-1", MagicMock(), timedelta(seconds=55))

        slot.close()

        assert slot.closed
        assert task.cancelled
        assert slot.schedule("cred-2", MagicMock(), timedelta(seconds=55)) is None
        assert scheduler.pending == []

    @pytest.mark.unit()
    def test_action_can_reschedule_itself(self, scheduler) -> None:
        slot: SingleFlightRenewal[int] = SingleFlightRenewal(scheduler, "lease:db")
        seen: list[int] = []

        def renew(generation: int) -> None:
            seen.append(generation)
            if generation < 3:
                slot.schedule(generation + 1, renew, timedelta(seconds=55))

        slot.schedule(1, renew, timedelta(seconds=55))
        while scheduler.pending:
            scheduler.run_next()

        assert seen == [1, 2, 3]
