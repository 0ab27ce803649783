"""Tests for hfspace_mcp.endpoints.progress module.

compute_progress and next_notification are pure, so most of this runs
without a sink; ProgressNotifier is exercised with an AsyncMock sink.
"""

import pytest
from unittest.mock import AsyncMock

from hfspace_mcp.adapters.schema import ProgressUnit
from hfspace_mcp.endpoints.progress import (
    ProgressNotifier,
    compute_progress,
    next_notification,
    progress_message,
)
from tests.conftest import status


def step(index, length, desc=None):
    return status("generating", progress_data=[ProgressUnit(index=index, length=length, desc=desc)])


class TestComputeProgress:
    """Tests for compute_progress."""

    @pytest.mark.parametrize(
        "event,expected",
        [
            (status("pending", queue=True, position=0), 10),
            (status("pending", queue=True, position=3), 5),
            (status("pending"), 15),
            (status("generating"), 50),
            (status("complete"), 100),
        ],
    )
    def test_stage_heuristic(self, event, expected):
        assert compute_progress(0, event) == expected

    def test_error_holds_last_value(self):
        assert compute_progress(40, status("error", message="boom")) == 40

    def test_step_band_start(self):
        assert compute_progress(0, step(0, 4)) == 10

    def test_step_band_end(self):
        assert compute_progress(0, step(3, 4)) == 90

    def test_step_rounding(self):
        # 10 + 1/3 * 80 = 36.67
        assert compute_progress(0, step(1, 4)) == 37

    def test_single_step_maps_to_band_end(self):
        assert compute_progress(0, step(0, 1)) == 90

    def test_never_decreases(self):
        assert compute_progress(60, status("pending")) == 60

    def test_stall_bump(self):
        assert compute_progress(80, status("generating")) == 81

    def test_stall_bump_capped(self):
        assert compute_progress(99, status("generating")) == 99

    def test_no_bump_below_threshold(self):
        assert compute_progress(50, status("generating")) == 50

    def test_complete_forces_total(self):
        assert compute_progress(99, status("complete")) == 100


class TestProgressMessage:
    """Tests for progress_message."""

    def test_event_message_wins(self):
        assert progress_message(status("pending", message="Waking up", queue=True, position=2)) == "Waking up"

    def test_queued(self):
        assert progress_message(status("pending", queue=True, position=2)) == "Queued at position 2"

    def test_step_description(self):
        assert progress_message(step(1, 4, desc="Denoising")) == "Denoising"

    def test_step_counter(self):
        assert progress_message(step(1, 4)) == "Step 2 of 4"

    def test_capitalized_stage(self):
        assert progress_message(status("generating")) == "Generating"

    def test_step_without_length_uses_stage(self):
        assert progress_message(step(0, None)) == "Generating"
        assert progress_message(step(None, None)) == "Generating"


class TestNextNotification:
    """Tests for the pure transition function."""

    def test_returns_state_and_payload(self):
        event = status("pending", queue=True, position=0)
        progress, notification = next_notification(0, event, "tok")
        assert progress == 10
        assert notification.progress_token == "tok"
        assert notification.progress == 10
        assert notification.total == 100
        assert notification.message == "Queued at position 0"
        assert notification.meta["stage"] == "pending"
        assert notification.meta["position"] == 0

    def test_sequence_is_monotonic_and_ends_at_total(self):
        events = [
            status("pending", queue=True, position=2),
            status("pending", queue=True, position=0),
            status("generating"),
            step(0, 4),
            step(2, 4),
            status("generating"),
            step(3, 4),
            status("complete"),
        ]
        last = 0
        seen = []
        for event in events:
            last, notification = next_notification(last, event, 1)
            seen.append(notification.progress)
        assert seen == sorted(seen)
        assert seen[-1] == 100

    def test_without_complete_never_reaches_total(self):
        last = 0
        for event in [status("generating"), step(3, 4)] + [status("generating")] * 20:
            last, _ = next_notification(last, event, 1)
        assert last < 100


class TestProgressNotifier:
    """Tests for ProgressNotifier."""

    @pytest.mark.asyncio
    async def test_emits_to_sink(self):
        sink = AsyncMock()
        notifier = ProgressNotifier(sink)

        notification = await notifier.notify(status("generating"), "tok")

        sink.assert_awaited_once_with(notification)
        assert notifier.last_progress == 50

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", [None, ""])
    async def test_no_token_is_noop(self, token):
        sink = AsyncMock()
        notifier = ProgressNotifier(sink)

        assert await notifier.notify(status("generating"), token) is None

        sink.assert_not_awaited()
        assert notifier.last_progress == 0

    @pytest.mark.asyncio
    async def test_zero_token_is_valid(self):
        sink = AsyncMock()
        notifier = ProgressNotifier(sink)

        await notifier.notify(status("complete"), 0)

        sink.assert_awaited_once()
        assert sink.await_args.args[0].progress_token == 0

    @pytest.mark.asyncio
    async def test_works_without_sink(self):
        notifier = ProgressNotifier()
        notification = await notifier.notify(status("pending"), "tok")
        assert notification.progress == 15

    @pytest.mark.asyncio
    async def test_notifiers_do_not_share_state(self):
        first, second = ProgressNotifier(), ProgressNotifier()
        await first.notify(status("generating"), "a")
        assert second.last_progress == 0
