"""
Progress notifications for in-flight calls.

Spaces report queue position, coarse stages and (sometimes) step
progress. These are folded into a single 0-100 value that never goes
backwards, so the client's progress bar behaves even when the Space's
own reporting jumps around.

compute_progress / progress_message / next_notification are pure;
ProgressNotifier holds the per-call state and forwards to a sink.
"""

import math
from typing import Any, Awaitable, Callable, Optional, Union

from pydantic import BaseModel, Field

from hfspace_mcp.adapters.schema import StatusEvent

PROGRESS_TOTAL = 100
STEP_BAND_START = 10
STEP_BAND_WIDTH = 80
STALL_THRESHOLD = 75

ProgressToken = Union[str, int]


class ProgressNotification(BaseModel):
    """A notifications/progress payload."""
    progress_token: ProgressToken
    progress: int
    total: int = PROGRESS_TOTAL
    message: str
    meta: dict[str, Any] = Field(default_factory=dict)


ProgressSink = Callable[[ProgressNotification], Awaitable[None]]


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _stage_progress(status: StatusEvent, last_progress: int) -> int:
    if status.stage == "pending":
        if status.queue:
            return 10 if status.position == 0 else 5
        return 15
    if status.stage == "generating":
        return 50
    if status.stage == "complete":
        return 100
    return last_progress


def compute_progress(last_progress: int, status: StatusEvent) -> int:
    """
    Next progress value given the previous one and a status event.

    Step data maps onto the 10-90 band; otherwise the stage decides.
    The result never drops below last_progress, is forced to 100 on
    completion, and creeps up by one (capped at 99) once past 75 so a
    long final phase does not look stalled.
    """
    progress = last_progress
    if status.progress_data:
        item = status.progress_data[0]
        if item.index is not None and item.length is not None:
            if item.length > 1:
                step = item.index / (item.length - 1) * STEP_BAND_WIDTH
            else:
                step = STEP_BAND_WIDTH
            progress = _round_half_up(STEP_BAND_START + step)
    else:
        progress = _stage_progress(status, last_progress)

    progress = max(progress, last_progress)
    if status.stage == "complete":
        progress = PROGRESS_TOTAL
    elif progress == last_progress and last_progress >= STALL_THRESHOLD:
        progress = min(99, last_progress + 1)
    return progress


def progress_message(status: StatusEvent) -> str:
    if status.message:
        return status.message
    if status.queue and status.position is not None:
        return f"Queued at position {status.position}"
    if status.progress_data:
        item = status.progress_data[0]
        if item.desc:
            return item.desc
        if item.length is not None:
            index = item.index or 0
            return f"Step {index + 1} of {item.length}"
    return status.stage[:1].upper() + status.stage[1:]


def next_notification(
    last_progress: int,
    status: StatusEvent,
    progress_token: ProgressToken,
) -> tuple[int, ProgressNotification]:
    """Pure transition: (state, event) -> (new state, notification)."""
    progress = compute_progress(last_progress, status)
    notification = ProgressNotification(
        progress_token=progress_token,
        progress=progress,
        message=progress_message(status),
        meta=status.model_dump(exclude_none=True),
    )
    return progress, notification


class ProgressNotifier:
    """
    Per-call progress state.

    One instance per call; never shared across concurrent calls.
    """

    def __init__(self, sink: Optional[ProgressSink] = None):
        self._sink = sink
        self.last_progress = 0

    async def notify(
        self,
        status: StatusEvent,
        progress_token: Optional[ProgressToken],
    ) -> Optional[ProgressNotification]:
        """Emit a notification for status; no-op without a token."""
        if progress_token is None or progress_token == "":
            return None
        self.last_progress, notification = next_notification(
            self.last_progress, status, progress_token
        )
        if self._sink is not None:
            await self._sink(notification)
        return notification
