"""Relative "time ago" labels for conversation and message timestamps."""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Union

from models.conversation import as_utc

logger = logging.getLogger(__name__)

Timestamp = Union[datetime, str, None]

DEFAULT_REFRESH_SECONDS = 30.0


def _parse(timestamp: Timestamp) -> Optional[datetime]:
    if timestamp is None or timestamp == "":
        return None
    if isinstance(timestamp, datetime):
        return as_utc(timestamp)
    try:
        return as_utc(datetime.fromisoformat(timestamp.replace("Z", "+00:00")))
    except ValueError:
        logger.warning(f"Unparseable timestamp: {timestamp!r}")
        return None


def format_time_ago(timestamp: Timestamp, now: Optional[datetime] = None) -> str:
    """Format a timestamp as "just now", "5m ago", "3h ago", "2d ago" or a date."""
    moment = _parse(timestamp)
    if moment is None:
        return ""

    now = as_utc(now) if now is not None else datetime.now(timezone.utc)
    seconds = int((now - moment).total_seconds())

    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    if seconds < 604800:
        return f"{seconds // 86400}d ago"
    return moment.astimezone().strftime("%m/%d/%Y")


class TimeAgoTicker:
    """Keeps a time-ago label fresh, calling ``on_change`` when the text changes."""

    def __init__(
        self,
        timestamp: Timestamp,
        on_change: Callable[[str], None],
        interval: float = DEFAULT_REFRESH_SECONDS,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.timestamp = timestamp
        self.on_change = on_change
        self.interval = interval
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._task: Optional[asyncio.Task] = None
        self.label = ""

    def refresh(self) -> str:
        label = format_time_ago(self.timestamp, self._clock())
        if label != self.label:
            self.label = label
            self.on_change(label)
        return label

    async def _run(self):
        while True:
            self.refresh()
            await asyncio.sleep(self.interval)

    def start(self):
        if self._task is None and self.timestamp:
            self._task = asyncio.create_task(self._run())

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
