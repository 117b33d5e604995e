"""
Time-aware filtering, grouping and annotation.

Modes:
- filter: keep messages inside the recency threshold and, when windows are
  configured, inside at least one window
- group: insert a system header whenever the window label changes
- annotate: prefix content with "[timestamp] (relative time)"
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from threadmem.core.types import Message, MessageRole, utc_now
from threadmem.processors.base import MemoryProcessor

OTHER_LABEL = "Other"

UNIT_SECONDS = {
    "minutes": 60,
    "hours": 3600,
    "days": 86400,
}

# Largest unit first
RELATIVE_UNITS = [
    ("year", 365 * 86400),
    ("month", 30 * 86400),
    ("day", 86400),
    ("hour", 3600),
    ("minute", 60),
    ("second", 1),
]


def _as_datetime(value: datetime | str) -> datetime:
    if isinstance(value, datetime):
        moment = value
    else:
        moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


class TemporalMode(Enum):
    FILTER = "filter"
    GROUP = "group"
    ANNOTATE = "annotate"


@dataclass
class TimeWindow:
    """Closed interval; a missing end means open-ended."""

    start: datetime
    end: datetime | None = None
    label: str | None = None

    def contains(self, moment: datetime) -> bool:
        if moment < self.start:
            return False
        return self.end is None or moment <= self.end

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimeWindow":
        end = data.get("end")
        return cls(
            start=_as_datetime(data["start"]),
            end=_as_datetime(end) if end is not None else None,
            label=data.get("label"),
        )

    @property
    def display_label(self) -> str:
        if self.label:
            return self.label
        end = self.end.isoformat() if self.end else "now"
        return f"{self.start.isoformat()} to {end}"


def relative_time(moment: datetime, now: datetime) -> str:
    """Largest whole unit between ``moment`` and ``now``, e.g. "5 minutes ago"."""
    seconds = int((now - moment).total_seconds())
    future = seconds < 0
    seconds = abs(seconds)
    for unit, size in RELATIVE_UNITS:
        if seconds >= size or unit == "second":
            value = seconds // size
            phrase = f"{value} {unit}{'' if value == 1 else 's'}"
            return f"in {phrase}" if future else f"{phrase} ago"
    raise AssertionError("unreachable")


class TemporalProcessor(MemoryProcessor):
    """Applies time windows and recency rules to messages."""

    name = "temporal"

    def __init__(
        self,
        mode: TemporalMode | str = TemporalMode.ANNOTATE,
        time_windows: list[TimeWindow | dict[str, Any]] | None = None,
        recency_threshold: float | None = None,
        recency_unit: str = "hours",
        add_timestamps: bool = True,
        add_relative_time: bool = True,
        clock: Callable[[], datetime] = utc_now,
    ):
        if recency_unit not in UNIT_SECONDS:
            raise ValueError(f"recency_unit must be one of {sorted(UNIT_SECONDS)}")
        self.mode = TemporalMode(mode)
        self.time_windows = [
            w if isinstance(w, TimeWindow) else TimeWindow.from_dict(w) for w in time_windows or []
        ]
        self.recency_threshold = recency_threshold
        self.recency_unit = recency_unit
        self.add_timestamps = add_timestamps
        self.add_relative_time = add_relative_time
        self.clock = clock

    def process(self, messages: list[Message]) -> list[Message]:
        if not messages:
            return messages
        if self.mode == TemporalMode.FILTER:
            return self._filter(messages)
        if self.mode == TemporalMode.GROUP:
            return self._group(messages)
        return self._annotate(messages)

    def window_label(self, moment: datetime) -> str:
        for window in self.time_windows:
            if window.contains(moment):
                return window.display_label
        return OTHER_LABEL

    def _filter(self, messages: list[Message]) -> list[Message]:
        now = self.clock()
        cutoff = None
        if self.recency_threshold is not None:
            cutoff = now - timedelta(
                seconds=self.recency_threshold * UNIT_SECONDS[self.recency_unit]
            )

        kept = []
        for message in messages:
            if cutoff is not None and message.created_at < cutoff:
                continue
            if self.time_windows and not any(
                w.contains(message.created_at) for w in self.time_windows
            ):
                continue
            kept.append(message)
        return kept

    def _group(self, messages: list[Message]) -> list[Message]:
        result = []
        current_label = None
        for message in sorted(messages, key=lambda m: m.created_at):
            label = self.window_label(message.created_at)
            if label != current_label:
                slug = re.sub(r"[^a-z0-9]+", "-", label.lower()).strip("-")
                result.append(
                    Message(
                        id=f"time-header-{slug}-{message.id}",
                        thread_id=message.thread_id,
                        role=MessageRole.SYSTEM,
                        content=f"[Time Period: {label}]",
                        created_at=message.created_at,
                        metadata={"time_header": True, "time_period": label},
                    )
                )
                current_label = label
            result.append(message)
        return result

    def _annotate(self, messages: list[Message]) -> list[Message]:
        if not self.add_timestamps and not self.add_relative_time:
            return messages

        now = self.clock()
        result = []
        for message in messages:
            parts = []
            if self.add_timestamps:
                parts.append(f"[{message.created_at.isoformat()}]")
            if self.add_relative_time:
                parts.append(f"({relative_time(message.created_at, now)})")
            annotation = " ".join(parts)

            if isinstance(message.content, str):
                result.append(message.with_changes(content=f"{annotation} {message.content}"))
            else:
                result.append(message.with_metadata(time_annotation=annotation))
        return result
