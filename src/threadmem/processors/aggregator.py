"""
Stream aggregation.

Buffers eligible messages per grouping key. A group is emitted when it reaches
``max_messages`` or its oldest message has waited ``time_window`` seconds.
Groups of at least ``min_messages`` collapse into one message; smaller groups
are emitted unchanged. Ineligible messages pass straight through. Call
``flush()`` at end of stream to emit whatever is still buffered.
"""

import json
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from threadmem.core.types import Message, MessageRole, MessageType
from threadmem.processors.base import MemoryProcessor

GroupKey = Callable[[Message], str]
Aggregate = Callable[[list[Message]], Message]


def default_aggregate(group: list[Message]) -> Message:
    """Concatenate text contents; tool groups become one tool-result."""
    first, last = group[0], group[-1]
    metadata = {
        **last.metadata,
        "aggregated": True,
        "aggregated_count": len(group),
        "aggregated_ids": [m.id for m in group],
    }

    if first.role == MessageRole.TOOL:
        content = [
            {
                "type": "tool-result",
                "toolCallId": f"aggregated-{first.id}",
                "toolName": "aggregatedToolResult",
                "result": [m.content for m in group],
            }
        ]
        return last.with_changes(
            id=f"aggregated-{first.id}",
            type=MessageType.TOOL_RESULT,
            content=content,
            metadata=metadata,
        )

    parts = [m.content if isinstance(m.content, str) else json.dumps(m.content) for m in group]
    return last.with_changes(
        id=f"aggregated-{first.id}",
        content="\n\n".join(parts),
        metadata=metadata,
    )


@dataclass
class _Buffer:
    messages: list[Message] = field(default_factory=list)
    opened_at: float = 0.0


class StreamAggregator(MemoryProcessor):
    """Stateful: keeps buffers between ``process`` calls."""

    name = "stream_aggregator"

    def __init__(
        self,
        group_by: GroupKey | None = None,
        aggregate: Aggregate = default_aggregate,
        aggregators: dict[str, Aggregate] | None = None,
        roles: list[str] | None = None,
        types: list[str] | None = None,
        min_messages: int = 2,
        max_messages: int = 10,
        time_window: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if min_messages < 1 or max_messages < min_messages:
            raise ValueError("need 1 <= min_messages <= max_messages")
        self.group_by = group_by or CommonGroupings.by_role_and_type()
        self.aggregate = aggregate
        self.aggregators = dict(aggregators or {})
        self.roles = {MessageRole(r) for r in (roles or ["user", "assistant", "tool"])}
        self.types = {MessageType(t) for t in (types or ["text", "tool-result"])}
        self.min_messages = min_messages
        self.max_messages = max_messages
        self.time_window = time_window
        self.clock = clock
        self._buffers: dict[str, _Buffer] = {}

    @property
    def buffered(self) -> int:
        return sum(len(b.messages) for b in self._buffers.values())

    def eligible(self, message: Message) -> bool:
        return message.role in self.roles and message.type in self.types

    def process(self, messages: list[Message]) -> list[Message]:
        output: list[Message] = []
        for message in messages:
            if not self.eligible(message):
                output.append(message)
                continue
            key = self.group_by(message)
            buffer = self._buffers.get(key)
            if buffer is None:
                buffer = self._buffers[key] = _Buffer(opened_at=self.clock())
            buffer.messages.append(message)
            if len(buffer.messages) >= self.max_messages:
                output.extend(self._emit(key))

        now = self.clock()
        for key in [k for k, b in self._buffers.items() if now - b.opened_at >= self.time_window]:
            output.extend(self._emit(key))
        return sorted(output, key=lambda m: m.created_at)

    def flush(self) -> list[Message]:
        output: list[Message] = []
        for key in list(self._buffers):
            output.extend(self._emit(key))
        return sorted(output, key=lambda m: m.created_at)

    def _emit(self, key: str) -> list[Message]:
        group = self._buffers.pop(key).messages
        if len(group) < self.min_messages:
            return group
        aggregate = self.aggregators.get(key, self.aggregate)
        return [aggregate(group)]


class CommonGroupings:
    """Ready-made grouping keys."""

    @staticmethod
    def by_role() -> GroupKey:
        return lambda message: message.role.value

    @staticmethod
    def by_type() -> GroupKey:
        return lambda message: message.type.value

    @staticmethod
    def by_role_and_type() -> GroupKey:
        return lambda message: f"{message.role.value}:{message.type.value}"

    @staticmethod
    def by_name() -> GroupKey:
        return lambda message: message.name or "unnamed"

    @staticmethod
    def by_content_prefix(length: int = 20) -> GroupKey:
        return lambda message: message.text[:length].lower().strip()
