"""Importance-based message selection."""

import re

from threadmem.core.types import Message, MessageRole, MessageType
from threadmem.processors.base import MemoryProcessor

ROLE_WEIGHTS = {
    MessageRole.SYSTEM: 1.0,
    MessageRole.USER: 0.8,
    MessageRole.ASSISTANT: 0.7,
    MessageRole.TOOL: 0.3,
}

TYPE_WEIGHTS = {
    MessageType.TEXT: 0.8,
    MessageType.TOOL_CALL: 0.4,
    MessageType.TOOL_RESULT: 0.5,
}

LENGTH_SCALE = 1000


class PriorityRanker(MemoryProcessor):
    """Keeps system messages, the newest N, and the best-scoring rest.

    score = (role + type + recency_weight * recency + length_weight * length
             + keyword_weight * keyword_ratio) / (2 + recency_weight
             + length_weight + keyword_weight)

    Preserved messages are kept even if they alone exceed ``max_messages``.
    Output is chronological.
    """

    name = "priority_ranker"

    def __init__(
        self,
        max_messages: int = 50,
        preserve_recent: int = 5,
        preserve_system: bool = True,
        recency_weight: float = 0.5,
        length_weight: float = 0.2,
        keywords: list[str] | None = None,
        keyword_weight: float = 0.8,
        role_weights: dict[str, float] | None = None,
        type_weights: dict[str, float] | None = None,
    ):
        self.max_messages = max_messages
        self.preserve_recent = preserve_recent
        self.preserve_system = preserve_system
        self.recency_weight = recency_weight
        self.length_weight = length_weight
        self.keywords = [k.lower() for k in keywords or []]
        self.keyword_weight = keyword_weight
        self.role_weights = dict(ROLE_WEIGHTS)
        for role, weight in (role_weights or {}).items():
            self.role_weights[MessageRole(role)] = weight
        self.type_weights = dict(TYPE_WEIGHTS)
        for type_, weight in (type_weights or {}).items():
            self.type_weights[MessageType(type_)] = weight

    def score(self, message: Message, position: int, count: int) -> float:
        recency = (position + 1) / count
        length = min(len(message.text) / LENGTH_SCALE, 1.0)
        keyword_ratio = 0.0
        if self.keywords:
            words = set(re.findall(r"\w+", message.text.lower()))
            keyword_ratio = sum(1 for k in self.keywords if k in words) / len(self.keywords)

        total = (
            self.role_weights.get(message.role, 0.5)
            + self.type_weights.get(message.type, 0.5)
            + self.recency_weight * recency
            + self.length_weight * length
            + self.keyword_weight * keyword_ratio
        )
        return total / (2 + self.recency_weight + self.length_weight + self.keyword_weight)

    def process(self, messages: list[Message]) -> list[Message]:
        if len(messages) <= self.max_messages:
            return messages

        ordered = sorted(messages, key=lambda m: m.created_at)
        count = len(ordered)

        preserved: set[int] = set()
        if self.preserve_system:
            preserved.update(i for i, m in enumerate(ordered) if m.role == MessageRole.SYSTEM)
        if self.preserve_recent > 0:
            preserved.update(range(max(0, count - self.preserve_recent), count))

        budget = max(0, self.max_messages - len(preserved))
        candidates = [i for i in range(count) if i not in preserved]
        candidates.sort(key=lambda i: (self.score(ordered[i], i, count), i), reverse=True)

        keep = preserved | set(candidates[:budget])
        return [m for i, m in enumerate(ordered) if i in keep]
