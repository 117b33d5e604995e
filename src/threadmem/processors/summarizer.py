"""Extractive summarization of older messages."""

import re
from collections import Counter

from threadmem.core.types import Message, MessageRole
from threadmem.processors.base import MemoryProcessor

KEYWORD_MIN_LENGTH = 4
TOP_KEYWORDS = 5

KEYWORD_STOP_WORDS = frozenset(
    "that this with from have there their what when where which would could should "
    "about been were they them then than into your just also will like some".split()
)


def top_keywords(messages: list[Message], limit: int = TOP_KEYWORDS) -> list[str]:
    counts: Counter[str] = Counter()
    for message in messages:
        for word in re.findall(r"[a-z][a-z0-9']*", message.text.lower()):
            if len(word) >= KEYWORD_MIN_LENGTH and word not in KEYWORD_STOP_WORDS:
                counts[word] += 1
    return [word for word, _ in counts.most_common(limit)]


class ContextualSummarizer(MemoryProcessor):
    """Replaces chunks of older messages with statistical summary messages.

    Runs only when there are more than ``max_messages``. System messages (if
    preserved) and the newest ``preserve_recent`` messages are left alone; the
    rest is cut into chunks of ``summary_interval`` and each chunk becomes one
    system message. Output is chronological; a summary sits at the time of the
    last message it replaces.
    """

    name = "contextual_summarizer"

    def __init__(
        self,
        max_messages: int = 50,
        summary_interval: int = 20,
        preserve_recent: int = 10,
        preserve_system: bool = True,
    ):
        if summary_interval < 1:
            raise ValueError("summary_interval must be at least 1")
        self.max_messages = max_messages
        self.summary_interval = summary_interval
        self.preserve_recent = preserve_recent
        self.preserve_system = preserve_system

    def process(self, messages: list[Message]) -> list[Message]:
        if len(messages) <= self.max_messages:
            return messages

        ordered = sorted(messages, key=lambda m: m.created_at)
        split = max(0, len(ordered) - self.preserve_recent)
        older, recent = ordered[:split], ordered[split:]

        kept = []
        to_summarize = []
        for message in older:
            if self.preserve_system and message.role == MessageRole.SYSTEM:
                kept.append(message)
            else:
                to_summarize.append(message)

        summaries = [
            self.summarize(to_summarize[start : start + self.summary_interval])
            for start in range(0, len(to_summarize), self.summary_interval)
        ]
        return sorted(kept + summaries, key=lambda m: m.created_at) + recent

    def summarize(self, chunk: list[Message]) -> Message:
        first, last = chunk[0], chunk[-1]
        roles = Counter(m.role for m in chunk)
        keywords = top_keywords(chunk)

        lines = [
            f"[SUMMARY: Conversation from {first.created_at.isoformat()} "
            f"to {last.created_at.isoformat()}]",
            f"- {roles[MessageRole.USER]} user messages, "
            f"{roles[MessageRole.ASSISTANT]} assistant messages, "
            f"{roles[MessageRole.TOOL]} tool interactions",
        ]
        if keywords:
            lines.append(f"- Key topics: {', '.join(keywords)}")
        lines.append(f"- This summary replaces {len(chunk)} messages")

        return Message(
            id=f"summary-{first.id}-{last.id}",
            thread_id=first.thread_id,
            role=MessageRole.SYSTEM,
            content="\n".join(lines),
            name="summarizer",
            created_at=last.created_at,
            metadata={
                "summary": True,
                "summarized_messages": len(chunk),
                "summarized_ids": [m.id for m in chunk],
            },
        )
