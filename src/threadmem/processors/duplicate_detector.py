"""
Near-duplicate removal.

Similarity between two normalized contents:
- identical text scores 1.0
- texts shorter than LONG_TEXT use the Levenshtein ratio, where a
  substitution costs 2 (one deletion plus one insertion), so
  ratio = 1 - distance / (len(a) + len(b))
- longer texts use cosine similarity of character frequencies
"""

import math
import re
from collections import Counter

from threadmem.core.types import Message
from threadmem.processors.base import MemoryProcessor

LONG_TEXT = 1000

WHITESPACE_RE = re.compile(r"\s+")


def levenshtein_ratio(a: str, b: str) -> float:
    total = len(a) + len(b)
    if total == 0:
        return 1.0

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 2
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + cost,
                )
            )
        previous = current
    return 1.0 - previous[-1] / total


def char_cosine(a: str, b: str) -> float:
    freq_a, freq_b = Counter(a), Counter(b)
    dot = sum(count * freq_b[char] for char, count in freq_a.items())
    norm_a = math.sqrt(sum(c * c for c in freq_a.values()))
    norm_b = math.sqrt(sum(c * c for c in freq_b.values()))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


class DuplicateDetector(MemoryProcessor):
    """Keeps one message per cluster of similar contents, in chronological order."""

    name = "duplicate_detector"

    def __init__(
        self,
        threshold: float = 0.9,
        preserve_newest: bool = True,
        ignore_case: bool = True,
        ignore_whitespace: bool = True,
    ):
        if not 0.0 <= threshold <= 1.0:
            raise ValueError("threshold must be between 0 and 1")
        self.threshold = threshold
        self.preserve_newest = preserve_newest
        self.ignore_case = ignore_case
        self.ignore_whitespace = ignore_whitespace

    def normalize(self, text: str) -> str:
        if self.ignore_case:
            text = text.lower()
        if self.ignore_whitespace:
            text = WHITESPACE_RE.sub(" ", text).strip()
        return text

    def similarity(self, a: str, b: str) -> float:
        if a == b:
            return 1.0
        if len(a) >= LONG_TEXT or len(b) >= LONG_TEXT:
            return char_cosine(a, b)
        return levenshtein_ratio(a, b)

    def process(self, messages: list[Message]) -> list[Message]:
        if len(messages) < 2:
            return messages

        positions = sorted(
            range(len(messages)),
            key=lambda i: (messages[i].created_at, i),
            reverse=self.preserve_newest,
        )
        kept: list[tuple[int, str]] = []
        for index in positions:
            text = self.normalize(messages[index].text)
            if any(self.similarity(text, other) >= self.threshold for _, other in kept):
                continue
            kept.append((index, text))

        kept_indexes = {index for index, _ in kept}
        survivors = [m for i, m in enumerate(messages) if i in kept_indexes]
        return sorted(survivors, key=lambda m: m.created_at)
