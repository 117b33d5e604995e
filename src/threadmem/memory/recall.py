"""
Semantic recall.

Selects the messages of a thread most relevant to a query and returns them
with surrounding context, in chronological order. Strategies run one after
another until one yields hits:

1. vector: top_k nearest messages above the metric threshold
2. relaxed: 2 x top_k at 0.8 x threshold
3. text_overlap: word overlap scoring over the recent window

Only an embedding failure aborts recall (ProviderUnavailableError), so the
caller can fall back to recency.
"""

import math
import re
from dataclasses import dataclass, field

from threadmem.core.config import SemanticRecallConfig
from threadmem.core.errors import ProviderUnavailableError
from threadmem.core.logging import get_logger
from threadmem.core.types import Message
from threadmem.core.typing import Vector
from threadmem.embeddings.base import EmbeddingProvider
from threadmem.memory.threads import ThreadStore
from threadmem.vector.base import Metric, VectorIndex, VectorMatch

logger = get_logger("memory.recall")

METRIC_THRESHOLDS = {
    Metric.COSINE: 0.7,
    Metric.EUCLIDEAN: 0.6,
    Metric.DOT_PRODUCT: 0.6,
}

RELAXED_TOP_K_FACTOR = 2
RELAXED_THRESHOLD_FACTOR = 0.8

SUBSTRING_BONUS = 0.5
RECENCY_BONUS = 0.1

STOP_WORDS = frozenset(
    """
    a an the and or but if then so of to in on at by for with about from into
    is are was were be been being am do does did have has had i me my we our
    you your he she it its they them their this that these those what which
    who whom how when where why can could would should will shall may might
    must please tell remember recall again just any some there here up out
    """.split()
)

WORD_RE = re.compile(r"\w+")


def words(text: str) -> list[str]:
    return WORD_RE.findall(text.lower())


def preprocess_query(query: str, min_length: int = 3) -> str:
    """Drop stop words; fall back to the raw query if too little remains."""
    kept = [w for w in words(query) if w not in STOP_WORDS]
    cleaned = " ".join(kept)
    if len(cleaned) < max(min_length, 1):
        return query.strip()
    return cleaned


def text_overlap_rank(query: str, messages: list[Message], top_k: int) -> list[Message]:
    """Rank messages by word overlap with the query.

    score = overlap ratio + substring bonus + recency bonus. Every message gets
    a recency component, so a non-empty window always yields results.
    """
    if not messages:
        return []
    query_words = set(words(preprocess_query(query))) or set(words(query))
    needle = query.lower().strip()
    count = len(messages)

    scored = []
    for position, message in enumerate(messages):
        text = message.text.lower()
        overlap = len(query_words & set(words(text))) / len(query_words) if query_words else 0.0
        substring = SUBSTRING_BONUS if needle and needle in text else 0.0
        recency = RECENCY_BONUS * (position + 1) / count
        scored.append((overlap + substring + recency, position))

    scored.sort(key=lambda item: item[0], reverse=True)
    return [messages[position] for _, position in scored[:top_k]]


@dataclass
class RecallResult:
    """Recalled messages plus which strategy produced the hits."""

    messages: list[Message]
    strategy: str
    hit_ids: list[str] = field(default_factory=list)


class SemanticRecall:
    """Query-driven retrieval over a thread."""

    def __init__(
        self,
        threads: ThreadStore,
        embedder: EmbeddingProvider,
        vector: VectorIndex | None = None,
        config: SemanticRecallConfig | None = None,
        index_name: str = "mastra-memory",
    ):
        self.threads = threads
        self.embedder = embedder
        self.vector = vector
        self.config = config or SemanticRecallConfig()
        self.index_name = index_name

    @property
    def threshold(self) -> float:
        if self.config.threshold is not None:
            return self.config.threshold
        metric = self.vector.metric if self.vector else Metric.COSINE
        return METRIC_THRESHOLDS.get(metric, 0.7)

    async def recall(self, thread_id: str, query: str, top_k: int | None = None) -> RecallResult:
        messages = await self.threads.get_messages(thread_id)
        if not messages:
            return RecallResult(messages=[], strategy="empty")

        top_k = top_k or self.config.top_k
        processed = preprocess_query(query, self.config.min_query_length)
        try:
            query_vector = await self.embedder.embed(processed)
        except Exception as e:
            raise ProviderUnavailableError(f"Query embedding failed: {e}") from e

        known_ids = {m.id for m in messages}
        strategies = [
            ("vector", top_k, self.threshold),
            (
                "relaxed",
                top_k * RELAXED_TOP_K_FACTOR,
                self.threshold * RELAXED_THRESHOLD_FACTOR,
            ),
        ]

        hit_ids: list[str] = []
        strategy = "text_overlap"
        if self.vector is not None:
            for name, k, threshold in strategies:
                try:
                    hit_ids = await self._vector_hits(thread_id, query_vector, k, threshold, known_ids)
                except Exception as e:
                    logger.warning(f"Recall strategy '{name}' failed: {e}")
                    continue
                if hit_ids:
                    strategy = name
                    break
                logger.debug(f"Recall strategy '{name}' returned no hits")

        if not hit_ids:
            window = messages[-self.config.fallback_window :]
            hit_ids = [m.id for m in text_overlap_rank(query, window, top_k)]

        expanded = self.expand(messages, hit_ids)
        logger.info(
            f"Recall for thread {thread_id} via {strategy}: "
            f"{len(hit_ids)} hits, {len(expanded)} messages"
        )
        return RecallResult(messages=expanded, strategy=strategy, hit_ids=hit_ids)

    async def _vector_hits(
        self,
        thread_id: str,
        query_vector: Vector,
        top_k: int,
        threshold: float,
        known_ids: set[str],
    ) -> list[str]:
        assert self.vector is not None
        matches = await self.vector.query(
            self.index_name, query_vector, top_k=top_k, filter={"threadId": thread_id}
        )
        if not isinstance(matches, list):
            raise ProviderUnavailableError(f"Malformed query result: {type(matches).__name__}")

        hits = []
        for match in matches:
            if not self._well_formed(match):
                logger.debug(f"Skipping malformed match: {match!r}")
                continue
            if match.id in known_ids and match.score >= threshold:
                hits.append(match.id)
        return hits

    @staticmethod
    def _well_formed(match: object) -> bool:
        return (
            isinstance(match, VectorMatch)
            and isinstance(match.id, str)
            and isinstance(match.score, (int, float))
            and not math.isnan(match.score)
        )

    def expand(self, messages: list[Message], hit_ids: list[str]) -> list[Message]:
        """Add neighbours around each hit, deduplicate, keep chronological order."""
        half = self.config.message_range // 2
        positions = {m.id: i for i, m in enumerate(messages)}
        selected: set[int] = set()
        for hit_id in hit_ids:
            position = positions.get(hit_id)
            if position is None:
                continue
            selected.update(range(max(0, position - half), min(len(messages), position + half + 1)))
        return [messages[i] for i in sorted(selected)]
