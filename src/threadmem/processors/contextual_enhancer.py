"""
Context enrichment.

Each matching message is passed, together with its neighbours and data from
context source callables, through a chain of enhancement functions. Results
land in metadata; content only changes when annotations are enabled.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from threadmem.core.logging import get_logger
from threadmem.core.types import Message, MessageRole, MessageType, utc_now
from threadmem.core.typing import JSONDict
from threadmem.processors.base import MemoryProcessor

logger = get_logger("processors.contextual_enhancer")


@dataclass
class EnhancementContext:
    """What an enhancement function sees besides the message itself."""

    messages: list[Message]
    current_index: int
    thread_id: str
    sources: JSONDict = field(default_factory=dict)
    metadata: JSONDict = field(default_factory=dict)

    @property
    def neighbours(self) -> list[Message]:
        return [m for i, m in enumerate(self.messages) if i != self.current_index]


Enhancement = Callable[[Message, EnhancementContext], Message]
ContextSource = Callable[[Message], JSONDict | None]


def _source_name(source: ContextSource) -> str:
    return getattr(source, "__name__", None) or type(source).__name__


class ContextualEnhancer(MemoryProcessor):
    """Adds references, related messages and source data to messages.

    Source results are cached per (message id, source name) when
    ``cache_context`` is on; a failing source is logged and skipped. If an
    enhancement function raises, the original message is kept.
    """

    name = "contextual_enhancer"

    def __init__(
        self,
        enhancements: list[Enhancement] | None = None,
        context_sources: list[ContextSource] | None = None,
        roles: list[str] | None = None,
        types: list[str] | None = None,
        context_window: int = 5,
        add_references: bool = True,
        add_metadata: bool = True,
        add_annotations: bool = False,
        cache_context: bool = True,
        clock: Callable[[], datetime] = utc_now,
    ):
        if context_window < 0:
            raise ValueError("context_window must be non-negative")
        self.enhancements = list(enhancements or [])
        self.context_sources = list(context_sources or [])
        self.roles = {MessageRole(r) for r in (roles or ["assistant"])}
        self.types = {MessageType(t) for t in (types or ["text"])}
        self.context_window = context_window
        self.add_references = add_references
        self.add_metadata = add_metadata
        self.add_annotations = add_annotations
        self.cache_context = cache_context
        self.clock = clock
        self._cache: dict[tuple[str, str], JSONDict] = {}

    def add_enhancement(self, enhancement: Enhancement) -> None:
        self.enhancements.append(enhancement)

    def add_context_source(self, source: ContextSource) -> None:
        self.context_sources.append(source)

    def clear_cache(self) -> None:
        self._cache.clear()

    def applies_to(self, message: Message) -> bool:
        return message.role in self.roles and message.type in self.types

    def gather_sources(self, message: Message) -> JSONDict:
        sources: JSONDict = {}
        for source in self.context_sources:
            key = (message.id, _source_name(source))
            if self.cache_context and key in self._cache:
                sources.update(self._cache[key])
                continue
            try:
                data = source(message)
            except Exception as e:
                logger.warning(f"Context source {key[1]} failed for {message.id}: {e}")
                continue
            if not data:
                continue
            if self.cache_context:
                self._cache[key] = data
            sources.update(data)
        return sources

    def process(self, messages: list[Message]) -> list[Message]:
        result = []
        enhanced_count = 0
        for i, message in enumerate(messages):
            if not self.applies_to(message):
                result.append(message)
                continue
            try:
                result.append(self.enhance(messages, i))
                enhanced_count += 1
            except Exception as e:
                logger.error(f"Enhancing message {message.id} failed: {e}")
                result.append(message)

        if enhanced_count:
            logger.debug(f"Enhanced {enhanced_count} messages")
        return result

    def enhance(self, messages: list[Message], index: int) -> Message:
        message = messages[index]
        start = max(0, index - self.context_window)
        end = min(len(messages), index + self.context_window + 1)
        sources = self.gather_sources(message)
        context = EnhancementContext(
            messages=messages[start:end],
            current_index=index - start,
            thread_id=message.thread_id,
            sources=sources,
            metadata=dict(message.metadata),
        )

        enhanced = message
        for enhancement in self.enhancements:
            enhanced = enhancement(enhanced, context)

        if self.add_references and sources:
            enhanced = enhanced.with_metadata(references=sources)
        if self.add_metadata:
            enhanced = enhanced.with_metadata(
                enhanced=True, enhanced_at=self.clock().isoformat()
            )
        if self.add_annotations and sources and isinstance(enhanced.content, str):
            enhanced = enhanced.with_changes(
                content=f"{enhanced.content}\n\nContext Sources: {', '.join(sources)}"
            )
        return enhanced


def _words(text: str) -> list[str]:
    return re.findall(r"\w+", text.lower())


class CommonEnhancements:
    """Ready-made enhancement functions."""

    @staticmethod
    def related_messages(threshold: float = 0.7) -> Enhancement:
        """Record neighbours sharing at least ``threshold`` of their words."""

        def enhance(message: Message, context: EnhancementContext) -> Message:
            words = _words(message.text)
            related = []
            for other in context.neighbours:
                other_words = set(_words(other.text))
                common = sum(1 for w in words if w in other_words)
                similarity = common / max(len(words), len(other_words), 1)
                if similarity >= threshold:
                    related.append({"id": other.id, "similarity": similarity})
            if not related:
                return message
            related.sort(key=lambda r: r["similarity"], reverse=True)
            return message.with_metadata(related_messages=related)

        return enhance

    @staticmethod
    def entity_cross_references() -> Enhancement:
        """Link entities (from EntityExtractor) that neighbours mention too."""

        def enhance(message: Message, context: EnhancementContext) -> Message:
            entities = message.metadata.get("entities") or []
            if not entities:
                return message

            references: dict[str, list[dict[str, Any]]] = {}
            for entity in entities:
                for other in context.neighbours:
                    for candidate in other.metadata.get("entities") or []:
                        if (
                            candidate.get("type") == entity.get("type")
                            and candidate.get("value") == entity.get("value")
                        ):
                            references.setdefault(entity["value"], []).append(
                                {**candidate, "message_id": other.id}
                            )
            if not references:
                return message
            return message.with_metadata(entity_references=references)

        return enhance

    @staticmethod
    def knowledge_base_references(source_field: str = "knowledge_base") -> Enhancement:
        """Copy ``sources[source_field]`` into ``metadata["knowledge_references"]``."""

        def enhance(message: Message, context: EnhancementContext) -> Message:
            if not context.sources.get(source_field):
                return message
            return message.with_metadata(knowledge_references=context.sources[source_field])

        return enhance
