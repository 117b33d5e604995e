"""Pattern-based entity extraction."""

import re
from dataclasses import asdict, dataclass, field
from typing import Any

from threadmem.core.types import Message
from threadmem.processors.base import MemoryProcessor

ORG_SUFFIX = r"(?:Inc|LLC|Ltd|Corp|Corporation|Company|Foundation|University)"

DEFAULT_PATTERNS: dict[str, str] = {
    "email": r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b",
    "url": r"\bhttps?://[^\s<>\"')\]]+",
    "phone": r"(?<!\w)(?:\+\d{1,3}[- ]?)?\(?\d{3}\)?[- ]?\d{3}[- ]?\d{4}\b",
    "date": (
        r"\b(?:\d{4}-\d{2}-\d{2}|\d{1,2}[-/.]\d{1,2}[-/.]\d{2,4}|"
        r"(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\.? "
        r"\d{1,2}(?:st|nd|rd|th)?,? \d{4})\b"
    ),
    "time": r"\b\d{1,2}:\d{2}(?::\d{2})?(?:\s*[AaPp][Mm])?\b",
    "organization": rf"\b(?:[A-Z][A-Za-z&]*\s){{0,4}}[A-Z][A-Za-z&]*,?\s{ORG_SUFFIX}\b\.?",
    "location": (
        r"\b(?:in|at|from|to|near)\s+((?:[A-Z][a-z]+)(?:\s[A-Z][a-z]+)*"
        r"(?:\s(?:City|Island|County|State))?)"
    ),
    "person": (
        r"\b(?:Mr|Mrs|Ms|Dr|Prof)\.?\s[A-Z][a-z]+(?:\s[A-Z][a-z]+)?"
        r"|\b[A-Z][a-z]+\s[A-Z][a-z]+\b"
    ),
    "number": r"(?<![\w.])\$?\d+(?:,\d{3})*(?:\.\d+)?%?(?![\w.:/-])",
}

# Types whose spans suppress overlapping lower-priority matches
PRIORITY = ["email", "url", "phone", "date", "time", "organization", "location", "person", "number"]

RELATIONSHIP_RULES = {
    ("person", "location"): "locatedIn",
    ("person", "organization"): "employedBy",
    ("product", "organization"): "createdBy",
}


@dataclass
class Entity:
    type: str
    value: str
    start: int
    end: int
    relationships: list[dict[str, str]] = field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.type}:{self.value.lower()}"


def term_pattern(terms: list[str]) -> str:
    escaped = sorted((re.escape(t) for t in terms if t), key=len, reverse=True)
    return rf"\b(?:{'|'.join(escaped)})\b"


class EntityExtractor(MemoryProcessor):
    """Adds ``metadata["entities"]`` (and optionally a content footer).

    Never drops or reorders messages. ``custom_entities`` maps a type name to
    literal terms matched case-insensitively on word boundaries.
    """

    name = "entity_extractor"

    def __init__(
        self,
        custom_entities: dict[str, list[str]] | None = None,
        patterns: dict[str, str] | None = None,
        annotate_content: bool = False,
        detect_relationships: bool = False,
    ):
        self.patterns: list[tuple[str, re.Pattern[str]]] = []
        for type_, terms in (custom_entities or {}).items():
            if terms:
                self.patterns.append((type_, re.compile(term_pattern(terms), re.IGNORECASE)))
        merged = {**DEFAULT_PATTERNS, **(patterns or {})}
        ordered = [t for t in PRIORITY if t in merged] + [t for t in merged if t not in PRIORITY]
        self.patterns.extend((t, re.compile(merged[t])) for t in ordered)
        self.annotate_content = annotate_content
        self.detect_relationships = detect_relationships

    def extract(self, text: str) -> list[Entity]:
        entities: list[Entity] = []
        seen: set[str] = set()
        taken: list[tuple[int, int]] = []

        for type_, pattern in self.patterns:
            for match in pattern.finditer(text):
                group = 1 if match.groups() else 0
                value = match.group(group).strip().rstrip(".,")
                start, end = match.start(group), match.start(group) + len(value)
                if not value or any(start < e and s < end for s, e in taken):
                    continue
                entity = Entity(type=type_, value=value, start=start, end=end)
                if entity.key in seen:
                    continue
                seen.add(entity.key)
                taken.append((start, end))
                entities.append(entity)

        entities.sort(key=lambda e: e.start)
        if self.detect_relationships:
            self._link(entities)
        return entities

    def _link(self, entities: list[Entity]) -> None:
        for source in entities:
            for target in entities:
                relation = RELATIONSHIP_RULES.get((source.type, target.type))
                if relation:
                    source.relationships.append(
                        {"type": relation, "target": target.key}
                    )

    def process(self, messages: list[Message]) -> list[Message]:
        result = []
        for message in messages:
            if not isinstance(message.content, str):
                result.append(message)
                continue
            entities = self.extract(message.content)
            if not entities:
                result.append(message)
                continue

            records: list[dict[str, Any]] = [asdict(e) for e in entities]
            updated = message.with_metadata(entities=records)
            if self.annotate_content:
                updated = updated.with_changes(
                    content=message.content + "\n\nEntities:\n" + self._footer(entities)
                )
            result.append(updated)
        return result

    @staticmethod
    def _footer(entities: list[Entity]) -> str:
        grouped: dict[str, list[str]] = {}
        for entity in entities:
            grouped.setdefault(entity.type, []).append(entity.value)
        return "\n".join(f"- {type_}: {', '.join(values)}" for type_, values in grouped.items())
