"""Predicate-based message filtering."""

import re
from collections.abc import Callable
from enum import Enum

from threadmem.core.types import Message, MessageRole, MessageType
from threadmem.processors.base import MemoryProcessor

Predicate = Callable[[Message], bool]


class FilterMode(Enum):
    INCLUDE = "include"
    EXCLUDE = "exclude"


class StreamFilter(MemoryProcessor):
    """Keeps or drops messages by predicate.

    exclude mode (default): drop messages matching any exclude predicate.
    include mode: keep only messages matching at least one include predicate,
    then apply exclude predicates.
    """

    name = "stream_filter"

    def __init__(
        self,
        include: list[Predicate] | None = None,
        exclude: list[Predicate] | None = None,
        mode: FilterMode | str = FilterMode.EXCLUDE,
    ):
        self.include = list(include or [])
        self.exclude = list(exclude or [])
        self.mode = FilterMode(mode)

    def keep(self, message: Message) -> bool:
        if self.mode == FilterMode.INCLUDE and not any(p(message) for p in self.include):
            return False
        return not any(p(message) for p in self.exclude)

    def process(self, messages: list[Message]) -> list[Message]:
        return [m for m in messages if self.keep(m)]


class CommonFilters:
    """Ready-made predicates."""

    @staticmethod
    def by_role(*roles: str) -> Predicate:
        wanted = {MessageRole(r) for r in roles}
        return lambda message: message.role in wanted

    @staticmethod
    def by_type(*types: str) -> Predicate:
        wanted = {MessageType(t) for t in types}
        return lambda message: message.type in wanted

    @staticmethod
    def by_content(pattern: str, flags: int = re.IGNORECASE) -> Predicate:
        compiled = re.compile(pattern, flags)
        return lambda message: bool(compiled.search(message.text))

    @staticmethod
    def by_metadata(key: str, value: object) -> Predicate:
        return lambda message: message.metadata.get(key) == value
