"""Per-message content/metadata transforms."""

import re
from collections.abc import Callable
from urllib.parse import urlparse

from threadmem.core.types import Message, MessageRole, MessageType
from threadmem.processors.base import MemoryProcessor

Transform = Callable[[Message], Message]

URL_RE = re.compile(r"https?://[^\s<>\"')\]]+")

SENSITIVE_PATTERNS = [
    re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),  # email
    re.compile(r"\b(?:\d[ -]?){13,16}\b"),  # card numbers
    re.compile(r"\b\d{3}-\d{2}-\d{4}\b"),  # SSN
    re.compile(r"(?i)\b(?:api[_-]?key|token|secret|password)\s*[:=]\s*\S+"),
]


class MessageTransformer(MemoryProcessor):
    """Applies transforms in order to messages matching the role/type filters."""

    name = "message_transformer"

    def __init__(
        self,
        transforms: list[Transform],
        roles: list[str] | None = None,
        types: list[str] | None = None,
    ):
        self.transforms = list(transforms)
        self.roles = {MessageRole(r) for r in roles} if roles else None
        self.types = {MessageType(t) for t in types} if types else None

    def applies_to(self, message: Message) -> bool:
        if self.roles is not None and message.role not in self.roles:
            return False
        return self.types is None or message.type in self.types

    def process(self, messages: list[Message]) -> list[Message]:
        result = []
        for message in messages:
            if self.applies_to(message):
                for transform in self.transforms:
                    message = transform(message)
            result.append(message)
        return result


def _on_text(func: Callable[[str], str]) -> Transform:
    def transform(message: Message) -> Message:
        if not isinstance(message.content, str):
            return message
        return message.with_changes(content=func(message.content))

    return transform


class CommonTransforms:
    """Ready-made transforms."""

    @staticmethod
    def truncate_content(max_length: int, suffix: str = "... [truncated]") -> Transform:
        def truncate(text: str) -> str:
            if len(text) <= max_length:
                return text
            return text[:max_length] + suffix

        return _on_text(truncate)

    @staticmethod
    def remove_sensitive_info(replacement: str = "[REDACTED]") -> Transform:
        def redact(text: str) -> str:
            for pattern in SENSITIVE_PATTERNS:
                text = pattern.sub(replacement, text)
            return text

        return _on_text(redact)

    @staticmethod
    def normalize_whitespace() -> Transform:
        return _on_text(lambda text: re.sub(r"\s+", " ", text).strip())

    @staticmethod
    def enhance_urls() -> Transform:
        """Append the domain after each URL: ``https://x.org/a [x.org]``."""

        def enhance(text: str) -> str:
            def label(match: re.Match[str]) -> str:
                url = match.group(0)
                domain = urlparse(url).netloc
                return f"{url} [{domain}]" if domain else url

            return URL_RE.sub(label, text)

        return _on_text(enhance)

    @staticmethod
    def add_metadata(**entries: object) -> Transform:
        return lambda message: message.with_metadata(**entries)
