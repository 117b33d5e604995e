"""Flattening of structured (dict) message content from streamed objects."""

import json
from collections.abc import Callable
from typing import Any

from threadmem.core.logging import get_logger
from threadmem.core.types import Message, MessageRole
from threadmem.processors.base import MemoryProcessor

logger = get_logger("processors.stream_object")

ObjectTransform = Callable[[dict[str, Any]], dict[str, Any]]


class StreamObjectProcessor(MemoryProcessor):
    """Runs object transforms over dict content and turns the result into text.

    If ``text_field`` is set in the transformed object, its value becomes the
    content; otherwise the whole object is serialized to JSON. String and
    list content pass through untouched. A transform that raises leaves that
    message as it was.
    """

    name = "stream_object"

    def __init__(
        self,
        transforms: list[ObjectTransform] | None = None,
        roles: list[str] | None = None,
        extract_text_content: bool = True,
        preserve_original_content: bool = True,
        text_field: str = "text",
    ):
        self.transforms = list(transforms or [])
        self.roles = {MessageRole(r) for r in roles} if roles else set(MessageRole)
        self.extract_text_content = extract_text_content
        self.preserve_original_content = preserve_original_content
        self.text_field = text_field

    def add_transform(self, transform: ObjectTransform) -> None:
        self.transforms.append(transform)

    def process(self, messages: list[Message]) -> list[Message]:
        result = []
        processed = 0
        for message in messages:
            if message.role not in self.roles or not isinstance(message.content, dict):
                result.append(message)
                continue
            try:
                result.append(self.flatten(message))
                processed += 1
            except Exception as e:
                logger.error(f"Processing stream object in {message.id} failed: {e}")
                result.append(message)

        if processed:
            logger.debug(f"Processed {processed} stream objects")
        return result

    def flatten(self, message: Message) -> Message:
        transformed = dict(message.content)
        for transform in self.transforms:
            transformed = transform(transformed)

        text = transformed.get(self.text_field) if self.extract_text_content else None
        if not text:
            return message.with_changes(content=json.dumps(transformed, default=str))

        if not isinstance(text, str):
            text = json.dumps(text, default=str)
        flattened = message.with_changes(content=text)
        if self.preserve_original_content:
            annotations = list(message.metadata.get("stream_object_annotations", []))
            annotations.append(
                {"original_content": message.content, "transformed_content": transformed}
            )
            flattened = flattened.with_metadata(stream_object_annotations=annotations)
        return flattened


class CommonStreamTransforms:
    """Ready-made object transforms."""

    @staticmethod
    def extract_fields(fields: list[str]) -> ObjectTransform:
        return lambda content: {f: content[f] for f in fields if f in content}

    @staticmethod
    def merge_fields(
        fields: list[str], separator: str = "\n", target_field: str = "text"
    ) -> ObjectTransform:
        """Join the given fields (non-strings as JSON) into ``target_field``."""

        def merge(content: dict[str, Any]) -> dict[str, Any]:
            parts = [
                value if isinstance(value, str) else json.dumps(value, default=str)
                for value in (content[f] for f in fields if f in content)
            ]
            if not parts:
                return dict(content)
            return {**content, target_field: separator.join(parts)}

        return merge

    @staticmethod
    def format_json_fields(fields: list[str]) -> ObjectTransform:
        """Parse JSON strings into objects and pretty-print objects as JSON strings."""

        def format_fields(content: dict[str, Any]) -> dict[str, Any]:
            result = dict(content)
            for f in fields:
                value = content.get(f)
                try:
                    if isinstance(value, str):
                        result[f] = json.loads(value)
                    elif isinstance(value, (dict, list)):
                        result[f] = json.dumps(value, indent=2)
                except ValueError as e:
                    logger.warning(f"Could not format JSON field {f}: {e}")
            return result

        return format_fields
