"""Tool call removal."""

import re

from threadmem.core.types import Message
from threadmem.processors.base import MemoryProcessor

TOOL_BLOCK_RE = re.compile(r"```tool\b.*?```", re.DOTALL)
TOOL_BLOCK_PLACEHOLDER = "[Tool call removed]"


class ToolCallFilter(MemoryProcessor):
    """Drops tool-call and tool-result messages.

    With ``exclude`` unset every tool message is removed; with a list only
    messages for those tool names are. ``keep_placeholders`` replaces removed
    tool calls with a short ``[Tool call: name]`` text instead of dropping them.
    Inline ```tool fenced blocks in text messages are stripped when
    ``strip_inline`` is on.
    """

    name = "tool_call_filter"

    def __init__(
        self,
        exclude: list[str] | None = None,
        keep_placeholders: bool = False,
        strip_inline: bool = True,
    ):
        self.exclude = set(exclude) if exclude is not None else None
        self.keep_placeholders = keep_placeholders
        self.strip_inline = strip_inline

    def _filtered(self, message: Message) -> bool:
        if not message.is_tool:
            return False
        if self.exclude is None:
            return True
        return message.tool_name in self.exclude

    def process(self, messages: list[Message]) -> list[Message]:
        result = []
        for message in messages:
            if self._filtered(message):
                if self.keep_placeholders:
                    result.append(
                        message.with_changes(
                            content=f"[Tool call: {message.tool_name or 'unknown'}]"
                        )
                    )
                continue

            if (
                self.strip_inline
                and isinstance(message.content, str)
                and "```tool" in message.content
            ):
                message = message.with_changes(
                    content=TOOL_BLOCK_RE.sub(TOOL_BLOCK_PLACEHOLDER, message.content)
                )
            result.append(message)
        return result
