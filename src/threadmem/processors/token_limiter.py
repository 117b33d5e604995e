"""Token budget enforcement."""

import json
import math
from collections.abc import Callable

import litellm

from threadmem.core.logging import get_logger
from threadmem.core.types import Message
from threadmem.processors.base import MemoryProcessor

logger = get_logger("processors.token_limiter")

litellm.suppress_debug_info = True

DEFAULT_MODEL = "gpt-4o"

TokenCounter = Callable[[str], int]


def estimate_tokens(text: str) -> int:
    """Roughly four characters per token."""
    return math.ceil(len(text) / 4)


class TokenLimiter(MemoryProcessor):
    """Evicts oldest messages until the total fits within ``limit`` tokens.

    Kept messages form the newest contiguous run and stay in input order.
    """

    name = "token_limiter"

    def __init__(
        self,
        limit: int,
        model: str = DEFAULT_MODEL,
        counter: TokenCounter | None = None,
    ):
        if limit < 0:
            raise ValueError("limit must be non-negative")
        self.limit = limit
        self.model = model
        self._counter = counter
        self._fallback_logged = False

    def count_text(self, text: str) -> int:
        if self._counter is not None:
            return self._counter(text)
        try:
            return int(litellm.token_counter(model=self.model, text=text))
        except Exception as e:
            if not self._fallback_logged:
                logger.warning(f"Tokenizer for {self.model} unavailable, estimating: {e}")
                self._fallback_logged = True
            return estimate_tokens(text)

    def count_tokens(self, message: Message) -> int:
        if isinstance(message.content, str):
            text = message.content
        else:
            text = json.dumps(message.content, default=str)
        return self.count_text(text)

    def process(self, messages: list[Message]) -> list[Message]:
        counts = [self.count_tokens(m) for m in messages]
        total = sum(counts)
        if total <= self.limit:
            return messages

        # Newest first by creation time; stop at the first message that overflows
        order = sorted(range(len(messages)), key=lambda i: messages[i].created_at, reverse=True)
        kept: set[int] = set()
        used = 0
        for index in order:
            if used + counts[index] > self.limit:
                break
            used += counts[index]
            kept.add(index)

        logger.debug(f"Token limit {self.limit}: kept {len(kept)}/{len(messages)} ({used} tokens)")
        return [m for i, m in enumerate(messages) if i in kept]
