"""Shared test helpers."""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from threadmem.core.types import Message, MessageRole, MessageType

BASE_TIME = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def build_message(
    content: Any,
    role: str = "user",
    index: int = 0,
    type: str = "text",
    thread_id: str = "thread-1",
    name: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> Message:
    """Message created ``index`` minutes after BASE_TIME."""
    return Message(
        id=f"msg-{index}",
        thread_id=thread_id,
        role=MessageRole(role),
        type=MessageType(type),
        content=content,
        name=name,
        created_at=BASE_TIME + timedelta(minutes=index),
        metadata=metadata or {},
    )


@pytest.fixture
def make_message() -> Callable[..., Message]:
    return build_message


@pytest.fixture
def conversation() -> Callable[[int], list[Message]]:
    """Alternating user/assistant messages with distinct contents."""

    def build(count: int) -> list[Message]:
        return [
            build_message(
                f"Message number {i} talks about topic {i * 7 % 13} in some detail",
                role="user" if i % 2 == 0 else "assistant",
                index=i,
            )
            for i in range(count)
        ]

    return build
