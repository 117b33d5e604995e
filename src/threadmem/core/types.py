"""
Shared type definitions.

Threads, messages and working memory as stored in the key-value layer.
Records serialize to camelCase JSON so they stay readable by other clients
of the same keyspace.
"""

import json
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from threadmem.core.typing import JSONDict, MessageContent, Vector


class MessageRole(Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class MessageType(Enum):
    TEXT = "text"
    TOOL_CALL = "tool-call"
    TOOL_RESULT = "tool-result"


def utc_now() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


def _parse_datetime(value: str | datetime | None) -> datetime:
    if value is None:
        return utc_now()
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass
class Thread:
    """A single conversation."""

    id: str
    resource_id: str | None = None
    title: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    metadata: JSONDict = field(default_factory=dict)
    # Only populated when a full thread is resolved
    messages: list["Message"] | None = None

    def to_dict(self) -> JSONDict:
        return {
            "id": self.id,
            "resourceId": self.resource_id,
            "title": self.title,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: JSONDict) -> "Thread":
        return cls(
            id=data["id"],
            resource_id=data.get("resourceId"),
            title=data.get("title"),
            created_at=_parse_datetime(data.get("createdAt")),
            updated_at=_parse_datetime(data.get("updatedAt")),
            metadata=data.get("metadata") or {},
        )


@dataclass(frozen=True)
class Message:
    """Single conversation turn.

    Frozen: processors derive annotated copies through ``with_changes`` and
    keep the original id.
    """

    id: str
    thread_id: str
    role: MessageRole
    content: MessageContent
    type: MessageType = MessageType.TEXT
    name: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    embedding: Vector | None = None
    metadata: JSONDict = field(default_factory=dict)

    @property
    def text(self) -> str:
        """Content as plain text; structured content is JSON-encoded."""
        if isinstance(self.content, str):
            return self.content
        return json.dumps(self.content, sort_keys=True, default=str)

    @property
    def is_tool(self) -> bool:
        return self.role == MessageRole.TOOL or self.type != MessageType.TEXT

    @property
    def tool_name(self) -> str | None:
        return self.name or self.metadata.get("toolName")

    def with_changes(self, **changes: Any) -> "Message":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def with_metadata(self, **entries: Any) -> "Message":
        return replace(self, metadata={**self.metadata, **entries})

    def to_dict(self) -> JSONDict:
        data: JSONDict = {
            "id": self.id,
            "threadId": self.thread_id,
            "role": self.role.value,
            "type": self.type.value,
            "content": self.content,
            "createdAt": self.created_at.isoformat(),
            "metadata": self.metadata,
        }
        if self.name is not None:
            data["name"] = self.name
        if self.embedding is not None:
            data["embedding"] = self.embedding
        return data

    @classmethod
    def from_dict(cls, data: JSONDict) -> "Message":
        return cls(
            id=data["id"],
            thread_id=data["threadId"],
            role=MessageRole(data["role"]),
            type=MessageType(data.get("type", MessageType.TEXT.value)),
            content=data["content"],
            name=data.get("name"),
            created_at=_parse_datetime(data.get("createdAt")),
            embedding=data.get("embedding"),
            metadata=data.get("metadata") or {},
        )


@dataclass
class MemoryRecord:
    """Vector-index projection of a message."""

    id: str
    vector: Vector
    metadata: JSONDict = field(default_factory=dict)
    score: float | None = None

    @classmethod
    def from_message(cls, message: Message, vector: Vector) -> "MemoryRecord":
        return cls(
            id=message.id,
            vector=vector,
            metadata={
                "threadId": message.thread_id,
                "role": message.role.value,
                "type": message.type.value,
                "contentPreview": message.text[:200],
                "createdAt": message.created_at.isoformat(),
            },
        )


@dataclass
class WorkingMemory:
    """Per-thread scratchpad."""

    thread_id: str
    data: Any
    last_updated: datetime = field(default_factory=utc_now)

    def to_dict(self) -> JSONDict:
        return {
            "threadId": self.thread_id,
            "data": self.data,
            "lastUpdated": self.last_updated.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: JSONDict) -> "WorkingMemory":
        return cls(
            thread_id=data["threadId"],
            data=data.get("data"),
            last_updated=_parse_datetime(data.get("lastUpdated")),
        )
