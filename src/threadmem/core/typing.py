"""Shared type aliases."""

from typing import Any, TypeAlias

JSONDict: TypeAlias = dict[str, Any]
Vector: TypeAlias = list[float]
MessageContent: TypeAlias = str | dict[str, Any] | list[Any]
