"""
Processor interface and pipeline.

A processor maps an ordered message list to a new ordered message list.
The pipeline applies processors in order; a processor that raises is skipped
and its input flows on unchanged.
"""

from abc import ABC, abstractmethod

from threadmem.core.logging import get_logger
from threadmem.core.types import Message

logger = get_logger("processors")


class MemoryProcessor(ABC):
    """Message-list transform."""

    name: str = "processor"

    @abstractmethod
    def process(self, messages: list[Message]) -> list[Message]:
        """Return the transformed message list."""
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class ProcessorPipeline:
    """Ordered chain of processors."""

    def __init__(self, processors: list[MemoryProcessor] | None = None):
        self.processors = list(processors or [])

    def __len__(self) -> int:
        return len(self.processors)

    def add(self, processor: MemoryProcessor) -> "ProcessorPipeline":
        self.processors.append(processor)
        return self

    def run(self, messages: list[Message]) -> list[Message]:
        current = list(messages)
        for processor in self.processors:
            try:
                result = processor.process(current)
            except Exception as e:
                logger.error(f"Processor {processor.name} failed, passing input through: {e}")
                continue
            if not isinstance(result, list):
                logger.error(
                    f"Processor {processor.name} returned {type(result).__name__}, "
                    "passing input through"
                )
                continue
            logger.debug(f"Processor {processor.name}: {len(current)} -> {len(result)} messages")
            current = result
        return current
