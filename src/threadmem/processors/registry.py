"""Build processors from config entries."""

from threadmem.core.config import ProcessorSpec
from threadmem.core.errors import ValidationError
from threadmem.core.logging import get_logger
from threadmem.processors.base import MemoryProcessor
from threadmem.processors.duplicate_detector import DuplicateDetector
from threadmem.processors.entities import EntityExtractor
from threadmem.processors.priority_ranker import PriorityRanker
from threadmem.processors.sentiment import SentimentAnalyzer
from threadmem.processors.stream_object import StreamObjectProcessor
from threadmem.processors.summarizer import ContextualSummarizer
from threadmem.processors.temporal import TemporalProcessor
from threadmem.processors.token_limiter import TokenLimiter
from threadmem.processors.tool_call_filter import ToolCallFilter

logger = get_logger("processors.registry")

# Stateless processors whose options are plain data
PROCESSOR_TYPES: dict[str, type[MemoryProcessor]] = {
    "token_limiter": TokenLimiter,
    "tool_call_filter": ToolCallFilter,
    "duplicate_detector": DuplicateDetector,
    "priority_ranker": PriorityRanker,
    "contextual_summarizer": ContextualSummarizer,
    "temporal": TemporalProcessor,
    "entity_extractor": EntityExtractor,
    "sentiment_analyzer": SentimentAnalyzer,
    "stream_object": StreamObjectProcessor,
}

# Need callables, or keep state between calls: never shared by a store pipeline
CODE_BUILT_TYPES = frozenset(
    {"stream_aggregator", "stream_filter", "message_transformer", "contextual_enhancer"}
)


def build_processor(spec: ProcessorSpec) -> MemoryProcessor:
    if spec.type in CODE_BUILT_TYPES:
        raise ValidationError(
            f"Processor '{spec.type}' cannot be configured from a file; "
            "construct it in code and pass it to the store"
        )
    processor_cls = PROCESSOR_TYPES.get(spec.type)
    if processor_cls is None:
        raise ValidationError(
            f"Unknown processor '{spec.type}'. Known: {', '.join(sorted(PROCESSOR_TYPES))}"
        )
    try:
        return processor_cls(**spec.options)
    except (TypeError, ValueError, KeyError) as e:
        raise ValidationError(f"Invalid options for processor '{spec.type}': {e}") from e


def build_processors(specs: list[ProcessorSpec]) -> list[MemoryProcessor]:
    processors = [build_processor(spec) for spec in specs]
    if processors:
        logger.debug(f"Built processors: {', '.join(p.name for p in processors)}")
    return processors
