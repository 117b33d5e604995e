"""
Message processors.

Each processor maps an ordered message list to a new one; ProcessorPipeline
chains them. Batch processors shape retrieved context; stream processors
(transformer, filter, aggregator, stream object, contextual enhancer) work
on live message flows.
"""

from threadmem.processors.aggregator import CommonGroupings, StreamAggregator, default_aggregate
from threadmem.processors.base import MemoryProcessor, ProcessorPipeline
from threadmem.processors.contextual_enhancer import (
    CommonEnhancements,
    ContextualEnhancer,
    EnhancementContext,
)
from threadmem.processors.duplicate_detector import DuplicateDetector
from threadmem.processors.entities import Entity, EntityExtractor
from threadmem.processors.priority_ranker import PriorityRanker
from threadmem.processors.registry import PROCESSOR_TYPES, build_processor, build_processors
from threadmem.processors.sentiment import SentimentAnalyzer, SentimentScore
from threadmem.processors.stream_filter import CommonFilters, FilterMode, StreamFilter
from threadmem.processors.stream_object import CommonStreamTransforms, StreamObjectProcessor
from threadmem.processors.summarizer import ContextualSummarizer
from threadmem.processors.temporal import TemporalMode, TemporalProcessor, TimeWindow
from threadmem.processors.token_limiter import TokenLimiter
from threadmem.processors.tool_call_filter import ToolCallFilter
from threadmem.processors.transformer import CommonTransforms, MessageTransformer

__all__ = [
    "PROCESSOR_TYPES",
    "CommonEnhancements",
    "CommonFilters",
    "CommonGroupings",
    "CommonStreamTransforms",
    "CommonTransforms",
    "ContextualEnhancer",
    "ContextualSummarizer",
    "DuplicateDetector",
    "EnhancementContext",
    "Entity",
    "EntityExtractor",
    "FilterMode",
    "MemoryProcessor",
    "MessageTransformer",
    "PriorityRanker",
    "ProcessorPipeline",
    "SentimentAnalyzer",
    "SentimentScore",
    "StreamAggregator",
    "StreamFilter",
    "StreamObjectProcessor",
    "TemporalMode",
    "TemporalProcessor",
    "TimeWindow",
    "TokenLimiter",
    "ToolCallFilter",
    "build_processor",
    "build_processors",
    "default_aggregate",
]
