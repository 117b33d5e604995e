"""
threadmem - conversational memory for LLM agents.

Package structure:
- core/: Config, logging, errors, shared types
- storage/: Key-value adapters (SQLite, Upstash Redis)
- vector/: Vector index adapters (SQLite, Upstash Vector)
- embeddings/: Embedding providers with an offline fallback
- memory/: Thread store, semantic recall, working memory, store facade
- processors/: Message-list transforms applied before model calls
"""

__version__ = "0.1.0"
