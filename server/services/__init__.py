"""Backend adapters: search, graph, stores, and LLM clients behind the pipeline protocols."""

from .embedding_generator import OpenAIQueryEmbedder, check_openai_available
from .firestore_store import (
    FirestoreEventLog,
    FirestoreSnapshotStore,
    FirestoreTasteStore,
    create_async_client,
)
from .graph_store import Neo4jGraphBackend, Neo4jStatus
from .keyword_search import TypesenseKeywordSearch, build_filter_by
from .memory_store import InMemoryEventLog, InMemorySnapshotStore, NullEventLog
from .payloads import event_from_payload
from .qdrant_store import QdrantEventStore, check_qdrant_available
from .reranker import HttpReranker
from .summary_client import LiteLLMSummaryGenerator

__all__ = [
    "OpenAIQueryEmbedder",
    "check_openai_available",
    "FirestoreEventLog",
    "FirestoreSnapshotStore",
    "FirestoreTasteStore",
    "create_async_client",
    "Neo4jGraphBackend",
    "Neo4jStatus",
    "TypesenseKeywordSearch",
    "build_filter_by",
    "InMemoryEventLog",
    "InMemorySnapshotStore",
    "NullEventLog",
    "event_from_payload",
    "QdrantEventStore",
    "check_qdrant_available",
    "HttpReranker",
    "LiteLLMSummaryGenerator",
]
