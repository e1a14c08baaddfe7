"""Application state: backend adapters, pipeline dependencies, bandit memory, latency tracker."""

from functools import partial
from typing import Any, List, Optional

from recommender import AgentDependencies, BanditMemory, Enricher, LatencyTracker, Retriever
from recommender.utils import TTLCache, parse_iso

from .config import ServerConfig, get_config
from .services import (
    FirestoreEventLog,
    FirestoreSnapshotStore,
    FirestoreTasteStore,
    HttpReranker,
    InMemoryEventLog,
    InMemorySnapshotStore,
    LiteLLMSummaryGenerator,
    Neo4jGraphBackend,
    NullEventLog,
    OpenAIQueryEmbedder,
    QdrantEventStore,
    TypesenseKeywordSearch,
    create_async_client,
)


class AppState:
    """
    Global application state.

    Backends are built from config; pass deps to run the API over injected
    dependencies instead (tests, local fakes).
    """

    def __init__(self, config: ServerConfig, deps: Optional[AgentDependencies] = None):
        self.config = config
        self.pipeline_config = config.load_pipeline_config()
        self.latency = LatencyTracker()

        self.qdrant: Optional[QdrantEventStore] = None
        self.typesense: Optional[TypesenseKeywordSearch] = None
        self.reranker: Optional[HttpReranker] = None
        self.graph: Optional[Neo4jGraphBackend] = None
        self.embedder: Optional[OpenAIQueryEmbedder] = None

        self.deps = deps if deps is not None else self._build_dependencies(config)

    @property
    def bandit(self) -> BanditMemory:
        return self.deps.bandit

    @property
    def snapshot_store(self) -> Optional[Any]:
        return self.deps.snapshot_store

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    def _build_dependencies(self, config: ServerConfig) -> AgentDependencies:
        pipeline = self.pipeline_config

        if config.openai_api_key:
            self.embedder = OpenAIQueryEmbedder(
                api_key=config.openai_api_key,
                model=config.embedding_model,
                dimensions=config.embedding_dimensions,
            )
        if config.qdrant_url:
            self.qdrant = QdrantEventStore(
                qdrant_url=config.qdrant_url,
                api_key=config.qdrant_api_key,
                collection=config.qdrant_collection,
            )
            print(f"[startup] Vector search: Qdrant ({config.qdrant_url}, collection {config.qdrant_collection})")
        else:
            print("[startup] Vector search: disabled (QDRANT_URL not set)")
        if config.typesense_url:
            self.typesense = TypesenseKeywordSearch(
                config.typesense_url,
                api_key=config.typesense_api_key,
                collection=config.typesense_collection,
            )
            print(f"[startup] Keyword search: Typesense ({config.typesense_url})")
        if config.reranker_endpoint_url:
            self.reranker = HttpReranker(config.reranker_endpoint_url, timeout=pipeline.rerank_timeout_s)
            print("[startup] Reranker: enabled")
        if config.neo4j_uri and config.neo4j_user and config.neo4j_password:
            self.graph = Neo4jGraphBackend(config.neo4j_uri, config.neo4j_user, config.neo4j_password)
            print(f"[startup] Graph: Neo4j ({config.neo4j_uri})")
        else:
            print("[startup] Graph: disabled, social signals will be neutral")

        snapshot_store, taste_store, log_sink = self._create_stores(config)
        if not config.log_interactions:
            log_sink = NullEventLog()
            print("[startup] Interaction log: disabled (LOG_INTERACTIONS=false)")

        summarizer = None
        if config.summary_model:
            summarizer = LiteLLMSummaryGenerator(model=config.summary_model, timeout=pipeline.summary_timeout_s)
            print(f"[startup] AI summaries: {config.summary_model}")

        retriever = Retriever(
            vector=self.qdrant,
            keyword=self.typesense,
            embedder=self.embedder,
            reranker=self.reranker,
            cache=TTLCache(
                max_entries=pipeline.retrieval_cache_max_entries,
                default_ttl_s=pipeline.retrieval_cache_ttl_s,
            ),
            rerank_timeout_s=pipeline.rerank_timeout_s,
            cache_ttl_s=pipeline.retrieval_cache_ttl_s,
        )
        enricher = Enricher(
            graph=self.graph,
            embeddings=self.qdrant,
            taste=taste_store,
            signal_timeout_s=pipeline.signal_timeout_s,
            social_heat_hours=pipeline.social_heat_hours,
        )
        deps = AgentDependencies(
            retriever=retriever,
            enricher=enricher,
            snapshot_store=snapshot_store,
            log_sink=log_sink,
            summarizer=summarizer,
            config=pipeline,
            default_city=config.default_city,
        )
        if config.freeze_time_iso:
            deps.clock = partial(parse_iso, config.freeze_time_iso)
            print(f"[startup] Clock frozen at {config.freeze_time_iso}")
        return deps

    def _create_stores(self, config: ServerConfig):
        """Firestore stores when credentials are set, else in-memory snapshot store and log."""
        cred_path = config.firebase_credentials_path
        if cred_path:
            if not cred_path.is_file():
                print(f"[startup] Firestore skipped: credentials path not found or not a file: {cred_path}")
            else:
                try:
                    db = create_async_client(cred_path, config.firebase_project_id)
                    print("[startup] Snapshots, taste vectors, interaction log: Firestore")
                    return FirestoreSnapshotStore(db), FirestoreTasteStore(db), FirestoreEventLog(db)
                except Exception as e:
                    print(f"[startup] Firestore init failed: {e}, using in-memory stores")
        print("[startup] Snapshots and interaction log: in-memory")
        return InMemorySnapshotStore(), None, InMemoryEventLog()

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    def configured_backends(self) -> List[str]:
        names = {
            "qdrant": self.qdrant,
            "typesense": self.typesense,
            "reranker": self.reranker,
            "neo4j": self.graph,
            "openai": self.embedder,
            "llm": self.deps.summarizer,
        }
        return [name for name, backend in names.items() if backend is not None]

    async def close(self) -> None:
        for backend in (self.qdrant, self.typesense, self.reranker, self.graph):
            if backend is not None:
                await backend.close()


_state: Optional[AppState] = None


def get_state() -> AppState:
    global _state
    if _state is None:
        config = get_config()
        _state = AppState(config)
    return _state


def set_state(state: Optional[AppState]) -> None:
    """Replace the global state (None rebuilds it from config on next access)."""
    global _state
    _state = state
