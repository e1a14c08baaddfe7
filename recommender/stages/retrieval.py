"""
Hybrid retrieval: parallel vector + keyword search, union/dedup, optional rerank.

Each search branch contains its own failures and degrades to an empty hit list; the
fan-out as a whole is bounded by an overall timeout after which both branches count
as empty. Retriever.retrieve() never raises: callers read the *_error fields and
rerank_applied to flag degraded quality.
"""

import asyncio
import hashlib
import json
import logging
import time
from datetime import timedelta
from typing import Callable, List, Optional, Tuple

from pydantic import BaseModel, Field

from ..backends import (
    KeywordFilters,
    KeywordSearchBackend,
    QueryEmbedder,
    RerankerBackend,
    SearchHit,
    VectorSearchBackend,
)
from ..models.event import CandidateEvent
from ..models.intention import Intention
from ..utils.cache import ResultCache

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_S = 60.0


class RetrievalOptions(BaseModel):
    top_k: int = Field(default=100, ge=1)
    rerank_top: int = Field(default=20, ge=1)
    use_reranker: bool = True
    timeout_s: float = Field(default=7.0, gt=0)
    cache_key: Optional[str] = None


class RetrievalResult(BaseModel):
    candidates: List[CandidateEvent] = Field(default_factory=list)
    vector_count: int = 0
    keyword_count: int = 0
    rerank_applied: bool = False
    latency_ms: float = 0.0
    cache_hit: bool = False
    # Set when a branch failed, timed out, or is not configured
    vector_error: Optional[str] = None
    keyword_error: Optional[str] = None
    reranker_error: Optional[str] = None


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def _as_candidates(hits: List[SearchHit], source: str) -> List[CandidateEvent]:
    return [hit.event.model_copy(update={"score": float(hit.score), "source": source}) for hit in hits]


def union_candidates(
    vector_candidates: List[CandidateEvent],
    keyword_candidates: List[CandidateEvent],
) -> List[CandidateEvent]:
    """
    Union two hit lists, deduplicated by event id.

    Vector hits come first and keep their vector score; keyword hits not already
    present are appended and marked hybrid.
    """
    seen = set()
    unioned: List[CandidateEvent] = []
    for candidate in vector_candidates:
        if candidate.id not in seen:
            seen.add(candidate.id)
            unioned.append(candidate)
    for candidate in keyword_candidates:
        if candidate.id not in seen:
            seen.add(candidate.id)
            unioned.append(candidate.model_copy(update={"source": "hybrid"}))
    return unioned


def retrieval_cache_key(query_text: str, intention: Intention, bucket_s: float = DEFAULT_CACHE_TTL_S) -> str:
    """
    Cache key shared by identical requests: city, query text, tokens, and `now`
    truncated to bucket_s seconds. Session and trace ids are not part of it.
    """
    bucket = int(intention.now.timestamp() // max(bucket_s, 1.0))
    material = json.dumps(
        {
            "city": intention.city.strip().lower(),
            "query": (query_text or "").strip().lower(),
            "tokens": intention.tokens.model_dump(mode="json"),
            "bucket": bucket,
        },
        sort_keys=True,
    )
    return "retrieve:" + hashlib.sha1(material.encode("utf-8")).hexdigest()


class Retriever:
    """
    Hybrid retriever over injected search backends.

    Usage:
        retriever = Retriever(vector=qdrant, keyword=typesense, embedder=openai_embedder)
        result = await retriever.retrieve("live jazz", intention, RetrievalOptions(rerank_top=50))
    """

    def __init__(
        self,
        vector: Optional[VectorSearchBackend] = None,
        keyword: Optional[KeywordSearchBackend] = None,
        embedder: Optional[QueryEmbedder] = None,
        reranker: Optional[RerankerBackend] = None,
        cache: Optional[ResultCache] = None,
        rerank_timeout_s: float = 5.0,
        cache_ttl_s: float = DEFAULT_CACHE_TTL_S,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.vector = vector
        self.keyword = keyword
        self.embedder = embedder
        self.reranker = reranker
        self.cache = cache
        self.rerank_timeout_s = rerank_timeout_s
        self.cache_ttl_s = cache_ttl_s
        self._clock = clock

    # -------------------------------------------------------------------------
    # Branches
    # -------------------------------------------------------------------------

    async def _search_vector(
        self, query_text: str, intention: Intention, top_k: int
    ) -> Tuple[List[CandidateEvent], Optional[str]]:
        if self.vector is None or self.embedder is None:
            return [], "vector search not configured"
        try:
            embedding = await self.embedder.embed(query_text)
            hits = await self.vector.search(embedding, intention.city, top_k)
            return _as_candidates(hits, "vector"), None
        except Exception as e:
            logger.warning("[retrieve] vector search failed: %s", _describe(e))
            return [], _describe(e)

    async def _search_keyword(
        self, query_text: str, intention: Intention, top_k: int
    ) -> Tuple[List[CandidateEvent], Optional[str]]:
        if self.keyword is None:
            return [], "keyword search not configured"
        now = intention.now
        filters = KeywordFilters(
            city=intention.city,
            start_after=now,
            start_before=now + timedelta(minutes=intention.tokens.until_minutes),
        )
        try:
            response = await self.keyword.search(query_text or "*", filters, page=1, limit=top_k)
            return _as_candidates(response.hits, "keyword"), None
        except Exception as e:
            logger.warning("[retrieve] keyword search failed: %s", _describe(e))
            return [], _describe(e)

    async def _rerank(
        self, query_text: str, candidates: List[CandidateEvent], rerank_top: int
    ) -> Tuple[List[CandidateEvent], bool, Optional[str]]:
        head = candidates[:rerank_top]
        if not head:
            return head, False, None
        try:
            scores = await asyncio.wait_for(
                self.reranker.rerank(query_text, [c.passage for c in head]),
                timeout=self.rerank_timeout_s,
            )
        except Exception as e:
            logger.warning("[retrieve] rerank skipped: %s", _describe(e))
            return head, False, _describe(e)
        reranked = []
        for i, candidate in enumerate(head):
            score = scores[i] if i < len(scores) and scores[i] is not None else candidate.score
            reranked.append(candidate.model_copy(update={"score": float(score)}))
        reranked.sort(key=lambda c: c.score, reverse=True)
        return reranked, True, None

    # -------------------------------------------------------------------------
    # Cache
    # -------------------------------------------------------------------------

    def _cache_get(self, key: Optional[str]) -> Optional[RetrievalResult]:
        if not key or self.cache is None:
            return None
        try:
            return self.cache.get(key)
        except Exception as e:
            logger.warning("[retrieve] cache read failed for %s: %s", key, _describe(e))
            return None

    def _cache_set(self, key: Optional[str], result: RetrievalResult) -> None:
        if not key or self.cache is None:
            return
        try:
            self.cache.set(key, result, self.cache_ttl_s)
        except Exception as e:
            logger.warning("[retrieve] cache write failed for %s: %s", key, _describe(e))

    # -------------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------------

    async def retrieve(
        self,
        query_text: str,
        intention: Intention,
        options: Optional[RetrievalOptions] = None,
    ) -> RetrievalResult:
        """Run hybrid retrieval. Never raises; partial or empty results are valid output."""
        options = options or RetrievalOptions()
        start = self._clock()

        cached = self._cache_get(options.cache_key)
        if cached is not None:
            logger.info("[retrieve] cache hit: %s", options.cache_key)
            return cached.model_copy(update={"cache_hit": True})

        try:
            (vector_candidates, vector_error), (keyword_candidates, keyword_error) = await asyncio.wait_for(
                asyncio.gather(
                    self._search_vector(query_text, intention, options.top_k),
                    self._search_keyword(query_text, intention, options.top_k),
                ),
                timeout=options.timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "[retrieve] search fan-out exceeded %.1fs; continuing with empty results",
                options.timeout_s,
            )
            vector_candidates, keyword_candidates = [], []
            vector_error = keyword_error = "retrieval timeout"

        candidates = union_candidates(vector_candidates, keyword_candidates)

        rerank_applied = False
        reranker_error = None
        if options.use_reranker and self.reranker is not None:
            candidates, rerank_applied, reranker_error = await self._rerank(
                query_text, candidates, options.rerank_top
            )
        else:
            candidates = candidates[: options.rerank_top]

        result = RetrievalResult(
            candidates=candidates,
            vector_count=len(vector_candidates),
            keyword_count=len(keyword_candidates),
            rerank_applied=rerank_applied,
            latency_ms=(self._clock() - start) * 1000.0,
            vector_error=vector_error,
            keyword_error=keyword_error,
            reranker_error=reranker_error,
        )
        self._cache_set(options.cache_key, result)

        logger.info(
            "[retrieve] %d candidates (vector: %d, keyword: %d, rerank: %s) in %.0fms",
            len(candidates), result.vector_count, result.keyword_count, rerank_applied, result.latency_ms,
        )
        return result
