"""
Pipeline stages.

- intent: free-text token extraction
- retrieval: hybrid vector + keyword retrieval with optional rerank
- enrichment: spatial, social, novelty, and taste signals
- ranking: features and weighted-sum ranker
- slates: bandit policy selection and slate composition
- critic: quality warnings and reasons
- formatting: response reasons and summary
"""

from .critic import critique
from .enrichment import Enricher, EnrichmentResult, GraphSignals
from .formatting import build_summary_prompt, format_reasons, generate_summary, template_summary
from .intent import extract_intent_tokens
from .ranking import Ranker, build_features
from .retrieval import RetrievalOptions, RetrievalResult, Retriever, retrieval_cache_key, union_candidates
from .slates import BanditMemory, apply_epsilon_greedy, choose_policy, compose_slates

__all__ = [
    "critique",
    "Enricher",
    "EnrichmentResult",
    "GraphSignals",
    "build_summary_prompt",
    "format_reasons",
    "generate_summary",
    "template_summary",
    "extract_intent_tokens",
    "Ranker",
    "build_features",
    "RetrievalOptions",
    "RetrievalResult",
    "Retriever",
    "retrieval_cache_key",
    "union_candidates",
    "BanditMemory",
    "apply_epsilon_greedy",
    "choose_policy",
    "compose_slates",
]
