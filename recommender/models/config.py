"""
Pipeline configuration: retrieval, enrichment, ranking, slate, and logging parameters.

PipelineConfig defaults are defined here. The server may pass a dict (e.g. from a JSON
file at PIPELINE_CONFIG_PATH); from_dict() merges it with these defaults.
"""

from typing import Dict, Literal, Optional

from pydantic import BaseModel, model_validator


class PipelineConfig(BaseModel):
    """Configuration for the recommendation pipeline."""

    # -------------------------------------------------------------------------
    # Retrieval: hybrid vector + keyword search
    # -------------------------------------------------------------------------

    # Hits requested from each search backend.
    retrieval_top_k: int = 100
    # Max candidates kept after union (and rescored when a reranker is configured).
    rerank_top: int = 50
    use_reranker: bool = True
    # Overall bound on the parallel search fan-out. On timeout both branches are empty.
    retrieval_timeout_s: float = 6.0
    rerank_timeout_s: float = 5.0
    # Identical requests within this window are served from the result cache.
    retrieval_cache_ttl_s: float = 60.0
    retrieval_cache_max_entries: int = 256

    # -------------------------------------------------------------------------
    # Enrichment: per-signal fetches from graph backend and embedding store
    # -------------------------------------------------------------------------

    signal_timeout_s: float = 2.0
    # Lookback window for social heat counters.
    social_heat_hours: int = 3

    # -------------------------------------------------------------------------
    # Ranking
    # -------------------------------------------------------------------------

    # Bound on reading the latest weight snapshot; defaults are used on timeout.
    weights_timeout_s: float = 1.0

    # -------------------------------------------------------------------------
    # Slates and bandit policy selection
    # -------------------------------------------------------------------------

    # Probability of trying a non-leading policy.
    bandit_epsilon: float = 0.25
    bandit_strategy: Literal["epsilon_greedy", "thompson"] = "epsilon_greedy"
    # A policy needs this many impressions before it can lead.
    bandit_min_impressions: int = 10
    policy_timeout_s: float = 1.0

    # -------------------------------------------------------------------------
    # Formatting
    # -------------------------------------------------------------------------

    summary_timeout_s: float = 5.0

    # -------------------------------------------------------------------------
    # Logging sink
    # -------------------------------------------------------------------------

    log_timeout_s: float = 2.0

    @model_validator(mode="after")
    def check_ranges(self):
        timeouts = {
            "retrieval_timeout_s": self.retrieval_timeout_s,
            "rerank_timeout_s": self.rerank_timeout_s,
            "signal_timeout_s": self.signal_timeout_s,
            "weights_timeout_s": self.weights_timeout_s,
            "policy_timeout_s": self.policy_timeout_s,
            "log_timeout_s": self.log_timeout_s,
            "summary_timeout_s": self.summary_timeout_s,
        }
        for name, value in timeouts.items():
            if value <= 0:
                raise ValueError(f"{name} must be > 0, got {value}")
        if self.rerank_top > self.retrieval_top_k:
            raise ValueError(
                f"rerank_top ({self.rerank_top}) cannot exceed retrieval_top_k ({self.retrieval_top_k})"
            )
        if not 0.0 <= self.bandit_epsilon <= 1.0:
            raise ValueError(f"bandit_epsilon must be in [0, 1], got {self.bandit_epsilon}")
        return self

    @classmethod
    def from_dict(cls, config_dict: Dict) -> "PipelineConfig":
        """Create config from dictionary (e.g., loaded from JSON). Sections are flattened."""
        flat = {}
        for section in ("retrieval", "enrichment", "ranking", "slates", "bandit", "format", "log"):
            if isinstance(config_dict.get(section), dict):
                flat.update(config_dict[section])
        flat.update({k: v for k, v in config_dict.items() if not isinstance(v, dict)})
        allowed = set(cls.model_fields)
        filtered = {k: v for k, v in flat.items() if k in allowed}
        return cls.model_validate(filtered)


DEFAULT_CONFIG = PipelineConfig()


def resolve_config(config: Optional["PipelineConfig"]) -> "PipelineConfig":
    """Return config or DEFAULT_CONFIG when none is provided."""
    return config if config is not None else DEFAULT_CONFIG
