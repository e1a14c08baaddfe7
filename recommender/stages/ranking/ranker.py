"""
Weighted-sum ranker with versioned, hot-swappable weights.

score = sum over features of clamp01(feature) * weight. Each contribution is kept in
the breakdown; when the raw total exceeds 1 the contributions are rescaled
proportionally so the reported score stays in [0, 1] and always equals the sum of
its contributions.
"""

import asyncio
import logging
import math
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ...backends import SnapshotStore
from ...models.scoring import FEATURE_FIELDS, RankerConfig, RankingFeatures, RankingWeights, ScoredEvent
from ...utils.scores import clamp01

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION_SUFFIX = "-snapshot"


class Ranker:
    """
    Scores feature vectors against a RankerConfig.

    Only the weighted_sum model type is implemented; ml_model is accepted in the
    config so a learned model can be slotted in later.
    """

    def __init__(self, config: Optional[RankerConfig] = None):
        self._config = config or RankerConfig()

    @property
    def version(self) -> str:
        return self._config.weights.version

    def get_config(self) -> RankerConfig:
        return self._config.model_copy(deep=True)

    # -------------------------------------------------------------------------
    # Scoring
    # -------------------------------------------------------------------------

    def score(self, features: RankingFeatures) -> ScoredEvent:
        if self._config.model_type != "weighted_sum":
            raise NotImplementedError(f"Model type {self._config.model_type} not yet implemented")
        return self._score_weighted_sum(features)

    def score_events(self, features: List[RankingFeatures]) -> List[ScoredEvent]:
        """Score each feature set; order is preserved."""
        return [self.score(f) for f in features]

    def _score_weighted_sum(self, features: RankingFeatures) -> ScoredEvent:
        weights = self._config.weights
        contributions: Dict[str, float] = {}
        for name, attr in FEATURE_FIELDS.items():
            contributions[name] = clamp01(getattr(features, attr)) * getattr(weights, name)

        total = math.fsum(contributions.values())
        if total > 1.0:
            contributions = {name: value / total for name, value in contributions.items()}
            total = math.fsum(contributions.values())

        return ScoredEvent(
            event_id=features.event_id,
            score=total,
            contributions=contributions,
            features=features,
        )

    # -------------------------------------------------------------------------
    # Weights
    # -------------------------------------------------------------------------

    def update_weights(self, new_weights: Dict[str, Any], version: Optional[str] = None) -> None:
        """
        Merge a partial weight map into the active weights.

        Raises:
            ValueError: for non weighted_sum models.
            pydantic.ValidationError: when a merged weight is negative or not finite.
        """
        if self._config.model_type != "weighted_sum":
            raise ValueError("Can only update weights for weighted_sum model type")
        merged = {**self._config.weights.as_dict(), **new_weights}
        weights = RankingWeights.from_dict(merged, version=version or self._config.weights.version)
        self._config = self._config.model_copy(update={"weights": weights})
        logger.info("[rank] updated ranker weights: %s", sorted(new_weights))

    @classmethod
    async def from_snapshot_store(
        cls,
        store: Optional[SnapshotStore],
        timeout_s: float = 1.0,
    ) -> "Ranker":
        """
        Ranker backed by the latest persisted weight snapshot.

        Falls back to default weights when there is no store, no snapshot, a
        malformed snapshot, or the read fails or times out.
        """
        if store is None:
            return cls()
        try:
            snapshot = await asyncio.wait_for(store.get_latest_ranker_snapshot(), timeout=timeout_s)
        except Exception as e:
            logger.warning("[rank] failed to load ranker snapshot, using defaults: %s", str(e) or type(e).__name__)
            return cls()
        if snapshot is None or not snapshot.weights:
            return cls()
        version = snapshot.version or f"{snapshot.id}{SNAPSHOT_VERSION_SUFFIX}"
        try:
            weights = RankingWeights.from_dict(snapshot.weights, version=version)
        except ValidationError as e:
            logger.warning("[rank] malformed ranker snapshot %s, using defaults: %s", snapshot.id, e)
            return cls()
        logger.info("[rank] loaded ranker snapshot %s (version %s)", snapshot.id, version)
        return cls(RankerConfig(weights=weights, version=version))
