"""
Latency tracking for pipeline runs.

Keeps the most recent samples in a bounded buffer and summarizes per endpoint:
count, p50/p95/p99 (nearest-rank on the sorted samples), the endpoint's p95 target,
and the share of requests that met it. Also tracks average duration per graph node.
"""

import logging
from collections import deque
from typing import Deque, Dict, List, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

MAX_SAMPLES = 1000
DEFAULT_TARGET_MS = 1000.0

P95_TARGETS_MS: Dict[str, float] = {
    "/api/recommend": 800.0,
    "/api/ask": 300.0,
}


class LatencySample(BaseModel):
    trace_id: str
    endpoint: str
    total_ms: float
    node_timings: Dict[str, float] = Field(default_factory=dict)
    target_ms: float
    meets_target: bool


class LatencySummary(BaseModel):
    endpoint: str
    count: int
    p50: float
    p95: float
    p99: float
    target: float
    meeting_target_pct: float
    node_avg_ms: Dict[str, float] = Field(default_factory=dict)


class LatencyTracker:
    def __init__(self, max_samples: int = MAX_SAMPLES, targets: Optional[Dict[str, float]] = None):
        self._samples: Deque[LatencySample] = deque(maxlen=max_samples)
        self.targets = dict(P95_TARGETS_MS if targets is None else targets)

    def target_for(self, endpoint: str) -> float:
        return self.targets.get(endpoint, DEFAULT_TARGET_MS)

    def record(
        self,
        trace_id: str,
        endpoint: str,
        total_ms: float,
        node_timings: Optional[Dict[str, float]] = None,
    ) -> LatencySample:
        target = self.target_for(endpoint)
        sample = LatencySample(
            trace_id=trace_id,
            endpoint=endpoint,
            total_ms=total_ms,
            node_timings=dict(node_timings or {}),
            target_ms=target,
            meets_target=total_ms <= target,
        )
        self._samples.append(sample)
        if not sample.meets_target:
            logger.warning(
                "[metrics] %s %s took %.0fms (target %.0fms)", trace_id, endpoint, total_ms, target
            )
        return sample

    def summary(self, endpoint: str) -> Optional[LatencySummary]:
        samples = [s for s in self._samples if s.endpoint == endpoint]
        if not samples:
            return None
        ordered = sorted(s.total_ms for s in samples)
        n = len(ordered)

        def pct(q: float) -> float:
            return ordered[min(n - 1, int(n * q))]

        node_totals: Dict[str, List[float]] = {}
        for s in samples:
            for node, ms in s.node_timings.items():
                node_totals.setdefault(node, []).append(ms)

        return LatencySummary(
            endpoint=endpoint,
            count=n,
            p50=pct(0.5),
            p95=pct(0.95),
            p99=pct(0.99),
            target=self.target_for(endpoint),
            meeting_target_pct=100.0 * sum(1 for s in samples if s.meets_target) / n,
            node_avg_ms={node: sum(v) / len(v) for node, v in node_totals.items()},
        )

    def endpoints(self) -> List[str]:
        return sorted({s.endpoint for s in self._samples})

    def clear(self) -> None:
        self._samples.clear()

    def __len__(self) -> int:
        return len(self._samples)
