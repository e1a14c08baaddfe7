"""
Score helpers: clamping, squashing, and vector similarity used by the ranking stages.
"""

import math
from typing import Optional, Sequence

import numpy as np


def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp value into [lo, hi]."""
    return max(lo, min(hi, value))


def clamp01(value: float) -> float:
    """Clamp value into [0, 1]. NaN is treated as 0."""
    if value != value:
        return 0.0
    return clamp(value, 0.0, 1.0)


def sigmoid(x: float) -> float:
    """Logistic squashing; overflow-safe for large negative inputs."""
    if x < -60:
        return 0.0
    return 1.0 / (1.0 + math.exp(-x))


def cosine_similarity(v1: Optional[Sequence[float]], v2: Optional[Sequence[float]]) -> float:
    """Compute cosine similarity between two vectors."""
    if v1 is None or v2 is None or len(v1) == 0 or len(v2) == 0:
        return 0.0
    if len(v1) != len(v2):
        return 0.0
    v1_arr = np.asarray(v1, dtype=float)
    v2_arr = np.asarray(v2, dtype=float)
    dot_product = np.dot(v1_arr, v2_arr)
    norm_product = np.linalg.norm(v1_arr) * np.linalg.norm(v2_arr)
    return float(dot_product / norm_product) if norm_product > 0 else 0.0


def taste_similarity(taste_vector: Sequence[float], event_embedding: Sequence[float]) -> float:
    """
    Cosine similarity between a user taste vector and an event embedding, clamped to [0, 1].

    Dimension mismatch or an empty vector yields the neutral 0.5.
    """
    if not taste_vector or not event_embedding or len(taste_vector) != len(event_embedding):
        return 0.5
    return clamp01(cosine_similarity(taste_vector, event_embedding))
