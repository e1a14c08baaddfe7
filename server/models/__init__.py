"""Pydantic request/response models for the API."""

from .policies import PolicyOutcomeRequest, UpsertPolicyRequest
from .recommend import AskRequest, RecommendRequest, RecommendResponse

__all__ = [
    "PolicyOutcomeRequest",
    "UpsertPolicyRequest",
    "AskRequest",
    "RecommendRequest",
    "RecommendResponse",
]
