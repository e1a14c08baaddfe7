"""
Error taxonomy for the recommendation pipeline.

- BackendUnavailableError: an external collaborator failed or timed out. Always
  recoverable inside the stage that called it (neutral defaults / empty sets).
- RequiredStageError: a required node cannot produce usable state; aborts the graph.
- InvalidRequestError: malformed input at the pipeline entry point; raised before
  any node (and therefore any external call) runs.
"""

from typing import List, Optional


class RecommenderError(Exception):
    """Base class for pipeline errors."""


class BackendUnavailableError(RecommenderError):
    """A named external dependency errored or timed out."""

    def __init__(self, backend: str, message: str):
        self.backend = backend
        super().__init__(f"{backend}: {message}")


class RequiredStageError(RecommenderError):
    """A required stage is missing its inputs or cannot produce output."""


class InvalidRequestError(RecommenderError):
    """Request rejected at the pipeline entry point."""

    def __init__(self, message: str, details: Optional[List[dict]] = None):
        self.details = details or []
        super().__init__(message)
