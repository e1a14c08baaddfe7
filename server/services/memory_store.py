"""
In-process snapshot store and event logs for local runs without Firestore.

InMemorySnapshotStore keeps policies written through the API for the life of
the process; it has no ranker snapshots unless one is added explicitly.
"""

import itertools
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from recommender.backends import EventType, LogContext, RankerSnapshot
from recommender.models import StoredSlatePolicy

logger = logging.getLogger(__name__)


class InMemorySnapshotStore:
    def __init__(self):
        self.snapshots: List[RankerSnapshot] = []
        self.policies: Dict[str, StoredSlatePolicy] = {}
        # Upsert order; the most recently written active policy wins
        self._updated: Dict[str, int] = {}
        self._sequence = itertools.count(1)

    def add_snapshot(self, weights: Dict[str, Any], version: Optional[str] = None) -> RankerSnapshot:
        snapshot = RankerSnapshot(
            id=f"snapshot-{len(self.snapshots) + 1}",
            weights=dict(weights),
            version=version,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        self.snapshots.append(snapshot)
        return snapshot

    async def get_latest_ranker_snapshot(self) -> Optional[RankerSnapshot]:
        return self.snapshots[-1] if self.snapshots else None

    async def get_current_slate_policy(self) -> Optional[StoredSlatePolicy]:
        active = [p for p in self.policies.values() if p.is_active]
        if not active:
            return None
        return max(active, key=lambda p: self._updated[p.name])

    async def upsert_slate_policy(
        self,
        name: str,
        params: Dict[str, Any],
        is_active: bool,
    ) -> StoredSlatePolicy:
        policy = StoredSlatePolicy(name=name, params=dict(params), is_active=is_active)
        self.policies[name] = policy
        self._updated[name] = next(self._sequence)
        logger.info("[memory_store] upserted slate policy %s (active: %s)", name, is_active)
        return policy


class InMemoryEventLog:
    """Keeps the most recent interaction events in memory."""

    def __init__(self, max_events: int = 1000):
        self.max_events = max_events
        self.events: List[Dict[str, Any]] = []

    async def log_event(self, event_type: EventType, payload: Dict[str, Any], context: LogContext) -> None:
        self.events.append({
            "event_type": event_type,
            "payload": payload,
            "context": context.model_dump(),
            "created_at": datetime.now(timezone.utc).isoformat(),
        })
        if len(self.events) > self.max_events:
            del self.events[: len(self.events) - self.max_events]


class NullEventLog:
    """Discards events; keeps the log node's contract when logging is disabled."""

    async def log_event(self, event_type: EventType, payload: Dict[str, Any], context: LogContext) -> None:
        logger.debug("[log] dropped %s for trace %s", event_type, context.trace_id)
