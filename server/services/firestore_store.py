"""
Firestore stores: ranker snapshots, slate policies, taste vectors, interaction log.

Collections:
- ranker_snapshots/{auto}: { weights, version, created_at }      (written by training jobs)
- slate_policies/{name}:   { name, params, is_active, updated_at }
- taste_vectors/{user_id}: { vector: [float], dimension, updated_at }
- event_logs/{auto}:       { event_type, payload, session_id, trace_id, user_id, created_at }

All stores share one google.cloud.firestore.AsyncClient built from a service
account file. Methods raise on failure; the pipeline owns the fallbacks.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from google.cloud.firestore import AsyncClient
from google.cloud.firestore_v1.query import Query as FirestoreQuery
from google.oauth2 import service_account

from recommender.backends import EventType, LogContext, RankerSnapshot
from recommender.models import StoredSlatePolicy

logger = logging.getLogger(__name__)

RANKER_SNAPSHOTS = "ranker_snapshots"
SLATE_POLICIES = "slate_policies"
TASTE_VECTORS = "taste_vectors"
EVENT_LOGS = "event_logs"


def _project_id_from_credentials_file(credentials_path: Union[Path, str]) -> Optional[str]:
    """Read project_id from a Google service account JSON file if present."""
    try:
        path = Path(credentials_path)
        if not path.is_file():
            return None
        with open(path) as f:
            data = json.load(f)
        return data.get("project_id") or data.get("projectId")
    except (OSError, ValueError):
        return None


def create_async_client(
    credentials_path: Union[Path, str],
    project_id: Optional[str] = None,
) -> AsyncClient:
    """AsyncClient for the service account at credentials_path."""
    path = str(Path(credentials_path).resolve())
    creds = service_account.Credentials.from_service_account_file(path)
    project = project_id or _project_id_from_credentials_file(path)
    return AsyncClient(project=project, credentials=creds)


def _iso(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class FirestoreSnapshotStore:
    """SnapshotStore: latest ranker weights and the active slate policy."""

    def __init__(self, db: AsyncClient):
        self._db = db

    async def get_latest_ranker_snapshot(self) -> Optional[RankerSnapshot]:
        query = (
            self._db.collection(RANKER_SNAPSHOTS)
            .order_by("created_at", direction=FirestoreQuery.DESCENDING)
            .limit(1)
        )
        async for doc in query.stream():
            d = doc.to_dict() or {}
            return RankerSnapshot(
                id=doc.id,
                weights=d.get("weights") or {},
                version=d.get("version"),
                created_at=_iso(d.get("created_at")),
            )
        logger.warning("[firestore] no ranker snapshots found")
        return None

    async def get_current_slate_policy(self) -> Optional[StoredSlatePolicy]:
        # Most recently updated active policy wins
        query = self._db.collection(SLATE_POLICIES).where("is_active", "==", True)
        latest = None
        latest_at = None
        async for doc in query.stream():
            d = doc.to_dict() or {}
            updated_at = _iso(d.get("updated_at")) or ""
            if latest is None or updated_at > latest_at:
                latest, latest_at = d, updated_at
                latest.setdefault("name", doc.id)
        if latest is None:
            return None
        return StoredSlatePolicy(
            name=latest["name"],
            params=latest.get("params") or {},
            is_active=True,
        )

    async def upsert_slate_policy(
        self,
        name: str,
        params: Dict[str, Any],
        is_active: bool,
    ) -> StoredSlatePolicy:
        doc = {
            "name": name,
            "params": params,
            "is_active": is_active,
            "updated_at": datetime.now(timezone.utc),
        }
        await self._db.collection(SLATE_POLICIES).document(name).set(doc, merge=True)
        logger.info("[firestore] upserted slate policy %s (active: %s)", name, is_active)
        return StoredSlatePolicy(name=name, params=params, is_active=is_active)


class FirestoreTasteStore:
    """TasteStore: per-user taste vectors keyed by user id."""

    def __init__(self, db: AsyncClient):
        self._db = db

    async def get_taste_vector(self, user_id: str) -> Optional[List[float]]:
        doc = await self._db.collection(TASTE_VECTORS).document(user_id).get()
        if not doc.exists:
            return None
        vector = (doc.to_dict() or {}).get("vector")
        if not isinstance(vector, list) or not vector:
            logger.warning("[firestore] invalid taste vector format for user %s", user_id)
            return None
        return [float(v) for v in vector]


class FirestoreEventLog:
    """EventLogSink: appends interaction events to event_logs."""

    def __init__(self, db: AsyncClient):
        self._db = db

    async def log_event(self, event_type: EventType, payload: Dict[str, Any], context: LogContext) -> None:
        await self._db.collection(EVENT_LOGS).add({
            "event_type": event_type,
            "payload": payload,
            "session_id": context.session_id,
            "trace_id": context.trace_id,
            "user_id": context.user_id,
            "created_at": datetime.now(timezone.utc),
        })
