"""
Neo4j Graph Backend

Social and novelty signals from the event graph:
- (:User)-[:VIEWED|SAVED|ATTENDED {timestamp}]->(:Event)
- (:User)-[:FRIENDS_WITH]-(:User)
- (:Event)-[:SIMILAR|NEAR {score}]-(:Event), written by offline jobs

Each query raises on failure; the Enricher owns the neutral fallbacks.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from neo4j import AsyncGraphDatabase, RoutingControl

from recommender.backends import FriendSignal, NoveltyScore, SimilarEvent
from recommender.errors import BackendUnavailableError
from recommender.models import SocialHeat

logger = logging.getLogger(__name__)


SIMILAR_EVENTS_QUERY = """
MATCH (e:Event {id: $eventId})-[r:SIMILAR|NEAR]-(similar:Event)
WHERE similar.id <> $eventId
RETURN similar.id AS eventId,
       COALESCE(r.score, 0.0) AS similarity,
       type(r) AS relation
ORDER BY similarity DESC
LIMIT $limit
"""

NOVELTY_QUERY = """
OPTIONAL MATCH (u:User {id: $userId})-[:VIEWED|SAVED|ATTENDED]->(viewed:Event)
WITH COLLECT(DISTINCT viewed.id) AS viewedIds
UNWIND $eventIds AS candidateId
MATCH (candidate:Event {id: candidateId})
OPTIONAL MATCH (candidate)-[:SIMILAR]-(seen:Event)
WHERE seen.id IN viewedIds
WITH candidate, viewedIds, COUNT(DISTINCT seen) AS similarViewed
RETURN candidate.id AS eventId,
       similarViewed,
       CASE
         WHEN SIZE(viewedIds) = 0 THEN 0.5
         WHEN similarViewed = 0 THEN 1.0
         ELSE 1.0 - (toFloat(similarViewed) / toFloat(SIZE(viewedIds)))
       END AS novelty
"""

FRIEND_OVERLAP_QUERY = """
OPTIONAL MATCH (u:User {id: $userId})-[:FRIENDS_WITH]-(friend:User)
WITH COLLECT(DISTINCT friend.id) AS friendIds
UNWIND $eventIds AS candidateId
MATCH (candidate:Event {id: candidateId})
OPTIONAL MATCH (f:User)-[:VIEWED|SAVED|ATTENDED]->(candidate)
WHERE f.id IN friendIds
WITH candidate, COLLECT(DISTINCT f.id) AS engaged
RETURN candidate.id AS eventId, SIZE(engaged) AS friendCount, engaged AS friendIds
"""

SOCIAL_HEAT_QUERY = """
UNWIND $eventIds AS eventId
MATCH (e:Event {id: eventId})
OPTIONAL MATCH (:User)-[v:VIEWED]->(e) WHERE v.timestamp >= $cutoff
WITH e, COUNT(v) AS views
OPTIONAL MATCH (:User)-[s:SAVED]->(e) WHERE s.timestamp >= $cutoff
WITH e, views, COUNT(s) AS saves
OPTIONAL MATCH (:User)-[a:ATTENDED]->(e) WHERE a.timestamp >= $cutoff
RETURN e.id AS eventId, views, saves, COUNT(a) AS attends
"""


def social_heat_cutoff_ms(now: datetime, hours_back: int) -> int:
    """Start of the social heat window; interaction timestamps are stored as epoch milliseconds."""
    return int((now - timedelta(hours=hours_back)).timestamp() * 1000)


@dataclass
class Neo4jStatus:
    available: bool
    message: str


class Neo4jGraphBackend:
    """
    GraphBackend over the Neo4j async driver.

    Usage:
        graph = Neo4jGraphBackend("neo4j+s://...", "neo4j", "secret")
        scores = await graph.novelty_for_user("user-1", ["evt_1", "evt_2"])
    """

    def __init__(self, uri: str, user: str, password: str, database: Optional[str] = None):
        self.uri = uri
        self.database = database
        self._driver = AsyncGraphDatabase.driver(uri, auth=(user, password))

    async def _read(self, query: str, **params) -> List[Dict[str, Any]]:
        try:
            records, _, _ = await self._driver.execute_query(
                query,
                parameters_=params,
                routing_=RoutingControl.READ,
                database_=self.database,
            )
        except Exception as e:
            raise BackendUnavailableError("neo4j", str(e) or type(e).__name__) from e
        return [record.data() for record in records]

    async def similar_events(self, event_id: str, limit: int = 10) -> List[SimilarEvent]:
        rows = await self._read(SIMILAR_EVENTS_QUERY, eventId=event_id, limit=limit)
        return [
            SimilarEvent(event_id=r["eventId"], similarity=float(r["similarity"]), relation=r["relation"])
            for r in rows
        ]

    async def novelty_for_user(self, user_id: str, event_ids: List[str]) -> List[NoveltyScore]:
        rows = await self._read(NOVELTY_QUERY, userId=user_id, eventIds=list(event_ids))
        return [
            NoveltyScore(event_id=r["eventId"], novelty=float(r["novelty"]), similar_viewed=r["similarViewed"])
            for r in rows
        ]

    async def friend_overlap(self, user_id: str, event_ids: List[str]) -> List[FriendSignal]:
        rows = await self._read(FRIEND_OVERLAP_QUERY, userId=user_id, eventIds=list(event_ids))
        return [
            FriendSignal(event_id=r["eventId"], friend_count=r["friendCount"], friend_ids=list(r["friendIds"]))
            for r in rows
        ]

    async def social_heat(self, event_ids: List[str], hours_back: int, now: datetime) -> Dict[str, SocialHeat]:
        cutoff = social_heat_cutoff_ms(now, hours_back)
        rows = await self._read(SOCIAL_HEAT_QUERY, eventIds=list(event_ids), cutoff=cutoff)
        return {
            r["eventId"]: SocialHeat(views=r["views"], saves=r["saves"], attends=r["attends"])
            for r in rows
        }

    async def check_connectivity(self) -> Neo4jStatus:
        try:
            await self._driver.verify_connectivity()
            return Neo4jStatus(True, "Neo4j connectivity OK")
        except Exception as exc:
            return Neo4jStatus(False, f"Neo4j connectivity failed: {exc}")

    async def close(self) -> None:
        await self._driver.close()
