"""
Critic: read-only quality gate over composed slates.

Produces user-facing warnings and reasons from result volume, slate diversity,
degradation flags, and budget/time coverage. Never mutates slates and never blocks
the response.
"""

import logging
from typing import List, Optional, Tuple

from ..models.intention import Intention
from ..models.slate import SlateSet
from ..models.state import DegradedFlags
from ..utils.timeutil import minutes_between

logger = logging.getLogger(__name__)

LIMITED_RESULTS_THRESHOLD = 5
MIN_BEST_DIVERSITY = 0.3
SOON_WINDOW_MINUTES = 240


def critique(
    slates: SlateSet,
    intention: Optional[Intention],
    degraded: DegradedFlags,
    user_id: Optional[str] = None,
) -> Tuple[List[str], List[str]]:
    """Return (warnings, reasons) for the composed slates."""
    warnings: List[str] = []
    reasons: List[str] = []

    total = slates.total_events
    if total == 0:
        warnings.append("No events found matching criteria")
        reasons.append("Try broadening your search or adjusting filters")
    elif total < LIMITED_RESULTS_THRESHOLD:
        warnings.append("Limited recommendations available")
        reasons.append("Consider expanding time range or location")

    best = slates.best
    if best.diversity < MIN_BEST_DIVERSITY and len(best.events) >= LIMITED_RESULTS_THRESHOLD:
        reasons.append("Added variety picks for more diversity")

    if degraded.no_qdrant:
        warnings.append("Vector search unavailable - using keyword search only")
        reasons.append("Recommendations may be less personalized")
    if degraded.no_taste_vector and user_id:
        reasons.append("Building your taste profile - recommendations will improve over time")
    if degraded.no_neo4j:
        warnings.append("Social signals unavailable")

    close = slates.close_and_easy.events
    if intention is not None and intention.tokens.budget == "free" and not any(e.price_min == 0 for e in close):
        warnings.append("No free events found - showing low-cost alternatives")
    if not close:
        reasons.append("All events require some travel")

    if intention is not None and intention.tokens.until_minutes <= SOON_WINDOW_MINUTES:
        starts_soon = any(
            minutes_between(intention.now, e.start_time) <= SOON_WINDOW_MINUTES for e in best.events
        )
        if not starts_soon:
            warnings.append("No events starting very soon - showing upcoming options")

    logger.info("[critic] quality check complete: %d events, %d warnings", total, len(warnings))
    return warnings, reasons
