"""
Formatting: response reasons and the optional natural-language summary.
"""

import asyncio
import logging
import random
from typing import List, Optional, Tuple

from ..backends import SummaryGenerator
from ..models.intention import Intention
from ..models.slate import SlateSet

logger = logging.getLogger(__name__)

MAX_REASONS = 5

NO_RESULTS_SUMMARY = (
    "I couldn't find any events matching your request. "
    "Try adjusting your filters or expanding your search criteria."
)


def format_reasons(
    intention: Optional[Intention],
    slates: SlateSet,
    prior_reasons: Optional[List[str]] = None,
) -> List[str]:
    """Prior (critic) reasons followed by intention and slate reasons, capped at five."""
    reasons = list(prior_reasons or [])

    if intention is not None:
        tokens = intention.tokens
        reasons.append(f"Curated for {tokens.mood} vibes")

        if tokens.budget == "free":
            reasons.append("Focused on free and low-cost options")
        elif tokens.budget == "splurge":
            reasons.append("Premium experiences included")

        if tokens.distance_km and tokens.distance_km <= 3:
            reasons.append(f"Staying within {tokens.distance_km:g}km")

        if tokens.until_minutes <= 120:
            reasons.append("Happening very soon")
        elif tokens.until_minutes <= 1440:
            reasons.append("Perfect for today")

    if slates.wildcard.events:
        reasons.append("Wildcard picks for discovery")
    if slates.close_and_easy.events:
        reasons.append("Easy-access options available")

    return reasons[:MAX_REASONS]


def template_summary(
    intention: Optional[Intention],
    slates: SlateSet,
    rng: Optional[random.Random] = None,
) -> str:
    count = slates.total_events
    if count == 0:
        return NO_RESULTS_SUMMARY

    mood = intention.tokens.mood if intention is not None else None
    city = intention.city if intention is not None else "your area"
    what = f"{mood} vibes" if mood else "things to do"
    templates = [
        f"I found {count} great options for {what} in {city}.",
        f"Here are {count} recommendations tailored to your preferences in {city}.",
        f"I've curated {count} events that match what you're looking for in {city}.",
    ]
    return (rng or random.Random()).choice(templates)


def build_summary_prompt(free_text: str, intention: Optional[Intention], slates: SlateSet) -> str:
    """Prompt asking for a two-sentence summary of the top picks."""
    lines = [
        "You are a friendly city guide. In at most two sentences, summarize these event",
        "recommendations for the user. Do not invent events that are not listed.",
        "",
        f"User request: {free_text}",
    ]
    if intention is not None:
        t = intention.tokens
        lines.append(
            f"City: {intention.city}; mood: {t.mood}; budget: {t.budget}; "
            f"within {t.distance_km:g} km; next {t.until_minutes} minutes"
        )
    lines.append("")
    for slate in slates.all():
        if not slate.events:
            continue
        lines.append(f"{slate.label}:")
        for item in slate.events[:3]:
            venue = f" at {item.venue_name}" if item.venue_name else ""
            lines.append(f"- {item.title}{venue}")
    return "\n".join(lines)


async def generate_summary(
    free_text: Optional[str],
    intention: Optional[Intention],
    slates: SlateSet,
    summarizer: Optional[SummaryGenerator],
    rng: Optional[random.Random] = None,
    timeout_s: float = 5.0,
) -> Tuple[Optional[str], bool]:
    """
    Summary for free-text requests.

    Returns (summary, llm_failed). Without free text there is no summary. Without a
    summarizer, or when it fails or returns nothing, the template summary is used.
    """
    if not free_text:
        return None, False
    if summarizer is None or slates.total_events == 0:
        return template_summary(intention, slates, rng), False
    try:
        text = await asyncio.wait_for(
            summarizer.summarize(build_summary_prompt(free_text, intention, slates)),
            timeout=timeout_s,
        )
    except Exception as e:
        logger.warning("[format] summary generation failed: %s", str(e) or type(e).__name__)
        return template_summary(intention, slates, rng), True
    text = (text or "").strip()
    if not text:
        return template_summary(intention, slates, rng), True
    return text, False
