"""
Reference data loaded into a fresh database.
"""

from __future__ import annotations

from typing import List, Tuple

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from indaba.core.logging_config import get_logger

from .entities.milestones import Milestone

logger = get_logger(__name__)

# (name, description, category, age_range_start, age_range_end); ages in months
STANDARD_MILESTONES: List[Tuple[str, str, str, int, int]] = [
    ("Lifts head", "Holds head up when lying on tummy", "Physical", 0, 3),
    ("Social smile", "Smiles at people in response to their smile", "Social-Emotional", 1, 3),
    ("Coos", "Makes cooing and gurgling sounds", "Language", 1, 4),
    ("Follows objects", "Follows moving things with the eyes", "Cognitive", 1, 4),
    ("Rolls over", "Rolls from tummy to back", "Physical", 3, 6),
    ("Reaches for toys", "Reaches for a toy with one hand", "Physical", 3, 6),
    ("Babbles", "Strings together sounds like 'ba-ba' or 'ma-ma'", "Language", 4, 9),
    ("Responds to name", "Turns toward a voice calling their name", "Language", 5, 9),
    ("Sits without support", "Sits steadily without help", "Physical", 5, 9),
    ("Stranger awareness", "Knows familiar people and may be wary of strangers", "Social-Emotional", 6, 9),
    ("Object permanence", "Looks for things they saw being hidden", "Cognitive", 6, 10),
    ("Crawls", "Moves forward on hands and knees", "Physical", 6, 10),
    ("Pulls to stand", "Pulls up to standing using furniture", "Physical", 8, 12),
    ("Waves bye-bye", "Waves goodbye", "Social-Emotional", 8, 12),
    ("Pincer grasp", "Picks up small objects between thumb and finger", "Physical", 8, 12),
    ("First words", "Says one or two words such as 'mama' or 'dada'", "Language", 10, 14),
    ("Walks independently", "Takes several steps without holding on", "Physical", 11, 15),
    ("Points to show interest", "Points to show others something interesting", "Social-Emotional", 12, 18),
    ("Uses simple gestures", "Shakes head for no and nods for yes", "Language", 12, 18),
    ("Scribbles", "Scribbles with a crayon", "Physical", 12, 18),
    ("Follows one-step directions", "Follows simple directions without gestures", "Cognitive", 15, 18),
    ("Says several words", "Uses at least ten words", "Language", 15, 21),
    ("Plays pretend", "Pretends to feed a doll or talk on a phone", "Cognitive", 18, 24),
    ("Two-word phrases", "Puts two words together, like 'more milk'", "Language", 18, 24),
    ("Kicks a ball", "Kicks a ball forward", "Physical", 18, 24),
    ("Runs", "Runs with coordination", "Physical", 18, 30),
    ("Parallel play", "Plays alongside other children", "Social-Emotional", 18, 30),
    ("Sorts shapes and colors", "Sorts objects by shape or color", "Cognitive", 24, 36),
    ("Climbs stairs", "Walks up stairs, one foot per step", "Physical", 24, 36),
    ("Short sentences", "Speaks in sentences of two to three words", "Language", 24, 36),
    ("Takes turns", "Takes turns in games", "Social-Emotional", 30, 42),
    ("Names friends", "Names a friend", "Social-Emotional", 30, 42),
    ("Draws a circle", "Copies a circle with a pencil or crayon", "Physical", 30, 42),
    ("Tells stories", "Tells a simple story", "Language", 36, 48),
    ("Counts to ten", "Counts ten or more objects", "Cognitive", 42, 60),
    ("Hops on one foot", "Hops and may skip", "Physical", 42, 60),
    ("Cooperative play", "Plays cooperatively with other children", "Social-Emotional", 42, 60),
    ("Writes letters", "Prints some letters or numbers", "Cognitive", 48, 66),
]


async def seed_milestones(session: AsyncSession) -> int:
    """Insert the standard milestone catalogue into an empty table.

    Returns:
        Number of milestones inserted
    """
    result = await session.execute(select(func.count()).select_from(Milestone))
    if result.scalar_one() > 0:
        return 0
    for name, description, category, start, end in STANDARD_MILESTONES:
        session.add(
            Milestone(
                name=name,
                description=description,
                category=category,
                age_range_start=start,
                age_range_end=end,
            )
        )
    await session.commit()
    logger.info(f"Seeded {len(STANDARD_MILESTONES)} standard milestones")
    return len(STANDARD_MILESTONES)
