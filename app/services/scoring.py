"""
app/services/scoring.py — Point values for tiered answers.

Each answer stores weight × tier base points, computed once when the
rubric is written. Changing TIER_BASE_POINTS later does not touch rubrics
already in the database.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from app.db.models import AnswerTier

logger = logging.getLogger(__name__)

TIER_BASE_POINTS = {
    AnswerTier.FRIA: 1,
    AnswerTier.MORNA: 5,
    AnswerTier.QUENTE: 10,
}

MIN_WEIGHT = 1
MAX_WEIGHT = 3


@dataclass(frozen=True)
class ScoreBands:
    pontuacao_maxima: int
    limite_frio_max: int       # scores below this are cold
    limite_morno_max: int      # scores below this (and >= cold) are warm


def clamp_weight(value: Optional[int]) -> int:
    """Clamp a caller-supplied weight into [1, 3]. Missing weight counts as 1."""
    if value is None:
        return MIN_WEIGHT
    clamped = min(MAX_WEIGHT, max(MIN_WEIGHT, int(value)))
    if clamped != value:
        logger.debug("Weight %s clamped to %d.", value, clamped)
    return clamped


def point_value(weight: int, tier: AnswerTier) -> int:
    """
    Points an answer is worth.

    Args:
        weight: Question weight, already clamped to [1, 3].
        tier:   Answer tier (fria / morna / quente).

    Returns:
        weight × base points of the tier, e.g. (2, quente) → 20.
    """
    return weight * TIER_BASE_POINTS[AnswerTier(tier)]


def score_bands(weights: Iterable[int]) -> ScoreBands:
    """
    Derive the rubric's maximum score and the cold/warm band limits.

    The maximum is every question answered at the hottest tier; the bands
    split it in thirds (floored).
    """
    maximum = sum(point_value(w, AnswerTier.QUENTE) for w in weights)
    return ScoreBands(
        pontuacao_maxima=maximum,
        limite_frio_max=maximum // 3,
        limite_morno_max=(2 * maximum) // 3,
    )
