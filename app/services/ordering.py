"""
app/services/ordering.py — Question positions ("ordem").

Ordering is expressed only by the order of the submitted question list:
the caller reorders its in-memory list (e.g. via drag and drop) and submits
it, and positions are reassigned 1..N from that list on every write.
Client-supplied ordem values are never trusted.
"""

import logging
from typing import Iterable, Sequence

from app.errors import ValidationError

logger = logging.getLogger(__name__)


def assign_positions(drafts: Sequence) -> list[tuple[int, object]]:
    """
    Pair each question draft with its position.

    Drafts with blank question text are dropped (partially filled forms are
    tolerated), so positions stay dense over what is actually stored.

    Returns:
        List of (ordem, draft), ordem starting at 1.
    """
    kept = [d for d in drafts if (d.pergunta or "").strip()]
    skipped = len(drafts) - len(kept)
    if skipped:
        logger.debug("Skipped %d question(s) with empty text.", skipped)
    return [(index + 1, draft) for index, draft in enumerate(kept)]


def check_unique_ids(drafts: Iterable) -> None:
    """Reject payloads that repeat a client-side question id."""
    seen: set[str] = set()
    for draft in drafts:
        if draft.id is None:
            continue
        if draft.id in seen:
            raise ValidationError(f"Duplicate question id in payload: {draft.id}")
        seen.add(draft.id)


def by_position(questions: Iterable) -> list:
    """Sort stored questions by ordem ascending; ties keep their current order."""
    return sorted(questions, key=lambda q: q.ordem or 0)
