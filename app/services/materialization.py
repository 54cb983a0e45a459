"""
app/services/materialization.py — Clone an admin template into a company rubric.

The copy is a snapshot: it goes through exactly the same create path as a
company-authored rubric and keeps no reference to its origin, so later
edits to the template never reach it. Point values are recomputed by the
same scoring rule, which yields the template's stored values.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.db.models import CompanyQualification
from app.services import ordering
from app.services.rubric_service import (
    CompanyRubricService,
    TemplateRubricService,
    draft_from_question,
)

logger = logging.getLogger(__name__)


def materialize_template(
    db: Session,
    template_id: str,
    company_id: str,
    user_id: Optional[str] = None,
) -> CompanyQualification:
    """
    Create an independent company rubric from a template.

    Args:
        db:          Session of the caller's unit of work.
        template_id: Template to copy.
        company_id:  Company that will own the copy.
        user_id:     Subject recorded as the creator of the copy.

    Returns:
        The new CompanyQualification header.

    Raises:
        NotFound: If the template does not exist.
    """
    template = TemplateRubricService(db).get(template_id)
    drafts = [draft_from_question(q) for q in ordering.by_position(template.questions)]

    rubric = CompanyRubricService(db, company_id=company_id, user_id=user_id).create(
        nome=template.nome,
        segment_type=template.segment_type,
        perguntas=drafts,
    )
    logger.info(
        "Materialized template %s into %s for company %s (%d questions).",
        template_id, rubric.id, company_id, len(drafts),
    )
    return rubric
