"""
app/db/repository.py — All database read/write operations.

Business logic should never write raw SQL or ORM queries directly —
everything goes through this module. This keeps DB logic centralized
and easy to test/mock.

Template and company rubrics share the same shape, so every rubric
function takes a RubricKind describing which table triad to use.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.db.models import (
    AnswerTier,
    CompanyAnswer,
    CompanyQualification,
    CompanyQuestion,
    Profile,
    QualificationTemplate,
    TemplateAnswer,
    TemplateQuestion,
)

logger = logging.getLogger(__name__)


# ── Kinds ─────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RubricKind:
    label: str
    header: type
    question: type
    answer: type
    parent_key: str          # FK column on the question pointing at the header
    scoped: bool             # True when rows are owned by a company_id

    @property
    def parent_column(self):
        return getattr(self.question, self.parent_key)


TEMPLATE_KIND = RubricKind(
    label="template",
    header=QualificationTemplate,
    question=TemplateQuestion,
    answer=TemplateAnswer,
    parent_key="template_id",
    scoped=False,
)

COMPANY_KIND = RubricKind(
    label="qualificador",
    header=CompanyQualification,
    question=CompanyQuestion,
    answer=CompanyAnswer,
    parent_key="qualificador_id",
    scoped=True,
)


def _scoped(query, kind: RubricKind, company_id: Optional[str]):
    if kind.scoped:
        query = query.filter(kind.header.company_id == company_id)
    return query


# ── Rubric headers ────────────────────────────────────────────────────────────

def list_rubrics(db: Session, kind: RubricKind, company_id: Optional[str] = None) -> list:
    """
    Return every rubric of this kind (scoped to company_id for company rubrics),
    newest first, with questions (by ordem) and answers loaded.
    """
    query = (
        db.query(kind.header)
        .options(selectinload(kind.header.questions).selectinload(kind.question.answers))
        .populate_existing()
    )
    query = _scoped(query, kind, company_id)
    return query.order_by(kind.header.created_at.desc()).all()


def get_rubric(
    db: Session,
    kind: RubricKind,
    rubric_id: str,
    company_id: Optional[str] = None,
    for_update: bool = False,
):
    """Fetch one rubric header by id, or None. for_update locks the row until commit."""
    query = db.query(kind.header).filter(kind.header.id == rubric_id)
    query = _scoped(query, kind, company_id)
    if for_update:
        query = query.with_for_update()
    return query.populate_existing().first()


def create_rubric_header(db: Session, kind: RubricKind, **fields):
    """Insert a rubric header row and flush to get its id."""
    rubric = kind.header(**fields)
    db.add(rubric)
    db.flush()
    logger.debug("Created %s header: %s", kind.label, rubric.id)
    return rubric


# ── Questions / answers ───────────────────────────────────────────────────────

def add_question(db: Session, kind: RubricKind, rubric_id: str, pergunta: str, peso: int, ordem: int):
    """Insert one question under a rubric."""
    question = kind.question(pergunta=pergunta, peso=peso, ordem=ordem, **{kind.parent_key: rubric_id})
    db.add(question)
    db.flush()
    return question


def add_answers(
    db: Session,
    kind: RubricKind,
    question_id: str,
    answers: list[tuple[AnswerTier, str, int]],
) -> list:
    """Insert (tier, text, points) answers for one question."""
    rows = [
        kind.answer(pergunta_id=question_id, tipo=tier, resposta_texto=text, pontuacao=points)
        for tier, text, points in answers
    ]
    db.add_all(rows)
    db.flush()
    return rows


def delete_questions(db: Session, kind: RubricKind, rubric_id: str) -> int:
    """
    Delete every answer and question under a rubric, answers first.
    Does not depend on ON DELETE CASCADE being present in the store.
    Returns the number of questions removed.
    """
    question_ids = select(kind.question.id).where(kind.parent_column == rubric_id)
    db.query(kind.answer).filter(kind.answer.pergunta_id.in_(question_ids)).delete(
        synchronize_session=False
    )
    removed = db.query(kind.question).filter(kind.parent_column == rubric_id).delete(
        synchronize_session=False
    )
    db.flush()
    logger.debug("Removed %d questions from %s %s", removed, kind.label, rubric_id)
    return removed


def delete_rubric(db: Session, kind: RubricKind, rubric) -> None:
    """Delete a rubric's subtree explicitly, then the header itself."""
    delete_questions(db, kind, rubric.id)
    db.expire(rubric, ["questions"])
    db.delete(rubric)
    db.flush()


# ── Profiles ──────────────────────────────────────────────────────────────────

def get_profile_company_id(db: Session, subject_id: str) -> Optional[str]:
    """Return the company linked to an identity-provider subject, if any."""
    profile = db.query(Profile).filter(Profile.id == subject_id).first()
    return profile.company_id if profile else None
