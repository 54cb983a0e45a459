"""
app/services/rubric_service.py — Business logic for authoring rubrics.

This is the "glue" layer that coordinates, for one rubric kind:
  - Validating the header fields and the submitted question list
  - Assigning positions (ordering) and point values (scoring)
  - Replacing the whole question/answer subtree on update
  - Persisting everything through the repository

TemplateRubricService works on the global admin-owned templates;
CompanyRubricService works on one company's own rubrics. Both run inside
the caller's unit of work (get_db / get_session), so a failed update rolls
back completely instead of leaving a truncated rubric behind.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Sequence

import pydantic
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.db import repository
from app.db.models import AnswerTier, SegmentType
from app.db.repository import COMPANY_KIND, TEMPLATE_KIND, RubricKind
from app.errors import NotFound, StoreFailure, ValidationError
from app.services import ordering
from app.services.scoring import clamp_weight, point_value, score_bands

logger = logging.getLogger(__name__)


# ── Input schema ─────────────────────────────────────────────────────────────

class QuestionDraft(BaseModel):
    """One submitted question with up to three tiered answer texts."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = None                 # client-side id, only checked for duplicates
    pergunta: Optional[str] = Field(default="", validation_alias=AliasChoices("pergunta", "question"))
    peso: Optional[int] = Field(default=1, validation_alias=AliasChoices("peso", "weight"))
    ordem: Optional[int] = Field(default=None, validation_alias=AliasChoices("ordem", "position"))
    resposta_fria: Optional[str] = None
    resposta_morna: Optional[str] = None
    resposta_quente: Optional[str] = None

    def tier_texts(self) -> dict[AnswerTier, str]:
        """Trimmed answer texts by tier, skipping blank tiers."""
        raw = {
            AnswerTier.FRIA: self.resposta_fria,
            AnswerTier.MORNA: self.resposta_morna,
            AnswerTier.QUENTE: self.resposta_quente,
        }
        return {tier: text.strip() for tier, text in raw.items() if text and text.strip()}


def answers_by_tier(question) -> dict[AnswerTier, Any]:
    """Map a stored question's answers by tier."""
    return {AnswerTier(answer.tipo): answer for answer in question.answers}


def draft_from_question(question) -> QuestionDraft:
    """Reshape a stored question back into the create input shape."""
    answers = answers_by_tier(question)

    def text(tier: AnswerTier) -> Optional[str]:
        answer = answers.get(tier)
        return answer.resposta_texto if answer else None

    return QuestionDraft(
        pergunta=question.pergunta,
        peso=question.peso,
        ordem=question.ordem,
        resposta_fria=text(AnswerTier.FRIA),
        resposta_morna=text(AnswerTier.MORNA),
        resposta_quente=text(AnswerTier.QUENTE),
    )


# ── Helpers ──────────────────────────────────────────────────────────────────

def _require_name(nome: Optional[str]) -> str:
    cleaned = (nome or "").strip()
    if not cleaned:
        raise ValidationError("nome is required.")
    return cleaned


def _parse_segment(segment_type) -> SegmentType:
    try:
        return SegmentType(segment_type)
    except ValueError:
        allowed = ", ".join(s.value for s in SegmentType)
        raise ValidationError(f"Invalid segment_type {segment_type!r}. Use one of: {allowed}.") from None


def _parse_drafts(perguntas: Iterable) -> list[QuestionDraft]:
    drafts = []
    for index, item in enumerate(perguntas):
        if isinstance(item, QuestionDraft):
            drafts.append(item)
            continue
        try:
            drafts.append(QuestionDraft.model_validate(item))
        except pydantic.ValidationError as exc:
            first = exc.errors()[0]
            raise ValidationError(f"Invalid question {index + 1}: {first['msg']}") from None

    if len(drafts) > settings.max_questions_per_rubric:
        raise ValidationError(
            f"Too many questions ({len(drafts)}). "
            f"Maximum is {settings.max_questions_per_rubric}."
        )
    ordering.check_unique_ids(drafts)
    return drafts


@contextmanager
def _store_errors(action: str, kind: RubricKind):
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Store failure during %s %s: %s", kind.label, action, exc)
        raise StoreFailure(f"Failed to {action} {kind.label}.") from exc


# ── Services ─────────────────────────────────────────────────────────────────

class RubricService:
    """list / create / update / delete over one rubric kind."""

    kind: RubricKind = TEMPLATE_KIND

    def __init__(self, db: Session):
        self.db = db

    # -- scoping hooks --------------------------------------------------------

    def _company_id(self) -> Optional[str]:
        return None

    def _owner_fields(self) -> dict:
        return {}

    # -- reads ----------------------------------------------------------------

    def list(self) -> list:
        """All rubrics in scope, newest first, with nested questions and answers."""
        with _store_errors("list", self.kind):
            return repository.list_rubrics(self.db, self.kind, self._company_id())

    def get(self, rubric_id: str, for_update: bool = False):
        with _store_errors("read", self.kind):
            rubric = repository.get_rubric(
                self.db, self.kind, rubric_id, self._company_id(), for_update=for_update
            )
        if rubric is None:
            raise NotFound(f"{self.kind.label.capitalize()} {rubric_id} not found.")
        return rubric

    # -- writes ---------------------------------------------------------------

    def create(self, nome: Optional[str], segment_type=None, perguntas: Iterable = ()):
        return self._create(nome, segment_type, perguntas, {})

    def update(
        self,
        rubric_id: str,
        nome: Optional[str] = None,
        segment_type=None,
        perguntas: Optional[Iterable] = None,
    ):
        return self._update(rubric_id, nome, segment_type, perguntas, {})

    def delete(self, rubric_id: str) -> None:
        rubric = self.get(rubric_id, for_update=True)
        with _store_errors("delete", self.kind):
            repository.delete_rubric(self.db, self.kind, rubric)
        logger.info("Deleted %s %s.", self.kind.label, rubric_id)

    def _create(self, nome, segment_type, perguntas, extra: dict):
        nome = _require_name(nome)
        segment = _parse_segment(segment_type if segment_type is not None else SegmentType.GERAL)
        drafts = _parse_drafts(perguntas)

        with _store_errors("create", self.kind):
            rubric = repository.create_rubric_header(
                self.db,
                self.kind,
                nome=nome,
                segment_type=segment,
                **self._owner_fields(),
                **extra,
            )
            stored = self._write_questions(rubric, drafts)

        logger.info("Created %s %s (%r) with %d questions.", self.kind.label, rubric.id, nome, stored)
        return rubric

    def _update(self, rubric_id, nome, segment_type, perguntas, extra: dict):
        changes = dict(extra)
        if nome is not None:
            changes["nome"] = _require_name(nome)
        if segment_type is not None:
            changes["segment_type"] = _parse_segment(segment_type)
        drafts = _parse_drafts(perguntas) if perguntas is not None else None

        rubric = self.get(rubric_id, for_update=True)
        with _store_errors("update", self.kind):
            for field, value in changes.items():
                setattr(rubric, field, value)
            rubric.updated_at = datetime.now(timezone.utc)

            if drafts is not None:
                # Replace-all-children: drop the whole subtree, then rebuild it
                repository.delete_questions(self.db, self.kind, rubric.id)
                stored = self._write_questions(rubric, drafts)
                logger.info("Replaced questions of %s %s (%d stored).", self.kind.label, rubric.id, stored)
            self.db.flush()

        logger.info("Updated %s %s.", self.kind.label, rubric.id)
        return rubric

    def _write_questions(self, rubric, drafts: Sequence[QuestionDraft]) -> int:
        """Insert questions in submission order with their scored answers. Returns the count."""
        weights = []
        for ordem, draft in ordering.assign_positions(drafts):
            peso = clamp_weight(draft.peso)
            question = repository.add_question(
                self.db, self.kind, rubric.id, draft.pergunta.strip(), peso, ordem
            )
            answers = [
                (tier, text, point_value(peso, tier))
                for tier, text in draft.tier_texts().items()
            ]
            if answers:
                repository.add_answers(self.db, self.kind, question.id, answers)
            weights.append(peso)

        bands = score_bands(weights)
        rubric.pontuacao_maxima = bands.pontuacao_maxima
        rubric.limite_frio_max = bands.limite_frio_max
        rubric.limite_morno_max = bands.limite_morno_max
        self.db.flush()
        self.db.expire(rubric, ["questions"])
        return len(weights)


class TemplateRubricService(RubricService):
    """Admin-owned global templates. Callers must check the admin flag first."""

    kind = TEMPLATE_KIND


class CompanyRubricService(RubricService):
    """One company's own rubrics. Every read and write is scoped by company_id."""

    kind = COMPANY_KIND

    def __init__(self, db: Session, company_id: str, user_id: Optional[str] = None):
        super().__init__(db)
        self.company_id = company_id
        self.user_id = user_id

    def _company_id(self) -> Optional[str]:
        return self.company_id

    def _owner_fields(self) -> dict:
        return {"company_id": self.company_id, "user_id": self.user_id}

    def create(
        self,
        nome: Optional[str],
        segment_type=None,
        perguntas: Iterable = (),
        ideal_customer_id: Optional[str] = None,
    ):
        return self._create(nome, segment_type, perguntas, {"ideal_customer_id": ideal_customer_id or None})

    def update(
        self,
        rubric_id: str,
        nome: Optional[str] = None,
        segment_type=None,
        perguntas: Optional[Iterable] = None,
        ideal_customer_id: Optional[str] = None,
    ):
        # None leaves the persona link alone, "" clears it
        extra = {} if ideal_customer_id is None else {"ideal_customer_id": ideal_customer_id or None}
        return self._update(rubric_id, nome, segment_type, perguntas, extra)
