"""
api/schemas.py — Pydantic request/response models for all API endpoints.

These are the API contract — separate from DB ORM models so we can
control exactly what data is exposed over HTTP.

Requests are single action-dispatch payloads: the "action" field picks
one variant of a discriminated union.
"""

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, Field, TypeAdapter

from app.db.models import AnswerTier, SegmentType
from app.services.ordering import by_position
from app.services.rubric_service import QuestionDraft, answers_by_tier


# ── Requests ──────────────────────────────────────────────────────────────────

class ActionRequest(BaseModel):
    token: Optional[str] = Field(default=None, description="Bearer token; overrides the Authorization header")


class ListRequest(ActionRequest):
    action: Literal["list"]


class CreateRequest(ActionRequest):
    action: Literal["create"]
    nome: Optional[str] = Field(default=None, validation_alias=AliasChoices("nome", "name"))
    segment_type: Optional[SegmentType] = None
    perguntas: list[QuestionDraft] = Field(
        default_factory=list,
        validation_alias=AliasChoices("perguntas", "questions"),
    )


class UpdateRequest(ActionRequest):
    action: Literal["update"]
    id: str
    nome: Optional[str] = Field(default=None, validation_alias=AliasChoices("nome", "name"))
    segment_type: Optional[SegmentType] = None
    perguntas: Optional[list[QuestionDraft]] = Field(
        default=None,
        validation_alias=AliasChoices("perguntas", "questions"),
        description="When present, replaces every question of the rubric",
    )


class DeleteRequest(ActionRequest):
    action: Literal["delete"]
    id: str


class CompanyCreateRequest(CreateRequest):
    ideal_customer_id: Optional[str] = None


class CompanyUpdateRequest(UpdateRequest):
    ideal_customer_id: Optional[str] = None


class MaterializeRequest(ActionRequest):
    action: Literal["materialize"]
    template_id: str


class ListTemplatesRequest(ActionRequest):
    action: Literal["list_templates"]


TemplateAction = Annotated[
    Union[ListRequest, CreateRequest, UpdateRequest, DeleteRequest],
    Field(discriminator="action"),
]

CompanyAction = Annotated[
    Union[
        ListRequest,
        CompanyCreateRequest,
        CompanyUpdateRequest,
        DeleteRequest,
        MaterializeRequest,
        ListTemplatesRequest,
    ],
    Field(discriminator="action"),
]

TEMPLATE_ACTIONS = TypeAdapter(TemplateAction)
COMPANY_ACTIONS = TypeAdapter(CompanyAction)


# ── Responses ─────────────────────────────────────────────────────────────────

class QuestionOut(BaseModel):
    id: str
    pergunta: str
    peso: int
    ordem: int
    resposta_fria: str = ""
    resposta_morna: str = ""
    resposta_quente: str = ""
    pontuacoes: dict[str, int] = Field(default_factory=dict, description="Stored points by tier")

    @classmethod
    def from_question(cls, question) -> "QuestionOut":
        answers = answers_by_tier(question)

        def text(tier: AnswerTier) -> str:
            return answers[tier].resposta_texto if tier in answers else ""

        return cls(
            id=question.id,
            pergunta=question.pergunta,
            peso=question.peso or 1,
            ordem=question.ordem or 1,
            resposta_fria=text(AnswerTier.FRIA),
            resposta_morna=text(AnswerTier.MORNA),
            resposta_quente=text(AnswerTier.QUENTE),
            pontuacoes={tier.value: answer.pontuacao for tier, answer in answers.items()},
        )


class RubricSummaryOut(BaseModel):
    """Header fields only, returned by create/update/materialize."""
    id: str
    nome: str
    segment_type: SegmentType
    pontuacao_maxima: int = 0
    limite_frio_max: int = 0
    limite_morno_max: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CompanyRubricSummaryOut(RubricSummaryOut):
    ideal_customer_id: Optional[str] = None


class RubricOut(RubricSummaryOut):
    perguntas: list[QuestionOut] = Field(default_factory=list)

    @classmethod
    def from_rubric(cls, rubric) -> "RubricOut":
        summary = RubricSummaryOut.model_validate(rubric)
        return cls(
            **summary.model_dump(),
            perguntas=[QuestionOut.from_question(q) for q in by_position(rubric.questions)],
        )


class CompanyRubricOut(CompanyRubricSummaryOut):
    perguntas: list[QuestionOut] = Field(default_factory=list)

    @classmethod
    def from_rubric(cls, rubric) -> "CompanyRubricOut":
        summary = CompanyRubricSummaryOut.model_validate(rubric)
        return cls(
            **summary.model_dump(),
            perguntas=[QuestionOut.from_question(q) for q in by_position(rubric.questions)],
        )


class TemplateListResponse(BaseModel):
    templates: list[RubricOut]


class TemplateMutationResponse(BaseModel):
    success: bool = True
    template: Optional[RubricSummaryOut] = None


class CompanyListResponse(BaseModel):
    qualificadores: list[CompanyRubricOut]


class CompanyMutationResponse(BaseModel):
    success: bool = True
    qualificador: Optional[CompanyRubricSummaryOut] = None


class ErrorResponse(BaseModel):
    error: str


ERROR_RESPONSES = {
    status: {"model": ErrorResponse}
    for status in (400, 401, 403, 404, 500, 503)
}
