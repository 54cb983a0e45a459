"""
app/db/models.py — SQLAlchemy ORM models for qualification rubrics.

Two structurally parallel triads (header → question → tiered answer):
  - QualificationTemplate → TemplateQuestion → TemplateAnswer    (global, admin-owned)
  - CompanyQualification  → CompanyQuestion  → CompanyAnswer     (scoped by company_id)

Plus Profile, which links an identity-provider subject to its company.

A company rubric never references the template it was cloned from.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship


# ── Base ─────────────────────────────────────────────────────────────────────

class Base(DeclarativeBase):
    pass


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Enums ────────────────────────────────────────────────────────────────────

class SegmentType(str, enum.Enum):
    GERAL = "geral"
    PRODUTOS = "produtos"
    CONSORCIO = "consorcio"
    SEGUROS = "seguros"


class AnswerTier(str, enum.Enum):
    FRIA = "fria"        # cold
    MORNA = "morna"      # warm
    QUENTE = "quente"    # hot


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


def _segment_column():
    return Column(
        Enum(SegmentType, name="segment_type", values_callable=_enum_values),
        default=SegmentType.GERAL,
        nullable=False,
    )


def _tier_column():
    return Column(
        Enum(AnswerTier, name="answer_tier", values_callable=_enum_values),
        nullable=False,
    )


# ── Templates (admin-owned) ──────────────────────────────────────────────────

class QualificationTemplate(Base):
    __tablename__ = "qualificacao_templates"

    id = Column(String(36), primary_key=True, default=_new_id)
    nome = Column(String(255), nullable=False)
    segment_type = _segment_column()

    # Score bands derived from the question weights at write time
    pontuacao_maxima = Column(Integer, default=0, nullable=False)
    limite_frio_max = Column(Integer, default=0, nullable=False)
    limite_morno_max = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    questions = relationship(
        "TemplateQuestion",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="TemplateQuestion.ordem",
    )

    def __repr__(self) -> str:
        return f"<QualificationTemplate id={self.id} nome={self.nome!r}>"


class TemplateQuestion(Base):
    __tablename__ = "qualificacao_template_perguntas"

    id = Column(String(36), primary_key=True, default=_new_id)
    template_id = Column(
        String(36),
        ForeignKey("qualificacao_templates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    pergunta = Column(Text, nullable=False)
    peso = Column(Integer, default=1, nullable=False)     # 1 – 3
    ordem = Column(Integer, nullable=False)               # 1-based, dense
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    # Relationships
    template = relationship("QualificationTemplate", back_populates="questions")
    answers = relationship("TemplateAnswer", back_populates="question", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<TemplateQuestion id={self.id} ordem={self.ordem} peso={self.peso}>"


class TemplateAnswer(Base):
    __tablename__ = "qualificacao_template_respostas"
    __table_args__ = (UniqueConstraint("pergunta_id", "tipo", name="uq_template_resposta_tipo"),)

    id = Column(String(36), primary_key=True, default=_new_id)
    pergunta_id = Column(
        String(36),
        ForeignKey("qualificacao_template_perguntas.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tipo = _tier_column()
    resposta_texto = Column(Text, nullable=False)
    pontuacao = Column(Integer, nullable=False)           # peso × tier base points

    # Relationships
    question = relationship("TemplateQuestion", back_populates="answers")

    def __repr__(self) -> str:
        return f"<TemplateAnswer tipo={self.tipo} pontuacao={self.pontuacao}>"


# ── Company rubrics (tenant-owned) ───────────────────────────────────────────

class CompanyQualification(Base):
    __tablename__ = "qualificadores"

    id = Column(String(36), primary_key=True, default=_new_id)
    company_id = Column(String(64), nullable=False, index=True)
    user_id = Column(String(64), nullable=True)            # subject that created it
    ideal_customer_id = Column(String(64), nullable=True)  # optional persona link
    nome = Column(String(255), nullable=False)
    segment_type = _segment_column()

    pontuacao_maxima = Column(Integer, default=0, nullable=False)
    limite_frio_max = Column(Integer, default=0, nullable=False)
    limite_morno_max = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    questions = relationship(
        "CompanyQuestion",
        back_populates="qualificador",
        cascade="all, delete-orphan",
        order_by="CompanyQuestion.ordem",
    )

    def __repr__(self) -> str:
        return f"<CompanyQualification id={self.id} company={self.company_id} nome={self.nome!r}>"


class CompanyQuestion(Base):
    __tablename__ = "qualificacao_perguntas"

    id = Column(String(36), primary_key=True, default=_new_id)
    qualificador_id = Column(
        String(36),
        ForeignKey("qualificadores.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    pergunta = Column(Text, nullable=False)
    peso = Column(Integer, default=1, nullable=False)
    ordem = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    # Relationships
    qualificador = relationship("CompanyQualification", back_populates="questions")
    answers = relationship("CompanyAnswer", back_populates="question", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<CompanyQuestion id={self.id} ordem={self.ordem} peso={self.peso}>"


class CompanyAnswer(Base):
    __tablename__ = "qualificacao_respostas"
    __table_args__ = (UniqueConstraint("pergunta_id", "tipo", name="uq_resposta_tipo"),)

    id = Column(String(36), primary_key=True, default=_new_id)
    pergunta_id = Column(
        String(36),
        ForeignKey("qualificacao_perguntas.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tipo = _tier_column()
    resposta_texto = Column(Text, nullable=False)
    pontuacao = Column(Integer, nullable=False)

    # Relationships
    question = relationship("CompanyQuestion", back_populates="answers")

    def __repr__(self) -> str:
        return f"<CompanyAnswer tipo={self.tipo} pontuacao={self.pontuacao}>"


# ── Profiles ─────────────────────────────────────────────────────────────────

class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(64), primary_key=True)              # identity-provider subject id
    company_id = Column(String(64), nullable=True, index=True)
    email = Column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Profile id={self.id} company={self.company_id}>"
