"""
api/endpoints/company_routes.py — A company's own qualification rubrics.

POST /qualificadores   body: { action, token?, ... }
  list            → { qualificadores: [...] }
  create          → { success, qualificador }   { nome, segment_type?, ideal_customer_id?, perguntas[] }
  update          → { success, qualificador }   { id, nome?, segment_type?, ideal_customer_id?, perguntas? }
  delete          → { success }                 { id }
  materialize     → { success, qualificador }   { template_id }
  list_templates  → { templates: [...] }        read-only catalogue to materialize from

Any signed-in user linked to a company may call these; rows are scoped to
that company.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Header
from sqlalchemy.orm import Session

from app.db.repository import get_profile_company_id
from app.db.session import get_db
from app.errors import NotAuthorized
from app.services.identity import IdentityGate, get_identity_gate
from app.services.materialization import materialize_template
from app.services.rubric_service import CompanyRubricService, TemplateRubricService
from api.dependencies import commit, parse_action, resolve_identity
from api.schemas import (
    ERROR_RESPONSES,
    COMPANY_ACTIONS,
    CompanyCreateRequest,
    CompanyListResponse,
    CompanyMutationResponse,
    CompanyRubricOut,
    CompanyRubricSummaryOut,
    CompanyUpdateRequest,
    DeleteRequest,
    ListRequest,
    ListTemplatesRequest,
    MaterializeRequest,
    RubricOut,
    TemplateListResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", summary="Company rubric actions", responses=ERROR_RESPONSES)
def company_actions(
    payload: Optional[dict[str, Any]] = Body(default=None),
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
    gate: IdentityGate = Depends(get_identity_gate),
):
    """Dispatch one action on the caller's company rubrics. An empty body lists them."""
    body = payload or {}
    identity = resolve_identity(gate, body, authorization)

    company_id = get_profile_company_id(db, identity.subject_id)
    if not company_id:
        raise NotAuthorized("No company linked to this user.")

    request = parse_action(COMPANY_ACTIONS, body)
    service = CompanyRubricService(db, company_id=company_id, user_id=identity.subject_id)

    if isinstance(request, ListRequest):
        rubrics = service.list()
        return CompanyListResponse(qualificadores=[CompanyRubricOut.from_rubric(r) for r in rubrics])

    if isinstance(request, ListTemplatesRequest):
        templates = TemplateRubricService(db).list()
        return TemplateListResponse(templates=[RubricOut.from_rubric(t) for t in templates])

    if isinstance(request, DeleteRequest):
        service.delete(request.id)
        commit(db)
        return {"success": True}

    if isinstance(request, CompanyCreateRequest):
        rubric = service.create(
            request.nome,
            request.segment_type,
            request.perguntas,
            ideal_customer_id=request.ideal_customer_id,
        )
    elif isinstance(request, CompanyUpdateRequest):
        rubric = service.update(
            request.id,
            request.nome,
            request.segment_type,
            request.perguntas,
            ideal_customer_id=request.ideal_customer_id,
        )
    elif isinstance(request, MaterializeRequest):
        rubric = materialize_template(
            db,
            template_id=request.template_id,
            company_id=company_id,
            user_id=identity.subject_id,
        )
    else:
        raise TypeError(f"Unhandled company action: {request!r}")

    commit(db)
    logger.info(
        "Company %s: %s on qualificador %s by %s.",
        company_id, request.action, rubric.id, identity.subject_id,
    )
    return CompanyMutationResponse(qualificador=CompanyRubricSummaryOut.model_validate(rubric))
