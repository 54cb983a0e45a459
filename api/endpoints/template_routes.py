"""
api/endpoints/template_routes.py — Admin-only CRUD for qualification templates.

POST /admin/qualificacao-templates   body: { action, token?, ... }
  list    → { templates: [...] } with nested perguntas
  create  → { success, template }    { nome, segment_type?, perguntas[] }
  update  → { success, template }    { id, nome?, segment_type?, perguntas? }
  delete  → { success }              { id }

Only platform administrators may call any action.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Header
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.services.identity import IdentityGate, get_identity_gate, require_admin
from app.services.rubric_service import TemplateRubricService
from api.dependencies import commit, parse_action, resolve_identity
from api.schemas import (
    ERROR_RESPONSES,
    TEMPLATE_ACTIONS,
    CreateRequest,
    DeleteRequest,
    ListRequest,
    RubricOut,
    RubricSummaryOut,
    TemplateListResponse,
    TemplateMutationResponse,
    UpdateRequest,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", summary="Qualification template actions", responses=ERROR_RESPONSES)
def template_actions(
    payload: Optional[dict[str, Any]] = Body(default=None),
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
    gate: IdentityGate = Depends(get_identity_gate),
):
    """
    Dispatch one template action. An empty body lists templates.
    The token may travel in the body or the Authorization header (body wins).
    """
    body = payload or {}
    identity = require_admin(resolve_identity(gate, body, authorization))
    request = parse_action(TEMPLATE_ACTIONS, body)
    service = TemplateRubricService(db)

    if isinstance(request, ListRequest):
        templates = service.list()
        return TemplateListResponse(templates=[RubricOut.from_rubric(t) for t in templates])

    if isinstance(request, DeleteRequest):
        service.delete(request.id)
        commit(db)
        logger.info("Template %s deleted by %s via API.", request.id, identity.subject_id)
        return {"success": True}

    if isinstance(request, CreateRequest):
        template = service.create(request.nome, request.segment_type, request.perguntas)
    elif isinstance(request, UpdateRequest):
        template = service.update(request.id, request.nome, request.segment_type, request.perguntas)
    else:
        raise TypeError(f"Unhandled template action: {request!r}")

    commit(db)
    logger.info("Template %s %sd by %s via API.", template.id, request.action, identity.subject_id)
    return TemplateMutationResponse(template=RubricSummaryOut.model_validate(template))
