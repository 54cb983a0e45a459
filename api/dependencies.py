"""
api/dependencies.py — Helpers shared by the action-dispatch routers.

  resolve_identity() : token from body or header → Identity
  parse_action()     : raw JSON body → one variant of an action union
  commit()           : commit the request's unit of work, mapping store errors
"""

import logging
from typing import Any, Optional

import pydantic
from pydantic import TypeAdapter
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import StoreFailure, ValidationError
from app.services.identity import Identity, IdentityGate, extract_token

logger = logging.getLogger(__name__)


def resolve_identity(gate: IdentityGate, body: dict[str, Any], authorization: Optional[str]) -> Identity:
    """Authorize the caller before the payload is interpreted."""
    body_token = body.get("token")
    if not isinstance(body_token, str):
        body_token = None
    return gate.authorize(extract_token(body_token, authorization))


def _describe(exc: pydantic.ValidationError, action: Any) -> str:
    first = exc.errors()[0]
    if first["type"] in ("union_tag_invalid", "union_tag_not_found"):
        return f"Invalid action {action!r}."
    # loc starts with the union tag; the rest points at the offending field
    field = ".".join(str(part) for part in first["loc"][1:])
    return f"{field}: {first['msg']}" if field else first["msg"]


def parse_action(adapter: TypeAdapter, body: dict[str, Any]):
    """Validate a request body against an action union. A missing action means list."""
    payload = dict(body)
    payload.setdefault("action", "list")
    try:
        return adapter.validate_python(payload)
    except pydantic.ValidationError as exc:
        message = _describe(exc, payload.get("action"))
        logger.debug("Rejected payload: %s", message)
        raise ValidationError(message) from None


def commit(db: Session) -> None:
    """Commit now so store failures surface as a 500 instead of after the response."""
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Commit failed: %s", exc)
        raise StoreFailure("Failed to save changes.") from exc
