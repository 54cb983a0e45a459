"""
api/main.py — FastAPI application entry point.

Run with:
    uvicorn api.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.config import settings
from app.db.session import engine
from app.errors import RubricError, StoreFailure
from api.endpoints.company_routes import router as company_router
from api.endpoints.template_routes import router as template_router

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ─────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown logic."""
    # Verify DB is reachable on startup
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    logger.info("Database connection verified.")
    yield
    logger.info("Application shutting down.")


# ── App ───────────────────────────────────────────────────────────────────────

app = FastAPI(
    title="Lead Qualification Rubrics",
    description=(
        "Authoring of weighted lead-qualification rubrics: admin-owned templates, "
        "company-owned rubrics, and template → company materialization."
    ),
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Errors ────────────────────────────────────────────────────────────────────

@app.exception_handler(RubricError)
async def rubric_error_handler(request: Request, exc: RubricError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    # Store errors raised outside the services (profile lookup, teardown commit)
    logger.error("Unhandled store error on %s: %s", request.url.path, exc)
    failure = StoreFailure("Database error. Try again later.")
    return JSONResponse(status_code=failure.status_code, content={"error": failure.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # Malformed JSON or a non-object body
    first = exc.errors()[0] if exc.errors() else {"msg": "Invalid request body."}
    return JSONResponse(status_code=400, content={"error": f"Invalid request body: {first['msg']}"})


# ── Routers ───────────────────────────────────────────────────────────────────

app.include_router(template_router, prefix="/admin/qualificacao-templates", tags=["Templates"])
app.include_router(company_router, prefix="/qualificadores", tags=["Company rubrics"])


# ── Health check ─────────────────────────────────────────────────────────────

@app.get("/health", tags=["System"])
def health_check():
    """Returns service liveness status."""
    return {"status": "ok", "service": "lead-qualification-rubrics"}
