"""genship HTTP API.

``create_app`` wires a FastAPI application around an injected pipeline and
repository. The caller's identity comes from the ``X-User-Id`` header.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from genship import __version__
from genship.config import Config
from genship.models import GenerationRecordView, OutputMode, Stack
from genship.pipeline import (
    GENERATION_FAILED,
    VALIDATION_FAILED,
    GenerationPipeline,
    PipelineStage,
)
from genship.store import GenerationRepository, create_session_factory, to_page, to_view

logger = logging.getLogger(__name__)


class GenerationRequest(BaseModel):
    """Body of ``POST /api/generation``."""

    prompt: str = Field(..., min_length=10, max_length=2000)
    stack: Stack
    output: OutputMode

    @field_validator("prompt", mode="before")
    @classmethod
    def _trim_prompt(cls, value):
        return value.strip() if isinstance(value, str) else value


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authorized"
        )
    return x_user_id.strip()


def get_pipeline(request: Request) -> GenerationPipeline:
    return request.app.state.pipeline


def get_repository(request: Request) -> GenerationRepository:
    return request.app.state.repository


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

router = APIRouter()


@router.post(
    "",
    response_model=GenerationRecordView,
    status_code=status.HTTP_201_CREATED,
    summary="Generate code",
    responses={400: {"description": "Generated code validation failed"}},
)
async def generate_code(
    payload: GenerationRequest,
    user_id: str = Depends(get_user_id),
    pipeline: GenerationPipeline = Depends(get_pipeline),
):
    try:
        outcome = await pipeline.run(user_id, payload.prompt, payload.stack, payload.output)
    except Exception:
        logger.exception("Generation request crashed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=GENERATION_FAILED
        )

    if outcome.succeeded:
        return outcome.record

    if outcome.failed_stage is PipelineStage.VALIDATE and outcome.validation is not None:
        validation = outcome.validation
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": VALIDATION_FAILED,
                "id": outcome.record.id,
                "errors": validation.errors,
                "warnings": validation.warnings,
                "securityIssues": validation.security_issues,
            },
        )

    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=GENERATION_FAILED
    )


@router.get("", summary="List the caller's generations")
def list_generations(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user_id: str = Depends(get_user_id),
    repository: GenerationRepository = Depends(get_repository),
):
    records, total = repository.list_for_user(user_id, page=page, limit=limit)
    result = to_page(records, total, page, limit)
    return JSONResponse(
        content=result.model_dump(
            mode="json", by_alias=True, exclude={"generations": {"__all__": {"files"}}}
        )
    )


@router.get("/{generation_id}", response_model=GenerationRecordView, summary="Get one generation")
def get_generation(
    generation_id: str,
    user_id: str = Depends(get_user_id),
    repository: GenerationRepository = Depends(get_repository),
):
    record = repository.get(generation_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Generation not found")
    if record.user_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to access this generation",
        )
    return to_view(record)


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(
    config: Config | None = None,
    pipeline: GenerationPipeline | None = None,
    repository: GenerationRepository | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Components not passed in are built from *config* (or ``Config.from_env()``).
    """
    config = config or Config.from_env()
    if repository is None:
        repository = (
            pipeline.repository
            if pipeline is not None
            else GenerationRepository(create_session_factory(config.resolved_database_url))
        )
    if pipeline is None:
        pipeline = GenerationPipeline.from_config(config, repository=repository)

    app = FastAPI(
        title="genship API",
        description="Prompt-to-code generation, validation and delivery.",
        version=__version__,
    )
    app.state.config = config
    app.state.pipeline = pipeline
    app.state.repository = repository

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix="/api/generation", tags=["Generation"])

    @app.get("/health", tags=["Health Check"])
    async def health():
        return {"status": "ok", "version": app.version}

    return app
