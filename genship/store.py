"""Persistence of generation records with SQLAlchemy.

The engine/session factory defaults to a SQLite file inside the data
directory; any SQLAlchemy URL is accepted. ``GenerationRepository`` is the
only code that touches the ``generations`` table.
"""

from __future__ import annotations

import math
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text, create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from genship.models import (
    GeneratedFile,
    GenerationMetadata,
    GenerationPage,
    GenerationRecordView,
    GenerationStatus,
    OutputMode,
    Pagination,
    Stack,
)

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


class Generation(Base):
    __tablename__ = "generations"

    id = Column(String(32), primary_key=True, default=_new_id)
    user_id = Column(String, index=True, nullable=False)
    prompt = Column(Text, nullable=False)
    stack = Column(String, nullable=False)
    output_mode = Column(String, nullable=False)
    status = Column(String, nullable=False, default=GenerationStatus.PENDING.value)

    files = Column(JSON, nullable=True)
    preview_url = Column(String, nullable=True)
    deployment_url = Column(String, nullable=True)
    download_url = Column(String, nullable=True)
    commit_hash = Column(String(40), nullable=True)
    installation_script = Column(Text, nullable=True)
    documentation = Column(Text, nullable=True)
    error = Column(Text, nullable=True)

    tokens_used = Column(Integer, nullable=False, default=0)
    generation_time_ms = Column(Integer, nullable=False, default=0)
    model_used = Column(String, nullable=False, default="")

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)


def create_session_factory(database_url: str) -> sessionmaker:
    """Create the engine, ensure the schema exists and return a session factory."""
    engine_args: dict[str, Any] = {}
    if database_url.startswith("sqlite"):
        engine_args["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every session sees an empty database.
            engine_args["poolclass"] = StaticPool
    engine = create_engine(database_url, **engine_args)
    Base.metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


class RecordNotFoundError(LookupError):
    """No generation record has the requested id."""


class GenerationRepository:
    """CRUD and pagination over the ``generations`` table.

    Each method runs in its own short-lived session.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def _session(self) -> Session:
        return self._session_factory()

    def create(
        self,
        user_id: str,
        prompt: str,
        stack: Stack | str,
        output_mode: OutputMode | str,
    ) -> Generation:
        """Insert a ``pending`` record and return it."""
        record = Generation(
            user_id=user_id,
            prompt=prompt,
            stack=Stack(stack).value,
            output_mode=OutputMode(output_mode).value,
            status=GenerationStatus.PENDING.value,
        )
        with self._session() as session:
            session.add(record)
            session.commit()
            session.refresh(record)
        return record

    def get(self, generation_id: str) -> Optional[Generation]:
        with self._session() as session:
            return session.get(Generation, generation_id)

    def list_for_user(self, user_id: str, page: int = 1, limit: int = 10) -> tuple[list[Generation], int]:
        """Return one page of *user_id*'s records, newest first, and the total count."""
        page = max(page, 1)
        limit = max(limit, 1)
        with self._session() as session:
            query = session.query(Generation).filter(Generation.user_id == user_id)
            total = query.count()
            records = (
                query.order_by(Generation.created_at.desc(), Generation.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
                .all()
            )
        return records, total

    def update(self, generation_id: str, **fields: Any) -> Generation:
        """Set *fields* on a record and commit.

        Raises:
            RecordNotFoundError: If the record does not exist.
        """
        with self._session() as session:
            record = session.get(Generation, generation_id)
            if record is None:
                raise RecordNotFoundError(generation_id)
            for name, value in fields.items():
                setattr(record, name, value)
            session.commit()
            session.refresh(record)
        return record


# ---------------------------------------------------------------------------
# Projections
# ---------------------------------------------------------------------------

def to_view(record: Generation, include_files: bool = True) -> GenerationRecordView:
    """Project an ORM record onto the API model."""
    files = None
    if include_files and record.files:
        files = [GeneratedFile.model_validate(item) for item in record.files]

    return GenerationRecordView(
        id=record.id,
        user_id=record.user_id,
        prompt=record.prompt,
        stack=record.stack,
        output_mode=record.output_mode,
        status=record.status,
        files=files,
        preview_url=record.preview_url,
        deployment_url=record.deployment_url,
        download_url=record.download_url,
        commit_hash=record.commit_hash,
        installation_script=record.installation_script,
        documentation=record.documentation,
        error=record.error,
        metadata=GenerationMetadata(
            tokens_used=record.tokens_used or 0,
            generation_time_ms=record.generation_time_ms or 0,
            model_used=record.model_used or "",
        ),
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def to_page(records: list[Generation], total: int, page: int, limit: int) -> GenerationPage:
    """Build a list response; file payloads are omitted."""
    return GenerationPage(
        generations=[to_view(r, include_files=False) for r in records],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            pages=math.ceil(total / limit) if limit else 0,
        ),
    )
