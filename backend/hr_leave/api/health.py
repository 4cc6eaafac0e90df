from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Literal

import sqlalchemy as sa
from fastapi import APIRouter
from pydantic import BaseModel, Field

from hr_leave.config import get_settings
from hr_leave.db import SessionDep
from hr_leave.models import AuditLog, LeaveBalance, LeavePolicy, LeaveRequest

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

# Tables the leave workflow cannot run without.
REQUIRED_TABLES: tuple[str, ...] = tuple(
    str(model.__tablename__) for model in (LeavePolicy, LeaveBalance, LeaveRequest, AuditLog)
)


class HealthResponse(BaseModel):
    """Liveness plus leave-schema readiness."""

    status: Literal["ok", "degraded"]
    version: str
    environment: str
    missing_tables: list[str] = Field(default_factory=list)


def _existing_tables(sync_session: Session) -> set[str]:
    return set(sa.inspect(sync_session.connection()).get_table_names())


@router.get("/health", response_model=HealthResponse)
async def health(session: SessionDep) -> HealthResponse:
    """Degraded when the database is unreachable or a leave table is missing."""
    settings = get_settings()
    status: Literal["ok", "degraded"] = "ok"
    missing: list[str] = []

    try:
        existing = await session.run_sync(_existing_tables)
    except Exception:
        logger.exception("Health check: database connectivity failed")
        status = "degraded"
    else:
        missing = [name for name in REQUIRED_TABLES if name not in existing]
        if missing:
            logger.warning("Health check: leave tables missing: %s", ", ".join(missing))
            status = "degraded"

    return HealthResponse(
        status=status,
        version=settings.app_version,
        environment=settings.environment,
        missing_tables=missing,
    )
