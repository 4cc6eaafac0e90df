# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field


class EmployeePlacement(BaseModel):
    """Where an employee sits in the organization, from the Directory Service."""

    employee_id: uuid.UUID
    organization_id: uuid.UUID
    department_id: uuid.UUID | None = None
    team_ids: list[uuid.UUID] = Field(default_factory=list)


@runtime_checkable
class DirectoryService(Protocol):
    """Interface for the user / team / department directory."""

    async def get_team_ids(self, organization_id: uuid.UUID, employee_id: uuid.UUID) -> list[uuid.UUID]:
        """Teams the employee belongs to. Empty when none or unknown."""
        ...

    async def get_department_id(self, organization_id: uuid.UUID, employee_id: uuid.UUID) -> uuid.UUID | None:
        """The employee's department, or None."""
        ...


class InMemoryDirectoryService:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._placements: dict[tuple[uuid.UUID, uuid.UUID], EmployeePlacement] = {}

    def seed(self, placement: EmployeePlacement) -> None:
        """Seed an employee placement for testing."""
        self._placements[(placement.organization_id, placement.employee_id)] = placement

    async def get_team_ids(self, organization_id: uuid.UUID, employee_id: uuid.UUID) -> list[uuid.UUID]:
        """Teams the employee belongs to. Empty when none or unknown."""
        placement = self._placements.get((organization_id, employee_id))
        return list(placement.team_ids) if placement else []

    async def get_department_id(self, organization_id: uuid.UUID, employee_id: uuid.UUID) -> uuid.UUID | None:
        """The employee's department, or None."""
        placement = self._placements.get((organization_id, employee_id))
        return placement.department_id if placement else None


_directory_service: DirectoryService = InMemoryDirectoryService()


def get_directory_service() -> DirectoryService:
    """Return the active Directory Service."""
    return _directory_service


def set_directory_service(service: DirectoryService) -> None:
    """Override the service (for testing or production wiring)."""
    global _directory_service
    _directory_service = service
