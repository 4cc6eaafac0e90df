# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import Protocol, runtime_checkable

from pydantic import BaseModel


class Capabilities(BaseModel):
    """Capabilities an actor holds, from the identity / role service."""

    user_id: uuid.UUID
    organization_id: uuid.UUID
    is_system_admin: bool = False
    can_manage_users: bool = False


@runtime_checkable
class IdentityService(Protocol):
    """Interface for the identity / role service."""

    async def get_capabilities(self, organization_id: uuid.UUID, user_id: uuid.UUID) -> Capabilities | None:
        """Fetch an actor's capabilities. Returns None if the actor is unknown."""
        ...


class InMemoryIdentityService:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._capabilities: dict[tuple[uuid.UUID, uuid.UUID], Capabilities] = {}

    def seed(self, capabilities: Capabilities) -> None:
        """Seed an actor's capabilities for testing."""
        self._capabilities[(capabilities.organization_id, capabilities.user_id)] = capabilities

    async def get_capabilities(self, organization_id: uuid.UUID, user_id: uuid.UUID) -> Capabilities | None:
        """Fetch an actor's capabilities. Returns None if the actor is unknown."""
        return self._capabilities.get((organization_id, user_id))


_identity_service: IdentityService = InMemoryIdentityService()


def get_identity_service() -> IdentityService:
    """Return the active Identity Service."""
    return _identity_service


def set_identity_service(service: IdentityService) -> None:
    """Override the service (for testing or production wiring)."""
    global _identity_service
    _identity_service = service
