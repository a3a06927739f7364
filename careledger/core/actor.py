"""
Caller identity passed from the HTTP boundary into the services.
"""

from dataclasses import dataclass
from uuid import UUID

from careledger.core.enums import UserRole


@dataclass(frozen=True)
class Actor:
    """Authenticated user as asserted by the upstream auth collaborator."""

    id: UUID
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN
