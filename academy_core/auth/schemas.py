"""Identity context schema."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict

from .permissions import UserRole


class UserContext(BaseModel):
    """Caller identity as seen by the entitlement and progress services."""

    model_config = ConfigDict(frozen=True)

    user_id: UUID
    role: UserRole = UserRole.USER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
