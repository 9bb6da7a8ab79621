from pydantic import BaseModel, ConfigDict

from rentcar.enums.user_role import UserRole


class Actor(BaseModel):
    """The resolved identity a caller acts as."""

    id: int
    role: UserRole = UserRole.CUSTOMER

    model_config = ConfigDict(frozen=True)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
