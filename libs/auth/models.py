import uuid
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class AuthUser(BaseModel):
    """
    Caller identity decoded from the bearer token.

    The identity provider has already authenticated the caller; these claims
    are trusted as-is.
    """

    model_config = ConfigDict(populate_by_name=True)

    person_id: uuid.UUID = Field(..., alias="sub")
    email: Optional[EmailStr] = None
    role: Literal["admin", "member"] = "member"
    active: bool = False
    approved: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_member(self) -> bool:
        return self.role == "member"

    @property
    def can_participate(self) -> bool:
        return self.active and self.approved
