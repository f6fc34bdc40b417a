"""
Authentication schemas.

The ledger service does not own user accounts; it trusts the claims of a
bearer token issued by the identity provider.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional
from bizledger.app.models.enums import UserRole


class Principal(BaseModel):
    """
    The authenticated caller, built from verified token claims.

    `sub` carries the username, `user_id` the stable account id.
    """
    user_id: str = Field(..., min_length=1, description="Account ID from the identity provider")
    username: Optional[str] = Field(default=None, alias="sub", description="Username")
    role: UserRole = Field(..., description="Ledger role")

    @field_validator("user_id", mode="before")
    @classmethod
    def stringify_user_id(cls, value):
        # Some providers issue numeric ids
        return str(value) if isinstance(value, int) else value

    class Config:
        populate_by_name = True
