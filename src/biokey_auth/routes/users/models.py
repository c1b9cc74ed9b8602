"""HTTP payloads for administrative user management."""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field, model_validator

from biokey_auth.routes.auth.models import Role


class UserCreateRequest(BaseModel):
    email: EmailStr = Field(..., description="Unique email address for the account.", examples=["b@example.com"])
    password: str = Field(..., description="Account password, at least 8 characters.")
    role: Role = Field(default=Role.USER, description="Role granted to the new user.")


class UserUpdateRequest(BaseModel):
    """Partial update; omitted fields are left unchanged."""

    email: Optional[EmailStr] = Field(default=None, description="New email address.")
    password: Optional[str] = Field(default=None, description="New password, at least 8 characters.")
    role: Optional[Role] = Field(default=None, description="New role.")

    @model_validator(mode="after")
    def require_a_change(self):
        if self.email is None and self.password is None and self.role is None:
            raise ValueError("At least one of email, password or role is required")
        return self
