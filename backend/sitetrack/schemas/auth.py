from __future__ import annotations

from pydantic import AliasChoices, BaseModel, Field

from sitetrack.schemas.employee import EmployeeOut


class LoginRequest(BaseModel):
    # Email or phone number.
    identifier: str = Field(min_length=1, validation_alias=AliasChoices("identifier", "email", "phone"))
    password: str = Field(min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    employee: EmployeeOut
