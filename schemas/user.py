from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

RoleName = Literal["applicant", "reviewer", "agent", "admin", "owner", "doctor"]


class UserRegister(BaseModel):
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    first_name: str = Field(..., alias="firstName", min_length=1)
    last_name: str = Field(..., alias="lastName", min_length=1)
    phone: Optional[str] = None
    state: Optional[str] = None

    model_config = {"populate_by_name": True}


class UserCreate(UserRegister):
    """Staff-created account with an explicit role."""
    role: RoleName = "applicant"


class UserUpdate(BaseModel):
    role: Optional[RoleName] = None
    is_active: Optional[bool] = Field(None, alias="isActive")
    phone: Optional[str] = None
    state: Optional[str] = None

    model_config = {"populate_by_name": True}


class UserNoteCreate(BaseModel):
    content: str = ""
