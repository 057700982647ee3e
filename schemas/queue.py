from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field


class JoinQueueRequest(BaseModel):
    phone: Optional[str] = None
    application_id: Optional[str] = Field(None, alias="applicationId")
    package_id: Optional[str] = Field(None, alias="packageId")

    model_config = {"populate_by_name": True}


class EndCallRequest(BaseModel):
    outcome: Literal["approved", "denied", "follow_up"]
    notes: Optional[str] = None
