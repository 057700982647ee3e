from __future__ import annotations

from typing import Literal, Optional, Union

from pydantic import BaseModel, Field

# Package-defined fields arrive as an open mapping of primitives
FormValue = Union[bool, int, float, str, None]


class ApplicationCreate(BaseModel):
    package_id: str = Field(..., alias="packageId")
    form_data: dict[str, FormValue] = Field(default_factory=dict, alias="formData")
    payment_token: Optional[str] = Field(None, alias="paymentToken")

    model_config = {"populate_by_name": True}


class ProcessPaymentRequest(BaseModel):
    """Omit paymentToken to record a manual (offline) payment."""
    payment_token: Optional[str] = Field(None, alias="paymentToken")

    model_config = {"populate_by_name": True}


class SendToDoctorRequest(BaseModel):
    doctor_id: Optional[str] = Field(None, alias="doctorId")

    model_config = {"populate_by_name": True}


class ReviewerDecisionRequest(BaseModel):
    approved: bool
    notes: Optional[str] = None


class CompleteWorkRequest(BaseModel):
    notes: str = ""


class VerifyRequest(BaseModel):
    approved: bool
    notes: Optional[str] = None


class DoctorDecisionRequest(BaseModel):
    decision: Literal["approved", "denied"]
    notes: Optional[str] = None
