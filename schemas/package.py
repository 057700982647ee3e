from __future__ import annotations

from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field


class FormFieldSchema(BaseModel):
    name: str
    type: Literal["text", "textarea", "email", "phone", "number", "date", "select", "checkbox"] = "text"
    required: bool = False
    options: Optional[list[str]] = None


class PackageCreate(BaseModel):
    name: str
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    state: Optional[str] = None
    form_fields: list[FormFieldSchema] = Field(default_factory=list, alias="formFields")
    requires_level2_interaction: bool = Field(False, alias="requiresLevel2Interaction")
    is_active: bool = Field(True, alias="isActive")
    sort_order: int = Field(0, alias="sortOrder")

    model_config = {"populate_by_name": True}


class PackageUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    state: Optional[str] = None
    form_fields: Optional[list[FormFieldSchema]] = Field(None, alias="formFields")
    requires_level2_interaction: Optional[bool] = Field(None, alias="requiresLevel2Interaction")
    is_active: Optional[bool] = Field(None, alias="isActive")
    sort_order: Optional[int] = Field(None, alias="sortOrder")

    model_config = {"populate_by_name": True}
