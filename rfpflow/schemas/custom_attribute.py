import re
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator
from datetime import datetime
from ..models.custom_attribute import AttributeType

ATTRIBUTE_NAME_PATTERN = r"^[a-z][a-z0-9_]*$"


class ValidationRules(BaseModel):
    """Bounds for numeric attributes and a full-match pattern for any value"""
    min: Optional[float] = None
    max: Optional[float] = None
    pattern: Optional[str] = Field(None, max_length=200)

    @field_validator("pattern")
    @classmethod
    def _compiles(cls, v):
        if v is not None:
            try:
                re.compile(v)
            except re.error as e:
                raise ValueError(f"Invalid pattern: {e}")
        return v

    @model_validator(mode="after")
    def _min_not_above_max(self):
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError("min cannot be greater than max")
        return self


class CustomAttributeBase(BaseModel):
    label: str = Field(..., min_length=2, max_length=100)
    type: AttributeType
    description: Optional[str] = None
    is_required: bool = False
    default_value: Optional[str] = Field(None, max_length=500)
    options: List[str] = []
    validation_rules: ValidationRules = ValidationRules()


class CustomAttributeCreate(CustomAttributeBase):
    name: str = Field(..., min_length=2, max_length=50, pattern=ATTRIBUTE_NAME_PATTERN)


class CustomAttributeUpdate(BaseModel):
    label: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_required: Optional[bool] = None
    default_value: Optional[str] = Field(None, max_length=500)
    options: Optional[List[str]] = None
    validation_rules: Optional[ValidationRules] = None
    display_order: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None

    @field_validator("label", "is_required", "display_order", "is_active")
    @classmethod
    def _not_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class CustomAttribute(CustomAttributeBase):
    id: str
    organization_id: str
    name: str
    display_order: int
    is_active: bool
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    options: Optional[List[str]] = None
    validation_rules: Optional[Dict[str, Any]] = None

    class Config:
        from_attributes = True


class AttributeValueIn(BaseModel):
    attribute_id: str
    value: Optional[str] = Field(None, max_length=1000)


class AttributeValuesUpdate(BaseModel):
    values: List[AttributeValueIn]


class AttributeValue(BaseModel):
    attribute_id: str
    name: str
    label: str
    type: AttributeType
    value: Optional[str] = None
