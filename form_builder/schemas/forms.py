from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from form_builder.builder.document import FIELD_TYPES, FORM_PURPOSES


class FieldStyleSet(BaseModel):
    model_config = ConfigDict(extra="ignore")

    labelColor: Optional[str] = None
    inputTextColor: Optional[str] = None
    inputBackgroundColor: Optional[str] = None
    inputBorderColor: Optional[str] = None
    inputBorderRadius: Optional[str] = None
    inputBorderWidth: Optional[int] = None
    inputBorderStyle: Optional[str] = None


class GlobalStyleSet(BaseModel):
    model_config = ConfigDict(extra="ignore")

    logoUrl: Optional[str] = None
    backgroundColor: Optional[str] = None
    primaryColor: Optional[str] = None
    borderColor: Optional[str] = None
    labelColor: Optional[str] = None
    borderRadius: Optional[str] = None
    globalBorderWidth: Optional[int] = None
    globalBorderStyle: Optional[str] = None


class ConditionalSchema(BaseModel):
    field: str = ""
    value: str = ""

    @field_validator("field", "value", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> str:
        return "" if value is None else str(value)


class FieldSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    label: str = ""
    name: str
    type: str = "text"
    placeholder: Optional[str] = None
    required: bool = False
    options: List[str] = Field(default_factory=list)
    conditional: Optional[ConditionalSchema] = None
    mapping: Optional[str] = None
    styles: Optional[FieldStyleSet] = None

    @field_validator("type")
    @classmethod
    def validate_type(cls, value: str) -> str:
        if value not in FIELD_TYPES:
            raise ValueError("type must be one of: " + ", ".join(FIELD_TYPES))
        return value

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        name = str(value or "").strip()
        if not name:
            raise ValueError("field name must not be empty")
        return name


class ColumnSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    width: Optional[str] = None
    fields: List[FieldSchema] = Field(default_factory=list)


class RowSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    columns: List[ColumnSchema] = Field(default_factory=list)


class FormSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    styles: Optional[GlobalStyleSet] = None


class SchemaDoc(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = ""
    purpose: str = "general"
    styles: Optional[GlobalStyleSet] = None
    settings: Optional[FormSettings] = None
    rows: List[RowSchema] = Field(default_factory=list, alias="schema")

    @field_validator("purpose", mode="before")
    @classmethod
    def validate_purpose(cls, value: Any) -> str:
        normalized = str(value or "general").strip()
        if normalized not in FORM_PURPOSES:
            raise ValueError("purpose must be one of: " + ", ".join(FORM_PURPOSES))
        return normalized


class FormSubmissionIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    form_data: Dict[str, Any] = Field(default_factory=dict, alias="formData")
    associated_lead_id: Optional[str] = Field(default=None, alias="associatedLeadId")
