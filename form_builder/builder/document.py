from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from form_builder.builder.errors import BuilderError

FIELD_TYPES = (
    "text",
    "textarea",
    "email",
    "phone",
    "select",
    "radio",
    "checkbox",
    "date",
    "time",
    "address",
    "file",
)
OPTION_FIELD_TYPES = {"select", "radio"}

PURPOSE_GENERAL = "general"
PURPOSE_CUSTOMER_BOOKING = "customer_booking"
PURPOSE_CUSTOMER_QUOTE = "customer_quote"
PURPOSE_REMINDER_TASK_LIST = "reminder_task_list"
FORM_PURPOSES = (
    PURPOSE_GENERAL,
    PURPOSE_CUSTOMER_BOOKING,
    PURPOSE_CUSTOMER_QUOTE,
    PURPOSE_REMINDER_TASK_LIST,
)


def new_id() -> str:
    return str(uuid4())


def column_width(column_count: int) -> str:
    width = 100 / column_count
    if width.is_integer():
        return f"{int(width)}%"
    return f"{width!r}%"


@dataclass(frozen=True)
class GlobalStyles:
    logo_url: str = ""
    background_color: str = "#FFFFFF"
    primary_color: str = "#2563EB"
    border_color: str = "#D1D5DB"
    label_color: str = "#111827"
    border_radius: str = "0.375rem"
    global_border_width: int = 1
    global_border_style: str = "solid"


@dataclass(frozen=True)
class FieldStyles:
    label_color: str = "#111827"
    input_text_color: str = "#111827"
    input_background_color: str = "#FFFFFF"
    input_border_color: str = "#D1D5DB"
    input_border_radius: str = "0.375rem"
    input_border_width: int = 1
    input_border_style: str = "solid"


@dataclass(frozen=True)
class ConditionalRule:
    watched_field_name: str
    required_value: str


@dataclass(frozen=True)
class Field:
    id: str
    name: str
    label: str
    type: str = "text"
    options: tuple[str, ...] = ()
    required: bool = False
    placeholder: str = ""
    conditional: ConditionalRule | None = None
    mapping: str | None = None
    styles: FieldStyles = dataclasses.field(default_factory=FieldStyles)


@dataclass(frozen=True)
class Column:
    id: str
    width: str
    fields: tuple[Field, ...] = ()


@dataclass(frozen=True)
class Row:
    id: str
    columns: tuple[Column, ...] = ()


@dataclass(frozen=True)
class FormDocument:
    name: str = ""
    purpose: str = PURPOSE_GENERAL
    styles: GlobalStyles = dataclasses.field(default_factory=GlobalStyles)
    rows: tuple[Row, ...] = ()


@dataclass(frozen=True)
class FieldLocation:
    row_id: str
    column_id: str
    index: int


@dataclass(frozen=True)
class EditResult:
    """Outcome of one structural edit.

    ``document`` is always a valid snapshot: the new one when ``applied`` is
    true, the untouched input otherwise. ``error`` explains a refused edit and
    ``value`` carries an operation-specific payload (removed field, new row id).
    """

    document: FormDocument
    applied: bool
    error: BuilderError | None = None
    value: Any = None

    @classmethod
    def ok(cls, document: FormDocument, value: Any = None) -> "EditResult":
        return cls(document=document, applied=True, value=value)

    @classmethod
    def refused(cls, document: FormDocument, error: BuilderError | None = None) -> "EditResult":
        return cls(document=document, applied=False, error=error)
