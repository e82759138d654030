from __future__ import annotations

import dataclasses
import logging
from typing import Any, Mapping

from pydantic import ValidationError as SchemaValidationError

from form_builder.builder.document import (
    Column,
    ConditionalRule,
    Field,
    FieldStyles,
    FormDocument,
    GlobalStyles,
    Row,
    column_width,
    new_id,
)
from form_builder.builder.errors import ValidationError
from form_builder.schemas.forms import FieldSchema, GlobalStyleSet, FieldStyleSet, SchemaDoc

logger = logging.getLogger(__name__)

GLOBAL_STYLE_KEYS = {
    "logo_url": "logoUrl",
    "background_color": "backgroundColor",
    "primary_color": "primaryColor",
    "border_color": "borderColor",
    "label_color": "labelColor",
    "border_radius": "borderRadius",
    "global_border_width": "globalBorderWidth",
    "global_border_style": "globalBorderStyle",
}

FIELD_STYLE_KEYS = {
    "label_color": "labelColor",
    "input_text_color": "inputTextColor",
    "input_background_color": "inputBackgroundColor",
    "input_border_color": "inputBorderColor",
    "input_border_radius": "inputBorderRadius",
    "input_border_width": "inputBorderWidth",
    "input_border_style": "inputBorderStyle",
}


def _styles_out(styles: Any, keys: dict[str, str]) -> dict[str, Any]:
    return {wire: getattr(styles, attr) for attr, wire in keys.items()}


def _styles_in(raw: GlobalStyleSet | FieldStyleSet | None, keys: dict[str, str], defaults: Any) -> Any:
    if raw is None:
        return defaults
    changes = {}
    for attr, wire in keys.items():
        value = getattr(raw, wire)
        if value is not None:
            changes[attr] = value
    return dataclasses.replace(defaults, **changes)


def serialize_field(field: Field) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": field.id,
        "label": field.label,
        "name": field.name,
        "type": field.type,
        "placeholder": field.placeholder,
        "required": field.required,
        "options": list(field.options),
        "styles": _styles_out(field.styles, FIELD_STYLE_KEYS),
    }
    if field.conditional is not None:
        payload["conditional"] = {
            "field": field.conditional.watched_field_name,
            "value": field.conditional.required_value,
        }
    if field.mapping is not None:
        payload["mapping"] = field.mapping
    return payload


def serialize_rows(document: FormDocument) -> list[dict[str, Any]]:
    return [
        {
            "id": row.id,
            "columns": [
                {
                    "id": column.id,
                    "width": column.width,
                    "fields": [serialize_field(field) for field in column.fields],
                }
                for column in row.columns
            ],
        }
        for row in document.rows
    ]


def serialize(document: FormDocument) -> dict[str, Any]:
    return {
        "name": document.name,
        "purpose": document.purpose,
        "styles": _styles_out(document.styles, GLOBAL_STYLE_KEYS),
        "schema": serialize_rows(document),
    }


class _IdAllocator:
    def __init__(self):
        self.seen: set[str] = set()

    def take(self, raw: str | None, kind: str) -> str:
        value = str(raw or "").strip()
        if not value:
            value = new_id()
        elif value in self.seen:
            logger.warning("duplicate %s id replaced id=%s", kind, value)
            value = new_id()
        self.seen.add(value)
        return value


def _field_in(raw: FieldSchema, ids: _IdAllocator) -> Field:
    conditional = None
    if raw.conditional is not None:
        conditional = ConditionalRule(
            watched_field_name=raw.conditional.field,
            required_value=raw.conditional.value,
        )
    return Field(
        id=ids.take(raw.id, "field"),
        name=raw.name,
        label=raw.label or "",
        type=raw.type,
        options=tuple(raw.options or ()),
        required=bool(raw.required),
        placeholder=raw.placeholder or "",
        conditional=conditional,
        mapping=raw.mapping or None,
        styles=_styles_in(raw.styles, FIELD_STYLE_KEYS, FieldStyles()),
    )


def _describe(exc: SchemaValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()
    )


def coerce_style_changes(
    changes: Mapping[str, Any],
    keys: dict[str, str],
    model: type[GlobalStyleSet] | type[FieldStyleSet],
) -> dict[str, Any]:
    """Check snake_case style changes against the wire model.

    Returns the coerced values so an accepted change always serializes to
    something :func:`deserialize` reads back unchanged.
    """
    unknown = sorted(set(changes) - set(keys))
    if unknown:
        raise ValidationError("Unknown style attributes: " + ", ".join(unknown))
    empty = sorted(attr for attr, value in changes.items() if value is None)
    if empty:
        raise ValidationError("Style attributes need a value: " + ", ".join(empty))
    try:
        parsed = model.model_validate({keys[attr]: value for attr, value in changes.items()})
    except SchemaValidationError as exc:
        raise ValidationError(f"Invalid style values: {_describe(exc)}") from exc
    return {attr: getattr(parsed, keys[attr]) for attr in changes}


def parse_schema_doc(schema_doc: SchemaDoc | Mapping[str, Any]) -> SchemaDoc:
    if isinstance(schema_doc, SchemaDoc):
        return schema_doc
    try:
        return SchemaDoc.model_validate(dict(schema_doc or {}))
    except SchemaValidationError as exc:
        raise ValidationError(f"Invalid form schema: {_describe(exc)}") from exc


def deserialize(schema_doc: SchemaDoc | Mapping[str, Any]) -> FormDocument:
    """Hydrate a persisted schema into a :class:`FormDocument`.

    Rows, columns and fields missing an id get a fresh one, column widths are
    recomputed from each row's column count, and field styles are completed
    with defaults. Raises :class:`ValidationError` for a malformed schema or
    duplicate machine names.
    """
    doc = parse_schema_doc(schema_doc)
    global_styles = doc.styles
    if global_styles is None and doc.settings is not None:
        global_styles = doc.settings.styles

    ids = _IdAllocator()
    names: set[str] = set()
    rows = []
    for raw_row in doc.rows:
        row_id = ids.take(raw_row.id, "row")
        width = column_width(len(raw_row.columns)) if raw_row.columns else "100%"
        columns = []
        for raw_column in raw_row.columns:
            column_id = ids.take(raw_column.id, "column")
            fields = []
            for raw_field in raw_column.fields:
                if raw_field.name in names:
                    raise ValidationError(f'Duplicate field name "{raw_field.name}" in form schema.')
                names.add(raw_field.name)
                fields.append(_field_in(raw_field, ids))
            columns.append(Column(id=column_id, width=width, fields=tuple(fields)))
        rows.append(Row(id=row_id, columns=tuple(columns)))

    return FormDocument(
        name=doc.name,
        purpose=doc.purpose,
        styles=_styles_in(global_styles, GLOBAL_STYLE_KEYS, GlobalStyles()),
        rows=tuple(rows),
    )


def normalize(schema_doc: SchemaDoc | Mapping[str, Any]) -> dict[str, Any]:
    return serialize(deserialize(schema_doc))
