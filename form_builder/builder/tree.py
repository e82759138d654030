from __future__ import annotations

import dataclasses
import logging
from typing import Any, Callable, Iterator, Mapping

from form_builder.builder.document import (
    FIELD_TYPES,
    Column,
    ConditionalRule,
    EditResult,
    Field,
    FieldLocation,
    FieldStyles,
    FormDocument,
    Row,
    column_width,
    new_id,
)
from form_builder.builder.codec import FIELD_STYLE_KEYS, coerce_style_changes
from form_builder.builder.errors import StructuralError, ValidationError
from form_builder.schemas.forms import FieldStyleSet

logger = logging.getLogger(__name__)

PATCHABLE_ATTRIBUTES = {
    "name",
    "label",
    "type",
    "options",
    "required",
    "placeholder",
    "conditional",
    "mapping",
    "styles",
}


def iter_fields(document: FormDocument) -> Iterator[tuple[Row, Column, Field]]:
    for row in document.rows:
        for column in row.columns:
            for field in column.fields:
                yield row, column, field


def field_names(document: FormDocument) -> set[str]:
    return {field.name for _, _, field in iter_fields(document)}


def field_ids(document: FormDocument) -> set[str]:
    return {field.id for _, _, field in iter_fields(document)}


def field_count(document: FormDocument) -> int:
    return sum(1 for _ in iter_fields(document))


def find_field(document: FormDocument, field_id: str) -> FieldLocation | None:
    for row in document.rows:
        for column in row.columns:
            for index, field in enumerate(column.fields):
                if field.id == field_id:
                    return FieldLocation(row_id=row.id, column_id=column.id, index=index)
    return None


def get_field(document: FormDocument, field_id: str) -> Field | None:
    for _, _, field in iter_fields(document):
        if field.id == field_id:
            return field
    return None


def find_column(document: FormDocument, column_id: str) -> tuple[Row, Column] | None:
    for row in document.rows:
        for column in row.columns:
            if column.id == column_id:
                return row, column
    return None


def row_index(document: FormDocument, row_id: str) -> int | None:
    for index, row in enumerate(document.rows):
        if row.id == row_id:
            return index
    return None


def clamp_index(index: int | None, length: int) -> int:
    if index is None:
        return length
    return max(0, min(int(index), length))


def structural_noop(document: FormDocument, op: str, target: str, message: str) -> EditResult:
    logger.debug("structural no-op op=%s target=%s", op, target)
    return EditResult.refused(document, StructuralError(message))


def map_column(
    document: FormDocument,
    column_id: str,
    change: Callable[[Column], Column],
) -> FormDocument:
    rows = []
    for row in document.rows:
        if any(column.id == column_id for column in row.columns):
            row = dataclasses.replace(
                row,
                columns=tuple(change(column) if column.id == column_id else column for column in row.columns),
            )
        rows.append(row)
    return dataclasses.replace(document, rows=tuple(rows))


def map_row(document: FormDocument, row_id: str, change: Callable[[Row], Row]) -> FormDocument:
    return dataclasses.replace(
        document,
        rows=tuple(change(row) if row.id == row_id else row for row in document.rows),
    )


def _check_new_fields(document: FormDocument, fields: list[Field] | tuple[Field, ...]) -> ValidationError | None:
    ids = field_ids(document)
    names = field_names(document)
    for field in fields:
        if not str(field.name or "").strip():
            return ValidationError("Field name must not be empty.")
        if field.id in ids:
            return ValidationError(f'Field id "{field.id}" already exists in the form.')
        if field.name in names:
            return ValidationError(f'A field named "{field.name}" already exists in the form.')
        ids.add(field.id)
        names.add(field.name)
    return None


def insert_field(document: FormDocument, column_id: str, index: int | None, field: Field) -> EditResult:
    if find_column(document, column_id) is None:
        return structural_noop(document, "insert_field", column_id, "Column not found.")
    problem = _check_new_fields(document, [field])
    if problem is not None:
        return EditResult.refused(document, problem)

    def _insert(column: Column) -> Column:
        fields = list(column.fields)
        fields.insert(clamp_index(index, len(fields)), field)
        return dataclasses.replace(column, fields=tuple(fields))

    return EditResult.ok(map_column(document, column_id, _insert), value=field.id)


def remove_field(document: FormDocument, field_id: str) -> EditResult:
    location = find_field(document, field_id)
    if location is None:
        return structural_noop(document, "remove_field", field_id, "Field not found.")
    removed = get_field(document, field_id)

    def _detach(column: Column) -> Column:
        return dataclasses.replace(column, fields=tuple(f for f in column.fields if f.id != field_id))

    return EditResult.ok(map_column(document, location.column_id, _detach), value=removed)


def _coerce_conditional(raw: Any) -> ConditionalRule | None:
    if raw is None or isinstance(raw, ConditionalRule):
        return raw
    if isinstance(raw, Mapping):
        watched = raw.get("field", raw.get("watched_field_name"))
        value = raw.get("value", raw.get("required_value"))
        return ConditionalRule(
            watched_field_name=str(watched if watched is not None else ""),
            required_value=str(value if value is not None else ""),
        )
    raise ValidationError("Conditional rule must be a mapping with 'field' and 'value'.")


def _coerce_styles(current: FieldStyles, raw: Any) -> FieldStyles:
    if raw is None:
        return FieldStyles()
    if isinstance(raw, FieldStyles):
        return FieldStyles(**coerce_style_changes(dataclasses.asdict(raw), FIELD_STYLE_KEYS, FieldStyleSet))
    if isinstance(raw, Mapping):
        return dataclasses.replace(current, **coerce_style_changes(raw, FIELD_STYLE_KEYS, FieldStyleSet))
    raise ValidationError("Field styles must be a mapping.")


def _coerce_patch(field: Field, patch: Mapping[str, Any]) -> dict[str, Any]:
    unknown = sorted(set(patch) - PATCHABLE_ATTRIBUTES)
    if unknown:
        raise ValidationError("Unsupported field attributes: " + ", ".join(unknown))
    changes: dict[str, Any] = {}
    for key, value in patch.items():
        if key == "name":
            name = str(value or "").strip()
            if not name:
                raise ValidationError("Field name must not be empty.")
            changes["name"] = name
        elif key == "type":
            if value not in FIELD_TYPES:
                raise ValidationError(f'Unsupported field type "{value}".')
            changes["type"] = value
        elif key == "options":
            if value is None:
                value = ()
            if not isinstance(value, (list, tuple)):
                raise ValidationError("Field options must be a list of strings.")
            changes["options"] = tuple(str(option) for option in value)
        elif key == "required":
            changes["required"] = bool(value)
        elif key in ("label", "placeholder"):
            changes[key] = str(value or "")
        elif key == "conditional":
            changes["conditional"] = _coerce_conditional(value)
        elif key == "mapping":
            changes["mapping"] = str(value) if value else None
        elif key == "styles":
            changes["styles"] = _coerce_styles(field.styles, value)
    return changes


def update_field(document: FormDocument, field_id: str, patch: Mapping[str, Any]) -> EditResult:
    location = find_field(document, field_id)
    if location is None:
        return structural_noop(document, "update_field", field_id, "Field not found.")
    current = get_field(document, field_id)
    try:
        changes = _coerce_patch(current, patch)
    except ValidationError as exc:
        return EditResult.refused(document, exc)

    new_name = changes.get("name")
    if new_name is not None and new_name != current.name and new_name in field_names(document):
        logger.debug("rename rejected field=%s name=%s", field_id, new_name)
        return EditResult.refused(document, ValidationError(f'A field named "{new_name}" already exists in the form.'))

    updated = dataclasses.replace(current, **changes)

    def _apply(column: Column) -> Column:
        return dataclasses.replace(column, fields=tuple(updated if f.id == field_id else f for f in column.fields))

    return EditResult.ok(map_column(document, location.column_id, _apply), value=updated)


def new_row(column_count: int = 1) -> Row:
    width = column_width(column_count)
    return Row(id=new_id(), columns=tuple(Column(id=new_id(), width=width) for _ in range(column_count)))


def add_row(document: FormDocument, column_count: int = 1) -> EditResult:
    if int(column_count) < 1:
        return EditResult.refused(document, ValidationError("A row needs at least one column."))
    row = new_row(int(column_count))
    return EditResult.ok(dataclasses.replace(document, rows=document.rows + (row,)), value=row.id)


def append_row(document: FormDocument, row: Row) -> EditResult:
    problem = _check_new_fields(document, [field for column in row.columns for field in column.fields])
    if problem is not None:
        return EditResult.refused(document, problem)
    return EditResult.ok(dataclasses.replace(document, rows=document.rows + (row,)), value=row.id)


def remove_row(document: FormDocument, row_id: str) -> EditResult:
    if row_index(document, row_id) is None:
        return structural_noop(document, "remove_row", row_id, "Row not found.")
    rows = tuple(row for row in document.rows if row.id != row_id)
    return EditResult.ok(dataclasses.replace(document, rows=rows), value=row_id)


def move_row(document: FormDocument, from_index: int, to_index: int) -> EditResult:
    count = len(document.rows)
    if not 0 <= from_index < count:
        return structural_noop(document, "move_row", str(from_index), "Row index out of range.")
    if not 0 <= to_index < count:
        return structural_noop(document, "move_row", str(to_index), "Row index out of range.")
    if from_index == to_index:
        return EditResult.refused(document)
    rows = list(document.rows)
    row = rows.pop(from_index)
    rows.insert(to_index, row)
    return EditResult.ok(dataclasses.replace(document, rows=tuple(rows)), value=row.id)
