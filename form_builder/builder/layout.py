from __future__ import annotations

import dataclasses

from form_builder.builder.document import Column, EditResult, FormDocument, Row, column_width, new_id
from form_builder.builder.errors import ValidationError
from form_builder.builder.tree import map_row, row_index, structural_noop


def relayout_row(row: Row, column_count: int) -> Row:
    # All existing fields land in the first column; the others start empty.
    fields = tuple(field for column in row.columns for field in column.fields)
    width = column_width(column_count)
    columns = [Column(id=new_id(), width=width) for _ in range(column_count)]
    columns[0] = dataclasses.replace(columns[0], fields=fields)
    return dataclasses.replace(row, columns=tuple(columns))


def change_column_count(document: FormDocument, row_id: str, column_count: int) -> EditResult:
    if row_index(document, row_id) is None:
        return structural_noop(document, "change_column_count", row_id, "Row not found.")
    if int(column_count) < 1:
        return EditResult.refused(document, ValidationError("A row needs at least one column."))
    updated = map_row(document, row_id, lambda row: relayout_row(row, int(column_count)))
    return EditResult.ok(updated, value=row_id)
