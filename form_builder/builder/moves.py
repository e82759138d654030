from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Union
from uuid import uuid4

from form_builder.builder.document import (
    FIELD_TYPES,
    Column,
    ConditionalRule,
    EditResult,
    Field,
    FieldStyles,
    FormDocument,
    Row,
    column_width,
    new_id,
)
from form_builder.builder.errors import ValidationError
from form_builder.builder.tree import (
    append_row,
    clamp_index,
    field_names,
    find_column,
    find_field,
    get_field,
    insert_field,
    map_column,
    move_row,
    row_index,
    structural_noop,
)

logger = logging.getLogger(__name__)

TASK_ITEM_TYPE = "task_item"

PALETTE_LABELS = {
    "text": "Text Input",
    "textarea": "Text Area",
    "email": "Email",
    "phone": "Phone",
    "select": "Dropdown",
    "radio": "Radio Group",
    "checkbox": "Checkbox",
    "date": "Date",
    "time": "Time",
    "address": "Address (Autocomplete)",
    "file": "File Upload",
    TASK_ITEM_TYPE: "Task Item",
}


@dataclass(frozen=True)
class NewFieldType:
    field_type: str
    label: str | None = None


@dataclass(frozen=True)
class ExistingField:
    field_id: str


@dataclass(frozen=True)
class ExistingRow:
    row_id: str


DragPayload = Union[NewFieldType, ExistingField, ExistingRow]


@dataclass(frozen=True)
class ColumnTarget:
    column_id: str
    index: int | None = None


@dataclass(frozen=True)
class RowTarget:
    row_id: str


@dataclass(frozen=True)
class CanvasTarget:
    pass


DropTarget = Union[ColumnTarget, RowTarget, CanvasTarget]


@dataclass(frozen=True)
class HoverRect:
    top: float
    bottom: float

    @property
    def middle_offset(self) -> float:
        return (self.bottom - self.top) / 2


class GeometryTable(dict):
    """Renderer-owned hover rectangles keyed by field or row id.

    Lives next to a drag, never inside a document.
    """

    def measure(self, item_id: str, top: float, bottom: float) -> HoverRect:
        rect = HoverRect(top=float(top), bottom=float(bottom))
        self[item_id] = rect
        return rect


def should_reorder(drag_index: int, hover_index: int, pointer_y: float, rect: HoverRect) -> bool:
    if drag_index == hover_index:
        return False
    pointer_offset = pointer_y - rect.top
    if drag_index < hover_index and pointer_offset < rect.middle_offset:
        return False
    if drag_index > hover_index and pointer_offset > rect.middle_offset:
        return False
    return True


def generate_field_name(prefix: str, taken: Iterable[str] = ()) -> str:
    taken = set(taken)
    base = str(prefix or "field").strip().lower().replace(" ", "_")
    while True:
        name = f"{base}_{uuid4().hex[:4]}"
        if name not in taken:
            return name


def new_field(field_type: str, label: str | None = None, taken: Iterable[str] = ()) -> Field:
    return Field(
        id=new_id(),
        name=generate_field_name(field_type, taken),
        label=label or PALETTE_LABELS.get(field_type, field_type),
        type=field_type,
        styles=FieldStyles(),
    )


def build_task_item_row(taken: Iterable[str] = ()) -> Row:
    taken = set(taken)
    while True:
        task_id = new_id()
        prefix = f"task_{task_id}"
        names = {f"{prefix}_description", f"{prefix}_completed", f"{prefix}_reason"}
        if not names & taken:
            break

    description = Field(
        id=new_id(),
        name=f"{prefix}_description",
        label="Task Description",
        type="text",
        placeholder="Enter task description",
        required=True,
        mapping=f"task_item.{task_id}.description",
    )
    completed = Field(
        id=new_id(),
        name=f"{prefix}_completed",
        label="Completed?",
        type="radio",
        options=("Yes", "No"),
        required=True,
        mapping=f"task_item.{task_id}.completed",
    )
    reason = Field(
        id=new_id(),
        name=f"{prefix}_reason",
        label="Reason if not completed",
        type="textarea",
        placeholder="Explain why task was not completed",
        required=True,
        conditional=ConditionalRule(watched_field_name=completed.name, required_value="No"),
        mapping=f"task_item.{task_id}.reason",
    )
    column = Column(id=new_id(), width=column_width(1), fields=(description, completed, reason))
    return Row(id=new_id(), columns=(column,))


def relocate_field(document: FormDocument, field_id: str, column_id: str, index: int | None = None) -> EditResult:
    """Detach ``field_id`` and insert it into ``column_id`` in one snapshot.

    ``index`` counts positions in the destination column once the field has
    left its source, so moving within one column to ``i`` leaves the field
    at ``i``.
    """
    source = find_field(document, field_id)
    if source is None:
        return structural_noop(document, "relocate_field", field_id, "Field not found.")
    if find_column(document, column_id) is None:
        return structural_noop(document, "relocate_field", column_id, "Column not found.")

    field = get_field(document, field_id)
    detached = map_column(
        document,
        source.column_id,
        lambda column: dataclasses.replace(column, fields=tuple(f for f in column.fields if f.id != field_id)),
    )

    def _attach(column: Column) -> Column:
        fields = list(column.fields)
        fields.insert(clamp_index(index, len(fields)), field)
        return dataclasses.replace(column, fields=tuple(fields))

    moved = map_column(detached, column_id, _attach)
    if moved == document:
        return EditResult.refused(document)
    return EditResult.ok(moved, value=field_id)


def _new_task_item(document: FormDocument) -> EditResult:
    return append_row(document, build_task_item_row(field_names(document)))


def _palette_field(document: FormDocument, payload: NewFieldType) -> Field | None:
    if payload.field_type not in FIELD_TYPES:
        return None
    return new_field(payload.field_type, payload.label, field_names(document))


def _unknown_type(document: FormDocument, payload: NewFieldType) -> EditResult:
    return EditResult.refused(document, ValidationError(f'Unsupported field type "{payload.field_type}".'))


def _drop_on_column(document: FormDocument, payload: DragPayload, target: ColumnTarget) -> EditResult:
    if isinstance(payload, NewFieldType):
        if payload.field_type == TASK_ITEM_TYPE:
            return _new_task_item(document)
        if find_column(document, target.column_id) is None:
            return structural_noop(document, "drop_on_column", target.column_id, "Column not found.")
        field = _palette_field(document, payload)
        if field is None:
            return _unknown_type(document, payload)
        return insert_field(document, target.column_id, target.index, field)
    if isinstance(payload, ExistingField):
        return relocate_field(document, payload.field_id, target.column_id, target.index)
    return EditResult.refused(document)


def _drop_on_row(document: FormDocument, payload: DragPayload, target: RowTarget) -> EditResult:
    index = row_index(document, target.row_id)
    if index is None:
        return structural_noop(document, "drop_on_row", target.row_id, "Row not found.")
    if isinstance(payload, ExistingRow):
        from_index = row_index(document, payload.row_id)
        if from_index is None:
            return structural_noop(document, "drop_on_row", payload.row_id, "Row not found.")
        return move_row(document, from_index, index)
    row = document.rows[index]
    if not row.columns:
        return structural_noop(document, "drop_on_row", target.row_id, "Row has no columns.")
    first_column = row.columns[0]
    if isinstance(payload, ExistingField):
        location = find_field(document, payload.field_id)
        if location is not None and location.column_id == first_column.id:
            return EditResult.refused(document)
    return _drop_on_column(document, payload, ColumnTarget(column_id=first_column.id))


def _drop_on_canvas(document: FormDocument, payload: DragPayload, target: CanvasTarget) -> EditResult:
    if isinstance(payload, NewFieldType):
        if payload.field_type == TASK_ITEM_TYPE:
            return _new_task_item(document)
        field = _palette_field(document, payload)
        if field is None:
            return _unknown_type(document, payload)
        column = Column(id=new_id(), width=column_width(1), fields=(field,))
        return append_row(document, Row(id=new_id(), columns=(column,)))
    if isinstance(payload, ExistingRow):
        from_index = row_index(document, payload.row_id)
        if from_index is None:
            return structural_noop(document, "drop_on_canvas", payload.row_id, "Row not found.")
        return move_row(document, from_index, len(document.rows) - 1)
    return EditResult.refused(document)


_DROP_HANDLERS: dict[type, Callable[[FormDocument, DragPayload, DropTarget], EditResult]] = {
    ColumnTarget: _drop_on_column,
    RowTarget: _drop_on_row,
    CanvasTarget: _drop_on_canvas,
}


def apply_drop(document: FormDocument, payload: DragPayload, target: DropTarget | None) -> EditResult:
    if target is None:
        return EditResult.refused(document)
    handler = _DROP_HANDLERS.get(type(target))
    if handler is None:
        raise TypeError(f"Unsupported drop target: {target!r}")
    return handler(document, payload, target)


class DragPhase(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    HOVERING = "hovering"
    DROPPED = "dropped"
    CANCELLED = "cancelled"


class DragSession:
    """One pointer drag: ``idle -> dragging -> (hovering)* -> dropped|cancelled -> idle``.

    Hover calls only record a pending target; the document is touched once,
    by :meth:`drop`.
    """

    def __init__(self, geometry: GeometryTable | None = None):
        self.geometry = geometry if geometry is not None else GeometryTable()
        self.phase = DragPhase.IDLE
        self.last_outcome: DragPhase | None = None
        self.payload: DragPayload | None = None
        self.pending_target: DropTarget | None = None
        self._drag_index: int | None = None
        self._drag_column_id: str | None = None

    @property
    def active(self) -> bool:
        return self.phase in (DragPhase.DRAGGING, DragPhase.HOVERING)

    def begin(self, document: FormDocument, payload: DragPayload) -> None:
        if self.active:
            raise RuntimeError("A drag is already in progress")
        self.payload = payload
        self.pending_target = None
        self._drag_index = None
        self._drag_column_id = None
        if isinstance(payload, ExistingField):
            location = find_field(document, payload.field_id)
            if location is not None:
                self._drag_index = location.index
                self._drag_column_id = location.column_id
        elif isinstance(payload, ExistingRow):
            self._drag_index = row_index(document, payload.row_id)
        self.phase = DragPhase.DRAGGING

    def hover_field(self, document: FormDocument, field_id: str, pointer_y: float) -> DropTarget | None:
        if not self.active or isinstance(self.payload, ExistingRow):
            return self.pending_target
        hovered = find_field(document, field_id)
        rect = self.geometry.get(field_id)
        if hovered is None or rect is None:
            return self.pending_target
        if isinstance(self.payload, ExistingField) and hovered.column_id == self._drag_column_id:
            if self.payload.field_id == field_id:
                return self.pending_target
            if should_reorder(self._drag_index, hovered.index, pointer_y, rect):
                self._drag_index = hovered.index
                self._set_pending(ColumnTarget(column_id=hovered.column_id, index=hovered.index))
            return self.pending_target
        # Entering another container: insert before or after the hovered item.
        index = hovered.index if pointer_y - rect.top < rect.middle_offset else hovered.index + 1
        self._set_pending(ColumnTarget(column_id=hovered.column_id, index=index))
        return self.pending_target

    def hover_row(self, document: FormDocument, row_id: str, pointer_y: float) -> DropTarget | None:
        if not self.active or not isinstance(self.payload, ExistingRow):
            return self.pending_target
        hover_index = row_index(document, row_id)
        rect = self.geometry.get(row_id)
        if hover_index is None or rect is None or self._drag_index is None:
            return self.pending_target
        if should_reorder(self._drag_index, hover_index, pointer_y, rect):
            self._drag_index = hover_index
            self._set_pending(RowTarget(row_id=row_id))
        return self.pending_target

    def hover_target(self, target: DropTarget) -> DropTarget:
        if self.active:
            self._set_pending(target)
        return self.pending_target

    def _set_pending(self, target: DropTarget) -> None:
        self.pending_target = target
        self.phase = DragPhase.HOVERING

    def drop(self, document: FormDocument, target: DropTarget | None = None) -> EditResult:
        if not self.active:
            return EditResult.refused(document)
        target = target if target is not None else self.pending_target
        if target is None:
            self.cancel()
            return EditResult.refused(document)
        result = apply_drop(document, self.payload, target)
        self._finish(DragPhase.DROPPED)
        return result

    def cancel(self) -> None:
        if self.active:
            self._finish(DragPhase.CANCELLED)

    def _finish(self, outcome: DragPhase) -> None:
        logger.debug("drag finished outcome=%s payload=%s", outcome.value, self.payload)
        self.last_outcome = outcome
        self.phase = DragPhase.IDLE
        self.payload = None
        self.pending_target = None
        self._drag_index = None
        self._drag_column_id = None
