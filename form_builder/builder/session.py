from __future__ import annotations

import dataclasses
import logging
import warnings
from dataclasses import dataclass
from typing import Any, Mapping
from uuid import uuid4

from starlette.concurrency import run_in_threadpool

from form_builder.builder import layout, tree
from form_builder.builder.codec import GLOBAL_STYLE_KEYS, coerce_style_changes, deserialize, serialize
from form_builder.builder.conditions import dangling_references
from form_builder.builder.document import FORM_PURPOSES, EditResult, Field, FormDocument
from form_builder.builder.errors import (
    DanglingReferenceWarning,
    PersistenceError,
    StructuralError,
    ValidationError,
)
from form_builder.builder.moves import DragPayload, DragSession, DropTarget, GeometryTable
from form_builder.core.config import settings
from form_builder.schemas.forms import GlobalStyleSet
from form_builder.services.form_store import FormStore

logger = logging.getLogger(__name__)

NOTICE_SUCCESS = "success"
NOTICE_WARNING = "warning"
NOTICE_ERROR = "error"


@dataclass
class Notice:
    level: str
    message: str
    id: str = dataclasses.field(default_factory=lambda: uuid4().hex)


class EditorSession:
    """Single-owner editing session around one form document.

    Every edit runs synchronously to completion and swaps in a new immutable
    snapshot; the previous snapshot goes onto the undo stack. Save and load
    are the only awaitable steps.
    """

    def __init__(self, store: FormStore, *, history_limit: int | None = None):
        self.store = store
        self.document = FormDocument()
        self.form_id: str | None = None
        self.notices: list[Notice] = []
        self.form_error: str | None = None
        self.geometry = GeometryTable()
        self.drag = DragSession(self.geometry)
        self._history_limit = max(int(history_limit or settings.FORM_HISTORY_LIMIT), 1)
        self._undo: list[FormDocument] = []
        self._redo: list[FormDocument] = []
        self._load_seq = 0
        self._saving = False

    # history

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def saving(self) -> bool:
        return self._saving

    def _commit(self, result: EditResult) -> EditResult:
        if result.applied:
            self._undo.append(self.document)
            del self._undo[: -self._history_limit]
            self._redo.clear()
            self.document = result.document
            self.form_error = None
        elif isinstance(result.error, ValidationError):
            self.form_error = str(result.error)
        elif isinstance(result.error, StructuralError):
            logger.debug("edit absorbed: %s", result.error)
        return result

    def _replace(self, document: FormDocument) -> EditResult:
        if document == self.document:
            return EditResult.refused(self.document)
        return self._commit(EditResult.ok(document))

    def undo(self) -> bool:
        if not self._undo:
            return False
        self._redo.append(self.document)
        self.document = self._undo.pop()
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        self._undo.append(self.document)
        self.document = self._redo.pop()
        return True

    def _reset(self, document: FormDocument, form_id: str | None) -> None:
        self.drag.cancel()
        self.geometry.clear()
        self.document = document
        self.form_id = form_id
        self.form_error = None
        self._undo.clear()
        self._redo.clear()

    # document-level metadata

    def new_form(self) -> None:
        self._load_seq += 1
        self._reset(FormDocument(), None)
        self.notices.clear()

    def set_name(self, name: str) -> EditResult:
        return self._replace(dataclasses.replace(self.document, name=str(name or "")))

    def set_purpose(self, purpose: str) -> EditResult:
        if purpose not in FORM_PURPOSES:
            return self._commit(EditResult.refused(self.document, ValidationError(f'Unknown form purpose "{purpose}".')))
        return self._replace(dataclasses.replace(self.document, purpose=purpose))

    def set_global_styles(self, **changes: Any) -> EditResult:
        try:
            coerced = coerce_style_changes(changes, GLOBAL_STYLE_KEYS, GlobalStyleSet)
        except ValidationError as exc:
            return self._commit(EditResult.refused(self.document, exc))
        styles = dataclasses.replace(self.document.styles, **coerced)
        return self._replace(dataclasses.replace(self.document, styles=styles))

    # structure

    def add_row(self, column_count: int = 1) -> EditResult:
        return self._commit(tree.add_row(self.document, column_count))

    def remove_row(self, row_id: str) -> EditResult:
        return self._commit(tree.remove_row(self.document, row_id))

    def move_row(self, from_index: int, to_index: int) -> EditResult:
        return self._commit(tree.move_row(self.document, from_index, to_index))

    def change_column_count(self, row_id: str, column_count: int) -> EditResult:
        return self._commit(layout.change_column_count(self.document, row_id, column_count))

    def insert_field(self, column_id: str, index: int | None, field: Field) -> EditResult:
        return self._commit(tree.insert_field(self.document, column_id, index, field))

    def remove_field(self, field_id: str) -> EditResult:
        return self._commit(tree.remove_field(self.document, field_id))

    def update_field(self, field_id: str, patch: Mapping[str, Any]) -> EditResult:
        return self._commit(tree.update_field(self.document, field_id, patch))

    # drag and drop

    def begin_drag(self, payload: DragPayload) -> DragSession:
        self.drag.begin(self.document, payload)
        return self.drag

    def hover_field(self, field_id: str, pointer_y: float) -> DropTarget | None:
        return self.drag.hover_field(self.document, field_id, pointer_y)

    def hover_row(self, row_id: str, pointer_y: float) -> DropTarget | None:
        return self.drag.hover_row(self.document, row_id, pointer_y)

    def hover_target(self, target: DropTarget) -> DropTarget | None:
        return self.drag.hover_target(target)

    def drop(self, target: DropTarget | None = None) -> EditResult:
        return self._commit(self.drag.drop(self.document, target))

    def cancel_drag(self) -> None:
        self.drag.cancel()

    # notices

    def _notify(self, level: str, message: str) -> Notice:
        notice = Notice(level=level, message=message)
        self.notices.append(notice)
        return notice

    def dismiss(self, notice_id: str) -> None:
        self.notices = [notice for notice in self.notices if notice.id != notice_id]

    # persistence

    def preview_definition(self) -> dict[str, Any]:
        return serialize(self.document)

    async def save(self) -> str | None:
        if self._saving:
            self._notify(NOTICE_WARNING, "A save is already in progress.")
            return None
        if not self.document.name.strip():
            self.form_error = "Form name is required."
            return None

        dangling = dangling_references(self.document)
        for ref in dangling:
            warnings.warn(
                f'Field "{ref.field_name}" depends on missing field "{ref.watched_field_name}"',
                DanglingReferenceWarning,
                stacklevel=2,
            )

        payload = serialize(self.document)
        self._saving = True
        try:
            form_id = await run_in_threadpool(self.store.save, payload, self.form_id)
        except PersistenceError as exc:
            logger.warning("form save failed form_id=%s error=%s", self.form_id or "-", exc)
            self._notify(NOTICE_ERROR, f"Failed to save form: {exc}")
            return None
        finally:
            self._saving = False

        updated = self.form_id is not None
        self.form_id = form_id
        self.form_error = None
        self._notify(NOTICE_SUCCESS, "Form updated successfully!" if updated else "Form saved successfully!")
        return form_id

    async def load(self, form_id: str) -> bool:
        self._load_seq += 1
        token = self._load_seq
        try:
            raw = await run_in_threadpool(self.store.load, form_id)
            document = deserialize(raw)
        except (PersistenceError, ValidationError) as exc:
            if token != self._load_seq:
                return False
            logger.warning("form load failed form_id=%s error=%s", form_id, exc)
            self._notify(NOTICE_ERROR, f"Failed to load form: {exc}")
            return False

        if token != self._load_seq:
            logger.debug("stale form load discarded form_id=%s token=%s latest=%s", form_id, token, self._load_seq)
            return False
        self._reset(document, form_id)
        self._notify(NOTICE_SUCCESS, "Form loaded successfully!")
        return True
