from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from form_builder.builder.errors import PersistenceError, ValidationError
from form_builder.db.session import SessionLocal
from form_builder.models.form import Form
from form_builder.services.forms import form_uuid_or_none, schema_doc_of, write_form

_LOG = logging.getLogger("form_builder.store")


class FormStore(Protocol):
    def save(self, schema_doc: Mapping[str, Any], form_id: str | None = None) -> str:
        ...

    def load(self, form_id: str) -> dict[str, Any]:
        ...


class SqlFormStore:
    def __init__(self, session_factory: Callable[[], Session] = SessionLocal, *, actor: str = "system"):
        self.session_factory = session_factory
        self.actor = actor

    def save(self, schema_doc: Mapping[str, Any], form_id: str | None = None) -> str:
        with self.session_factory() as db:
            try:
                if form_id:
                    form_uuid = form_uuid_or_none(form_id)
                    row = db.get(Form, form_uuid) if form_uuid is not None else None
                    if row is None:
                        raise PersistenceError(f"Form {form_id} not found")
                else:
                    row = Form(created_by=self.actor)
                write_form(db, row, schema_doc)
                db.add(row)
                db.commit()
                return str(row.id)
            except ValidationError as exc:
                db.rollback()
                raise PersistenceError(str(exc)) from exc
            except SQLAlchemyError as exc:
                db.rollback()
                _LOG.warning("form save failed form_id=%s error=%s", form_id or "-", exc.__class__.__name__)
                raise PersistenceError("Storage unavailable") from exc

    def load(self, form_id: str) -> dict[str, Any]:
        form_uuid = form_uuid_or_none(form_id)
        if form_uuid is None:
            raise PersistenceError(f"Form {form_id} not found")
        with self.session_factory() as db:
            try:
                row = db.get(Form, form_uuid)
            except SQLAlchemyError as exc:
                _LOG.warning("form load failed form_id=%s error=%s", form_id, exc.__class__.__name__)
                raise PersistenceError("Storage unavailable") from exc
            if row is None:
                raise PersistenceError(f"Form {form_id} not found")
            return schema_doc_of(row)
