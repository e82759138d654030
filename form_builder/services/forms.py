from __future__ import annotations

import uuid
from typing import Any, Mapping

from fastapi import HTTPException
from sqlalchemy.orm import Session

from form_builder.builder.codec import normalize
from form_builder.builder.document import PURPOSE_REMINDER_TASK_LIST
from form_builder.builder.errors import ValidationError
from form_builder.models.form import Form
from form_builder.models.form_submission import FormSubmission
from form_builder.schemas.forms import SchemaDoc
from form_builder.services.embed import build_embed_snippet


def form_uuid_or_none(raw: str | uuid.UUID | None) -> uuid.UUID | None:
    if raw is None:
        return None
    if isinstance(raw, uuid.UUID):
        return raw
    try:
        return uuid.UUID(str(raw))
    except (TypeError, ValueError):
        return None


def schema_doc_of(row: Form) -> dict[str, Any]:
    settings_payload = row.settings or {}
    return {
        "name": row.name,
        "purpose": row.purpose,
        "styles": settings_payload.get("styles") or {},
        "schema": row.schema_json or [],
    }


def form_row(row: Form) -> dict[str, Any]:
    return {
        "id": str(row.id),
        **schema_doc_of(row),
        "settings": row.settings or {},
        "created_by": row.created_by,
        "created_at": row.created_at.isoformat() if row.created_at else None,
        "updated_at": row.updated_at.isoformat() if row.updated_at else None,
    }


def form_summary_row(row: Form) -> dict[str, Any]:
    return {
        "id": str(row.id),
        "name": row.name,
        "purpose": row.purpose,
        "created_at": row.created_at.isoformat() if row.created_at else None,
        "updated_at": row.updated_at.isoformat() if row.updated_at else None,
    }


def write_form(db: Session, row: Form, schema_doc: SchemaDoc | Mapping[str, Any]) -> Form:
    """Normalise ``schema_doc`` through the codec and copy it onto ``row``.

    Raises :class:`ValidationError` for a blank name, a name used by another
    form or a schema the codec cannot hydrate.
    """
    normalized = normalize(schema_doc)
    name = str(normalized["name"] or "").strip()
    if not name:
        raise ValidationError("Form name is required.")

    clash = db.query(Form.id).filter(Form.name == name)
    if row.id is not None:
        clash = clash.filter(Form.id != row.id)
    if clash.first() is not None:
        raise ValidationError("A form with this name already exists.")

    row.name = name
    row.purpose = normalized["purpose"]
    row.schema_json = normalized["schema"]
    row.settings = {**(row.settings or {}), "styles": normalized["styles"]}
    return row


def form_or_404(db: Session, form_id: str) -> Form:
    form_uuid = form_uuid_or_none(form_id)
    row = db.get(Form, form_uuid) if form_uuid is not None else None
    if row is None:
        raise HTTPException(status_code=404, detail="Form not found.")
    return row


def list_forms_service(db: Session, purpose: str | None = None) -> list[dict[str, Any]]:
    query = db.query(Form)
    if purpose:
        query = query.filter(Form.purpose == purpose)
    rows = query.order_by(Form.created_at.desc(), Form.name.asc()).all()
    return [form_summary_row(row) for row in rows]


def get_form_service(form_id: str, db: Session) -> dict[str, Any]:
    return form_row(form_or_404(db, form_id))


def create_form_service(payload: SchemaDoc, db: Session, admin: dict) -> dict[str, Any]:
    created_by = str(admin.get("email") or admin.get("sub") or "").strip() or "system"
    row = Form(created_by=created_by)
    try:
        write_form(db, row, payload)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    db.add(row)
    db.commit()
    db.refresh(row)
    return {"message": "Form created successfully", "form": form_row(row)}


def update_form_service(form_id: str, payload: SchemaDoc, db: Session) -> dict[str, Any]:
    row = form_or_404(db, form_id)
    try:
        write_form(db, row, payload)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    db.add(row)
    db.commit()
    db.refresh(row)
    return {"message": "Form updated successfully", "form": form_row(row)}


def delete_form_service(form_id: str, db: Session) -> dict[str, Any]:
    row = form_or_404(db, form_id)
    removed = db.query(FormSubmission).filter(FormSubmission.form_id == row.id).delete(synchronize_session=False)
    db.delete(row)
    db.commit()
    return {"message": "Form and associated submissions deleted successfully.", "submissions_deleted": int(removed)}


def get_embed_snippet_service(form_id: str, db: Session) -> dict[str, Any]:
    row = form_or_404(db, form_id)
    if row.purpose == PURPOSE_REMINDER_TASK_LIST:
        raise HTTPException(status_code=400, detail="Task list forms are staff-only and cannot be embedded.")
    return {"form_id": str(row.id), "snippet": build_embed_snippet(str(row.id))}
