from __future__ import annotations

import logging
import re
from typing import Any, Mapping

from fastapi import HTTPException
from sqlalchemy.orm import Session

from form_builder.builder.conditions import iter_schema_fields, visible_fields
from form_builder.models.form import Form
from form_builder.models.form_submission import FormSubmission
from form_builder.services.forms import schema_doc_of

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r".+@.+\..+")
CRM_ENTITIES = {"lead", "customer"}
CUSTOMER_ONLY_PROPS = {"customerType", "industry"}
TEXT_PROPS = {"contactPersonName", "companyName", "customerType", "industry"}


def _is_missing_value(value: Any, field_type: str | None = None) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return not value.strip()
    if field_type == "address" and isinstance(value, dict):
        return all(not str(part or "").strip() for part in value.values())
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def validate_submission(schema_doc: Mapping[str, Any] | list, values: Mapping[str, Any]) -> dict[str, str]:
    """Check the submitted values of every visible field.

    Hidden fields are skipped entirely, so a required field behind an unmet
    conditional never blocks a submission.
    """
    errors: dict[str, str] = {}
    for field in visible_fields(schema_doc, values):
        name = str(field.get("name") or "")
        value = values.get(name)
        if field.get("required") and _is_missing_value(value, field.get("type")):
            errors[name] = f"{field.get('label') or name} is required."
            continue
        if field.get("type") == "email" and isinstance(value, str) and value.strip():
            if not EMAIL_RE.search(value):
                errors[name] = "Invalid email format."
    return errors


def _empty_crm_data() -> dict[str, Any]:
    return {
        "companyName": "",
        "contactPersonName": "",
        "email": [],
        "phone": [],
        "address": {},
        "customerType": "",
        "industry": "",
        "task_items": [],
    }


def extract_crm_data(schema_doc: Mapping[str, Any] | list, values: Mapping[str, Any]) -> dict[str, Any]:
    crm = _empty_crm_data()
    tasks: dict[str, dict[str, Any]] = {}
    for field in iter_schema_fields(schema_doc):
        mapping = str(field.get("mapping") or "")
        if not mapping:
            continue
        parts = mapping.split(".")
        entity = parts[0]
        value = values.get(str(field.get("name") or ""))
        label = field.get("label") or "Form"

        if entity == "task_item" and len(parts) >= 3:
            tasks.setdefault(parts[1], {"id": parts[1]})[parts[2]] = value
            continue
        if entity not in CRM_ENTITIES or len(parts) < 2:
            continue
        prop = parts[1]
        if prop in CUSTOMER_ONLY_PROPS and entity != "customer":
            continue
        if prop in TEXT_PROPS:
            crm[prop] = value if value is not None else ""
        elif prop == "email" and not _is_missing_value(value):
            if not any(item["email"] == value for item in crm["email"]):
                crm["email"].append({"email": value, "label": label, "isMaster": not crm["email"]})
        elif prop == "phone" and not _is_missing_value(value):
            if not any(item["number"] == value for item in crm["phone"]):
                crm["phone"].append({"number": value, "label": label, "isMaster": not crm["phone"]})
        elif prop == "address" and not _is_missing_value(value, "address"):
            crm["address"] = value

    crm["task_items"] = list(tasks.values())
    return crm


def master_email(crm_data: Mapping[str, Any]) -> str | None:
    emails = crm_data.get("email") or []
    for item in emails:
        if item.get("isMaster") and item.get("email"):
            return item["email"]
    if emails and emails[0].get("email"):
        return emails[0]["email"]
    return None


def submission_row(row: FormSubmission) -> dict[str, Any]:
    return {
        "id": str(row.id),
        "form_id": str(row.form_id),
        "submitted_by": row.submitted_by,
        "data": row.data or {},
        "crm_data": row.crm_data or {},
        "associated_lead_id": row.associated_lead_id,
        "channel": row.channel,
        "created_at": row.created_at.isoformat() if row.created_at else None,
    }


def record_submission(
    db: Session,
    form: Form,
    values: Mapping[str, Any],
    *,
    associated_lead_id: str | None = None,
    channel: str = "public",
) -> dict[str, Any]:
    schema_doc = schema_doc_of(form)
    payload = dict(values or {})
    errors = validate_submission(schema_doc, payload)
    if errors:
        raise HTTPException(
            status_code=400,
            detail={"message": "Please correct the errors in the form.", "errors": errors},
        )

    crm_data = extract_crm_data(schema_doc, payload)
    row = FormSubmission(
        form_id=form.id,
        submitted_by=master_email(crm_data),
        data=payload,
        crm_data=crm_data,
        associated_lead_id=str(associated_lead_id or "").strip() or None,
        channel=channel,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("form submission stored form_id=%s purpose=%s channel=%s", form.id, form.purpose, channel)
    return submission_row(row)


def list_submissions(db: Session, form: Form, limit: int = 50) -> list[dict[str, Any]]:
    rows = (
        db.query(FormSubmission)
        .filter(FormSubmission.form_id == form.id)
        .order_by(FormSubmission.created_at.desc())
        .limit(limit)
        .all()
    )
    return [submission_row(row) for row in rows]
