from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from form_builder.builder.document import PURPOSE_REMINDER_TASK_LIST
from form_builder.db.session import get_db
from form_builder.models.form import Form
from form_builder.schemas.forms import FormSubmissionIn
from form_builder.services.forms import form_uuid_or_none, schema_doc_of
from form_builder.services.rate_limit import get_rate_limiter, submission_rate_limit_or_429
from form_builder.services.submissions import record_submission

router = APIRouter()


def _client_ip(request: Request) -> str:
    forwarded = str(request.headers.get("x-forwarded-for") or "").strip()
    if forwarded:
        return forwarded.split(",")[0].strip()
    client = request.client
    return str(client.host if client else "unknown")


def _public_form_or_404(db: Session, form_id: str) -> Form:
    form_uuid = form_uuid_or_none(form_id)
    row = db.get(Form, form_uuid) if form_uuid is not None else None
    # Task lists are filled in by staff only.
    if row is None or row.purpose == PURPOSE_REMINDER_TASK_LIST:
        raise HTTPException(status_code=404, detail="Form not found.")
    return row


@router.get("/{form_id}")
def get_public_form(form_id: str, db: Session = Depends(get_db)):
    row = _public_form_or_404(db, form_id)
    return {"id": str(row.id), **schema_doc_of(row)}


@router.post("/{form_id}/submit", status_code=201)
def submit_public_form(form_id: str, payload: FormSubmissionIn, request: Request, db: Session = Depends(get_db)):
    row = _public_form_or_404(db, form_id)
    submission_rate_limit_or_429(get_rate_limiter(), form_id=str(row.id), client_ip=_client_ip(request))
    submission = record_submission(
        db,
        row,
        payload.form_data,
        associated_lead_id=payload.associated_lead_id,
        channel="public",
    )
    return {"message": "Form submitted successfully", "id": submission["id"]}
