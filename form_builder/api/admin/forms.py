from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from form_builder.builder.document import PURPOSE_REMINDER_TASK_LIST
from form_builder.core.deps import ROLE_ADMIN, ROLE_MANAGER, ROLE_STAFF, require_role
from form_builder.db.session import get_db
from form_builder.schemas.forms import FormSubmissionIn, SchemaDoc
from form_builder.services.forms import (
    create_form_service,
    delete_form_service,
    form_or_404,
    get_embed_snippet_service,
    get_form_service,
    list_forms_service,
    update_form_service,
)
from form_builder.services.submissions import list_submissions, record_submission

router = APIRouter()


@router.get("")
def list_forms(
    purpose: str | None = Query(None),
    db: Session = Depends(get_db),
    admin=Depends(require_role(ROLE_ADMIN, ROLE_MANAGER)),
):
    return list_forms_service(db, purpose)


@router.post("", status_code=201)
def create_form(payload: SchemaDoc, db: Session = Depends(get_db), admin=Depends(require_role(ROLE_ADMIN))):
    return create_form_service(payload, db, admin)


@router.get("/{form_id}")
def get_form(form_id: str, db: Session = Depends(get_db), admin=Depends(require_role(ROLE_ADMIN, ROLE_MANAGER))):
    return get_form_service(form_id, db)


@router.put("/{form_id}")
def update_form(form_id: str, payload: SchemaDoc, db: Session = Depends(get_db), admin=Depends(require_role(ROLE_ADMIN))):
    return update_form_service(form_id, payload, db)


@router.delete("/{form_id}")
def delete_form(form_id: str, db: Session = Depends(get_db), admin=Depends(require_role(ROLE_ADMIN))):
    return delete_form_service(form_id, db)


@router.get("/{form_id}/embed")
def get_embed_snippet(form_id: str, db: Session = Depends(get_db), admin=Depends(require_role(ROLE_ADMIN, ROLE_MANAGER))):
    return get_embed_snippet_service(form_id, db)


@router.get("/{form_id}/submissions")
def get_submissions(
    form_id: str,
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    admin=Depends(require_role(ROLE_ADMIN, ROLE_MANAGER)),
):
    form = form_or_404(db, form_id)
    return {"form_id": str(form.id), "rows": list_submissions(db, form, limit)}


@router.post("/{form_id}/task-submissions", status_code=201)
def submit_task_list(
    form_id: str,
    payload: FormSubmissionIn,
    db: Session = Depends(get_db),
    admin=Depends(require_role(ROLE_ADMIN, ROLE_MANAGER, ROLE_STAFF)),
):
    form = form_or_404(db, form_id)
    if form.purpose != PURPOSE_REMINDER_TASK_LIST:
        raise HTTPException(status_code=400, detail="Only task list forms accept staff submissions.")
    submission = record_submission(
        db,
        form,
        payload.form_data,
        associated_lead_id=payload.associated_lead_id,
        channel="staff",
    )
    return {"message": "Task list submitted successfully", "submission": submission}
