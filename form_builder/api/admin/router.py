from fastapi import APIRouter
from form_builder.api.admin import forms

router = APIRouter()
router.include_router(forms.router, prefix="/forms", tags=["AdminForms"])
