from fastapi import APIRouter
from form_builder.api.public import forms

router = APIRouter()
router.include_router(forms.router, prefix="/forms", tags=["PublicForms"])
