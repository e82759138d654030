from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from form_builder.core.config import settings
from form_builder.core.http_hardening import install_http_hardening
from form_builder.api.public.router import router as public_router
from form_builder.api.admin.router import router as admin_router

app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    description="Build row/column form documents, publish them for embedding and collect submissions.",
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
)
install_http_hardening(app)

app.include_router(public_router, prefix="/api/public")
app.include_router(admin_router, prefix="/api/admin")

@app.get("/", include_in_schema=False)
def landing():
    return JSONResponse(
        {
            "service": settings.APP_NAME,
            "env": settings.APP_ENV,
            "embed_script": settings.embed_script_url,
            "status": "ok",
        }
    )

@app.get("/health")
def health():
    return {"status": "ok"}
