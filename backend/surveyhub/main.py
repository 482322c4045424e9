"""FastAPI application entry point."""

import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from surveyhub.config import get_settings
from surveyhub.errors import ServiceError, handle_service_error
from surveyhub.logging_setup import configure_logging
from surveyhub.routers import forms, social, taxonomy, templates, users

settings = get_settings()
configure_logging()

app = FastAPI(
    title="SurveyHub",
    description="Survey and quiz templates with typed questions, access control, submissions and results",
    version="1.0.0",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(ServiceError, handle_service_error)

# Include routers
app.include_router(templates.router, prefix="/api/templates", tags=["Templates"])
app.include_router(social.router, prefix="/api/templates", tags=["Likes and Comments"])
app.include_router(social.ws_router, tags=["Live comments"])
app.include_router(forms.router, prefix="/api/forms", tags=["Forms"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(taxonomy.topics_router, prefix="/api/topics", tags=["Topics"])
app.include_router(taxonomy.tags_router, prefix="/api/tags", tags=["Tags"])

# Ensure storage directory exists
os.makedirs(settings.upload_dir, exist_ok=True)

# Uploaded template images and question attachments, unless served from elsewhere
if settings.public_upload_base_url.startswith("/"):
    app.mount(settings.public_upload_base_url, StaticFiles(directory=settings.upload_dir), name="uploads")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "surveyhub-backend"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "SurveyHub API",
        "docs": "/docs",
        "health": "/health",
    }
