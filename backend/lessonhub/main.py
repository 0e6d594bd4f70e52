"""FastAPI application entry point."""
from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lessonhub.api import admin, auth, catalog, lessons, publishing
from lessonhub.api.errors import register_error_handlers
from lessonhub.core.logging import configure_logging
from lessonhub.persistence.db import init_db

configure_logging()

# ------------------------------------------------------------------
# App creation
# ------------------------------------------------------------------
app = FastAPI(
    title="LessonHub API",
    description="Lesson drafting, moderation and publishing backend",
    version="1.0.0",
)

# CORS: allow everything for local dev (restrict for production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


# ------------------------------------------------------------------
# Startup: initialise both stores
# ------------------------------------------------------------------
@app.on_event("startup")
def on_startup():
    init_db()


# ------------------------------------------------------------------
# Routers
# ------------------------------------------------------------------
app.include_router(auth.router)
app.include_router(lessons.router)
app.include_router(publishing.router)
app.include_router(admin.router)
app.include_router(catalog.router)
