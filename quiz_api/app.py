"""Main FastAPI application with modularized routes."""
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from core.logging_setup import setup_console_logging
from quiz_api.config import STATIC_DIR
from quiz_api.database import init_db
from quiz_api.routes import images, questions, sessions, tests
from quiz_api.services.cleanup_service import schedule_sessions_cleanup

setup_console_logging()

app = FastAPI(title="Click Quiz API")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# Startup events
@app.on_event("startup")
def startup_events() -> None:
    """Initialize database and schedule cleanup tasks on startup."""
    init_db()
    schedule_sessions_cleanup()


# Root endpoint
@app.get("/")
def index() -> FileResponse:
    """Serve frontend index.html."""
    index_path = STATIC_DIR / "index.html"
    if not index_path.exists():
        raise HTTPException(status_code=404, detail="Frontend not found")
    return FileResponse(index_path)


# Mount static files when a frontend build is present
if STATIC_DIR.is_dir():
    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

# Include routers
app.include_router(tests.router)
app.include_router(tests.legacy_router)
app.include_router(questions.router)
app.include_router(images.router)
app.include_router(sessions.router)
