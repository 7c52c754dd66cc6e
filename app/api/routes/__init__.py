from __future__ import annotations

from app.api.routes.health import router as health_router
from app.api.routes.kanban import router as kanban_router
from app.api.routes.projects import router as projects_router
from app.api.routes.public import router as public_router
from app.api.routes.sync import router as sync_router
from app.api.routes.tasks import router as tasks_router
from app.api.routes.upload import router as upload_router
from app.api.routes.users import router as users_router

__all__ = [
    "health_router",
    "kanban_router",
    "projects_router",
    "public_router",
    "sync_router",
    "tasks_router",
    "upload_router",
    "users_router",
]
