from __future__ import annotations

from bugtracker.api.routes.attachments import router as attachments_router
from bugtracker.api.routes.bugs import router as bugs_router
from bugtracker.api.routes.comments import router as comments_router
from bugtracker.api.routes.projects import router as projects_router
from bugtracker.api.routes.service import router as service_router
from bugtracker.api.routes.users import router as users_router

__all__ = [
    "attachments_router",
    "bugs_router",
    "comments_router",
    "projects_router",
    "service_router",
    "users_router",
]
