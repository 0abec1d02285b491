from fastapi import APIRouter

from .endpoints import (
    projects, subtasks, comments, tags, notifications, users, profile,
    invitations, custom_attributes, webhooks, realtime,
)

api_router = APIRouter()

api_router.include_router(projects.router, prefix="/projects", tags=["projects"])
api_router.include_router(subtasks.router, prefix="/subtasks", tags=["subtasks"])
api_router.include_router(comments.router, prefix="/comments", tags=["comments"])
api_router.include_router(tags.router, prefix="/tags", tags=["tags"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(profile.router, tags=["profile"])
api_router.include_router(invitations.router, prefix="/invitations", tags=["invitations"])
api_router.include_router(custom_attributes.router, prefix="/custom-attributes", tags=["custom-attributes"])
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
api_router.include_router(realtime.router, tags=["realtime"])
