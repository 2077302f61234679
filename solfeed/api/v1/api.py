"""V1 API router aggregation."""
from fastapi import APIRouter

from solfeed.api.v1.endpoints import comments, events, notifications, posts, tips, users

api_router = APIRouter(prefix="/v1")
api_router.include_router(posts.router)
api_router.include_router(comments.router)
api_router.include_router(notifications.router)
api_router.include_router(users.router)
api_router.include_router(tips.router)
api_router.include_router(events.router)
