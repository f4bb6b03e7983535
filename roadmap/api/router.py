from fastapi import APIRouter

from roadmap.api.endpoints import (
    auth,
    oauth,
    users,
    projects,
    stages,
    features,
    comments,
    discussions,
    members,
    notifications,
    search,
    dashboard,
)

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(oauth.router, prefix="/oauth", tags=["oauth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(projects.router, prefix="/projects", tags=["projects"])
api_router.include_router(stages.router, tags=["stages"])
api_router.include_router(features.router, tags=["features"])
api_router.include_router(comments.router, tags=["comments"])
api_router.include_router(discussions.router, tags=["discussions"])
api_router.include_router(members.router, tags=["members"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
api_router.include_router(search.router, prefix="/search", tags=["search"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
