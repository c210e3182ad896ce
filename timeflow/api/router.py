"""Top-level API router."""

from fastapi import APIRouter

from timeflow.api.routes.activities import router as activities_router
from timeflow.api.routes.admin import router as admin_router
from timeflow.api.routes.dashboards import router as dashboards_router
from timeflow.api.routes.health import router as health_router
from timeflow.api.routes.me import router as me_router
from timeflow.api.routes.processes import router as processes_router
from timeflow.api.routes.projects import router as projects_router
from timeflow.api.routes.stats import router as stats_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(me_router)
api_router.include_router(activities_router)
api_router.include_router(dashboards_router)
api_router.include_router(stats_router)
api_router.include_router(projects_router)
api_router.include_router(processes_router)
api_router.include_router(admin_router)
