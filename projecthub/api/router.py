"""Top-level API router."""

from fastapi import APIRouter

from projecthub.api.routes.access import router as access_router
from projecthub.api.routes.deliverables import router as deliverables_router
from projecthub.api.routes.health import router as health_router
from projecthub.api.routes.me import router as me_router
from projecthub.api.routes.permissions import router as permissions_router
from projecthub.api.routes.phases import router as phases_router
from projecthub.api.routes.projects import router as projects_router
from projecthub.api.routes.tasks import router as tasks_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(me_router)
api_router.include_router(access_router)
api_router.include_router(projects_router)
api_router.include_router(phases_router)
api_router.include_router(deliverables_router)
api_router.include_router(tasks_router)
api_router.include_router(permissions_router)
