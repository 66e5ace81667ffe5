from fastapi import APIRouter

from sitetrack.api.routers.auth import router as auth_router
from sitetrack.api.routers.employees import router as employees_router
from sitetrack.api.routers.me import router as me_router
from sitetrack.api.routers.notifications import router as notifications_router
from sitetrack.api.routers.phases import router as phases_router
from sitetrack.api.routers.sites import router as sites_router
from sitetrack.api.routers.tasks import router as tasks_router
from sitetrack.api.routers.todos import router as todos_router


api_router = APIRouter()
api_router.include_router(auth_router, prefix="/auth", tags=["auth"])
api_router.include_router(employees_router, prefix="/employees", tags=["employees"])
api_router.include_router(me_router, prefix="/me", tags=["me"])
api_router.include_router(notifications_router, prefix="/notifications", tags=["notifications"])
api_router.include_router(phases_router, prefix="/phases", tags=["phases"])
api_router.include_router(sites_router, prefix="/sites", tags=["sites"])
api_router.include_router(tasks_router, prefix="/tasks", tags=["tasks"])
api_router.include_router(todos_router, prefix="/todos", tags=["todos"])
