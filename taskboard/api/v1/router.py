"""
API v1 main router
"""

from fastapi import APIRouter

from taskboard.api.v1.endpoints import functions, profiles, realtime, reports, system_settings, tasks, teams

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
api_router.include_router(profiles.router, prefix="/profiles", tags=["Profiles"])
api_router.include_router(teams.router, prefix="/teams", tags=["Teams"])
api_router.include_router(system_settings.router, prefix="/settings", tags=["System Settings"])
api_router.include_router(reports.router, prefix="/reports", tags=["Daily Reports"])
api_router.include_router(functions.router, prefix="/functions", tags=["Privileged Functions"])
api_router.include_router(realtime.router, prefix="/realtime", tags=["Realtime"])
