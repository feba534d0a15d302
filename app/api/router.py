"""
Main API router
"""
from fastapi import APIRouter

from app.api.v1 import (
    health,
    employees,
    rosters,
    attendance,
    gate_passes,
    version,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(version.router, tags=["version"])
api_router.include_router(employees.router, prefix="/employees", tags=["employees"])
api_router.include_router(rosters.router, prefix="/rosters", tags=["rosters"])
api_router.include_router(attendance.router, prefix="/attendance", tags=["attendance"])
api_router.include_router(gate_passes.router, prefix="/gate-passes", tags=["gate-passes"])
