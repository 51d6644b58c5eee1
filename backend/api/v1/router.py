"""API v1 aggregated router.

All v1 endpoints are registered here and mounted under /api/v1 in main.py.
"""

from fastapi import APIRouter

from api.routes import executions, health, triggers

api_v1_router = APIRouter()

# Health
api_v1_router.include_router(
    health.router,
    tags=["Health"],
)

# Trigger dispatch
api_v1_router.include_router(
    triggers.router,
    prefix="/triggers",
    tags=["Triggers"],
)

# Executions and continuations
api_v1_router.include_router(
    executions.router,
    prefix="/executions",
    tags=["Executions"],
)
