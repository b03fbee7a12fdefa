from fastapi import APIRouter

from whereto.api.routes import decisions, group_decisions, health

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
# Group routes first so /decisions/group/... is not captured by /decisions/{decision_id}
api_router.include_router(group_decisions.router, prefix="/decisions/group", tags=["group-decisions"])
api_router.include_router(decisions.router, prefix="/decisions", tags=["decisions"])
