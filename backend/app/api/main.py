from fastapi import APIRouter

from app.api.routes import (
    ai,
    approvals,
    case_studies,
    challenges,
    citizen_ideas,
    extraction,
    login,
    mii,
    municipalities,
    notifications,
    partnerships,
    pilots,
    programs,
    rbac,
    strategic_plans,
    users,
    utils,
)

api_router = APIRouter()
api_router.include_router(login.router)
api_router.include_router(users.router)
api_router.include_router(utils.router)
api_router.include_router(municipalities.router)
api_router.include_router(challenges.router)
api_router.include_router(pilots.router)
api_router.include_router(programs.router)
api_router.include_router(partnerships.router)
api_router.include_router(case_studies.router)
api_router.include_router(strategic_plans.router)
api_router.include_router(approvals.router)
api_router.include_router(notifications.router)
api_router.include_router(citizen_ideas.router)
api_router.include_router(mii.router)
api_router.include_router(rbac.router)
api_router.include_router(ai.router)
api_router.include_router(extraction.router)
