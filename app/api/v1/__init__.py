"""API v1 router."""
from fastapi import APIRouter

from app.api.v1 import admin, assessments, auth, daily_problem, doubts, leaderboard, mentor, progress

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(progress.router, prefix="/progress", tags=["Progress"])
api_router.include_router(daily_problem.router, prefix="/daily-problem", tags=["Daily Problem"])
api_router.include_router(leaderboard.router, prefix="/leaderboard", tags=["Leaderboard"])
api_router.include_router(doubts.router, prefix="/doubt", tags=["Doubts"])
api_router.include_router(assessments.router, prefix="/tests", tags=["Tests"])
api_router.include_router(mentor.router, prefix="/mentor", tags=["Mentor"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
