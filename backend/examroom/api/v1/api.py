from fastapi import APIRouter

from .endpoints import exam_sessions, timezone

api_router = APIRouter()

api_router.include_router(exam_sessions.router, prefix="/exam-sessions", tags=["exam-sessions"])
api_router.include_router(timezone.router, prefix="/timezone", tags=["timezone"])


@api_router.get("/health")
async def health_check():
    return {"status": "ok"}
