from fastapi import APIRouter

from .auth import router as auth_router
from .auth import users_router
from .interviews import router as interviews_router
from .question_answers import router as question_answers_router
from .sessions import router as sessions_router

router = APIRouter(tags=["utils"])


@router.get("/echo")
async def echo(msg: str = "hello"):
    """Return back whatever message was sent."""
    return {"message": msg}

router.include_router(auth_router)
router.include_router(users_router)
router.include_router(interviews_router)
router.include_router(question_answers_router)
router.include_router(sessions_router)
