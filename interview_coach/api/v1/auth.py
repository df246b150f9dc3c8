from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from interview_coach.auth import (
    UserCreate,
    UserRead,
    UserUpdate,
    cookie_backend,
    current_active_user,
    fastapi_users,
    optional_current_user,
)
from interview_coach.db.models.user import User

router = APIRouter(prefix="/auth", tags=["auth"])

router.include_router(
    fastapi_users.get_auth_router(cookie_backend),
)
router.include_router(
    fastapi_users.get_register_router(UserRead, UserCreate),
)

users_router = APIRouter(prefix="/users", tags=["users"])
users_router.include_router(
    fastapi_users.get_users_router(UserRead, UserUpdate),
)


@router.get("/check")
async def check(user: Optional[User] = Depends(optional_current_user)):
    """Whether the auth cookie belongs to an active user."""
    if user is None:
        return JSONResponse({"authenticated": False}, status_code=401)
    return {
        "authenticated": True,
        "user": UserRead.model_validate(user, from_attributes=True).model_dump(mode="json"),
    }


@router.get("/me", response_model=UserRead)
async def get_me(user=Depends(current_active_user)):
    return user
