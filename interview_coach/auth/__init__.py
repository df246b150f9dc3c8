import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi_users import FastAPIUsers, IntegerIDMixin, schemas as fu_schemas
from fastapi_users.authentication import AuthenticationBackend, CookieTransport, JWTStrategy
from fastapi_users.manager import BaseUserManager
from fastapi_users_db_sqlalchemy import SQLAlchemyUserDatabase
from sqlalchemy.ext.asyncio import AsyncSession

from interview_coach.core.config import settings
from interview_coach.db.models.user import User
from interview_coach.db.session import get_session

logger = logging.getLogger(__name__)

SECRET = settings.jwt_secret

# Pydantic Schemas --------------------------------------------------

class UserRead(fu_schemas.BaseUser[int]):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str = "user"


class UserCreate(fu_schemas.BaseUserCreate):
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class UserUpdate(fu_schemas.BaseUserUpdate):
    first_name: Optional[str] = None
    last_name: Optional[str] = None


# Database dependency ----------------------------------------------

async def get_user_db(session: AsyncSession = Depends(get_session)):
    yield SQLAlchemyUserDatabase(session, User)


# User manager ------------------------------------------------------

class UserManager(IntegerIDMixin, BaseUserManager[User, int]):
    reset_password_token_secret = SECRET
    verification_token_secret = SECRET

    async def on_after_register(self, user: User, request: Optional[Request] = None):
        logger.info("User %s registered", user.id)

    async def on_after_login(self, user: User, request: Optional[Request] = None, response=None):
        logger.info("User %s logged in", user.id)

    async def on_after_forgot_password(
        self, user: User, token: str, request: Optional[Request] = None
    ):
        logger.info("User %s requested a password reset", user.id)


async def get_user_manager(user_db=Depends(get_user_db)):
    yield UserManager(user_db)


# Auth backend ------------------------------------------------------

def get_jwt_strategy() -> JWTStrategy:
    return JWTStrategy(secret=SECRET, lifetime_seconds=settings.auth_cookie_max_age)

cookie_transport = CookieTransport(
    cookie_name=settings.auth_cookie_name,
    cookie_max_age=settings.auth_cookie_max_age,
    cookie_secure=settings.cookie_secure,
    cookie_httponly=True,
    cookie_samesite="lax",
)

cookie_backend = AuthenticationBackend(name="cookie", transport=cookie_transport, get_strategy=get_jwt_strategy)

fastapi_users = FastAPIUsers[User, int](
    get_user_manager=get_user_manager,
    auth_backends=[cookie_backend],
)

current_active_user = fastapi_users.current_user(active=True)
optional_current_user = fastapi_users.current_user(active=True, optional=True)


def user_label(user: User) -> str:
    """Identifier stored in created_by columns."""
    return user.email
