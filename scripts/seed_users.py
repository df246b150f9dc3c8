"""Create the default admin and user accounts if they are missing."""
import asyncio
import logging

from fastapi_users.password import PasswordHelper
from sqlalchemy import select

from interview_coach.core.logging_config import setup_logging
from interview_coach.db.models.user import User
from interview_coach.db.session import async_session_factory

logger = logging.getLogger("interview_coach.seed")

DEFAULT_USERS = [
    {"email": "admin@example.com", "password": "admin123", "first_name": "Admin", "last_name": "User", "role": "admin"},
    {"email": "user@example.com", "password": "user123", "first_name": "Regular", "last_name": "User", "role": "user"},
]


async def seed_users(session_factory=async_session_factory) -> list[str]:
    """Insert the default accounts. Returns the emails that were created."""
    helper = PasswordHelper()
    created: list[str] = []
    async with session_factory() as session:
        for account in DEFAULT_USERS:
            result = await session.execute(select(User).filter_by(email=account["email"]))
            if result.scalar_one_or_none():
                logger.info("User %s exists", account["email"])
                continue
            session.add(User(
                email=account["email"],
                hashed_password=helper.hash(account["password"]),
                first_name=account["first_name"],
                last_name=account["last_name"],
                role=account["role"],
                is_active=True,
                is_superuser=account["role"] == "admin",
                is_verified=True,
            ))
            created.append(account["email"])
        await session.commit()
    for email in created:
        logger.info("Created user %s", email)
    return created


async def main() -> None:
    setup_logging()
    await seed_users()


if __name__ == "__main__":
    asyncio.run(main())
