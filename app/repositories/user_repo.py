"""User repository for database operations."""

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import Role
from app.models.user import User


class UserRepository:
    """Encapsulates user directory queries and presence fields."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_by_email(self, email: str) -> User | None:
        """Find a user by email address."""
        result = await self._session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def find_by_login(self, email_or_username: str) -> User | None:
        """Find a user by email or username."""
        result = await self._session.execute(
            select(User).where(
                or_(User.email == email_or_username, User.username == email_or_username)
            )
        )
        return result.scalars().first()

    async def find_by_id(self, user_id: int) -> User | None:
        """Find a user by primary key."""
        result = await self._session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def exists(self, user_id: int) -> bool:
        """Check whether a user id refers to a stored account."""
        result = await self._session.execute(select(User.id).where(User.id == user_id))
        return result.scalar_one_or_none() is not None

    async def lock(self, user_id: int) -> bool:
        """Row-lock a user until the transaction ends; False if it does not exist.

        Session creation for one user is serialized on this lock.
        """
        result = await self._session.execute(
            select(User.id).where(User.id == user_id).with_for_update()
        )
        return result.scalar_one_or_none() is not None

    async def exists_by_email_or_username(self, email: str, username: str) -> bool:
        """Check if either identifier is already taken."""
        result = await self._session.execute(
            select(User.id).where(or_(User.email == email, User.username == username))
        )
        return result.first() is not None

    async def create(
        self,
        email: str,
        hashed_password: str,
        username: str,
        role: Role = Role.USER,
    ) -> User:
        """Create a new user record."""
        user = User(
            email=email,
            hashed_password=hashed_password,
            username=username,
            role=role,
        )
        self._session.add(user)
        await self._session.flush()
        await self._session.refresh(user)
        return user

    async def find_by_role(self, role: Role, limit: int | None = None) -> list[User]:
        """List accounts with the given role in id order."""
        stmt = select(User).where(User.role == role).order_by(User.id.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def find_system_sender(self) -> User | None:
        """Return the designated System identity used for automated notices."""
        result = await self._session.execute(
            select(User)
            .where(User.role == Role.SYSTEM, User.is_active.is_(True))
            .order_by(User.id.asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def record_heartbeat(
        self, user: User, seen_at: datetime, role: Role | None = None
    ) -> None:
        """Mark the user online at ``seen_at``; resync a drifted role."""
        user.is_online = True
        user.last_seen = seen_at
        if role is not None and user.role != role:
            user.role = role
        await self._session.flush()

    async def mark_offline(self, user_ids: Sequence[int]) -> None:
        """Clear the persisted online flag for the given users."""
        if not user_ids:
            return
        await self._session.execute(
            update(User).where(User.id.in_(user_ids)).values(is_online=False)
        )
