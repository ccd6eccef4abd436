"""
User service layer for account database operations.
"""

from typing import Optional, Dict, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
from sqlalchemy.orm import selectinload
from padel_stats.database.models import User, MatchPlayer, PlayerStats
import logging

logger = logging.getLogger(__name__)


async def create_user(
    session: AsyncSession,
    username: str,
    email: str,
    password_hash: str,
    first_name: str,
    last_name: str,
) -> int:
    """
    Create a new user account.

    Args:
        session: Database session
        username: Unique username
        email: Normalized email address
        password_hash: Hashed password
        first_name: First name
        last_name: Last name

    Returns:
        User ID of the created user

    Raises:
        ValueError: If the email or username is already taken
    """
    if await get_user_by_email(session, email):
        raise ValueError("Email already registered")

    if await get_user_by_username(session, username):
        raise ValueError("Username already taken")

    new_user = User(
        username=username,
        email=email,
        password_hash=password_hash,
        first_name=first_name,
        last_name=last_name,
    )
    session.add(new_user)
    await session.flush()
    user_id = new_user.id
    await session.commit()

    logger.info(f"Created user {user_id} ({username})")
    return user_id


async def update_user_password(session: AsyncSession, user_id: int, password_hash: str) -> bool:
    """
    Update a user's password.

    Args:
        session: Database session
        user_id: User ID
        password_hash: New hashed password

    Returns:
        True if successful, False otherwise
    """
    result = await session.execute(
        update(User)
        .where(User.id == user_id)
        .values(password_hash=password_hash, updated_at=func.now())
    )
    await session.commit()
    return result.rowcount > 0


async def get_user_by_email(session: AsyncSession, email: str) -> Optional[Dict]:
    """
    Get user by email address.

    Args:
        session: Database session
        email: Email address (will be normalized to lowercase)

    Returns:
        User dictionary or None if not found
    """
    email = email.strip().lower() if email else None
    if not email:
        return None

    result = await session.execute(select(User).where(User.email == email).limit(1))
    user = result.scalar_one_or_none()
    return _user_to_dict(user) if user else None


async def get_user_by_username(session: AsyncSession, username: str) -> Optional[Dict]:
    """Get user by username, or None if not found."""
    if not username:
        return None
    result = await session.execute(select(User).where(User.username == username).limit(1))
    user = result.scalar_one_or_none()
    return _user_to_dict(user) if user else None


async def get_user_by_id(session: AsyncSession, user_id: int) -> Optional[Dict]:
    """
    Get user by ID.

    Args:
        session: Database session
        user_id: User ID

    Returns:
        User dictionary or None if not found
    """
    result = await session.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    return _user_to_dict(user) if user else None


async def get_existing_user_ids(session: AsyncSession, user_ids: List[int]) -> set:
    """Return the subset of user_ids that belong to existing users."""
    if not user_ids:
        return set()
    result = await session.execute(select(User.id).where(User.id.in_(user_ids)))
    return set(result.scalars().all())


async def get_user_with_stats(session: AsyncSession, user_id: int) -> Optional[Dict]:
    """
    Get a user together with the matches they played and their per-match stats.

    Returns:
        User dictionary (without password hash) with "match_players" and
        "player_stats" lists, or None if not found
    """
    result = await session.execute(
        select(User)
        .where(User.id == user_id)
        .options(
            selectinload(User.match_players).selectinload(MatchPlayer.match),
            selectinload(User.player_stats),
        )
        .execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if user is None:
        return None

    data = public_user_dict(_user_to_dict(user))
    data["match_players"] = [
        {
            "match_id": mp.match_id,
            "team": mp.team,
            "position": mp.position,
            "match_type": mp.match.type.value if mp.match and mp.match.type else None,
            "match_status": mp.match.status.value if mp.match and mp.match.status else None,
        }
        for mp in sorted(user.match_players, key=lambda mp: mp.match_id)
    ]
    data["player_stats"] = [
        _stats_row_to_dict(row) for row in sorted(user.player_stats, key=lambda row: row.match_id)
    ]
    return data


def public_user_dict(user: Dict) -> Dict:
    """Strip credential fields from a user dictionary before returning it."""
    return {key: value for key, value in user.items() if key != "password_hash"}


def _stats_row_to_dict(row: PlayerStats) -> Dict:
    return {
        "match_id": row.match_id,
        "first_serve_percentage": row.first_serve_percentage,
        "first_serves_in": row.first_serves_in,
        "first_serves_out": row.first_serves_out,
        "points_won_first_serve": row.points_won_first_serve,
        "points_won_second_serve": row.points_won_second_serve,
        "points_won_exit34": row.points_won_exit34,
        "points_lost_exit34": row.points_lost_exit34,
        "points_won_return": row.points_won_return,
        "unforced_errors": row.unforced_errors,
        "forced_errors": row.forced_errors,
        "net_errors": row.net_errors,
        "return_errors": row.return_errors,
        "smash_errors": row.smash_errors,
        "lob_errors": row.lob_errors,
    }


def _user_to_dict(user: User) -> Dict:
    """
    Convert a User ORM instance to a dictionary.

    Args:
        user: User ORM instance

    Returns:
        User dictionary
    """
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "password_hash": user.password_hash,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "display_name": user.display_name,
        "created_at": user.created_at.isoformat() if user.created_at else None,
        "updated_at": user.updated_at.isoformat() if user.updated_at else None,
    }
