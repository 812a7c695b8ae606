"""Player records: creation and admin coin adjustments."""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from arena.models import Transaction, User
from arena.services.ledger import apply_coins
from arena.services.tournaments import get_user

logger = logging.getLogger("arena.users")

USER_ROLES = ("player", "admin")
USER_STATUSES = ("active", "suspended")


class UserError(ValueError):
    pass


async def create_user(
    session: AsyncSession,
    name: str,
    email: str,
    role: str = "player",
    coins: int = 0,
) -> User:
    """Create a player record. A starting balance is booked as admin_add so the ledger stays complete."""
    name = (name or "").strip()
    email = (email or "").strip().lower()
    if not name:
        raise UserError("Name is required")
    if "@" not in email:
        raise UserError("Please provide a valid email")
    if role not in USER_ROLES:
        raise UserError("Invalid role")
    if coins < 0:
        raise UserError("Coins cannot be negative")
    existing = await session.execute(select(User).where(User.email == email))
    if existing.scalar_one_or_none():
        raise UserError("Email already registered")

    user = User(name=name, email=email, role=role, coins=0)
    session.add(user)
    try:
        await session.flush()
    except IntegrityError as e:
        raise UserError("Email already registered") from e
    if coins:
        apply_coins(session, user, coins, "admin_add", "Initial balance")
        await session.flush()
    logger.info("Created user %s (%s)", user.id, email)
    return user


async def adjust_coins(
    session: AsyncSession,
    admin: User,
    user_id: int,
    amount: int,
    reason: Optional[str] = None,
) -> tuple[User, Transaction]:
    """Add (amount > 0) or remove (amount < 0) coins on behalf of an admin."""
    if amount == 0:
        raise UserError("Amount must not be zero")
    if user_id == admin.id:
        raise UserError("You cannot manage your own coins")
    user = await get_user(session, user_id, for_update=True)
    tx_type = "admin_add" if amount > 0 else "admin_remove"
    tx = apply_coins(session, user, amount, tx_type, reason or f"Adjusted by {admin.name}")
    await session.flush()
    return user, tx
