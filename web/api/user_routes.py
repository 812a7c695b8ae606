"""User and coin ledger API: player records, balance adjustments, transaction history."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError

from arena.models import Transaction, User
from arena.models.base import async_session_factory
from arena.models.transaction import TRANSACTION_TYPES
from arena.services import users as users_svc
from arena.services.stats import user_stats
from arena.services.users import USER_STATUSES
from web.api.utils import service_error, transaction_to_dto, user_to_dto
from web.auth import require_admin_user, require_user

router = APIRouter(prefix="/api", tags=["users"])


class CreateUserRequest(BaseModel):
    name: str
    email: str
    role: str = "player"  # player, admin
    coins: int = 0


class CoinsUpdate(BaseModel):
    amount: int  # signed: positive adds, negative removes
    reason: Optional[str] = None


class StatusUpdate(BaseModel):
    status: str  # active, suspended


@router.get("/users")
async def list_users(
    role: Optional[str] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    admin: User = Depends(require_admin_user),
):
    """List users (admin only). Filter by role, status, or name/email substring."""
    async with async_session_factory() as session:
        q = select(User).order_by(User.created_at.desc(), User.id.desc())
        if role:
            q = q.where(User.role == role)
        if status:
            q = q.where(User.status == status)
        if search:
            pattern = f"%{search.strip()}%"
            q = q.where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
        result = await session.execute(q)
        return [user_to_dto(u) for u in result.scalars().all()]


@router.get("/users/{user_id}")
async def get_user(user_id: int, user: User = Depends(require_user)):
    """Get a user. Players may only view themselves."""
    if user.role != "admin" and user.id != user_id:
        raise HTTPException(403, "Admin access required")
    async with async_session_factory() as session:
        target = await session.get(User, user_id)
        if not target:
            raise HTTPException(404, "User not found")
        return user_to_dto(target)


@router.get("/users/{user_id}/stats")
async def get_user_stats(user_id: int, admin: User = Depends(require_admin_user)):
    """Match, tournament and coin statistics for one user (admin only)."""
    async with async_session_factory() as session:
        try:
            stats = await user_stats(session, user_id)
        except LookupError as e:
            raise service_error(e)
        stats["user"] = user_to_dto(stats["user"])
        return stats


@router.post("/users", status_code=201)
async def create_user(body: CreateUserRequest, admin: User = Depends(require_admin_user)):
    """Create a player record (admin only). Credentials are managed by the auth service."""
    async with async_session_factory() as session:
        try:
            user = await users_svc.create_user(session, body.name, body.email, body.role, body.coins)
            await session.commit()
        except IntegrityError:
            await session.rollback()
            raise HTTPException(400, "Email already registered")
        except ValueError as e:
            await session.rollback()
            raise service_error(e)
        return user_to_dto(user)


@router.patch("/users/{user_id}/coins")
async def update_coins(user_id: int, body: CoinsUpdate, admin: User = Depends(require_admin_user)):
    """Add or remove coins (admin only). Recorded as admin_add / admin_remove. Admins cannot adjust their own balance."""
    async with async_session_factory() as session:
        try:
            user, tx = await users_svc.adjust_coins(session, admin, user_id, body.amount, body.reason)
            await session.commit()
        except (ValueError, LookupError) as e:
            await session.rollback()
            raise service_error(e)
        return {"ok": True, "coins": user.coins, "transaction": transaction_to_dto(tx)}


@router.patch("/users/{user_id}/status")
async def update_status(user_id: int, body: StatusUpdate, admin: User = Depends(require_admin_user)):
    """Suspend or reactivate a user (admin only). Cannot suspend yourself."""
    if body.status not in USER_STATUSES:
        raise HTTPException(400, "Invalid status")
    if user_id == admin.id and body.status == "suspended":
        raise HTTPException(400, "Cannot suspend your own account")
    async with async_session_factory() as session:
        user = await session.get(User, user_id)
        if not user:
            raise HTTPException(404, "User not found")
        user.status = body.status
        await session.commit()
        return user_to_dto(user)


@router.get("/transactions")
async def list_transactions(
    user_id: Optional[int] = None,
    type: Optional[str] = None,
    limit: int = 100,
    admin: User = Depends(require_admin_user),
):
    """Coin ledger, newest first (admin only)."""
    if type and type not in TRANSACTION_TYPES:
        raise HTTPException(400, "Invalid transaction type")
    async with async_session_factory() as session:
        q = select(Transaction, User).join(User, Transaction.user_id == User.id)
        if user_id is not None:
            q = q.where(Transaction.user_id == user_id)
        if type:
            q = q.where(Transaction.type == type)
        q = q.order_by(Transaction.id.desc()).limit(max(1, min(limit, 500)))
        result = await session.execute(q)
        return [transaction_to_dto(tx, user) for tx, user in result.all()]
