"""Aggregate queries for the back-office dashboard and per-user stats."""
from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from arena.models import Tournament, Transaction, User
from arena.models.tournament import TOURNAMENT_STATUSES
from arena.services.tournaments import get_user

# Ledger types that put new coins into circulation
ISSUING_TYPES = ("admin_add", "tournament_win")
RECENT_ACTIVITY_DAYS = 30


def _rate(won: int, total: int) -> float:
    return round(won / total * 100, 2) if total else 0.0


async def _scalar(session: AsyncSession, q) -> int:
    return (await session.execute(q)).scalar_one() or 0


async def dashboard_stats(session: AsyncSession) -> dict:
    total_users = await _scalar(session, select(func.count()).select_from(User).where(User.role == "player"))
    total_coins = await _scalar(session, select(func.coalesce(func.sum(User.coins), 0)))
    coins_issued = await _scalar(
        session,
        select(func.coalesce(func.sum(Transaction.amount), 0)).where(
            Transaction.type.in_(ISSUING_TYPES), Transaction.amount > 0
        ),
    )
    entry_fees = await _scalar(
        session,
        select(func.coalesce(func.sum(-Transaction.amount), 0)).where(
            Transaction.type == "tournament_entry", Transaction.amount < 0
        ),
    )
    refunds = await _scalar(
        session,
        select(func.coalesce(func.sum(Transaction.amount), 0)).where(Transaction.type == "tournament_refund"),
    )
    by_status = dict(
        (await session.execute(select(Tournament.status, func.count()).group_by(Tournament.status))).all()
    )
    return {
        "totalUsers": total_users,
        "totalCoins": total_coins,
        "coinsIssued": coins_issued,
        "coinsUsedInTournaments": entry_fees - refunds,
        "coinsRefunded": refunds,
        "tournaments": {s: by_status.get(s, 0) for s in TOURNAMENT_STATUSES},
    }


async def user_stats(session: AsyncSession, user_id: int) -> dict:
    """Match record, tournament record, coin flow and recent activity for one user."""
    user = await get_user(session, user_id)
    won = user.wins or 0
    lost = user.losses or 0

    joined = await _scalar(
        session,
        select(func.count(func.distinct(Transaction.tournament_id))).where(
            Transaction.user_id == user_id, Transaction.type == "tournament_entry"
        ),
    )
    titles = await _scalar(
        session,
        select(func.count())
        .select_from(Tournament)
        .where(Tournament.winner_id == user_id, Tournament.status == "completed"),
    )
    earned = await _scalar(
        session,
        select(func.coalesce(func.sum(Transaction.amount), 0)).where(
            Transaction.user_id == user_id, Transaction.amount > 0
        ),
    )
    spent = await _scalar(
        session,
        select(func.coalesce(func.sum(-Transaction.amount), 0)).where(
            Transaction.user_id == user_id, Transaction.amount < 0
        ),
    )
    since = datetime.utcnow() - timedelta(days=RECENT_ACTIVITY_DAYS)
    recent = await _scalar(
        session,
        select(func.count())
        .select_from(Transaction)
        .where(Transaction.user_id == user_id, Transaction.created_at >= since),
    )
    return {
        "user": user,
        "matches": {"total": won + lost, "won": won, "lost": lost, "winRate": _rate(won, won + lost)},
        "tournaments": {"joined": joined, "won": titles, "winRate": _rate(titles, joined)},
        "economy": {
            "currentBalance": user.coins,
            "totalEarned": earned,
            "totalSpent": spent,
            "netCoins": earned - spent,
        },
        "activity": {"recentTransactions": recent},
    }
