"""Shared API utilities: response shaping (DTOs) and service error mapping."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from arena.models import Alert, Tournament, Transaction, User


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


def user_to_dto(user: Optional[User]) -> Optional[dict]:
    if not user:
        return None
    wins = user.wins or 0
    losses = user.losses or 0
    return {
        "id": user.id,
        "username": user.name,
        "email": user.email,
        "role": user.role,
        "avatar": user.avatar or "",
        "status": user.status,
        "wallet": {"balance": user.coins or 0},
        "stats": {"wins": wins, "losses": losses, "matchesPlayed": wins + losses},
        "createdAt": _iso(user.created_at),
    }


async def load_players(session: AsyncSession, participant_ids: list) -> list[dict]:
    """User DTOs for participant ids, in join order."""
    if not participant_ids:
        return []
    result = await session.execute(select(User).where(User.id.in_(participant_ids)))
    by_id = {u.id: u for u in result.scalars().all()}
    return [user_to_dto(by_id[pid]) for pid in participant_ids if pid in by_id]


async def tournament_to_dto(session: AsyncSession, t: Tournament) -> dict:
    """Tournament with populated players and champion."""
    players = await load_players(session, list(t.participants or []))
    champion = await session.get(User, t.winner_id) if t.winner_id else None
    return {
        "id": t.id,
        "name": t.name,
        "description": t.description or "",
        "type": t.type,
        "entryFee": t.entry_cost,
        "maxPlayers": t.max_players,
        "status": t.status,
        "players": players,
        "champion": user_to_dto(champion),
        "startDate": _iso(t.start_date),
        "endDate": _iso(t.end_date),
        "tournamentAwardPercentage": t.award_percentage,
        "prizePool": t.prize_pool,
        "prizeDistributed": bool(t.prize_distributed),
        "currentRound": t.current_round,
        "bracket": t.bracket,
        "cancellationReason": t.cancellation_reason,
        "createdAt": _iso(t.created_at),
    }


def transaction_to_dto(tx: Transaction, user: Optional[User] = None) -> dict:
    return {
        "id": tx.id,
        "user": user_to_dto(user) if user else {"id": tx.user_id},
        "type": tx.type,
        "amount": tx.amount,
        "reason": tx.description or "",
        "balanceBefore": tx.balance_before,
        "balanceAfter": tx.balance_after,
        "tournamentId": tx.tournament_id,
        "createdAt": _iso(tx.created_at),
    }


def alert_to_dto(alert: Alert) -> dict:
    return {
        "id": alert.id,
        "title": alert.title,
        "message": alert.message,
        "type": alert.type,
        "severity": alert.severity,
        "status": alert.status,
        "createdBy": alert.created_by_id,
        "acknowledgedBy": alert.acknowledged_by_id,
        "acknowledgedAt": _iso(alert.acknowledged_at),
        "resolvedBy": alert.resolved_by_id,
        "resolvedAt": _iso(alert.resolved_at),
        "dismissedBy": alert.dismissed_by_id,
        "dismissedAt": _iso(alert.dismissed_at),
        "relatedTournamentId": alert.related_tournament_id,
        "relatedUserId": alert.related_user_id,
        "metadata": alert.extra or {},
        "createdAt": _iso(alert.created_at),
        "updatedAt": _iso(alert.updated_at),
    }


def service_error(e: Exception) -> HTTPException:
    """Map service exceptions: LookupError -> 404, ValueError -> 400."""
    if isinstance(e, LookupError):
        return HTTPException(404, str(e))
    return HTTPException(400, str(e))
