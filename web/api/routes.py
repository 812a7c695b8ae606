"""API routes for tournaments: registration, bracket, results, payout, cancellation."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from arena.models import Tournament, User
from arena.models.base import async_session_factory
from arena.services import tournaments as svc
from web.api.utils import load_players, service_error, tournament_to_dto
from web.auth import require_admin_user, require_user

logger = logging.getLogger("arena.api")

router = APIRouter(prefix="/api", tags=["tournaments"])


# --- Pydantic schemas ---


class TournamentCreate(BaseModel):
    name: str
    description: str = ""
    type: str = "public"  # public, private
    max_players: int  # 4 or 8
    entry_cost: int
    prize_pool: int
    award_percentage: Optional[float] = None  # default from config
    start_date: Optional[str] = None  # ISO datetime
    end_date: Optional[str] = None


class MatchResult(BaseModel):
    round_number: int = Field(ge=1)  # 1-based
    match_index: int = Field(ge=0)  # 0-based position within the round
    winner_id: int


class AwardPercentageUpdate(BaseModel):
    percentage: float


class CancelRequest(BaseModel):
    reason: Optional[str] = None


def _parse_date(s: Optional[str]):
    """Parse ISO datetime string to naive UTC datetime."""
    if not s or not s.strip():
        return None
    s = s.strip()
    try:
        dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        raise HTTPException(400, f"Invalid date format: {s}")
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


# --- Tournaments ---


@router.get("/tournaments")
async def list_tournaments(status: Optional[str] = None):
    """List tournaments, newest first. Optional ?status= filter."""
    async with async_session_factory() as session:
        q = select(Tournament).order_by(Tournament.created_at.desc(), Tournament.id.desc()).limit(100)
        if status:
            q = q.where(Tournament.status == status)
        result = await session.execute(q)
        return [await tournament_to_dto(session, t) for t in result.scalars().all()]


@router.get("/tournaments/{tournament_id}")
async def get_tournament(tournament_id: int):
    async with async_session_factory() as session:
        t = await session.get(Tournament, tournament_id)
        if not t:
            raise HTTPException(404, "Tournament not found")
        return await tournament_to_dto(session, t)


@router.get("/tournaments/{tournament_id}/players")
async def get_players(tournament_id: int):
    """Registered players in join order."""
    async with async_session_factory() as session:
        t = await session.get(Tournament, tournament_id)
        if not t:
            raise HTTPException(404, "Tournament not found")
        players = await load_players(session, list(t.participants or []))
        return {"players": players, "totalPlayers": len(players), "maxPlayers": t.max_players}


@router.get("/tournaments/{tournament_id}/bracket")
async def get_bracket(tournament_id: int):
    """Get bracket data for a tournament."""
    async with async_session_factory() as session:
        t = await session.get(Tournament, tournament_id)
        if not t:
            raise HTTPException(404, "Tournament not found")
        if not t.bracket:
            raise HTTPException(404, "No bracket generated")
        return {
            "tournament": {"id": t.id, "name": t.name, "status": t.status},
            "currentRound": t.current_round,
            "winnerId": t.winner_id,
            "bracket": t.bracket,
        }


@router.post("/tournaments", status_code=201)
async def create_tournament(body: TournamentCreate, admin: User = Depends(require_admin_user)):
    """Create a tournament (admin only). Opens in registration status."""
    start_date = _parse_date(body.start_date)
    end_date = _parse_date(body.end_date)
    async with async_session_factory() as session:
        try:
            t = await svc.create_tournament(
                session,
                name=body.name,
                type=body.type,
                max_players=body.max_players,
                entry_cost=body.entry_cost,
                prize_pool=body.prize_pool,
                description=body.description,
                start_date=start_date,
                end_date=end_date,
                award_percentage=body.award_percentage,
            )
            await session.commit()
        except IntegrityError:
            await session.rollback()
            raise HTTPException(400, "Tournament with this name already exists")
        except (ValueError, LookupError) as e:
            await session.rollback()
            raise service_error(e)
        await session.refresh(t)
        return await tournament_to_dto(session, t)


@router.post("/tournaments/{tournament_id}/join")
async def join_tournament(tournament_id: int, user: User = Depends(require_user)):
    """Join as the current user. Charges the entry cost; the bracket starts when the roster fills."""
    async with async_session_factory() as session:
        try:
            player = await svc.join_tournament(session, tournament_id, user.id)
            await session.commit()
        except (ValueError, LookupError) as e:
            await session.rollback()
            raise service_error(e)
        return {"ok": True, "coins": player.coins}


@router.post("/tournaments/{tournament_id}/matches/result")
async def record_match_result(
    tournament_id: int,
    body: MatchResult,
    admin: User = Depends(require_admin_user),
):
    """Record a bracket match winner and advance them. Completes the tournament and pays the champion after the final."""
    async with async_session_factory() as session:
        try:
            t = await svc.record_match_result(
                session, tournament_id, body.round_number, body.match_index, body.winner_id
            )
            await session.commit()
        except (ValueError, LookupError) as e:
            await session.rollback()
            raise service_error(e)
        except Exception as e:
            await session.rollback()
            logger.exception("record_match_result failed")
            raise HTTPException(400, f"Failed to record result: {e}")
        data = await tournament_to_dto(session, t)
        data["completed"] = t.status == "completed"
        data["champion_id"] = t.winner_id
        return data


@router.post("/tournaments/{tournament_id}/award-percentage")
async def update_award_percentage(
    tournament_id: int, body: AwardPercentageUpdate, admin: User = Depends(require_admin_user)
):
    """Update the champion's share of the prize pool (admin only)."""
    async with async_session_factory() as session:
        try:
            t = await svc.update_award_percentage(session, tournament_id, body.percentage)
            await session.commit()
        except (ValueError, LookupError) as e:
            await session.rollback()
            raise service_error(e)
        return {"id": t.id, "awardPercentage": t.award_percentage}


@router.post("/tournaments/{tournament_id}/cancel")
async def cancel_tournament(
    tournament_id: int,
    body: Optional[CancelRequest] = None,
    admin: User = Depends(require_admin_user),
):
    """Cancel a tournament and refund all participants (admin only)."""
    reason = body.reason if body else None
    async with async_session_factory() as session:
        try:
            refunded = await svc.cancel_tournament(session, tournament_id, reason)
            await session.commit()
        except (ValueError, LookupError) as e:
            await session.rollback()
            raise service_error(e)
        return {"ok": True, "refundedCount": refunded}
