"""Tournament lifecycle: registration, bracket start, results, payout, cancellation.

Functions here take an open session and leave commit/rollback to the caller,
so one request is one database transaction.
"""
from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

import config
from arena.models import Tournament, User
from arena.models.tournament import TOURNAMENT_TYPES
from arena.services.bracket_gen import (
    Bracket,
    current_round,
    generate_bracket,
    get_match,
    loser_of,
    progress_to_next_round,
)
from arena.services.ledger import apply_coins

logger = logging.getLogger("arena.tournaments")


class TournamentNotFound(LookupError):
    pass


class UserNotFound(LookupError):
    pass


class TournamentError(ValueError):
    pass


async def get_tournament(session: AsyncSession, tournament_id: int, for_update: bool = False) -> Tournament:
    """Load a tournament or raise TournamentNotFound. for_update locks the row where the backend supports it."""
    q = select(Tournament).where(Tournament.id == tournament_id)
    if for_update:
        q = q.with_for_update()
    t = (await session.execute(q)).scalar_one_or_none()
    if not t:
        raise TournamentNotFound("Tournament not found")
    return t


async def get_user(session: AsyncSession, user_id: int, for_update: bool = False) -> User:
    q = select(User).where(User.id == user_id)
    if for_update:
        q = q.with_for_update()
    user = (await session.execute(q)).scalar_one_or_none()
    if not user:
        raise UserNotFound("User not found")
    return user


def _check_award_percentage(value: float) -> float:
    if not 0 <= value <= 100:
        raise TournamentError("Award percentage must be between 0 and 100")
    return float(value)


async def create_tournament(
    session: AsyncSession,
    name: str,
    type: str,
    max_players: int,
    entry_cost: int,
    prize_pool: int,
    description: str = "",
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    award_percentage: Optional[float] = None,
) -> Tournament:
    name = (name or "").strip()
    if not name:
        raise TournamentError("Name is required")
    if type not in TOURNAMENT_TYPES:
        raise TournamentError("Type must be public or private")
    if max_players not in config.ALLOWED_BRACKET_SIZES:
        sizes = " or ".join(str(s) for s in sorted(config.ALLOWED_BRACKET_SIZES))
        raise TournamentError(f"Max players must be {sizes}")
    if entry_cost < 1:
        raise TournamentError("Entry cost must be a positive integer")
    if prize_pool < 1:
        raise TournamentError("Prize pool must be a positive integer")
    pct = config.DEFAULT_AWARD_PERCENTAGE if award_percentage is None else award_percentage
    existing = await session.execute(select(Tournament).where(Tournament.name == name))
    if existing.scalar_one_or_none():
        raise TournamentError("Tournament with this name already exists")
    t = Tournament(
        name=name,
        description=(description or "").strip(),
        type=type,
        max_players=max_players,
        entry_cost=entry_cost,
        prize_pool=prize_pool,
        award_percentage=_check_award_percentage(pct),
        start_date=start_date,
        end_date=end_date,
        status="registration",
        participants=[],
        current_round=0,
    )
    session.add(t)
    try:
        await session.flush()
    except IntegrityError as e:
        # a concurrent create won the unique name between the check and the insert
        raise TournamentError("Tournament with this name already exists") from e
    logger.info("Created tournament %s (%s, %d players)", t.id, t.name, t.max_players)
    return t


async def join_tournament(session: AsyncSession, tournament_id: int, user_id: int) -> User:
    """Register user, charge the entry cost, and start the bracket once the roster is full."""
    t = await get_tournament(session, tournament_id, for_update=True)
    if t.status != "registration":
        raise TournamentError("Tournament is not accepting registrations")
    participants = list(t.participants or [])
    if len(participants) >= t.max_players:
        raise TournamentError("Tournament is full")
    if user_id in participants:
        raise TournamentError("You are already registered for this tournament")
    user = await get_user(session, user_id, for_update=True)
    if user.status == "suspended":
        raise TournamentError("Account is suspended")
    if user.coins < t.entry_cost:
        raise TournamentError("Insufficient coins")

    apply_coins(
        session,
        user,
        -t.entry_cost,
        "tournament_entry",
        f"Entry fee for tournament: {t.name}",
        tournament_id=t.id,
    )
    participants.append(user_id)
    t.participants = participants

    if len(participants) == t.max_players:
        bracket = generate_bracket(t.max_players, participants)
        t.bracket = bracket.to_dict()
        t.status = "active"
        t.current_round = 1
        t.started_at = datetime.utcnow()
        logger.info("Tournament %s is full, bracket generated", t.id)
    await session.flush()
    return user


async def record_match_result(
    session: AsyncSession,
    tournament_id: int,
    round_number: int,
    match_index: int,
    winner_id: int,
) -> Tournament:
    """Record a bracket match winner. Completes the tournament and pays out after the final."""
    t = await get_tournament(session, tournament_id, for_update=True)
    if t.status != "active" or not t.bracket:
        raise TournamentError(f"Tournament is {t.status}, results cannot be recorded")

    # Work on a copy so a rejected result leaves the stored bracket untouched
    bracket = Bracket.from_dict(t.bracket)
    done = progress_to_next_round(bracket, round_number, match_index, winner_id)
    match = get_match(bracket, round_number, match_index)

    winner = await get_user(session, winner_id)
    winner.wins = (winner.wins or 0) + 1
    loser_id = loser_of(match)
    if loser_id is not None:
        loser = await session.get(User, loser_id)
        if loser:
            loser.losses = (loser.losses or 0) + 1

    t.bracket = bracket.to_dict()
    next_round = current_round(bracket)
    if next_round is not None:
        t.current_round = next_round
    if done:
        t.status = "completed"
        t.winner_id = done.champion_id
        t.completed_at = datetime.utcnow()
        logger.info("Tournament %s completed, champion %s", t.id, done.champion_id)
        await distribute_prize(session, t)
    await session.flush()
    return t


def prize_amount(t: Tournament) -> int:
    return math.floor(t.prize_pool * (t.award_percentage / 100))


async def distribute_prize(session: AsyncSession, t: Tournament) -> int:
    """Pay the champion's share of the prize pool once. Returns the amount paid (0 if already paid)."""
    if t.prize_distributed:
        return 0
    if t.winner_id is None:
        raise TournamentError("Tournament has no champion")
    champion = await get_user(session, t.winner_id, for_update=True)
    amount = prize_amount(t)
    apply_coins(
        session,
        champion,
        amount,
        "tournament_win",
        f"Tournament prize ({t.award_percentage:g}%) for winning: {t.name}",
        tournament_id=t.id,
    )
    t.prize_distributed = True
    return amount


async def cancel_tournament(session: AsyncSession, tournament_id: int, reason: Optional[str] = None) -> int:
    """Cancel and refund every participant. Returns the number refunded."""
    t = await get_tournament(session, tournament_id, for_update=True)
    if t.status == "completed":
        raise TournamentError("Cannot cancel completed tournament")
    if t.status == "cancelled":
        raise TournamentError("Tournament is already cancelled")
    refunded = 0
    for participant_id in t.participants or []:
        user = await session.get(User, participant_id)
        if not user:
            logger.warning("Participant %s of tournament %s no longer exists, skipping refund", participant_id, t.id)
            continue
        apply_coins(
            session,
            user,
            t.entry_cost,
            "tournament_refund",
            f"Refund for cancelled tournament: {t.name}",
            tournament_id=t.id,
        )
        refunded += 1
    t.status = "cancelled"
    t.cancelled_at = datetime.utcnow()
    t.cancellation_reason = (reason or "").strip() or "Cancelled by admin"
    await session.flush()
    logger.info("Tournament %s cancelled, %d participants refunded", t.id, refunded)
    return refunded


async def update_award_percentage(session: AsyncSession, tournament_id: int, percentage: float) -> Tournament:
    t = await get_tournament(session, tournament_id, for_update=True)
    if t.status == "completed":
        raise TournamentError("Cannot update award percentage for completed tournament")
    t.award_percentage = _check_award_percentage(percentage)
    await session.flush()
    return t
