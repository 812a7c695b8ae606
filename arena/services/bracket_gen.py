"""Bracket generation service: single-elimination brackets and winner progression.

Pure functions over plain data. Callers load the bracket from the tournament
record, run one of these, and store the result back inside their own
transaction.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Sequence


class MatchStatus(str, Enum):
    WAITING = "waiting"  # a slot is waiting for a prior winner
    PENDING = "pending"  # both slots filled, ready to be played
    BYE = "bye"  # one slot empty by design
    COMPLETED = "completed"


class BracketError(ValueError):
    """Base for bracket progression errors. Nothing is written when one is raised."""


class MatchNotFound(BracketError):
    pass


class AlreadyCompleted(BracketError):
    pass


class NotReady(BracketError):
    pass


class InvalidWinner(BracketError):
    pass


@dataclass
class BracketMatch:
    player1_id: Optional[Any] = None
    player2_id: Optional[Any] = None
    winner_id: Optional[Any] = None
    status: MatchStatus = MatchStatus.WAITING

    def has_both_players(self) -> bool:
        return self.player1_id is not None and self.player2_id is not None

    def to_dict(self) -> dict:
        return {
            "player1Id": self.player1_id,
            "player2Id": self.player2_id,
            "winnerId": self.winner_id,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "BracketMatch":
        return cls(
            player1_id=data.get("player1Id"),
            player2_id=data.get("player2Id"),
            winner_id=data.get("winnerId"),
            status=MatchStatus(data.get("status", MatchStatus.WAITING.value)),
        )


@dataclass
class Round:
    round_number: int
    name: str
    matches: List[BracketMatch] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "roundNumber": self.round_number,
            "name": self.name,
            "matches": [m.to_dict() for m in self.matches],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Round":
        return cls(
            round_number=data["roundNumber"],
            name=data.get("name", ""),
            matches=[BracketMatch.from_dict(m) for m in data.get("matches", [])],
        )


@dataclass
class Bracket:
    size: int
    rounds: List[Round] = field(default_factory=list)

    @property
    def total_rounds(self) -> int:
        return len(self.rounds)

    def to_dict(self) -> dict:
        return {
            "maxPlayers": self.size,
            "totalRounds": self.total_rounds,
            "rounds": [r.to_dict() for r in self.rounds],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Bracket":
        return cls(
            size=data["maxPlayers"],
            rounds=[Round.from_dict(r) for r in data.get("rounds", [])],
        )


@dataclass(frozen=True)
class TournamentComplete:
    """Returned by progress_to_next_round when the final has been decided."""

    champion_id: Any


def is_power_of_2(n: int) -> bool:
    return n >= 2 and n & (n - 1) == 0


def round_name(round_number: int, total_rounds: int) -> str:
    """Display label: Final, Semi-Finals, Quarter-Finals, else Round of N."""
    remaining = total_rounds - round_number
    if remaining == 0:
        return "Final"
    if remaining == 1:
        return "Semi-Finals"
    if remaining == 2:
        return "Quarter-Finals"
    return f"Round of {2 ** (remaining + 1)}"


def _place_winner(bracket: Bracket, round_idx: int, match_index: int, winner_id: Any) -> None:
    """Put winner into the next round: match i//2, slot 1 for even i, slot 2 for odd."""
    target = bracket.rounds[round_idx + 1].matches[match_index // 2]
    if match_index % 2 == 0:
        target.player1_id = winner_id
    else:
        target.player2_id = winner_id
    if target.has_both_players() and target.status == MatchStatus.WAITING:
        target.status = MatchStatus.PENDING


def generate_bracket(size: int, participants: Sequence[Any]) -> Bracket:
    """Build a single-elimination bracket.

    Pairs participants in input order: (0, 1), (2, 3), ... When fewer than
    ``size`` participants are given, the trailing ones get byes: each bye
    match is completed at creation and its winner already sits in round 2.
    """
    if not is_power_of_2(size):
        raise ValueError(f"Bracket size must be a power of two, got {size}")
    n = len(participants)
    if n > size:
        raise ValueError(f"Too many participants: {n} for a bracket of {size}")
    if n < size // 2 or n < 2:
        raise ValueError(f"Need at least {max(2, size // 2)} participants for a bracket of {size}")
    if len(set(participants)) != n:
        raise ValueError("Participants must be unique")

    total_rounds = size.bit_length() - 1
    bracket = Bracket(size=size)

    # Round 1: paired block first, then one bye match per trailing participant
    paired = 2 * n - size
    first = Round(round_number=1, name=round_name(1, total_rounds))
    for i in range(0, paired, 2):
        first.matches.append(
            BracketMatch(
                player1_id=participants[i],
                player2_id=participants[i + 1],
                status=MatchStatus.PENDING,
            )
        )
    for pid in participants[paired:]:
        first.matches.append(BracketMatch(player1_id=pid, status=MatchStatus.BYE))
    bracket.rounds.append(first)

    # Rounds 2+: empty slots until winners arrive
    match_count = size // 4
    r = 2
    while match_count >= 1:
        bracket.rounds.append(
            Round(
                round_number=r,
                name=round_name(r, total_rounds),
                matches=[BracketMatch() for _ in range(match_count)],
            )
        )
        match_count //= 2
        r += 1

    # Resolve byes: bye -> completed, winner moves on
    for i, m in enumerate(first.matches):
        if m.status != MatchStatus.BYE:
            continue
        m.winner_id = m.player1_id
        m.status = MatchStatus.COMPLETED
        if bracket.total_rounds > 1:
            _place_winner(bracket, 0, i, m.winner_id)

    return bracket


def get_match(bracket: Bracket, round_number: int, match_index: int) -> BracketMatch:
    """Return the match at (1-based round, 0-based index) or raise MatchNotFound."""
    if not 1 <= round_number <= bracket.total_rounds:
        raise MatchNotFound(f"Round {round_number} does not exist")
    matches = bracket.rounds[round_number - 1].matches
    if not 0 <= match_index < len(matches):
        raise MatchNotFound(f"Match {match_index} does not exist in round {round_number}")
    return matches[match_index]


def progress_to_next_round(
    bracket: Bracket, round_number: int, match_index: int, winner_id: Any
) -> Optional[TournamentComplete]:
    """Record a match winner and advance them.

    Mutates ``bracket`` in place. Returns TournamentComplete when the final was
    decided, else None. All validation happens before any field is written.
    """
    match = get_match(bracket, round_number, match_index)
    if match.status == MatchStatus.COMPLETED:
        raise AlreadyCompleted(f"Match {match_index} in round {round_number} is already completed")
    if not match.has_both_players():
        raise NotReady(f"Match {match_index} in round {round_number} is waiting for players")
    if winner_id not in (match.player1_id, match.player2_id):
        raise InvalidWinner("Winner must be one of the match players")

    match.winner_id = winner_id
    match.status = MatchStatus.COMPLETED

    if round_number == bracket.total_rounds:
        return TournamentComplete(champion_id=winner_id)
    _place_winner(bracket, round_number - 1, match_index, winner_id)
    return None


def current_round(bracket: Bracket) -> Optional[int]:
    """First round that still has an undecided match, or None when complete."""
    for rnd in bracket.rounds:
        if any(m.status != MatchStatus.COMPLETED for m in rnd.matches):
            return rnd.round_number
    return None


def champion(bracket: Bracket) -> Optional[Any]:
    if not bracket.rounds:
        return None
    final = bracket.rounds[-1].matches[0]
    return final.winner_id if final.status == MatchStatus.COMPLETED else None


def loser_of(match: BracketMatch) -> Optional[Any]:
    if match.winner_id is None:
        return None
    return match.player2_id if match.winner_id == match.player1_id else match.player1_id
