"""Instant Runoff Voting (IRV) tabulation."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ballotbox.records import Ranking


@dataclass(frozen=True)
class ChoiceTally:
    choice_index: int
    choice: str
    votes: int
    percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "choice_index": self.choice_index,
            "choice": self.choice,
            "votes": self.votes,
            "percentage": self.percentage,
        }


@dataclass(frozen=True)
class RoundResult:
    """Counts for one elimination round.

    Attributes:
        round: 1-based round number
        results: One tally per choice still in the running, in original
            choice order
        eliminated: Label of the choice knocked out after this round, None
            for the deciding round
        exhausted: Votes with no preference left among the remaining choices
    """
    round: int
    results: Tuple[ChoiceTally, ...]
    eliminated: Optional[str] = None
    exhausted: int = 0

    @property
    def total(self) -> int:
        return sum(t.votes for t in self.results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "round": self.round,
            "results": [t.to_dict() for t in self.results],
            "eliminated": self.eliminated,
            "exhausted": self.exhausted,
        }


@dataclass(frozen=True)
class TabulationOutput:
    rounds: Tuple[RoundResult, ...] = ()
    winner: Optional[str] = None

    def final_round_only(self) -> "TabulationOutput":
        """Drop the intermediate rounds, keeping the last one and the winner."""
        return replace(self, rounds=self.rounds[-1:])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rounds": [r.to_dict() for r in self.rounds],
            "winner": self.winner,
        }


def _ordered(rankings: Sequence[Ranking]) -> List[int]:
    # sorted() is stable, so equal ranks keep their submission order
    return [r.choice_index for r in sorted(rankings, key=lambda r: r.rank)]


def _top_preference(preferences: List[int], remaining: List[int]) -> Optional[int]:
    for choice_index in preferences:
        if choice_index in remaining:
            return choice_index
    return None


def tabulate(
    choices: Sequence[str],
    votes: Iterable[Sequence[Ranking]],
) -> TabulationOutput:
    """Run single-winner Instant Runoff Voting.

    Each round, every vote counts for its most preferred choice that is
    still in the running. A choice holding a strict majority of the counted
    votes wins. Otherwise exactly one choice with the fewest votes is
    eliminated and the votes are counted again. When a single choice
    remains it wins, even if nobody ranked it.

    Ties are broken by original choice order: the first choice (in the
    order of ``choices``) with the maximum count wins a majority, and the
    first with the minimum count is eliminated.

    Args:
        choices: Choice labels; list positions are the choice indices used
            by the rankings
        votes: One ranking sequence per voter. Rankings may be partial.

    Returns:
        TabulationOutput with the rounds in order and the winning label,
        or no rounds and no winner when there are no votes.
    """
    preferences = [_ordered(v) for v in votes]
    if not preferences:
        return TabulationOutput()

    remaining = list(range(len(choices)))
    rounds: List[RoundResult] = []

    while len(remaining) > 1:
        counts = {choice_index: 0 for choice_index in remaining}
        exhausted = 0
        for prefs in preferences:
            top = _top_preference(prefs, remaining)
            if top is None:
                exhausted += 1
            else:
                counts[top] += 1

        total = sum(counts.values())
        tallies = tuple(
            ChoiceTally(
                choice_index=i,
                choice=choices[i],
                votes=counts[i],
                percentage=(counts[i] / total) * 100 if total > 0 else 0.0,
            )
            for i in remaining
        )
        round_number = len(rounds) + 1

        max_votes = max(counts.values())
        if max_votes > total / 2:
            winner = next(i for i in remaining if counts[i] == max_votes)
            rounds.append(RoundResult(round_number, tallies, None, exhausted))
            return TabulationOutput(rounds=tuple(rounds), winner=choices[winner])

        min_votes = min(counts.values())
        loser = next(i for i in remaining if counts[i] == min_votes)
        rounds.append(RoundResult(round_number, tallies, choices[loser], exhausted))
        remaining.remove(loser)

    winner = choices[remaining[0]] if remaining else None
    return TabulationOutput(rounds=tuple(rounds), winner=winner)


__all__ = ["ChoiceTally", "RoundResult", "TabulationOutput", "tabulate"]
