"""Storage backends for ballots, votes and activity records."""

from .base import BallotStore
from .memory import InMemoryBallotStore
from .sql import SqlBallotStore

__all__ = ["BallotStore", "InMemoryBallotStore", "SqlBallotStore"]
