"""Ranked-choice ballots: lifecycle, vote admission and Instant Runoff tabulation."""

__version__ = "0.1.0"
