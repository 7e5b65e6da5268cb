from __future__ import annotations

from functools import lru_cache

from ballotbox.core.settings import get_settings
from ballotbox.db import SessionLocal, init_db
from ballotbox.ids import UrlTokenGenerator
from ballotbox.service import BallotService
from ballotbox.storage import SqlBallotStore


@lru_cache(maxsize=1)
def _default_service() -> BallotService:
    settings = get_settings()
    init_db()
    return BallotService(
        SqlBallotStore(SessionLocal),
        token_generator=UrlTokenGenerator(settings.url_token_bytes),
        report_hidden_vote_count=settings.report_hidden_vote_count,
    )


def get_service() -> BallotService:
    """FastAPI dependency; tests swap it out through ``app.dependency_overrides``."""
    return _default_service()
