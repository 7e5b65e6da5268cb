from __future__ import annotations

import os
from functools import lru_cache

from pydantic import BaseModel, Field

MIN_URL_TOKEN_BYTES = 12


class Settings(BaseModel):
    database_url: str = Field(default="sqlite:///./ballots.db")
    jwt_secret: str = Field(default="your-secret-key")
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=60)
    enable_rate_limit: bool = Field(default=True)
    vote_rate_limit: str = Field(default="30/minute")
    url_token_bytes: int = Field(default=16, ge=MIN_URL_TOKEN_BYTES)
    report_hidden_vote_count: bool = Field(default=False)
    log_file: str = Field(default="ballots.log")
    log_level: str = Field(default="INFO")


def _load_settings() -> Settings:
    env = os.getenv
    database_url = env("DATABASE_URL", "") or "sqlite:///./ballots.db"
    jwt_secret = env("JWT_SECRET", "your-secret-key") or "your-secret-key"
    jwt_algorithm = env("JWT_ALGORITHM", "HS256") or "HS256"
    access_token_expire_minutes = int(env("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
    enable_rate_limit = env("ENABLE_RATE_LIMIT", "1") == "1"
    vote_rate_limit = env("VOTE_RATE_LIMIT", "30/minute") or "30/minute"
    url_token_bytes = int(env("URL_TOKEN_BYTES", "16"))
    report_hidden_vote_count = env("REPORT_HIDDEN_VOTE_COUNT", "0") == "1"
    log_file = env("BALLOTBOX_LOG_FILE", "ballots.log") or "ballots.log"
    log_level = (env("BALLOTBOX_LOG_LEVEL", "INFO") or "INFO").upper()
    return Settings(
        database_url=database_url,
        jwt_secret=jwt_secret,
        jwt_algorithm=jwt_algorithm,
        access_token_expire_minutes=access_token_expire_minutes,
        enable_rate_limit=enable_rate_limit,
        vote_rate_limit=vote_rate_limit,
        url_token_bytes=url_token_bytes,
        report_hidden_vote_count=report_hidden_vote_count,
        log_file=log_file,
        log_level=log_level,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return _load_settings()


def reload_settings() -> Settings:
    get_settings.cache_clear()
    return get_settings()


__all__ = ["Settings", "get_settings", "reload_settings", "MIN_URL_TOKEN_BYTES"]
