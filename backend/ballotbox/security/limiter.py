from slowapi import Limiter
from slowapi.util import get_remote_address

from ballotbox.core.settings import get_settings

# If later behind a proxy, parse X-Forwarded-For here.
limiter = Limiter(key_func=get_remote_address, enabled=get_settings().enable_rate_limit)


def vote_rate_limit() -> str:
    return get_settings().vote_rate_limit


__all__ = ["limiter", "vote_rate_limit"]
