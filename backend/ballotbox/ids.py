from __future__ import annotations

import base64
import secrets
from typing import Callable

from ballotbox.core.settings import MIN_URL_TOKEN_BYTES

RandomBytes = Callable[[int], bytes]


class UrlTokenGenerator:
    """Produce public URL tokens for ballots.

    The random source is injected so tests can make tokens predictable. The
    default draws ``nbytes`` from ``secrets`` and encodes them URL-safe
    without padding (16 bytes -> 22 characters).
    """

    def __init__(self, nbytes: int = 16, randbytes: RandomBytes = secrets.token_bytes) -> None:
        if nbytes < MIN_URL_TOKEN_BYTES:
            raise ValueError(f"url tokens need at least {MIN_URL_TOKEN_BYTES} random bytes")
        self.nbytes = nbytes
        self._randbytes = randbytes

    def __call__(self) -> str:
        raw = self._randbytes(self.nbytes)
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


__all__ = ["UrlTokenGenerator"]
