import base64

import pytest

from ballotbox.ids import UrlTokenGenerator


def test_default_tokens_are_22_url_safe_chars():
    gen = UrlTokenGenerator()
    tokens = {gen() for _ in range(50)}
    assert len(tokens) == 50
    for token in tokens:
        assert len(token) == 22
        assert "=" not in token and "+" not in token and "/" not in token


def test_token_encodes_injected_bytes():
    gen = UrlTokenGenerator(12, lambda n: b"\xff" * n)
    token = gen()
    assert token == "_" * 16
    assert base64.urlsafe_b64decode(token) == b"\xff" * 12


def test_too_few_bytes_is_refused():
    with pytest.raises(ValueError):
        UrlTokenGenerator(8)
