from __future__ import annotations

import base64

import pytest

from decap_oauth.state import OAuthState, decode_state, encode_state, new_state


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


@pytest.mark.parametrize(
    "state",
    [
        OAuthState(nonce="abc"),
        OAuthState(nonce="abc", origin="https://cms.example.com"),
        OAuthState(nonce="ünïcødé?/+", origin="http://localhost:4321"),
        OAuthState(nonce=""),
    ],
)
def test_round_trip(state):
    assert decode_state(encode_state(state)) == state


def test_encoding_is_url_safe_and_unpadded():
    for i in range(20):
        token = encode_state(OAuthState(nonce="?" * i, origin=">>>"))
        assert "+" not in token
        assert "/" not in token
        assert not token.endswith("=")


def test_new_state_mints_distinct_nonces():
    first, second = new_state("https://cms.example.com"), new_state(None)
    assert first.nonce != second.nonce
    assert first.origin == "https://cms.example.com"
    assert second.origin is None


@pytest.mark.parametrize(
    "token",
    [
        None,
        "",
        "%%%not base64%%%",
        "a",
        _b64url(b"plain text, not json"),
        _b64url(b"\xff\xfe\xfd"),
        _b64url(b'["nonce"]'),
        _b64url(b'{"origin": "https://cms.example.com"}'),
        _b64url(b'{"nonce": 42}'),
        _b64url(b'{"nonce": null}'),
        _b64url(b"[" * 5000),
    ],
)
def test_decode_rejects_malformed(token):
    assert decode_state(token) is None


def test_decode_tolerates_missing_or_odd_origin():
    assert decode_state(_b64url(b'{"nonce": "n"}')) == OAuthState(nonce="n")
    assert decode_state(_b64url(b'{"nonce": "n", "origin": 7}')) == OAuthState(nonce="n")
