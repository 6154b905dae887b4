from __future__ import annotations

from urllib.parse import parse_qs

import httpx
import pytest

from decap_oauth.exchange import TOKEN_URL, TokenError, TokenGrant, exchange_code


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


async def _exchange(handler):
    async with _client(handler) as client:
        return await exchange_code(
            client,
            code="the-code",
            client_id="cid",
            client_secret="secret",
            redirect_uri="https://oauth.example.com/auth",
            state="the-state",
        )


async def test_posts_form_with_json_accept():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"access_token": "abc123", "token_type": "bearer", "scope": "repo"})

    result = await _exchange(handler)

    assert result == TokenGrant(access_token="abc123", token_type="bearer", scope="repo")
    (request,) = seen
    assert request.method == "POST"
    assert str(request.url) == TOKEN_URL
    assert request.headers["accept"] == "application/json"
    assert request.headers["content-type"] == "application/x-www-form-urlencoded"
    assert parse_qs(request.content.decode()) == {
        "client_id": ["cid"],
        "client_secret": ["secret"],
        "code": ["the-code"],
        "redirect_uri": ["https://oauth.example.com/auth"],
        "state": ["the-state"],
    }


async def test_provider_error_is_passed_through():
    result = await _exchange(
        lambda request: httpx.Response(
            200,
            json={
                "error": "bad_verification_code",
                "error_description": "The code passed is incorrect or expired.",
                "error_uri": "https://docs.github.com/",
            },
        )
    )
    assert result == TokenError(
        error="bad_verification_code",
        error_description="The code passed is incorrect or expired.",
        error_uri="https://docs.github.com/",
    )
    assert result.message == "The code passed is incorrect or expired."


async def test_provider_error_without_description():
    result = await _exchange(lambda request: httpx.Response(200, json={"error": "access_denied"}))
    assert isinstance(result, TokenError)
    assert result.message == "access_denied"


@pytest.mark.parametrize(
    ("status", "payload"),
    [
        (200, {}),
        (200, {"access_token": ""}),
        (200, ["not", "an", "object"]),
        (500, {"access_token": "abc123"}),
    ],
)
async def test_missing_token_is_invalid_token(status, payload):
    result = await _exchange(lambda request: httpx.Response(status, json=payload))
    assert result == TokenError(
        error="invalid_token",
        error_description="GitHub response did not include an access token.",
    )


async def test_unparsable_body_is_invalid_response():
    result = await _exchange(lambda request: httpx.Response(200, text="<html>rate limited</html>"))
    assert isinstance(result, TokenError)
    assert result.error == "invalid_response"
    assert result.error_description.startswith("Unable to parse GitHub response: ")


async def test_transport_failure_is_invalid_response():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    result = await _exchange(handler)
    assert isinstance(result, TokenError)
    assert result.error == "invalid_response"
    assert "connection refused" in result.error_description


def test_message_fallbacks():
    assert TokenError(error="").message == "oauth_error"
    assert TokenError(error="e", error_description="").message == "e"
