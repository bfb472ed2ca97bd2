"""
Tests for the ESI client, using httpx.MockTransport instead of the network.
"""

import base64
import json
from datetime import UTC, datetime
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from esi import EsiError, EsiOAuth, EsiProgressSource, character_from_token
from esi.skills import parse_queue


def make_jwt(claims: dict) -> str:
    payload = base64.urlsafe_b64encode(json.dumps(claims).encode()).decode().rstrip("=")
    return f"eyJhbGciOiJSUzI1NiJ9.{payload}.signature"


class FakeEsi:
    """Request handler answering like SSO and ESI."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.token_status = 200

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/v2/oauth/token":
            if self.token_status != 200:
                return httpx.Response(
                    self.token_status,
                    json={"error": "invalid_grant", "error_description": "Invalid refresh token"},
                )
            return httpx.Response(200, json={"access_token": "access", "refresh_token": "rotated"})

        if path == "/v4/characters/42/skills/":
            return httpx.Response(
                200,
                json={
                    "skills": [
                        {
                            "skill_id": 3300,
                            "skillpoints_in_skill": 45255,
                            "trained_skill_level": 3,
                            "active_skill_level": 3,
                        }
                    ],
                    "total_sp": 45255,
                },
            )

        if path == "/v2/characters/42/skillqueue/":
            return httpx.Response(
                200,
                json=[
                    {"skill_id": 3301, "finished_level": 2, "queue_position": 1},
                    {
                        "skill_id": 3300,
                        "finished_level": 4,
                        "queue_position": 0,
                        "finish_date": "2025-01-16T08:30:00Z",
                    },
                ],
            )

        if path == "/v3/universe/names/":
            ids = json.loads(request.content)
            return httpx.Response(
                200, json=[{"id": i, "name": "Gunnery", "category": "inventory_type"} for i in ids]
            )

        return httpx.Response(404, json={"error": "Not found"})


@pytest.fixture
def fake_esi():
    return FakeEsi()


@pytest.fixture
def oauth(fake_esi):
    return EsiOAuth("client", "secret", "https://bot.example/callback", transport=httpx.MockTransport(fake_esi))


@pytest.fixture
def source(oauth, fake_esi):
    return EsiProgressSource(oauth, transport=httpx.MockTransport(fake_esi))


class TestCharacterFromToken:
    def test_decodes_claims(self):
        token = make_jwt({"sub": "CHARACTER:EVE:2112625428", "name": "Test Pilot"})

        claims = character_from_token(token)

        assert claims.character_id == 2112625428
        assert claims.name == "Test Pilot"

    @pytest.mark.parametrize(
        "token",
        ["not-a-jwt", "a.!!!.c", make_jwt({"name": "x"}), make_jwt({"sub": "CHARACTER", "name": "x"})],
    )
    def test_rejects_bad_tokens(self, token):
        with pytest.raises(EsiError):
            character_from_token(token)


def test_authorization_url(oauth):
    url = urlparse(oauth.authorization_url("abc"))
    query = parse_qs(url.query)

    assert url.netloc == "login.eveonline.com"
    assert query["state"] == ["abc"]
    assert query["redirect_uri"] == ["https://bot.example/callback"]
    assert query["scope"] == ["esi-skills.read_skills.v1 esi-skills.read_skillqueue.v1"]


@pytest.mark.asyncio
async def test_refresh(source, fake_esi):
    assert await source.refresh("old") == ("access", "rotated")

    request = fake_esi.requests[0]
    assert request.method == "POST"
    assert request.headers["Authorization"].startswith("Basic ")
    assert parse_qs(request.content.decode()) == {
        "grant_type": ["refresh_token"],
        "refresh_token": ["old"],
    }


@pytest.mark.asyncio
async def test_refresh_rejected(source, fake_esi):
    fake_esi.token_status = 400

    with pytest.raises(EsiError, match="Invalid refresh token"):
        await source.refresh("old")


@pytest.mark.asyncio
async def test_fetch_snapshot(source, fake_esi):
    skills = await source.fetch_snapshot("access", 42)

    assert [(s.skill_id, s.trained_skill_level) for s in skills] == [(3300, 3)]
    assert fake_esi.requests[0].headers["Authorization"] == "Bearer access"


@pytest.mark.asyncio
async def test_fetch_queue_is_ordered(source):
    queue = await source.fetch_queue("access", 42)

    assert [q.skill_id for q in queue] == [3300, 3301]
    assert queue[0].finish_date == datetime(2025, 1, 16, 8, 30, tzinfo=UTC)
    assert queue[1].finish_date is None


@pytest.mark.asyncio
async def test_resolve_display_name_is_cached(source, fake_esi):
    assert await source.resolve_display_name(3300) == "Gunnery"
    assert await source.resolve_display_name(3300) == "Gunnery"

    assert len(fake_esi.requests) == 1


@pytest.mark.asyncio
async def test_unknown_route_raises(source):
    with pytest.raises(EsiError):
        await source.fetch_snapshot("access", 7)


def test_parse_queue_rejects_garbage():
    with pytest.raises(EsiError):
        parse_queue([{"skill_id": "x"}])
