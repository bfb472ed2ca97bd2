"""EVE SSO (OAuth2 authorization code flow).

Used by the webserver to turn a login into tokens, and by the skill
source to refresh tokens on every poll.
"""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass
from urllib.parse import urlencode

import httpx

from esi._client import SSO_URL, EsiError, esi_request

AUTHORIZE_URL = f"{SSO_URL}/v2/oauth/authorize"
TOKEN_URL = f"{SSO_URL}/v2/oauth/token"

SCOPES = [
    "esi-skills.read_skills.v1",
    "esi-skills.read_skillqueue.v1",
]


@dataclass(frozen=True)
class CharacterClaims:
    """Who an access token belongs to."""

    character_id: int
    name: str


def character_from_token(access_token: str) -> CharacterClaims:
    """Read the character from an SSO access token (a JWT).

    The signature is not checked; the token came straight from the SSO
    token endpoint over TLS.

    Raises:
        EsiError: If the token is not a JWT with the expected claims
    """
    try:
        payload = access_token.split(".")[1]
        payload += "=" * (-len(payload) % 4)
        claims = json.loads(base64.urlsafe_b64decode(payload))
        # "CHARACTER:EVE:<id>"
        character_id = int(claims["sub"].split(":")[2])
        return CharacterClaims(character_id=character_id, name=str(claims["name"]))
    except (IndexError, KeyError, ValueError, TypeError, AttributeError) as e:
        raise EsiError(f"Failed to decode access token: {e}") from e


class EsiOAuth:
    """SSO client for one registered EVE application."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_url: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_url = redirect_url
        self._transport = transport

    def authorization_url(self, state: str) -> str:
        """URL the user is sent to for logging in."""
        query = urlencode(
            {
                "response_type": "code",
                "client_id": self._client_id,
                "redirect_uri": self._redirect_url,
                "scope": " ".join(SCOPES),
                "state": state,
            }
        )
        return f"{AUTHORIZE_URL}?{query}"

    async def exchange_code(self, code: str) -> tuple[str, str]:
        """Trade an authorization code for (access_token, refresh_token)."""
        return await self._token_request({"grant_type": "authorization_code", "code": code})

    async def exchange_refresh_token(self, refresh_token: str) -> tuple[str, str]:
        """Trade a refresh token for (access_token, new_refresh_token)."""
        return await self._token_request(
            {"grant_type": "refresh_token", "refresh_token": refresh_token}
        )

    async def _token_request(self, form: dict[str, str]) -> tuple[str, str]:
        data = await esi_request(
            "POST",
            TOKEN_URL,
            form_data=form,
            auth=(self._client_id, self._client_secret),
            transport=self._transport,
        )
        try:
            return data["access_token"], data["refresh_token"]
        except (KeyError, TypeError) as e:
            raise EsiError(f"Token response without {e}") from e
