"""EVE Online SSO and ESI access.

Usage:
    from esi import EsiOAuth, EsiProgressSource

    oauth = EsiOAuth(client_id, client_secret, f"{webserver_url}/callback")
    source = EsiProgressSource(oauth)
"""

from esi._client import EsiError, esi_request
from esi.oauth import CharacterClaims, EsiOAuth, character_from_token
from esi.skills import EsiProgressSource

__all__ = [
    "CharacterClaims",
    "EsiError",
    "EsiOAuth",
    "EsiProgressSource",
    "character_from_token",
    "esi_request",
]
