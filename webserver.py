"""FastAPI webserver for the EVE SSO login flow.

/login?state=...            -> redirect to the EVE SSO login page
/callback?code=...&state=... -> exchange the code and start monitoring
"""
from __future__ import annotations

from fastapi import BackgroundTasks, FastAPI
from fastapi.responses import PlainTextResponse, RedirectResponse

from esi import EsiError, EsiOAuth, character_from_token
from logging_config import get_logger
from monitor import Onboarding
from pending_auth import PendingAuthStore

logger = get_logger("web")

EXPIRED_MESSAGE = "Your token expired. Use /monitor on Discord to try again."


async def install_character(
    pending: PendingAuthStore,
    onboarding: Onboarding,
    state: str,
    access_token: str,
    refresh_token: str,
) -> None:
    """Register the logged-in character and report back on Discord."""
    entry = pending.get(state)
    if entry is None:
        return

    await pending.edit_response(state, "Authenticated successful. Creating channel ...")

    try:
        try:
            claims = character_from_token(access_token)
        except EsiError as e:
            logger.error(
                f"Failed to decode JWT requested by Discord ID {entry.user_id}: {e}",
                extra={"state": state},
            )
            await pending.edit_response(state, "Failed to create channel: Internal error.")
            return

        result = await onboarding.register(
            claims.character_id,
            refresh_token,
            claims.name,
            entry.guild_id,
            entry.user_id,
        )
        if result.ok:
            await pending.edit_response(
                state, f"Your character is now monitored in <#{result.channel_id}>"
            )
        else:
            await pending.edit_response(state, f"Failed to create channel: {result.message}")
    finally:
        pending.remove(state)


def create_app(
    pending: PendingAuthStore,
    oauth: EsiOAuth,
    onboarding: Onboarding,
) -> FastAPI:
    """Build the login/callback application."""
    app = FastAPI(title="EVE Skill Monitor")

    @app.get("/login")
    async def login(state: str):
        if not pending.exists(state):
            return PlainTextResponse(EXPIRED_MESSAGE, status_code=400)
        return RedirectResponse(oauth.authorization_url(state))

    @app.get("/callback")
    async def callback(code: str, state: str, background_tasks: BackgroundTasks):
        if not pending.exists(state):
            return PlainTextResponse(EXPIRED_MESSAGE, status_code=400)

        try:
            access_token, refresh_token = await oauth.exchange_code(code)
        except EsiError as e:
            logger.warning(f"Code exchange failed: {e}", extra={"state": state})
            background_tasks.add_task(_report_failure, pending, state)
            return PlainTextResponse(
                "Authentication failed. Use /monitor on Discord to try again. "
                "You can now safely close this tab."
            )

        background_tasks.add_task(
            install_character, pending, onboarding, state, access_token, refresh_token
        )
        return PlainTextResponse(
            "You are now authenticated. Check Discord for next steps. "
            "You can now safely close this tab."
        )

    return app


async def _report_failure(pending: PendingAuthStore, state: str) -> None:
    await pending.edit_response(state, "Authentication failed. Use /monitor to try again.")
    pending.remove(state)
