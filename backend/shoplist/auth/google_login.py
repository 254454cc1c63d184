from __future__ import annotations

import os

import httpx
from google_auth_oauthlib.flow import Flow

_LOGIN_SCOPES = [
    "openid",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
]
_USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"


def _login_client_id() -> str:
    return os.getenv("GOOGLE_CLIENT_ID", "")


def _login_client_secret() -> str:
    return os.getenv("GOOGLE_CLIENT_SECRET", "")


def login_redirect_uri() -> str:
    return os.getenv("GOOGLE_CALLBACK_URL", "http://localhost:8000/api/auth/google/callback")


def is_login_configured() -> bool:
    """Return True if the OAuth credentials needed for login are available."""
    return bool(_login_client_id() and _login_client_secret())


def build_login_flow() -> Flow:
    # The consent redirect and the callback build separate Flow objects, so no
    # PKCE verifier can be carried between them.
    return Flow.from_client_config(
        {
            "web": {
                "client_id": _login_client_id(),
                "client_secret": _login_client_secret(),
                "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                "token_uri": "https://oauth2.googleapis.com/token",
            }
        },
        scopes=_LOGIN_SCOPES,
        redirect_uri=login_redirect_uri(),
        autogenerate_code_verifier=False,
    )


async def fetch_google_profile(access_token: str) -> dict:
    """Fetch the signed-in user's profile (sub, email, name, picture) from Google."""
    async with httpx.AsyncClient(timeout=10.0) as client:
        resp = await client.get(
            _USERINFO_URL,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        resp.raise_for_status()
        return resp.json()
