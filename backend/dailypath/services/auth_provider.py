# dailypath/services/auth_provider.py
"""
Client for the hosted auth provider (GoTrue-compatible REST API).

The provider owns passwords and sessions; this module only calls it over
httpx. User-facing calls use the anon key, admin calls the service role key.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from dailypath.core.config import settings
from dailypath.core.errors import AuthProviderError, ConflictError
from dailypath.models.auth import AuthSession

logger = logging.getLogger(__name__)

TIMEOUT_SECONDS = 10.0


def _base_url() -> str:
    if not settings.AUTH_URL:
        raise AuthProviderError("Auth provider URL is not configured")
    return settings.AUTH_URL.rstrip("/")


def _headers(admin: bool = False, access_token: Optional[str] = None) -> Dict[str, str]:
    key = settings.AUTH_SERVICE_ROLE_KEY if admin else settings.AUTH_ANON_KEY
    headers = {"Content-Type": "application/json"}
    if key:
        headers["apikey"] = key
    bearer = access_token or (key if admin else None)
    if bearer:
        headers["Authorization"] = f"Bearer {bearer}"
    return headers


async def _request(
    method: str,
    path: str,
    *,
    json: Optional[Dict[str, Any]] = None,
    params: Optional[Dict[str, str]] = None,
    admin: bool = False,
    access_token: Optional[str] = None,
) -> httpx.Response:
    url = f"{_base_url()}{path}"
    try:
        async with httpx.AsyncClient(timeout=TIMEOUT_SECONDS) as client:
            return await client.request(
                method, url, json=json, params=params, headers=_headers(admin, access_token)
            )
    except httpx.TimeoutException as e:
        logger.error(f"Timeout calling auth provider {method} {path}: {e}")
        raise AuthProviderError("The authentication service timed out") from e
    except httpx.RequestError as e:
        logger.error(f"Network error calling auth provider {method} {path}: {e}")
        raise AuthProviderError() from e


def _error_text(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    return str(body.get("msg") or body.get("error_description") or body.get("message") or body)


def _session_from(body: Dict[str, Any]) -> AuthSession:
    user = body.get("user") or {}
    return AuthSession(
        access_token=body["access_token"],
        refresh_token=body.get("refresh_token"),
        expires_in=body.get("expires_in"),
        user_id=user.get("id", ""),
        email=user.get("email"),
    )


# --- User-facing calls ---

async def sign_in_with_password(email: str, password: str) -> Optional[AuthSession]:
    """Password grant. Returns None when the provider rejects the credentials."""
    response = await _request(
        "POST", "/token", params={"grant_type": "password"}, json={"email": email, "password": password}
    )
    if response.status_code in (400, 401, 422):
        logger.info(f"Password sign-in rejected for {email}: {_error_text(response)}")
        return None
    if response.status_code >= 300:
        logger.error(f"Password sign-in failed ({response.status_code}): {_error_text(response)}")
        raise AuthProviderError()
    return _session_from(response.json())


async def send_password_recovery(email: str, redirect_to: Optional[str] = None) -> None:
    params = {"redirect_to": redirect_to} if redirect_to else None
    response = await _request("POST", "/recover", json={"email": email}, params=params)
    if response.status_code >= 300:
        raise AuthProviderError(f"Recovery request failed: {_error_text(response)}")


async def verify_recovery_token(token: str) -> Optional[AuthSession]:
    """Exchange a recovery token hash for a session. None when the token is invalid or expired."""
    response = await _request("POST", "/verify", json={"type": "recovery", "token_hash": token})
    if 400 <= response.status_code < 500:
        logger.info(f"Recovery token rejected: {_error_text(response)}")
        return None
    if response.status_code >= 300:
        raise AuthProviderError()
    return _session_from(response.json())


async def update_password(access_token: str, new_password: str) -> None:
    response = await _request("PUT", "/user", json={"password": new_password}, access_token=access_token)
    if response.status_code >= 300:
        logger.warning(f"Password update failed ({response.status_code}): {_error_text(response)}")
        raise AuthProviderError(f"Password update failed: {_error_text(response)}")


async def sign_out(access_token: str) -> None:
    response = await _request("POST", "/logout", access_token=access_token)
    if response.status_code >= 300:
        raise AuthProviderError(f"Logout failed: {_error_text(response)}")


# --- Admin calls ---

async def admin_create_user(email: str, password: str, metadata: Optional[Dict[str, Any]] = None) -> str:
    """Create a confirmed provider account and return its id."""
    response = await _request(
        "POST",
        "/admin/users",
        json={"email": email, "password": password, "email_confirm": True, "user_metadata": metadata or {}},
        admin=True,
    )
    if response.status_code >= 300:
        if response.status_code == 422 or "already" in _error_text(response).lower():
            raise ConflictError("User with this email already exists")
        logger.error(f"Provider user creation failed ({response.status_code}): {_error_text(response)}")
        raise AuthProviderError(f"Could not create user: {_error_text(response)}")
    return response.json()["id"]


async def admin_delete_user(user_id: str) -> None:
    response = await _request("DELETE", f"/admin/users/{user_id}", admin=True)
    if response.status_code >= 300 and response.status_code != 404:
        raise AuthProviderError(f"Could not delete user: {_error_text(response)}")


async def admin_update_user(user_id: str, attributes: Dict[str, Any]) -> None:
    response = await _request("PUT", f"/admin/users/{user_id}", json=attributes, admin=True)
    if response.status_code >= 300:
        raise AuthProviderError(f"Could not update user: {_error_text(response)}")


async def admin_get_user(user_id: str) -> Optional[Dict[str, Any]]:
    """Raw provider account record, or None when the provider has no such user."""
    response = await _request("GET", f"/admin/users/{user_id}", admin=True)
    if response.status_code == 404:
        return None
    if response.status_code >= 300:
        raise AuthProviderError(f"Could not fetch user: {_error_text(response)}")
    return response.json()
