# dailypath/core/security.py
"""
Security module for handling auth-provider JWT authentication.

Provides functionality for:
- JWT token validation (HS256 signature, expiry, audience) with python-jose.
- Token extraction from the Authorization header or the session cookie.
- A sliding-window, in-memory rate limiter for the auth endpoints.
- Token validation exceptions.

The provider signs access tokens with a shared secret (AUTH_JWT_SECRET); the
`sub` claim is the user id, which is also the `_id` of the user document.

Example Usage in Endpoints:
    ```python
    from fastapi import APIRouter, Depends
    from typing import Dict, Any, Optional
    from dailypath.core.security import get_token_payload

    router = APIRouter()

    @router.get("/whoami")
    async def whoami(payload: Optional[Dict[str, Any]] = Depends(get_token_payload)):
        return {"sub": payload.get("sub") if payload else None}
    ```
"""

import logging
import threading
import time
from typing import Any, Dict, List, Optional

# --- JOSE & JWT Imports ---
from jose import jwt, exceptions as jose_exceptions

# --- FastAPI Imports ---
from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

# --- Config Imports ---
from .config import settings

# Setup logging
logger = logging.getLogger(__name__)

JWT_ALGORITHMS = ["HS256"]

# --- Custom Exceptions ---
class SecurityError(Exception):
    """Base class for security-related exceptions."""
    pass

class TokenValidationError(SecurityError):
    """Raised when token validation fails (expiry, signature, claims, etc.)."""
    pass


# --- JWT Validation Function ---

def validate_token(token: str) -> Dict[str, Any]:
    """
    Decodes and validates an access token issued by the auth provider.

    Args:
        token: The encoded JWT string (access token).

    Returns:
        The decoded token payload (dictionary) if validation is successful.

    Raises:
        TokenValidationError: If the secret is missing or validation fails
                              (signature, expiry, audience, missing subject).
    """
    # Read at call time so tests and reloads see the current settings
    secret = settings.AUTH_JWT_SECRET
    if not secret:
        raise TokenValidationError("AUTH_JWT_SECRET is not configured.")

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=JWT_ALGORITHMS,
            audience=settings.AUTH_JWT_AUDIENCE,
        )
    except jose_exceptions.ExpiredSignatureError:
        raise TokenValidationError("Token validation failed: Expired signature.")
    except jose_exceptions.JWTClaimsError as e:
        raise TokenValidationError(f"Token validation failed: Invalid claims - {e}")
    except jose_exceptions.JWTError as e:
        raise TokenValidationError(f"Token validation failed: Invalid token - {e}")

    if not payload.get("sub"):
        raise TokenValidationError("Token validation failed: Missing 'sub' claim.")
    logger.debug(f"Token successfully validated for sub {payload.get('sub')}.")
    return payload


# --- Token extraction ---

# Extracts the Bearer token from the Authorization header.
# auto_error=False: a missing header means "no identity", not an error.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/login", auto_error=False)


def extract_token(request: Request, bearer_token: Optional[str]) -> Optional[str]:
    """Bearer header wins over the session cookie."""
    if bearer_token:
        return bearer_token
    cookie_token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    return cookie_token or None


async def get_request_token(
    request: Request,
    bearer_token: Optional[str] = Depends(oauth2_scheme),
) -> Optional[str]:
    """FastAPI dependency returning the raw access token, if any."""
    return extract_token(request, bearer_token)


async def get_token_payload(
    token: Optional[str] = Depends(get_request_token),
) -> Optional[Dict[str, Any]]:
    """
    FastAPI dependency returning the validated token payload, or None.

    An absent or invalid token yields no identity; protected routes decide
    whether that is a 401.
    """
    if token is None:
        return None
    try:
        return validate_token(token)
    except TokenValidationError as e:
        logger.warning(f"Ignoring invalid access token: {e}")
        return None


# --- Rate limiting ---

class RateLimiter:
    """
    Sliding-window limiter keyed by client identifier.

    A key may make `max_requests` calls within any `window_seconds` span.
    State lives in process memory and resets on restart.
    """

    def __init__(self, max_requests: int, window_seconds: float):
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._requests: Dict[str, List[float]] = {}
        self._last_cleanup: Optional[float] = None
        self._lock = threading.Lock()

    def check(self, key: str, now: Optional[float] = None) -> bool:
        """Record an attempt for `key`; False when the limit is already reached."""
        now = time.monotonic() if now is None else now
        with self._lock:
            # Stale keys are swept at most once per window
            if self._last_cleanup is None:
                self._last_cleanup = now
            elif now - self._last_cleanup >= self.window_seconds:
                self._prune(now)
            recent = [t for t in self._requests.get(key, []) if now - t < self.window_seconds]
            if len(recent) >= self.max_requests:
                self._requests[key] = recent
                return False
            recent.append(now)
            self._requests[key] = recent
            return True

    def _prune(self, now: float) -> None:
        for key in list(self._requests):
            recent = [t for t in self._requests[key] if now - t < self.window_seconds]
            if recent:
                self._requests[key] = recent
            else:
                del self._requests[key]
        self._last_cleanup = now

    def cleanup(self, now: Optional[float] = None) -> None:
        """Drop keys whose attempts have all left the window."""
        now = time.monotonic() if now is None else now
        with self._lock:
            self._prune(now)

    def __len__(self) -> int:
        with self._lock:
            return len(self._requests)

    def reset(self, key: str) -> None:
        with self._lock:
            self._requests.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._requests.clear()


auth_rate_limiter = RateLimiter(
    max_requests=settings.AUTH_RATE_LIMIT_MAX_REQUESTS,
    window_seconds=settings.AUTH_RATE_LIMIT_WINDOW_SECONDS,
)


def get_client_ip(request: Request) -> str:
    """First X-Forwarded-For entry, then X-Real-IP, then the socket peer."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client:
        return request.client.host
    return "unknown"
