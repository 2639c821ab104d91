"""
Session Resolver - Signed Session Tokens to Actor Context

Implements:
- Signed session tokens (HMAC-SHA256) carried in a cookie or a Bearer header
- Resolution of the token to the actor's *current* context, so role or
  suspension changes apply on the next request

Credential checks happen in the external identity provider, which calls
``issue_session_token`` after a successful login.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import os
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Final, Optional

from fastapi import Request, Response

from core.access import ActorContext
from core.actors import ActorDirectory
from utils.config import Config


# =============================================================================
# Configuration
# =============================================================================

SESSION_COOKIE_NAME: Final[str] = "hotspot_session"

_ephemeral_secret: Optional[str] = None


def get_session_secret(config: Optional[Config] = None) -> str:
    """Get the session signing secret from configuration."""
    global _ephemeral_secret
    secret = (config or Config.load()).session_secret
    if secret:
        return secret
    if _ephemeral_secret is None:
        # Development only: sessions won't survive a restart
        _ephemeral_secret = secrets.token_hex(32)
    return _ephemeral_secret


def get_session_hours(config: Optional[Config] = None) -> int:
    return (config or Config.load()).session_duration_hours


# =============================================================================
# Session Token Management
# =============================================================================


@dataclass(frozen=True)
class ActorSession:
    """Represents an authenticated session."""

    actor_id: str
    created_at: datetime
    expires_at: datetime
    session_id: str

    @property
    def is_expired(self) -> bool:
        """Check if session has expired."""
        return datetime.now(timezone.utc) > self.expires_at

    def to_dict(self) -> dict:
        """Serialize session to dictionary."""
        return {
            "actor_id": self.actor_id,
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "session_id": self.session_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ActorSession":
        """Deserialize session from dictionary."""
        return cls(
            actor_id=data["actor_id"],
            created_at=datetime.fromisoformat(data["created_at"]),
            expires_at=datetime.fromisoformat(data["expires_at"]),
            session_id=data["session_id"],
        )


def create_session(
    actor_id: str,
    hours: Optional[int] = None,
    config: Optional[Config] = None,
) -> ActorSession:
    """Create a new session for an actor."""
    now = datetime.now(timezone.utc)
    if hours is None:
        hours = get_session_hours(config)
    return ActorSession(
        actor_id=actor_id,
        created_at=now,
        expires_at=now + timedelta(hours=hours),
        session_id=secrets.token_hex(16),
    )


def _signature(payload_b64: str, secret: str) -> str:
    return hmac.new(secret.encode(), payload_b64.encode(), hashlib.sha256).hexdigest()


def sign_session(session: ActorSession, secret: str) -> str:
    """
    Sign and encode a session.

    Format: base64(json_payload).signature
    """
    payload = json.dumps(session.to_dict(), separators=(",", ":"))
    payload_b64 = base64.urlsafe_b64encode(payload.encode()).decode()
    return f"{payload_b64}.{_signature(payload_b64, secret)}"


def verify_session(token: str, secret: str) -> Optional[ActorSession]:
    """
    Verify and decode a signed session token.

    Returns ActorSession if valid and not expired, None otherwise.
    """
    try:
        payload_b64, signature = token.rsplit(".", 1)

        if not hmac.compare_digest(signature, _signature(payload_b64, secret)):
            return None

        payload = base64.urlsafe_b64decode(payload_b64.encode()).decode()
        session = ActorSession.from_dict(json.loads(payload))

        if session.is_expired:
            return None

        return session

    except (ValueError, KeyError, TypeError):
        # json.JSONDecodeError and binascii.Error are ValueErrors
        return None


def issue_session_token(
    actor_id: str,
    hours: Optional[int] = None,
    config: Optional[Config] = None,
) -> str:
    """Issue a signed token for an actor the identity provider has authenticated."""
    return sign_session(create_session(actor_id, hours, config), get_session_secret(config))


# =============================================================================
# Request Resolution
# =============================================================================


def _token_from_request(request: Request) -> Optional[str]:
    authorization = request.headers.get("authorization")
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token.strip():
            return token.strip()
    return request.cookies.get(SESSION_COOKIE_NAME)


def resolve_actor(
    request: Request,
    directory: ActorDirectory,
    config: Optional[Config] = None,
) -> Optional[ActorContext]:
    """
    Get the current actor from request credentials.

    Returns:
        ActorContext if a valid session maps to a registered actor, None otherwise
    """
    token = _token_from_request(request)
    if not token:
        return None

    session = verify_session(token, get_session_secret(config))
    if session is None:
        return None

    return directory.context_for(session.actor_id)


def set_session_cookie(response: Response, token: str, config: Optional[Config] = None) -> None:
    """Set the session cookie on a response."""
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=get_session_hours(config) * 3600,
        httponly=True,
        secure=os.getenv("PRODUCTION", "").lower() == "true",
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    """Clear the session cookie on a response."""
    response.delete_cookie(key=SESSION_COOKIE_NAME)
