"""
Tests for Session Tokens

Tests covering:
1. Signed tokens round-trip
2. Tampered, foreign-secret and expired tokens are rejected
3. Tokens resolve to the actor's current context
4. Secret and lifetime come from Config
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from starlette.requests import Request

from core.access import AccountStatus, Role
from core.actors import ActorDirectory
from utils.config import Config
from web.auth import (
    SESSION_COOKIE_NAME,
    ActorSession,
    create_session,
    get_session_hours,
    get_session_secret,
    issue_session_token,
    resolve_actor,
    sign_session,
    verify_session,
)


SECRET = "test-secret"


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def config():
    return Config(session_secret=SECRET, session_duration_hours=8)


@pytest.fixture
def directory(tmp_path):
    return ActorDirectory(persist_path=str(tmp_path / "actors.json"))


def make_request(headers=None, cookies=None):
    """Build a bare ASGI request carrying the given headers/cookies."""
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    if cookies:
        cookie = "; ".join(f"{k}={v}" for k, v in cookies.items())
        raw_headers.append((b"cookie", cookie.encode()))
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw_headers})


# =============================================================================
# Signing Tests
# =============================================================================


class TestSigning:
    """Tests for sign_session / verify_session."""

    def test_round_trip(self):
        session = create_session("USR-1", hours=1)
        verified = verify_session(sign_session(session, SECRET), SECRET)
        assert verified == session

    def test_tampered_payload(self):
        token = sign_session(create_session("USR-1", hours=1), SECRET)
        signature = token.rsplit(".", 1)[1]
        forged = sign_session(create_session("USR-ADMIN", hours=1), SECRET).rsplit(".", 1)[0]
        assert verify_session(f"{forged}.{signature}", SECRET) is None

    def test_wrong_secret(self):
        token = sign_session(create_session("USR-1", hours=1), SECRET)
        assert verify_session(token, "other-secret") is None

    def test_expired(self):
        now = datetime.now(timezone.utc)
        session = ActorSession(
            actor_id="USR-1",
            created_at=now - timedelta(hours=9),
            expires_at=now - timedelta(hours=1),
            session_id="abc",
        )
        assert verify_session(sign_session(session, SECRET), SECRET) is None

    @pytest.mark.parametrize("token", ["", "garbage", "a.b.c", "bm90IGpzb24.deadbeef"])
    def test_malformed(self, token):
        assert verify_session(token, SECRET) is None


# =============================================================================
# Resolution Tests
# =============================================================================


class TestResolveActor:
    """Tests for resolving a request to an actor context."""

    def test_bearer_header(self, directory, config):
        actor = directory.register("juma", "Juma")
        request = make_request(headers={"Authorization": f"Bearer {issue_session_token(actor.actor_id, config=config)}"})
        context = resolve_actor(request, directory, config)
        assert context.actor_id == actor.actor_id
        assert context.role == Role.FIELD_OFFICER

    def test_cookie(self, directory, config):
        actor = directory.register("juma", "Juma")
        request = make_request(cookies={SESSION_COOKIE_NAME: issue_session_token(actor.actor_id, config=config)})
        assert resolve_actor(request, directory, config).actor_id == actor.actor_id

    def test_no_credentials(self, directory, config):
        assert resolve_actor(make_request(), directory, config) is None

    def test_unknown_actor(self, directory, config):
        request = make_request(headers={"Authorization": f"Bearer {issue_session_token('USR-GHOST', config=config)}"})
        assert resolve_actor(request, directory, config) is None

    def test_suspension_applies_to_existing_token(self, directory, config):
        admin = directory.register("amina", "Amina", role=Role.ADMIN)
        officer = directory.register("juma", "Juma")
        token = issue_session_token(officer.actor_id, config=config)

        directory.update_actor(admin.to_context(), officer.actor_id, status=AccountStatus.SUSPENDED)

        request = make_request(headers={"Authorization": f"Bearer {token}"})
        assert resolve_actor(request, directory, config).is_suspended


# =============================================================================
# Configuration Tests
# =============================================================================


class TestSessionConfig:
    """Session secret and lifetime are read from Config."""

    def test_secret_from_config(self, config):
        assert get_session_secret(config) == SECRET

    def test_hours_from_config(self):
        assert get_session_hours(Config(session_duration_hours=3)) == 3

    def test_new_session_uses_configured_hours(self):
        session = create_session("USR-1", config=Config(session_duration_hours=3))
        assert session.expires_at - session.created_at == timedelta(hours=3)

    def test_explicit_hours_win(self):
        session = create_session("USR-1", hours=1, config=Config(session_duration_hours=3))
        assert session.expires_at - session.created_at == timedelta(hours=1)

    def test_token_only_valid_under_its_config(self, directory, config):
        actor = directory.register("juma", "Juma")
        token = issue_session_token(actor.actor_id, config=config)
        request = make_request(headers={"Authorization": f"Bearer {token}"})
        assert resolve_actor(request, directory, Config(session_secret="rotated")) is None

    def test_environment_is_the_fallback(self, monkeypatch):
        monkeypatch.setenv("SESSION_SECRET", "from-env")
        monkeypatch.setenv("SESSION_DURATION_HOURS", "5")
        assert get_session_secret() == "from-env"
        assert get_session_hours() == 5

    def test_blank_secret_gets_a_stable_ephemeral_one(self):
        config = Config(session_secret="")
        assert get_session_secret(config)
        assert get_session_secret(config) == get_session_secret(config)
