"""Session signing, reset tokens, role checks and query filters."""

import time

import pytest
from fastapi import FastAPI

from restro import main
from restro.core.config import DEV_SESSION_SECRET, Settings
from restro.core.errors import AuthError, ValidationError
from restro.core.security import (
    Principal,
    SessionSigner,
    extract_token,
    generate_reset_token,
    reset_token_matches,
    require_restaurant_admin,
    require_restaurant_member,
    require_role,
)
from restro.models import UserRole
from restro.repositories import MenuItemFilter, OrderFilter, TableFilter

ADMIN = Principal(1, "admin@example.com", UserRole.ADMIN, "r1")
STAFF = Principal(2, "staff@example.com", UserRole.STAFF, "r1")


class TestSessionSigner:

    def test_round_trip(self):
        signer = SessionSigner(secret="s3cret")
        assert signer.verify(signer.issue(ADMIN)) == ADMIN

    def test_other_secret_rejected(self):
        token = SessionSigner(secret="one").issue(ADMIN)
        with pytest.raises(AuthError):
            SessionSigner(secret="two").verify(token)

    def test_tampered_rejected(self):
        token = SessionSigner(secret="s3cret").issue(ADMIN)
        with pytest.raises(AuthError):
            SessionSigner(secret="s3cret").verify(token[:-2] + "xx")

    def test_expired(self, monkeypatch):
        signer = SessionSigner(secret="s3cret", max_age=60)
        token = signer.issue(ADMIN)

        now = time.time()
        monkeypatch.setattr(time, "time", lambda: now + 3600)
        with pytest.raises(AuthError, match="expired"):
            signer.verify(token)

    def test_development_falls_back_to_fixed_key(self):
        settings = Settings(env_mode="development", session_secret=None)
        assert settings.effective_session_secret == DEV_SESSION_SECRET

    @pytest.mark.parametrize("mode", ["staging", "production"])
    def test_no_fallback_key_outside_development(self, mode):
        settings = Settings(env_mode=mode, session_secret=None)
        with pytest.raises(ValueError, match="SESSION_SECRET"):
            settings.effective_session_secret
        assert "SESSION_SECRET" in settings.validate_production_config()

    def test_configured_key_is_used_in_production(self):
        settings = Settings(env_mode="production", session_secret="prod-key")
        assert settings.effective_session_secret == "prod-key"

    async def test_startup_refuses_production_without_key(self, monkeypatch):
        monkeypatch.setattr(main, "settings", Settings(env_mode="production", session_secret=None))
        app = FastAPI()
        with pytest.raises(RuntimeError, match="SESSION_SECRET"):
            await main.startup(app)
        assert not hasattr(app.state, "signer")

    def test_extract_prefers_cookie(self):
        assert extract_token("cookie", "Bearer header") == "cookie"
        assert extract_token(None, "Bearer header") == "header"
        assert extract_token(None, "Basic abc") is None
        assert extract_token(None, None) is None


class TestResetTokens:

    def test_only_hash_is_stored(self):
        raw, hashed = generate_reset_token()
        assert raw != hashed
        assert reset_token_matches(raw, hashed)
        assert not reset_token_matches(raw + "0", hashed)
        assert not reset_token_matches(raw, None)


class TestAuthorization:

    def test_require_role(self):
        assert require_role(ADMIN, UserRole.ADMIN) is ADMIN
        with pytest.raises(AuthError) as exc:
            require_role(STAFF, UserRole.ADMIN)
        assert exc.value.status_code == 403
        with pytest.raises(AuthError) as exc:
            require_role(None, UserRole.ADMIN)
        assert exc.value.status_code == 401

    def test_require_restaurant_admin(self):
        assert require_restaurant_admin(ADMIN, "r1") is ADMIN
        with pytest.raises(AuthError):
            require_restaurant_admin(ADMIN, "r2")
        with pytest.raises(AuthError):
            require_restaurant_admin(STAFF, "r1")

    def test_require_restaurant_member(self):
        assert require_restaurant_member(STAFF, "r1") is STAFF
        assert require_restaurant_member(ADMIN, "r1") is ADMIN
        with pytest.raises(AuthError) as exc:
            require_restaurant_member(STAFF, "r2")
        assert exc.value.status_code == 403
        with pytest.raises(AuthError) as exc:
            require_restaurant_member(None, "r1")
        assert exc.value.status_code == 401


class TestFilters:

    @pytest.mark.parametrize("filter_cls", [MenuItemFilter, TableFilter, OrderFilter])
    def test_unscoped_filter_must_be_explicit(self, filter_cls):
        with pytest.raises(ValueError):
            filter_cls()
        assert filter_cls.all_tenants().restaurant_id is None
        assert filter_cls.for_tenant("r1").restaurant_id == "r1"
        assert filter_cls.for_tenant("").unscoped


class TestValidationError:

    def test_single(self):
        error = ValidationError.single("status", "bad")
        assert error.to_dict() == {
            "success": False,
            "error": "validation_error",
            "message": "bad",
            "errors": [{"field": "status", "message": "bad"}],
        }
