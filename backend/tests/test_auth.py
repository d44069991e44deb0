"""Authentication flow tests: register, login, refresh rotation, logout,
password reset, email verification and the expired-token sweep."""

import pytest
from datetime import timedelta

from siampos.core.rbac import UserRole
from siampos.core.security import create_refresh_token, verify_password
from siampos.db.base import utcnow
from siampos.models.tokens import EmailVerificationToken, PasswordResetToken, RefreshTokenBlacklist
from siampos.models.user import User
from siampos.services.auth_service import cleanup_expired_tokens

from conftest import TEST_PASSWORD

AUTH = "/api/v1/auth"


def _login(client, email, password=TEST_PASSWORD):
    return client.post(f"{AUTH}/login", json={"email": email, "password": password})


# ============== Register / login ==============

class TestRegister:
    def _payload(self, restaurant, **overrides):
        payload = {
            "email": "new.cook@example.com",
            "password": "supersecret",
            "restaurant_id": restaurant.id,
            "name_th": "สมชาย",
            "name_en": "Somchai",
        }
        payload.update(overrides)
        return payload

    def test_register_returns_session(self, client, restaurant, email_outbox):
        response = client.post(f"{AUTH}/register", json=self._payload(restaurant))
        assert response.status_code == 201
        body = response.json()
        assert body["user"]["email"] == "new.cook@example.com"
        assert body["user"]["role"] == "STAFF"
        assert "password_hash" not in body["user"]
        assert body["accessToken"] and body["refreshToken"]
        # verification email goes out on register
        assert len(email_outbox.tokens("email_verification")) == 1

    def test_duplicate_email_conflicts(self, client, restaurant, staff):
        response = client.post(f"{AUTH}/register", json=self._payload(restaurant, email=staff.email))
        assert response.status_code == 409

    def test_unknown_restaurant_is_404(self, client, restaurant):
        payload = self._payload(restaurant, restaurant_id="00000000-0000-0000-0000-000000000000")
        response = client.post(f"{AUTH}/register", json=payload)
        assert response.status_code == 404

    def test_short_password_rejected(self, client, restaurant):
        response = client.post(f"{AUTH}/register", json=self._payload(restaurant, password="short"))
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"


class TestLogin:
    def test_login_success(self, client, owner, db_session):
        response = _login(client, owner.email)
        assert response.status_code == 200
        body = response.json()
        assert body["user"]["id"] == owner.id
        assert body["user"]["role"] == UserRole.OWNER.value
        assert body["accessToken"] and body["refreshToken"]
        db_session.refresh(owner)
        assert owner.last_login_at is not None

    def test_wrong_password_and_unknown_email_look_the_same(self, client, owner):
        wrong_password = _login(client, owner.email, "not-the-password")
        unknown_email = _login(client, "nobody@example.com")
        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.json()["message"] == unknown_email.json()["message"] == "Invalid credentials"

    def test_inactive_user_cannot_login(self, client, owner, db_session):
        owner.is_active = False
        db_session.commit()
        assert _login(client, owner.email).status_code == 401

    def test_access_token_works_on_protected_route(self, client, owner):
        token = _login(client, owner.email).json()["accessToken"]
        response = client.get(f"{AUTH}/profile", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json()["data"]["email"] == owner.email


# ============== Refresh / logout ==============

class TestRefreshAndLogout:
    def test_refresh_rotates_token(self, client, owner):
        refresh_token = _login(client, owner.email).json()["refreshToken"]
        first = client.post(f"{AUTH}/refresh", json={"refreshToken": refresh_token})
        assert first.status_code == 200
        assert first.json()["refreshToken"] != refresh_token

        # the consumed token is blacklisted
        replay = client.post(f"{AUTH}/refresh", json={"refreshToken": refresh_token})
        assert replay.status_code == 401
        assert replay.json()["message"] == "Invalid token"

    def test_access_token_is_not_a_refresh_token(self, client, owner):
        access_token = _login(client, owner.email).json()["accessToken"]
        response = client.post(f"{AUTH}/refresh", json={"refreshToken": access_token})
        assert response.status_code == 401

    def test_refresh_for_deleted_user(self, client, owner, db_session):
        token = create_refresh_token(owner.id)
        db_session.delete(owner)
        db_session.commit()
        response = client.post(f"{AUTH}/refresh", json={"refreshToken": token})
        assert response.status_code == 401
        assert response.json()["code"] == "USER_NOT_FOUND"

    def test_logout_blacklists_refresh_token(self, client, owner, owner_headers, db_session):
        refresh_token = _login(client, owner.email).json()["refreshToken"]
        response = client.post(f"{AUTH}/logout", json={"refreshToken": refresh_token}, headers=owner_headers)
        assert response.status_code == 200
        assert db_session.query(RefreshTokenBlacklist).filter_by(token=refresh_token).count() == 1

        response = client.post(f"{AUTH}/refresh", json={"refreshToken": refresh_token})
        assert response.status_code == 401

    def test_logout_twice_is_fine(self, client, owner, owner_headers, db_session):
        refresh_token = create_refresh_token(owner.id)
        for _ in range(2):
            response = client.post(f"{AUTH}/logout", json={"refreshToken": refresh_token}, headers=owner_headers)
            assert response.status_code == 200
        assert db_session.query(RefreshTokenBlacklist).count() == 1

    def test_logout_with_expired_refresh_token_still_blacklists(self, client, owner, owner_headers, db_session):
        expired = create_refresh_token(owner.id, expires_delta=timedelta(seconds=-10))
        response = client.post(f"{AUTH}/logout", json={"refreshToken": expired}, headers=owner_headers)
        assert response.status_code == 200
        assert db_session.query(RefreshTokenBlacklist).count() == 1

    def test_logout_ignores_garbage_token(self, client, owner_headers, db_session):
        response = client.post(f"{AUTH}/logout", json={"refreshToken": "garbage"}, headers=owner_headers)
        assert response.status_code == 200
        assert db_session.query(RefreshTokenBlacklist).count() == 0

    def test_logout_without_body(self, client, owner_headers):
        assert client.post(f"{AUTH}/logout", headers=owner_headers).status_code == 200

    def test_logout_requires_auth(self, client):
        response = client.post(f"{AUTH}/logout", json={})
        assert response.status_code == 401


# ============== Password reset ==============

class TestPasswordReset:
    def test_responses_identical_for_known_and_unknown_email(self, client, owner, email_outbox):
        known = client.post(f"{AUTH}/forgot-password", json={"email": owner.email})
        unknown = client.post(f"{AUTH}/forgot-password", json={"email": "ghost@example.com"})
        assert known.status_code == unknown.status_code == 200
        assert known.content == unknown.content
        assert known.json()["message"] == "If an account exists, a reset link has been sent"
        assert len(email_outbox.tokens("password_reset")) == 1

    def test_reset_flow(self, client, owner, email_outbox, db_session):
        client.post(f"{AUTH}/forgot-password", json={"email": owner.email})
        token = email_outbox.tokens("password_reset")[0]

        response = client.post(f"{AUTH}/reset-password", json={"token": token, "newPassword": "brand-new-pass"})
        assert response.status_code == 200
        db_session.refresh(owner)
        assert verify_password("brand-new-pass", owner.password_hash)
        assert _login(client, owner.email, "brand-new-pass").status_code == 200

    def test_token_is_single_use(self, client, owner, email_outbox):
        client.post(f"{AUTH}/forgot-password", json={"email": owner.email})
        token = email_outbox.tokens("password_reset")[0]
        first = client.post(f"{AUTH}/reset-password", json={"token": token, "newPassword": "first-new-pass"})
        second = client.post(f"{AUTH}/reset-password", json={"token": token, "newPassword": "second-new-pass"})
        assert first.status_code == 200
        assert second.status_code == 400
        assert second.json()["message"] == "Invalid or expired token"
        assert _login(client, owner.email, "first-new-pass").status_code == 200

    def test_new_request_replaces_old_token(self, client, owner, email_outbox, db_session):
        client.post(f"{AUTH}/forgot-password", json={"email": owner.email})
        client.post(f"{AUTH}/forgot-password", json={"email": owner.email})
        old, new = email_outbox.tokens("password_reset")
        assert db_session.query(PasswordResetToken).count() == 1
        assert client.post(f"{AUTH}/reset-password", json={"token": old, "newPassword": "whatever123"}).status_code == 400
        assert client.post(f"{AUTH}/reset-password", json={"token": new, "newPassword": "whatever123"}).status_code == 200

    def test_expired_token_rejected(self, client, owner, db_session):
        db_session.add(
            PasswordResetToken(token="expired-token", user_id=owner.id, expires_at=utcnow() - timedelta(minutes=1))
        )
        db_session.commit()
        response = client.post(f"{AUTH}/reset-password", json={"token": "expired-token", "newPassword": "whatever123"})
        assert response.status_code == 400

    def test_unknown_token_rejected(self, client):
        response = client.post(f"{AUTH}/reset-password", json={"token": "nope", "newPassword": "whatever123"})
        assert response.status_code == 400

    def test_short_new_password_rejected(self, client):
        response = client.post(f"{AUTH}/reset-password", json={"token": "nope", "newPassword": "short"})
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"


# ============== Email verification ==============

class TestEmailVerification:
    def test_send_verification_responses_identical(self, client, owner):
        known = client.post(f"{AUTH}/send-verification", json={"email": owner.email})
        unknown = client.post(f"{AUTH}/send-verification", json={"email": "ghost@example.com"})
        assert known.status_code == unknown.status_code == 200
        assert known.content == unknown.content

    def test_verify_flow(self, client, owner, email_outbox, db_session):
        client.post(f"{AUTH}/send-verification", json={"email": owner.email})
        token = email_outbox.tokens("email_verification")[0]
        response = client.post(f"{AUTH}/verify-email", json={"token": token})
        assert response.status_code == 200
        db_session.refresh(owner)
        assert owner.is_email_verified is True
        assert owner.email_verified_at is not None

        again = client.post(f"{AUTH}/verify-email", json={"token": token})
        assert again.status_code == 400

    def test_inactive_user_gets_no_verification_mail(self, client, owner, email_outbox, db_session):
        owner.is_active = False
        db_session.commit()
        inactive = client.post(f"{AUTH}/send-verification", json={"email": owner.email})
        unknown = client.post(f"{AUTH}/send-verification", json={"email": "ghost@example.com"})
        assert inactive.status_code == 200
        assert inactive.content == unknown.content
        assert email_outbox.tokens("email_verification") == []


# ============== Profile ==============

class TestProfile:
    def test_update_profile(self, client, staff_headers):
        response = client.put(f"{AUTH}/profile", json={"name_th": "มาลี"}, headers=staff_headers)
        assert response.status_code == 200
        assert response.json()["data"]["name_th"] == "มาลี"

    def test_change_password(self, client, staff, staff_headers):
        response = client.put(
            f"{AUTH}/change-password",
            json={"currentPassword": TEST_PASSWORD, "newPassword": "changed-pass-1"},
            headers=staff_headers,
        )
        assert response.status_code == 200
        assert _login(client, staff.email, "changed-pass-1").status_code == 200

    def test_change_password_wrong_current(self, client, staff_headers):
        response = client.put(
            f"{AUTH}/change-password",
            json={"currentPassword": "wrong-one", "newPassword": "changed-pass-1"},
            headers=staff_headers,
        )
        assert response.status_code == 401


# ============== Cleanup sweep ==============

class TestTokenCleanup:
    def test_removes_expired_and_old_used_tokens(self, db_session, owner):
        now = utcnow()
        db_session.add_all(
            [
                PasswordResetToken(token="live", user_id=owner.id, expires_at=now + timedelta(hours=1)),
                PasswordResetToken(token="expired", user_id=owner.id, expires_at=now - timedelta(seconds=1)),
                EmailVerificationToken(
                    token="used-long-ago",
                    user_id=owner.id,
                    expires_at=now + timedelta(hours=1),
                    used=True,
                    used_at=now - timedelta(hours=25),
                ),
                EmailVerificationToken(
                    token="used-recently",
                    user_id=owner.id,
                    expires_at=now + timedelta(hours=1),
                    used=True,
                    used_at=now - timedelta(hours=1),
                ),
                RefreshTokenBlacklist(token="stale", user_id=owner.id, expires_at=now - timedelta(days=1)),
                RefreshTokenBlacklist(token="fresh", user_id=owner.id, expires_at=now + timedelta(days=1)),
            ]
        )
        db_session.commit()

        results = cleanup_expired_tokens(db_session)

        assert results == {
            "password_reset_tokens": 1,
            "email_verification_tokens": 1,
            "refresh_token_blacklist": 1,
        }
        assert [t.token for t in db_session.query(PasswordResetToken)] == ["live"]
        assert [t.token for t in db_session.query(EmailVerificationToken)] == ["used-recently"]
        assert [t.token for t in db_session.query(RefreshTokenBlacklist)] == ["fresh"]
