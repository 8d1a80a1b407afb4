from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta

import jwt
import pytest

from identity_service.infra.jwt.pyjwt_token_signer import ACCESS, PyJWTTokenSigner
from identity_service.services._shared.errors import (
    InternalError,
    InvalidTokenError,
    TokenExpiredError,
)
from identity_service.services._shared.ports import StoreError
from identity_service.services.tokens.dto import LogoutIn, RefreshIn


class TestIssue:
    def test_pair_has_bearer_type_and_access_lifetime(self, token_service):
        pair = token_service.issue_token_pair(7)

        assert pair.token_type == "Bearer"
        assert pair.expires_in == 3600
        assert pair.refresh_expires_in == 604800
        assert pair.access_token != pair.refresh_token

    def test_issue_does_not_persist(self, token_service, refresh_store):
        pair = token_service.issue_token_pair(7)
        assert refresh_store.get_user_id(pair.refresh_token) is None

    def test_open_session_persists_refresh_token(self, token_service, refresh_store):
        pair = token_service.open_session(7)
        assert refresh_store.get_user_id(pair.refresh_token) == 7

    def test_refresh_tokens_are_unique_within_one_second(self, token_service):
        tokens = {token_service.issue_token_pair(7).refresh_token for _ in range(5)}
        assert len(tokens) == 5


class TestValidateAccessToken:
    def test_round_trip_returns_user_id(self, token_service):
        pair = token_service.issue_token_pair(42)
        assert token_service.validate_access_token(pair.access_token) == 42

    def test_empty_token(self, token_service):
        with pytest.raises(InvalidTokenError):
            token_service.validate_access_token("")

    def test_garbage_token(self, token_service):
        with pytest.raises(InvalidTokenError):
            token_service.validate_access_token("not.a.jwt")

    def test_refresh_token_is_not_an_access_token(self, token_service):
        pair = token_service.issue_token_pair(42)
        with pytest.raises(InvalidTokenError):
            token_service.validate_access_token(pair.refresh_token)

    def test_token_signed_with_other_secret(self, token_service):
        forged = PyJWTTokenSigner(
            secret="someone-else", token_type=ACCESS, lifetime=timedelta(hours=1)
        ).sign(42)
        with pytest.raises(InvalidTokenError):
            token_service.validate_access_token(forged.token)

    def test_expired_token(self, token_service, access_signer):
        stale = access_signer.sign(42, now=datetime.now(UTC) - timedelta(hours=2))
        with pytest.raises(TokenExpiredError):
            token_service.validate_access_token(stale.token)

    @pytest.mark.parametrize("subject", ["abc", "0", "-3", "٣"])
    def test_non_positive_or_non_numeric_subject(self, app, token_service, subject):
        now = datetime.now(UTC)
        token = jwt.encode(
            {
                "sub": subject,
                "iat": now,
                "exp": now + timedelta(minutes=5),
                "type": ACCESS,
            },
            app.config["JWT_ACCESS_SECRET"],
            algorithm="HS256",
        )
        with pytest.raises(InvalidTokenError):
            token_service.validate_access_token(token)


class TestRefresh:
    def test_rotation_replaces_old_token(self, token_service, refresh_store):
        first = token_service.open_session(5)

        second = token_service.refresh_token(RefreshIn(refresh_token=first.refresh_token))

        assert second.refresh_token != first.refresh_token
        assert refresh_store.get_user_id(first.refresh_token) is None
        assert refresh_store.get_user_id(second.refresh_token) == 5
        assert token_service.validate_access_token(second.access_token) == 5

    def test_old_token_cannot_be_reused(self, token_service):
        first = token_service.open_session(5)
        token_service.refresh_token(RefreshIn(refresh_token=first.refresh_token))

        with pytest.raises(InvalidTokenError):
            token_service.refresh_token(RefreshIn(refresh_token=first.refresh_token))

    def test_unknown_token(self, token_service):
        unsaved = token_service.issue_token_pair(5)
        with pytest.raises(InvalidTokenError):
            token_service.refresh_token(RefreshIn(refresh_token=unsaved.refresh_token))

    def test_empty_token(self, token_service):
        with pytest.raises(InvalidTokenError):
            token_service.refresh_token(RefreshIn(refresh_token=""))

    def test_concurrent_rotations_have_one_winner(self, token_service, refresh_store):
        start = token_service.open_session(9)
        barrier = threading.Barrier(8)
        results: list[object] = []
        lock = threading.Lock()

        def attempt():
            barrier.wait()
            try:
                outcome = token_service.refresh_token(RefreshIn(refresh_token=start.refresh_token))
            except InvalidTokenError as exc:
                outcome = exc
            with lock:
                results.append(outcome)

        threads = [threading.Thread(target=attempt) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        winners = [r for r in results if not isinstance(r, Exception)]
        assert len(winners) == 1
        assert sum(isinstance(r, InvalidTokenError) for r in results) == 7
        assert refresh_store.get_user_id(winners[0].refresh_token) == 9

    def test_store_failure_is_internal(self, token_service, refresh_store, monkeypatch):
        def boom(token):
            raise StoreError("down")

        monkeypatch.setattr(refresh_store, "get_user_id", boom)

        with pytest.raises(InternalError):
            token_service.refresh_token(RefreshIn(refresh_token="anything"))


class TestRevocation:
    def test_logout_revokes_token(self, token_service, refresh_store):
        pair = token_service.open_session(3)

        token_service.logout(LogoutIn(refresh_token=pair.refresh_token))

        assert refresh_store.get_user_id(pair.refresh_token) is None
        with pytest.raises(InvalidTokenError):
            token_service.refresh_token(RefreshIn(refresh_token=pair.refresh_token))

    def test_logout_is_idempotent(self, token_service):
        pair = token_service.open_session(3)
        token_service.logout(LogoutIn(refresh_token=pair.refresh_token))
        token_service.logout(LogoutIn(refresh_token=pair.refresh_token))
        token_service.logout(LogoutIn(refresh_token="never-issued"))

    def test_logout_requires_token(self, token_service):
        with pytest.raises(InvalidTokenError):
            token_service.logout(LogoutIn(refresh_token=""))

    def test_logout_leaves_access_token_valid(self, token_service):
        pair = token_service.open_session(3)
        token_service.logout(LogoutIn(refresh_token=pair.refresh_token))
        assert token_service.validate_access_token(pair.access_token) == 3

    def test_revoke_all_only_touches_one_user(self, token_service, refresh_store):
        mine = [token_service.open_session(1) for _ in range(3)]
        theirs = token_service.open_session(2)

        assert token_service.revoke_all(1) == 3
        assert all(refresh_store.get_user_id(p.refresh_token) is None for p in mine)
        assert refresh_store.get_user_id(theirs.refresh_token) == 2
        assert token_service.revoke_all(1) == 0

    def test_revoke_all_store_failure(self, token_service, refresh_store, monkeypatch):
        def boom(user_id):
            raise StoreError("down")

        monkeypatch.setattr(refresh_store, "delete_all_for_user", boom)
        with pytest.raises(InternalError):
            token_service.revoke_all(1)


def test_secrets_are_not_interchangeable(app, refresh_signer):
    # A refresh token presented where an access token is expected fails on
    # signature before the type claim is even read.
    refresh = refresh_signer.sign(1)
    with pytest.raises(jwt.InvalidSignatureError):
        jwt.decode(refresh.token, app.config["JWT_ACCESS_SECRET"], algorithms=["HS256"])
    assert jwt.decode(
        refresh.token, app.config["JWT_REFRESH_SECRET"], algorithms=["HS256"]
    )["type"] == "refresh"
