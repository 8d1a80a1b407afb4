from __future__ import annotations

from datetime import UTC, datetime, timedelta

from identity_service.infra.jwt.pyjwt_token_signer import ACCESS, PyJWTTokenSigner
from tests.factories.user import UserFactory

ME = "/api/v1/users/me"


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _access_token(app, user_id: int, **sign_kwargs) -> str:
    signer = PyJWTTokenSigner(
        secret=app.config["JWT_ACCESS_SECRET"], token_type=ACCESS, lifetime=timedelta(hours=1)
    )
    return signer.sign(user_id, **sign_kwargs).token


def test_get_me_returns_profile(app, client):
    user = UserFactory(nickname="Morpheus")

    resp = client.get(ME, headers=_auth(_access_token(app, user.id)))

    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["id"] == user.id
    assert data["email"] == user.email
    assert data["nickname"] == "Morpheus"
    assert "password_hash" not in data


def test_login_token_opens_profile(client):
    user = UserFactory()
    login = client.post(
        "/api/v1/auth/login", json={"email": user.email, "password": "Passw0rd!"}
    ).get_json()["data"]

    resp = client.get(ME, headers=_auth(login["access_token"]))

    assert resp.status_code == 200


def test_missing_header_is_401(client):
    resp = client.get(ME)

    assert resp.status_code == 401
    assert resp.get_json()["code"] == "invalid_token"


def test_non_bearer_scheme_is_401(app, client):
    token = _access_token(app, 1)
    assert client.get(ME, headers={"Authorization": f"Basic {token}"}).status_code == 401


def test_expired_token_is_401_token_expired(app, client):
    user = UserFactory()
    token = _access_token(app, user.id, now=datetime.now(UTC) - timedelta(hours=2))

    resp = client.get(ME, headers=_auth(token))

    assert resp.status_code == 401
    assert resp.get_json()["code"] == "token_expired"


def test_refresh_token_cannot_authenticate(client):
    user = UserFactory()
    pair = client.post(
        "/api/v1/auth/login", json={"email": user.email, "password": "Passw0rd!"}
    ).get_json()["data"]

    resp = client.get(ME, headers=_auth(pair["refresh_token"]))

    assert resp.status_code == 401


def test_deleted_account_is_404(app, client):
    resp = client.get(ME, headers=_auth(_access_token(app, 987_654)))

    assert resp.status_code == 404
    assert resp.get_json()["code"] == "not_found"


def test_patch_me_updates_given_fields(app, client, faker):
    user = UserFactory(nickname="Before")
    avatar = faker.image_url()

    resp = client.patch(
        ME,
        json={"avatar_url": avatar},
        headers=_auth(_access_token(app, user.id)),
    )

    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["nickname"] == "Before"
    assert data["avatar_url"] == avatar


def test_patch_me_rejects_blank_nickname(app, client):
    user = UserFactory()

    resp = client.patch(ME, json={"nickname": " "}, headers=_auth(_access_token(app, user.id)))

    assert resp.status_code == 400
    assert resp.get_json()["code"] == "invalid_argument"


def test_patch_me_rejects_unknown_fields(app, client):
    user = UserFactory()

    resp = client.patch(
        ME, json={"email": "x@example.com"}, headers=_auth(_access_token(app, user.id))
    )

    assert resp.status_code == 422
