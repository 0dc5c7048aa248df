from uuid import uuid4

import pytest

from conftest import auth_headers
from roombook.core.security import get_password_hash, verify_password
from roombook.models import User

API = "/api/v1"


@pytest.fixture
def carol(session) -> User:
    user = User(
        username="carol",
        email="carol@example.com",
        full_name="Carol",
        hashed_password=get_password_hash("old-secret"),
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def test_profile_update_changes_only_given_fields(client, requester):
    response = client.patch(
        f"{API}/users/me",
        json={"email": "Alice.New@Example.com", "phone": "+1 555 0100"},
        headers=auth_headers(requester),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["email"] == "alice.new@example.com"
    assert body["phone"] == "+1 555 0100"
    assert body["full_name"] == "Alice"


def test_profile_update_refuses_a_taken_email(client, requester, other_user):
    response = client.patch(
        f"{API}/users/me", json={"email": other_user.email}, headers=auth_headers(requester)
    )

    assert response.status_code == 400


def test_profile_update_keeps_own_email(client, requester):
    response = client.patch(
        f"{API}/users/me", json={"email": requester.email}, headers=auth_headers(requester)
    )

    assert response.status_code == 200


def test_password_change_requires_the_old_password(client, session, carol):
    response = client.post(
        f"{API}/users/me/password",
        json={"old_password": "wrong-one", "new_password": "new-secret"},
        headers=auth_headers(carol),
    )

    assert response.status_code == 400
    session.refresh(carol)
    assert verify_password("old-secret", carol.hashed_password)


def test_password_change_allows_login_with_new_password(client, carol):
    response = client.post(
        f"{API}/users/me/password",
        json={"old_password": "old-secret", "new_password": "new-secret"},
        headers=auth_headers(carol),
    )
    assert response.status_code == 200
    assert "hashed_password" not in response.json()

    old_login = client.post(
        f"{API}/auth/login", json={"username": "carol", "password": "old-secret"}
    )
    new_login = client.post(
        f"{API}/auth/login", json={"username": "carol", "password": "new-secret"}
    )
    assert old_login.status_code == 400
    assert new_login.status_code == 200


def test_short_new_password_is_a_validation_error(client, carol):
    response = client.post(
        f"{API}/users/me/password",
        json={"old_password": "old-secret", "new_password": "abc"},
        headers=auth_headers(carol),
    )

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "ValidationError"


def test_freeze_requires_admin(client, requester, other_user):
    response = client.post(
        f"{API}/users/{other_user.id}/freeze", headers=auth_headers(requester)
    )

    assert response.status_code == 403


def test_frozen_user_loses_access(client, carol, admin):
    token_headers = auth_headers(carol)

    response = client.post(f"{API}/users/{carol.id}/freeze", headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.json()["is_active"] is False
    assert client.get(f"{API}/users/me", headers=token_headers).status_code == 401
    login = client.post(
        f"{API}/auth/login", json={"username": "carol", "password": "old-secret"}
    )
    assert login.status_code == 403


def test_freeze_unknown_user_is_not_found(client, admin):
    response = client.post(f"{API}/users/{uuid4()}/freeze", headers=auth_headers(admin))

    assert response.status_code == 404


def test_admin_cannot_freeze_themselves(client, admin):
    response = client.post(f"{API}/users/{admin.id}/freeze", headers=auth_headers(admin))

    assert response.status_code == 400
