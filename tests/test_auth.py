# Rentaly API - Car Rental Marketplace Backend
# Copyright (C) 2025 Rentaly Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

from factories import ADMIN_PASSWORD, ADMIN_USERNAME


def login(client, username=ADMIN_USERNAME, password=ADMIN_PASSWORD):
    return client.post("/api/auth/admin/login", json={"username": username, "password": password})


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def test_login_returns_token_and_profile(client):
    response = login(client)
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["token"]
    assert body["expiresAt"]
    assert body["admin"]["username"] == ADMIN_USERNAME
    assert body["admin"]["role"] == "super_admin"
    assert "password" not in body["admin"]
    assert "passwordHash" not in body["admin"]


def test_login_with_email(client):
    response = client.post(
        "/api/auth/admin/login",
        json={"email": "admin@example.com", "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 200


def test_login_requires_credentials(client):
    assert client.post("/api/auth/admin/login", json={"username": ADMIN_USERNAME}).status_code == 400


def test_login_rejects_unknown_user_and_bad_password(client):
    assert login(client, username="nobody").status_code == 401
    assert login(client, password="wrong-password").status_code == 401


def test_account_locks_after_repeated_failures(client):
    for _ in range(5):
        assert login(client, password="wrong-password").status_code == 401

    # Even the right password is refused while locked
    response = login(client)
    assert response.status_code == 423


def test_me_requires_token(client, auth_headers):
    assert client.get("/api/auth/admin/me").status_code == 401
    assert client.get("/api/auth/admin/me", headers=bearer("not-a-token")).status_code == 401

    response = client.get("/api/auth/admin/me", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["admin"]["username"] == ADMIN_USERNAME


def test_logout_revokes_token(client, auth_headers):
    assert client.post("/api/auth/admin/logout", headers=auth_headers).status_code == 200
    assert client.get("/api/auth/admin/me", headers=auth_headers).status_code == 401


def test_change_password_invalidates_old_tokens(client, auth_headers):
    wrong = client.put(
        "/api/auth/admin/change-password",
        json={"currentPassword": "nope", "newPassword": "another-secret"},
        headers=auth_headers,
    )
    assert wrong.status_code == 400

    short = client.put(
        "/api/auth/admin/change-password",
        json={"currentPassword": ADMIN_PASSWORD, "newPassword": "abc"},
        headers=auth_headers,
    )
    assert short.status_code == 400

    response = client.put(
        "/api/auth/admin/change-password",
        json={"currentPassword": ADMIN_PASSWORD, "newPassword": "another-secret"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    new_token = response.json()["token"]

    assert client.get("/api/auth/admin/me", headers=auth_headers).status_code == 401
    assert client.get("/api/auth/admin/me", headers=bearer(new_token)).status_code == 200
    assert login(client, password=ADMIN_PASSWORD).status_code == 401
    assert login(client, password="another-secret").status_code == 200


def test_register_editor_with_limited_permissions(client, auth_headers):
    payload = {
        "username": "editor1",
        "email": "editor1@rentaly.com",
        "password": "editor-pass",
        "role": "editor",
    }
    response = client.post("/api/auth/register", json=payload, headers=auth_headers)
    assert response.status_code == 201
    assert response.json()["admin"]["permissions"] == {"content": ["create", "read", "update"]}

    duplicate = client.post("/api/auth/register", json=payload, headers=auth_headers)
    assert duplicate.status_code == 409

    editor_token = login(client, "editor1", "editor-pass").json()["token"]
    headers = bearer(editor_token)

    # Editors manage content but not the fleet or other admins
    assert client.get("/api/admin/cars", headers=headers).status_code == 403
    assert client.post("/api/auth/register", json={**payload, "username": "x" * 5}, headers=headers).status_code == 403


def test_profile_update(client, auth_headers):
    response = client.put(
        "/api/auth/admin/profile",
        json={"firstName": "Deniz", "phone": "+90 555 000 0000"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    me = client.get("/api/auth/admin/me", headers=auth_headers).json()["admin"]
    assert me["firstName"] == "Deniz"
    assert me["phone"] == "+90 555 000 0000"
