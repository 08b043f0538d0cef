from uuid import uuid4


def test_admin_can_list_promote_and_delete_users(client, user_factory):
    admin = user_factory(role="admin")
    managed = user_factory(role="organizer")
    managed_id = managed["user"].id

    list_response = client.get("/api/admin/users", headers=admin["headers"])
    assert list_response.status_code == 200
    emails = [user["email"] for user in list_response.json()["users"]]
    assert managed["email"] in emails
    assert admin["email"] in emails

    filtered = client.get("/api/admin/users", params={"role": "organizer"}, headers=admin["headers"])
    assert filtered.status_code == 200
    assert {user["role"] for user in filtered.json()["users"]} == {"organizer"}

    promote = client.patch(
        f"/api/admin/users/{managed_id}/role",
        headers=admin["headers"],
        json={"role": "admin"},
    )
    assert promote.status_code == 200
    assert promote.json()["user"]["role"] == "admin"

    delete_response = client.delete(f"/api/admin/users/{managed_id}", headers=admin["headers"])
    assert delete_response.status_code == 200
    assert delete_response.json() == {"success": True, "deleted_user_id": managed_id}

    # The deleted user's session no longer resolves
    assert client.get("/api/auth/user", headers=managed["headers"]).status_code == 401


def test_admin_endpoints_require_admin(client, user_factory):
    organizer = user_factory(role="organizer")

    assert client.get("/api/admin/users").status_code == 401
    assert client.get("/api/admin/users", headers=organizer["headers"]).status_code == 403
    assert (
        client.patch(
            f"/api/admin/users/{organizer['user'].id}/role",
            headers=organizer["headers"],
            json={"role": "admin"},
        ).status_code
        == 403
    )


def test_admin_cannot_demote_or_delete_self(client, user_factory):
    admin = user_factory(role="admin")
    admin_id = admin["user"].id

    demote = client.patch(
        f"/api/admin/users/{admin_id}/role",
        headers=admin["headers"],
        json={"role": "attendee"},
    )
    assert demote.status_code == 400

    delete_response = client.delete(f"/api/admin/users/{admin_id}", headers=admin["headers"])
    assert delete_response.status_code == 400


def test_unknown_users_return_404(client, user_factory):
    admin = user_factory(role="admin")
    missing_id = str(uuid4())

    assert client.delete(f"/api/admin/users/{missing_id}", headers=admin["headers"]).status_code == 404
    assert (
        client.patch(
            f"/api/admin/users/{missing_id}/role",
            headers=admin["headers"],
            json={"role": "sponsor"},
        ).status_code
        == 404
    )


def test_invalid_role_is_rejected(client, user_factory):
    admin = user_factory(role="admin")
    target = user_factory()
    response = client.patch(
        f"/api/admin/users/{target['user'].id}/role",
        headers=admin["headers"],
        json={"role": "superuser"},
    )
    assert response.status_code == 422
