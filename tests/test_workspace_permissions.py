OWNER_HEADERS = {"x-dev-user-email": "owner@example.com"}


def _join(client, workspace_id, email, role="member"):
    token = client.post(
        "/v1/send-invitation",
        headers=OWNER_HEADERS,
        json={"email": email, "workspaceId": workspace_id, "role": role},
    ).json()["invitation"]["token"]
    resp = client.post("/v1/invites/accept", headers={"x-dev-user-email": email}, json={"token": token})
    assert resp.json()["status"] == "success"
    return client.get("/v1/me", headers={"x-dev-user-email": email}).json()["id"]


def _workspace(client):
    return client.post("/v1/workspaces", headers=OWNER_HEADERS, json={"name": "Team", "slug": "team"}).json()["id"]


def test_outsider_cannot_read_workspace(client):
    workspace_id = _workspace(client)
    outsider_headers = {"x-dev-user-email": "outsider@example.com"}

    assert client.get(f"/v1/workspaces/{workspace_id}", headers=outsider_headers).status_code == 403
    assert client.get(f"/v1/workspaces/{workspace_id}/members", headers=outsider_headers).status_code == 403
    assert client.get(f"/v1/workspaces/{workspace_id}/invites", headers=outsider_headers).status_code == 403


def test_member_cannot_manage_workspace(client):
    workspace_id = _workspace(client)
    _join(client, workspace_id, "member@example.com")
    member_headers = {"x-dev-user-email": "member@example.com"}

    assert client.get(f"/v1/workspaces/{workspace_id}", headers=member_headers).status_code == 200
    assert client.get(f"/v1/workspaces/{workspace_id}/invites", headers=member_headers).status_code == 403

    invite = client.post(
        "/v1/send-invitation",
        headers=member_headers,
        json={"email": "friend@example.com", "workspaceId": workspace_id, "role": "member"},
    )
    assert invite.status_code == 403
    assert invite.json() == {"error": "Insufficient workspace role"}

    rename = client.patch(f"/v1/workspaces/{workspace_id}", headers=member_headers, json={"name": "Mine"})
    assert rename.status_code == 403


def test_admin_can_invite_and_change_roles(client):
    workspace_id = _workspace(client)
    _join(client, workspace_id, "admin@example.com", role="admin")
    member_id = _join(client, workspace_id, "member@example.com")
    admin_headers = {"x-dev-user-email": "admin@example.com"}

    invite = client.post(
        "/v1/send-invitation",
        headers=admin_headers,
        json={"email": "friend@example.com", "workspaceId": workspace_id, "role": "viewer"},
    )
    assert invite.status_code == 200

    demote = client.patch(
        f"/v1/workspaces/{workspace_id}/members/{member_id}",
        headers=admin_headers,
        json={"role": "viewer"},
    )
    assert demote.status_code == 200
    assert demote.json()["role"] == "viewer"

    promote_to_owner = client.patch(
        f"/v1/workspaces/{workspace_id}/members/{member_id}",
        headers=admin_headers,
        json={"role": "owner"},
    )
    assert promote_to_owner.status_code == 403


def test_owner_role_is_fixed_outside_bootstrap(client):
    workspace_id = _workspace(client)
    owner_id = client.get("/v1/me", headers=OWNER_HEADERS).json()["id"]
    member_id = _join(client, workspace_id, "member@example.com")

    demote = client.patch(
        f"/v1/workspaces/{workspace_id}/members/{owner_id}",
        headers=OWNER_HEADERS,
        json={"role": "admin"},
    )
    assert demote.status_code == 403
    assert demote.json() == {"error": "Cannot demote workspace owner"}

    grant = client.patch(
        f"/v1/workspaces/{workspace_id}/members/{member_id}",
        headers=OWNER_HEADERS,
        json={"role": "owner"},
    )
    assert grant.status_code == 403
    assert grant.json() == {"error": "Owner transfer flow is not implemented"}

    members = client.get(f"/v1/workspaces/{workspace_id}/members", headers=OWNER_HEADERS).json()
    assert {m["email"]: m["role"] for m in members} == {
        "owner@example.com": "owner",
        "member@example.com": "member",
    }

    leave = client.delete(f"/v1/workspaces/{workspace_id}/members/{owner_id}", headers=OWNER_HEADERS)
    assert leave.status_code == 409

    member_kicks_owner = client.delete(
        f"/v1/workspaces/{workspace_id}/members/{owner_id}",
        headers={"x-dev-user-email": "member@example.com"},
    )
    assert member_kicks_owner.status_code == 403


def test_member_can_leave_and_owner_can_remove(client):
    workspace_id = _workspace(client)
    leaver_id = _join(client, workspace_id, "leaver@example.com")
    removed_id = _join(client, workspace_id, "removed@example.com")

    leave = client.delete(
        f"/v1/workspaces/{workspace_id}/members/{leaver_id}",
        headers={"x-dev-user-email": "leaver@example.com"},
    )
    assert leave.status_code == 200

    remove = client.delete(f"/v1/workspaces/{workspace_id}/members/{removed_id}", headers=OWNER_HEADERS)
    assert remove.status_code == 200

    members = client.get(f"/v1/workspaces/{workspace_id}/members", headers=OWNER_HEADERS).json()
    assert [m["email"] for m in members] == ["owner@example.com"]


def test_role_ordering():
    from flowboard.models import Role

    assert Role.OWNER.at_least(Role.ADMIN)
    assert Role.ADMIN.at_least("admin")
    assert not Role.VIEWER.at_least(Role.MEMBER)
    assert sorted(Role, key=lambda role: role.rank) == [Role.VIEWER, Role.MEMBER, Role.ADMIN, Role.OWNER]
