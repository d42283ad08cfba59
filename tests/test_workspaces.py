def test_workspace_invite_accept(client):
    owner_headers = {"x-dev-user-email": "owner@example.com"}

    ws_resp = client.post(
        "/v1/workspaces",
        headers=owner_headers,
        json={"name": "Team One", "slug": "team-one"},
    )
    assert ws_resp.status_code == 200
    workspace_id = ws_resp.json()["id"]

    invite_resp = client.post(
        "/v1/send-invitation",
        headers=owner_headers,
        json={
            "email": "member@example.com",
            "workspaceId": workspace_id,
            "workspaceName": "Team One",
            "role": "member",
            "inviterName": "Owner",
        },
    )
    assert invite_resp.status_code == 200
    token = invite_resp.json()["invitation"]["token"]

    member_headers = {"x-dev-user-email": "member@example.com"}
    accept_resp = client.post("/v1/invites/accept", headers=member_headers, json={"token": token})
    assert accept_resp.status_code == 200
    assert accept_resp.json()["status"] == "success"

    listed = client.get("/v1/workspaces", headers=member_headers)
    assert [(item["workspace"]["slug"], item["role"]) for item in listed.json()] == [("team-one", "member")]


def test_update_workspace_settings(client):
    owner_headers = {"x-dev-user-email": "owner@example.com"}
    ws = client.post("/v1/workspaces", headers=owner_headers, json={"name": "Alpha", "slug": "alpha"}).json()
    client.post("/v1/workspaces", headers=owner_headers, json={"name": "Beta", "slug": "beta"})

    updated = client.patch(
        f"/v1/workspaces/{ws['id']}",
        headers=owner_headers,
        json={"name": "Alpha Prime", "description": "Renamed", "logoUrl": "https://cdn.test/a.png"},
    )
    assert updated.status_code == 200
    assert updated.json()["name"] == "Alpha Prime"
    assert updated.json()["slug"] == "alpha"
    assert updated.json()["logoUrl"] == "https://cdn.test/a.png"

    taken = client.patch(f"/v1/workspaces/{ws['id']}", headers=owner_headers, json={"slug": "Beta"})
    assert taken.status_code == 409
    assert client.get(f"/v1/workspaces/{ws['id']}", headers=owner_headers).json()["slug"] == "alpha"


def test_me(client):
    resp = client.get("/v1/me", headers={"x-dev-user-email": "someone@example.com"})
    assert resp.status_code == 200
    assert resp.json()["email"] == "someone@example.com"
    assert resp.json()["name"] == "someone"

    assert client.get("/v1/me").status_code == 401


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
