from rfpflow.services import user_sync_service


async def test_admin_invites_and_registered_emails_are_skipped(client, admin, member, auth):
    response = await client.post(
        "/api/invitations",
        json={"emails": ["new.writer@example.com", member.email, "New.Writer@example.com"], "role": "manager"},
        headers=auth(admin),
    )
    assert response.status_code == 201
    body = response.json()
    assert [i["email"] for i in body["invitations"]] == ["new.writer@example.com"]
    assert body["invitations"][0]["role"] == "manager"
    assert body["skipped"] == [member.email]


async def test_pending_invitation_is_not_duplicated(client, admin, auth):
    payload = {"emails": ["pending@example.com"]}
    first = await client.post("/api/invitations", json=payload, headers=auth(admin))
    assert first.status_code == 201

    second = await client.post("/api/invitations", json=payload, headers=auth(admin))
    assert second.status_code == 400
    assert second.json()["detail"] == "All users are already registered or have pending invitations"


async def test_only_admin_invites_and_staff_lists(client, admin, manager_user, member, auth):
    response = await client.post("/api/invitations", json={"emails": ["x@example.com"]}, headers=auth(manager_user))
    assert response.status_code == 403

    await client.post("/api/invitations", json={"emails": ["x@example.com"]}, headers=auth(admin))
    response = await client.get("/api/invitations", headers=auth(manager_user))
    assert [i["email"] for i in response.json()] == ["x@example.com"]

    response = await client.get("/api/invitations", headers=auth(member))
    assert response.status_code == 403


async def test_invalid_email_is_rejected(client, admin, auth):
    response = await client.post("/api/invitations", json={"emails": ["not-an-email"]}, headers=auth(admin))
    assert response.status_code == 400


async def test_sync_accepts_pending_invitation(client, db, org, admin, auth):
    await client.post(
        "/api/invitations", json={"emails": ["invitee@example.com"], "role": "manager"}, headers=auth(admin)
    )

    user, created = await user_sync_service.sync_user(db, "user_invitee", "Invitee@example.com", first_name="Ivy")
    assert created is True
    assert user.organization_id == org.id
    assert user.role == "manager"
    assert user.email == "invitee@example.com"

    response = await client.get("/api/invitations", headers=auth(admin))
    invitation = response.json()[0]
    assert invitation["accepted_at"] is not None
    assert invitation["accepted_by"] == "user_invitee"
