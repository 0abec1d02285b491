from sqlalchemy import select

from rfpflow.models.notification import Notification


async def test_list_users_and_role_filter(client, admin, manager_user, member, auth):
    response = await client.get("/api/users", headers=auth(member))
    assert {u["id"] for u in response.json()} == {admin.id, manager_user.id, member.id}

    response = await client.get("/api/users", params={"role": "manager"}, headers=auth(member))
    assert [u["id"] for u in response.json()] == [manager_user.id]


async def test_permissions_endpoint(client, member, auth):
    response = await client.get("/api/users/permissions", headers=auth(member))
    body = response.json()
    assert body["role"] == "member"
    assert "project:create" in body["permissions"]
    assert "project:update_stage" in body["owner_permissions"]
    assert "invitation:create" in body["matrix"]["admin"]


async def test_admin_changes_role_and_target_is_notified(client, db, admin, member, auth):
    response = await client.put(f"/api/users/{member.id}/role", json={"role": "manager"}, headers=auth(admin))
    assert response.status_code == 200
    assert response.json()["role"] == "manager"

    result = await db.execute(select(Notification).where(Notification.user_id == member.id))
    notification = result.scalar_one()
    assert notification.type == "role_change"
    assert "Member to Manager" in notification.message


async def test_role_change_rules(client, admin, manager_user, member, auth):
    response = await client.put(f"/api/users/{admin.id}/role", json={"role": "member"}, headers=auth(admin))
    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot change your own role"

    response = await client.put(f"/api/users/{member.id}/role", json={"role": "admin"}, headers=auth(manager_user))
    assert response.status_code == 403


async def test_deactivate_and_reactivate(client, admin, member, auth):
    response = await client.put(f"/api/users/{member.id}/deactivate", headers=auth(admin))
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    response = await client.put(f"/api/users/{member.id}/deactivate", headers=auth(admin))
    assert response.status_code == 400
    assert response.json()["detail"] == "User is already deactivated"

    response = await client.get("/api/projects", headers=auth(member))
    assert response.status_code == 403

    response = await client.put(f"/api/users/{member.id}/reactivate", headers=auth(admin))
    assert response.json()["is_active"] is True


async def test_cannot_deactivate_self(client, admin, auth):
    response = await client.put(f"/api/users/{admin.id}/deactivate", headers=auth(admin))
    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot deactivate your own account"


async def test_profile_and_preferences(client, member, auth):
    headers = auth(member)
    response = await client.put("/api/profile", json={"job_title": "Bid Writer", "first_name": "Mila"}, headers=headers)
    assert response.json()["job_title"] == "Bid Writer"
    assert response.json()["full_name"] == "Mila Test"

    response = await client.get("/api/profile/preferences", headers=headers)
    assert response.json()["preferences"]["notification_frequency"] == "immediate"

    preferences = {
        "email_notifications": False,
        "project_assignments": True,
        "due_date_reminders": True,
        "comment_mentions": False,
        "weekly_summary": True,
        "notification_frequency": "daily",
    }
    response = await client.put("/api/profile/preferences", json=preferences, headers=headers)
    assert response.json()["preferences"]["notification_frequency"] == "daily"

    response = await client.get("/api/profile/preferences", headers=headers)
    assert response.json()["preferences"]["email_notifications"] is False
