from sqlalchemy import select, func

from rfpflow.models.activity_log import ActivityLog
from rfpflow.models.notification import Notification


async def make_project(client, headers, stage="assigned"):
    response = await client.post("/api/projects", json={"title": "Transit RFP", "stage": stage}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def count_stage_logs(db, project_id):
    result = await db.execute(
        select(func.count(ActivityLog.id)).where(
            ActivityLog.entity_id == project_id, ActivityLog.action == "stage_changed"
        )
    )
    return result.scalar()


async def count_notifications(db, user_id):
    result = await db.execute(select(func.count(Notification.id)).where(Notification.user_id == user_id))
    return result.scalar()


async def test_owner_moves_own_project(client, db, member, auth):
    project = await make_project(client, auth(member))

    response = await client.post(
        "/api/projects/update-stage",
        json={"projectId": project["id"], "newStage": "submitted"},
        headers=auth(member),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["changed"] is True
    assert body["project"]["stage"] == "submitted"
    assert await count_stage_logs(db, project["id"]) == 1
    # Owners are not notified about their own moves
    assert await count_notifications(db, member.id) == 0


async def test_any_stage_is_reachable(client, member, auth):
    project = await make_project(client, auth(member), stage="won")

    for stage in ("unassigned", "lost", "skipped", "assigned", "won"):
        response = await client.post(
            "/api/projects/update-stage",
            json={"projectId": project["id"], "newStage": stage},
            headers=auth(member),
        )
        assert response.json()["project"]["stage"] == stage


async def test_same_stage_is_a_no_op(client, db, member, manager_user, auth):
    project = await make_project(client, auth(member), stage="submitted")

    response = await client.post(
        "/api/projects/update-stage",
        json={"projectId": project["id"], "newStage": "submitted"},
        headers=auth(manager_user),
    )
    assert response.status_code == 200
    assert response.json()["changed"] is False
    assert await count_stage_logs(db, project["id"]) == 0
    assert await count_notifications(db, member.id) == 0


async def test_staff_move_notifies_owner(client, db, member, manager_user, auth):
    project = await make_project(client, auth(member))

    response = await client.post(
        "/api/projects/update-stage",
        json={"projectId": project["id"], "newStage": "won"},
        headers=auth(manager_user),
    )
    assert response.json()["changed"] is True

    result = await db.execute(select(Notification).where(Notification.user_id == member.id))
    notifications = result.scalars().all()
    assert len(notifications) == 1
    assert notifications[0].type == "stage_changed"
    assert notifications[0].entity_id == project["id"]
    assert "Assigned to Won" in notifications[0].message


async def test_member_cannot_move_foreign_project(client, db, member, other_member, auth):
    project = await make_project(client, auth(member))

    response = await client.post(
        "/api/projects/update-stage",
        json={"projectId": project["id"], "newStage": "lost"},
        headers=auth(other_member),
    )
    assert response.status_code == 403
    assert await count_stage_logs(db, project["id"]) == 0


async def test_invalid_stage_is_rejected(client, member, auth):
    project = await make_project(client, auth(member))

    response = await client.post(
        "/api/projects/update-stage",
        json={"projectId": project["id"], "newStage": "in_review"},
        headers=auth(member),
    )
    assert response.status_code == 400


async def test_stage_change_through_project_update(client, db, member, auth):
    project = await make_project(client, auth(member))

    response = await client.put(
        f"/api/projects/{project['id']}", json={"stage": "skipped"}, headers=auth(member)
    )
    assert response.status_code == 200
    assert response.json()["stage"] == "skipped"
    assert await count_stage_logs(db, project["id"]) == 1
