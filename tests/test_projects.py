from sqlalchemy import select

from rfpflow.models.activity_log import ActivityLog
from rfpflow.models.project import Project


async def create_project(client, headers, **fields):
    payload = {"title": "City Hall Renovation", "client_name": "City of Springfield", **fields}
    response = await client.post("/api/projects", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def test_requests_without_token_are_rejected(client, admin):
    response = await client.get("/api/projects")
    assert response.status_code == 401


async def test_unknown_user_is_rejected(client, org, auth):
    response = await client.get("/api/projects", headers=auth("user_missing"))
    assert response.status_code == 401
    assert response.json()["detail"] == "User not found"


async def test_create_project_defaults_to_assigned_and_owned_by_caller(client, member, auth):
    project = await create_project(client, auth(member))

    assert project["stage"] == "assigned"
    assert project["owner_id"] == member.id
    assert project["owner"]["email"] == member.email
    assert project["progress_percentage"] == 0
    assert project["is_archived"] is False


async def test_create_project_logs_activity(client, db, member, auth):
    project = await create_project(client, auth(member))

    result = await db.execute(select(ActivityLog).where(ActivityLog.entity_id == project["id"]))
    actions = [entry.action for entry in result.scalars().all()]
    assert actions == ["project_created"]


async def test_create_project_validates_payload(client, member, auth):
    response = await client.post("/api/projects", json={"title": ""}, headers=auth(member))
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid request data"


async def test_list_filters_search_and_pagination(client, member, auth):
    headers = auth(member)
    await create_project(client, headers, title="Bridge inspection", priority="high")
    await create_project(client, headers, title="School roof", priority="low")
    await create_project(client, headers, title="Bridge lighting", priority="low")

    response = await client.get("/api/projects", params={"search": "bridge"}, headers=headers)
    body = response.json()
    assert body["total"] == 2
    assert {p["title"] for p in body["projects"]} == {"Bridge inspection", "Bridge lighting"}

    response = await client.get("/api/projects", params={"priority": "low", "sort_by": "title", "sort_order": "asc"}, headers=headers)
    assert [p["title"] for p in response.json()["projects"]] == ["Bridge lighting", "School roof"]

    response = await client.get("/api/projects", params={"limit": 1, "offset": 1}, headers=headers)
    body = response.json()
    assert body["total"] == 3
    assert len(body["projects"]) == 1


async def test_get_project_includes_counts(client, member, auth):
    project = await create_project(client, auth(member))

    response = await client.get(f"/api/projects/{project['id']}", headers=auth(member))
    assert response.status_code == 200
    body = response.json()
    assert body["comments_count"] == 0
    assert body["subtasks_count"] == 0


async def test_get_missing_project_is_404(client, member, auth):
    response = await client.get("/api/projects/does-not-exist", headers=auth(member))
    assert response.status_code == 404
    assert response.json()["detail"] == "Project not found"


async def test_member_cannot_update_someone_elses_project(client, member, other_member, auth):
    project = await create_project(client, auth(member))

    response = await client.put(
        f"/api/projects/{project['id']}", json={"title": "Hijacked"}, headers=auth(other_member)
    )
    assert response.status_code == 403


async def test_manager_updates_any_project(client, member, manager_user, auth):
    project = await create_project(client, auth(member))

    response = await client.put(
        f"/api/projects/{project['id']}",
        json={"title": "Renamed", "priority_banding": "P1"},
        headers=auth(manager_user),
    )
    assert response.status_code == 200
    assert response.json()["title"] == "Renamed"
    assert response.json()["priority_banding"] == "P1"


async def test_update_rejects_null_for_required_fields(client, member, auth):
    project = await create_project(client, auth(member))

    for field in ("title", "stage", "priority"):
        response = await client.put(f"/api/projects/{project['id']}", json={field: None}, headers=auth(member))
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid request data"

    response = await client.put(
        f"/api/projects/{project['id']}", json={"client_name": None}, headers=auth(member)
    )
    assert response.status_code == 200
    assert response.json()["title"] == "City Hall Renovation"
    assert response.json()["client_name"] is None


async def test_kanban_groups_projects_by_stage(client, member, auth):
    headers = auth(member)
    await create_project(client, headers, title="A")
    await create_project(client, headers, title="B", stage="won")

    response = await client.get("/api/projects/kanban", headers=headers)
    board = response.json()
    stages = [column["stage"] for column in board["columns"]]
    assert stages == ["unassigned", "assigned", "submitted", "skipped", "won", "lost"]
    counts = {column["stage"]: column["count"] for column in board["columns"]}
    assert counts["assigned"] == 1
    assert counts["won"] == 1
    assert board["total"] == 2


async def test_archive_hides_project_but_keeps_stage(client, member, auth):
    headers = auth(member)
    project = await create_project(client, headers, stage="submitted")

    response = await client.post(f"/api/projects/{project['id']}/archive", headers=headers)
    assert response.status_code == 200
    assert response.json()["is_archived"] is True
    assert response.json()["stage"] == "submitted"

    listing = await client.get("/api/projects", headers=headers)
    assert listing.json()["total"] == 0
    listing = await client.get("/api/projects", params={"include_archived": True}, headers=headers)
    assert listing.json()["total"] == 1

    response = await client.post(f"/api/projects/{project['id']}/unarchive", headers=headers)
    assert response.json()["is_archived"] is False


async def test_clone_resets_stage_progress_and_owner(client, member, manager_user, auth):
    project = await create_project(client, auth(member), stage="submitted")
    await client.put(
        f"/api/projects/{project['id']}/progress", json={"progress_percentage": 60}, headers=auth(member)
    )

    response = await client.post(f"/api/projects/{project['id']}/clone", headers=auth(manager_user))
    assert response.status_code == 201
    clone = response.json()
    assert clone["title"] == "City Hall Renovation (Copy)"
    assert clone["stage"] == "unassigned"
    assert clone["progress_percentage"] == 0
    assert clone["owner_id"] == manager_user.id
    assert clone["client_name"] == "City of Springfield"


async def test_progress_update_and_history(client, member, auth):
    headers = auth(member)
    project = await create_project(client, headers)

    response = await client.put(
        f"/api/projects/{project['id']}/progress",
        json={"progress_percentage": 40, "status_notes": "Draft done"},
        headers=headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["progress_percentage"] == 40
    assert body["status_notes"] == "Draft done"
    assert body["history"][0]["progress_percentage"] == 40
    assert body["history"][0]["previous_percentage"] == 0

    response = await client.put(
        f"/api/projects/{project['id']}/progress", json={"progress_percentage": 140}, headers=headers
    )
    assert response.status_code == 400


async def test_assign_moves_unassigned_project_to_assigned(client, manager_user, member, auth):
    project = await create_project(client, auth(manager_user), stage="unassigned")

    response = await client.put(
        f"/api/projects/{project['id']}/assign", json={"assigned_to": member.id}, headers=auth(manager_user)
    )
    assert response.status_code == 200
    assert response.json()["stage"] == "assigned"
    assert response.json()["assignee"]["id"] == member.id

    notifications = await client.get("/api/notifications", headers=auth(member))
    assert [n["type"] for n in notifications.json()["notifications"]] == ["assignment"]


async def test_delete_requires_owner_or_admin(client, db, member, manager_user, admin, auth):
    project = await create_project(client, auth(member))

    response = await client.delete(f"/api/projects/{project['id']}", headers=auth(manager_user))
    assert response.status_code == 403

    response = await client.delete(f"/api/projects/{project['id']}", headers=auth(admin))
    assert response.status_code == 200

    result = await db.execute(select(Project).where(Project.id == project["id"]))
    assert result.scalar_one_or_none() is None


async def test_project_tags_add_and_remove(client, manager_user, auth):
    headers = auth(manager_user)
    tag = (await client.post("/api/tags", json={"name": "Federal"}, headers=headers)).json()
    project = await create_project(client, headers)

    response = await client.post(f"/api/projects/{project['id']}/tags", json={"tag_ids": [tag["id"]]}, headers=headers)
    assert [t["name"] for t in response.json()["tags"]] == ["Federal"]

    filtered = await client.get("/api/projects", params={"tag_ids": tag["id"]}, headers=headers)
    assert filtered.json()["total"] == 1

    response = await client.request(
        "DELETE", f"/api/projects/{project['id']}/tags", json={"tag_ids": [tag["id"]]}, headers=headers
    )
    assert response.json()["tags"] == []


async def test_unknown_tag_is_404(client, manager_user, auth):
    project = await create_project(client, auth(manager_user))
    response = await client.post(
        f"/api/projects/{project['id']}/tags", json={"tag_ids": ["missing"]}, headers=auth(manager_user)
    )
    assert response.status_code == 404


async def test_export_returns_pdf(client, member, auth):
    project = await create_project(client, auth(member), title="Harbor / Dredging 2026")

    response = await client.get(f"/api/projects/{project['id']}/export", headers=auth(member))
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert 'filename="harbor_dredging_2026_report.pdf"' in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")


async def test_created_project_reads_back_unchanged(client, member, auth):
    project = await create_project(client, auth(member), stage="submitted", priority="urgent")

    response = await client.get(f"/api/projects/{project['id']}", headers=auth(member))
    fetched = response.json()
    assert fetched["stage"] == "submitted"
    assert fetched["priority"] == "urgent"
    assert fetched["owner_id"] == member.id


async def test_project_activity_trail(client, member, auth):
    headers = auth(member)
    project = await create_project(client, headers)
    await client.post(
        "/api/projects/update-stage", json={"projectId": project["id"], "newStage": "won"}, headers=headers
    )

    response = await client.get(f"/api/projects/{project['id']}/activity", headers=headers)
    actions = {entry["action"] for entry in response.json()}
    assert actions == {"project_created", "stage_changed"}
