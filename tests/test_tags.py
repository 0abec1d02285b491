async def test_tag_crud_and_case_insensitive_uniqueness(client, manager_user, member, auth):
    headers = auth(manager_user)
    response = await client.post("/api/tags", json={"name": "State", "color": "#10B981"}, headers=headers)
    assert response.status_code == 201
    tag = response.json()

    duplicate = await client.post("/api/tags", json={"name": "state"}, headers=headers)
    assert duplicate.status_code == 400
    assert duplicate.json()["detail"] == "Tag with this name already exists"

    response = await client.put(f"/api/tags/{tag['id']}", json={"name": "State & Local"}, headers=headers)
    assert response.json()["name"] == "State & Local"

    response = await client.post("/api/tags", json={"name": "Local"}, headers=auth(member))
    assert response.status_code == 403

    response = await client.delete(f"/api/tags/{tag['id']}", headers=headers)
    assert response.status_code == 200
    assert (await client.get("/api/tags", headers=headers)).json() == []


async def test_bad_color_is_rejected(client, manager_user, auth):
    response = await client.post("/api/tags", json={"name": "Red", "color": "red"}, headers=auth(manager_user))
    assert response.status_code == 400


async def test_search_and_usage_stats(client, manager_user, auth):
    headers = auth(manager_user)
    federal = (await client.post("/api/tags", json={"name": "Federal"}, headers=headers)).json()
    await client.post("/api/tags", json={"name": "Healthcare"}, headers=headers)
    project = (await client.post("/api/projects", json={"title": "VA Clinic", "tag_ids": [federal["id"]]}, headers=headers)).json()
    assert [t["id"] for t in project["tags"]] == [federal["id"]]

    response = await client.get("/api/tags", params={"search": "fed"}, headers=headers)
    assert [t["name"] for t in response.json()] == ["Federal"]

    response = await client.get("/api/tags/stats", headers=headers)
    usage = {t["name"]: t["usage_count"] for t in response.json()}
    assert usage == {"Federal": 1, "Healthcare": 0}
