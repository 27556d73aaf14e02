def setup_company(client):
    client.post(
        "/api/auth/register",
        json={
            "company_name": "Northlight Pictures",
            "name": "Dana Admin",
            "email": "admin@northlight.example.com",
            "password": "password123",
        },
    )
    token = client.post(
        "/api/auth/login",
        json={"email": "admin@northlight.example.com", "password": "password123"},
    ).json()["access_token"]
    headers = {"Authorization": f"Bearer {token}"}
    actor = client.post(
        "/api/team/users",
        json={"name": "Ari Actor", "email": "ari@northlight.example.com", "role": "actor", "password": "password123"},
        headers=headers,
    ).json()
    show = client.post("/api/shows/", json={"title": "Low Tide"}, headers=headers).json()
    return headers, actor, show


def add_scene(client, headers, show_id, number, scheduled_time, **extra):
    response = client.post(
        "/api/scenes/",
        json={"show_id": show_id, "scene_number": number, "title": f"Scene {number}", "scheduled_time": scheduled_time, **extra},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


def test_check_previews_unsaved_scene(client):
    headers, actor, show = setup_company(client)
    existing = add_scene(client, headers, show["id"], "1", "2026-03-02T09:00:00Z", assigned_actors=[actor["id"]])

    response = client.post(
        "/api/conflicts/check",
        json={
            "scheduled_time": "2026-03-02T09:30:00Z",
            "duration_minutes": 30,
            "assigned_actors": [actor["id"]],
            "assigned_crew": [],
            "show_id": show["id"],
        },
        headers=headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["has_conflicts"] is True
    assert body["conflicts"][0]["scene_id"] is None
    assert body["conflicts"][0]["conflicting_scene_id"] == existing["id"]
    assert body["conflicts"][0]["conflict_type"] == "resource"


def test_check_with_existing_scene_id_excludes_itself(client):
    headers, actor, show = setup_company(client)
    existing = add_scene(client, headers, show["id"], "1", "2026-03-02T09:00:00Z")

    response = client.post(
        "/api/conflicts/check",
        json={
            "scene_id": existing["id"],
            "scheduled_time": "2026-03-02T09:10:00Z",
            "assigned_actors": [],
            "assigned_crew": [],
            "show_id": show["id"],
        },
        headers=headers,
    )
    assert response.json() == {"has_conflicts": False, "conflicts": []}


def test_batch_and_calendar(client):
    headers, actor, show = setup_company(client)
    first = add_scene(client, headers, show["id"], "1", "2026-03-02T09:00:00Z")
    second = add_scene(client, headers, show["id"], "2", "2026-03-02T09:30:00Z")
    free = add_scene(client, headers, show["id"], "3", "2026-03-03T09:00:00Z")
    add_scene(client, headers, show["id"], "4", None)

    batch = client.post(
        "/api/conflicts/batch",
        json={"scene_ids": [first["id"], second["id"], free["id"]]},
        headers=headers,
    )
    assert batch.status_code == 200
    mapping = batch.json()
    assert set(mapping) == {str(first["id"]), str(second["id"])}
    assert mapping[str(first["id"])][0]["conflict_type"] == "time"

    calendar = client.get("/api/conflicts/calendar", params={"show_ids": show["id"]}, headers=headers)
    assert calendar.status_code == 200
    entries = calendar.json()
    assert [entry["scene_number"] for entry in entries] == ["1", "2", "3"]
    assert [entry["has_conflicts"] for entry in entries] == [True, True, False]
    assert entries[2]["conflicts"] == []

    day_one = client.get(
        "/api/conflicts/calendar",
        params={"start": "2026-03-02T00:00:00Z", "end": "2026-03-02T23:59:59Z"},
        headers=headers,
    )
    assert [entry["scene_number"] for entry in day_one.json()] == ["1", "2"]

    backwards = client.get(
        "/api/conflicts/calendar",
        params={"start": "2026-03-03T00:00:00Z", "end": "2026-03-02T00:00:00Z"},
        headers=headers,
    )
    assert backwards.status_code == 400


def test_actor_can_view_calendar_and_preview_conflicts(client):
    headers, actor, show = setup_company(client)
    token = client.post(
        "/api/auth/login",
        json={"email": "ari@northlight.example.com", "password": "password123"},
    ).json()["access_token"]
    actor_headers = {"Authorization": f"Bearer {token}"}

    assert client.get("/api/conflicts/calendar", headers=actor_headers).status_code == 200
    preview = client.post(
        "/api/conflicts/check",
        json={"scheduled_time": "2026-03-02T09:00:00Z", "assigned_actors": [], "assigned_crew": []},
        headers=actor_headers,
    )
    assert preview.status_code == 200
