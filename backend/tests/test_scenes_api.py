from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from app.main import app


def register_company(client, company_name="Northlight Pictures", email="admin@northlight.example.com"):
    response = client.post(
        "/api/auth/register",
        json={
            "company_name": company_name,
            "name": "Dana Admin",
            "email": email,
            "password": "password123",
        },
    )
    assert response.status_code == 201
    return response.json()


def login_user(client, email, password="password123"):
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200
    return response.json()["access_token"]


def login_user_id(client, email):
    response = client.post("/api/auth/login", json={"email": email, "password": "password123"})
    assert response.status_code == 200
    return response.json()["user"]["id"]


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


def add_member(client, token, name, email, role):
    response = client.post(
        "/api/team/users",
        json={"name": name, "email": email, "role": role, "password": "password123"},
        headers=auth_headers(token),
    )
    assert response.status_code == 201
    return response.json()


def create_show(client, token, title="Low Tide"):
    response = client.post("/api/shows/", json={"title": title}, headers=auth_headers(token))
    assert response.status_code == 201
    return response.json()


def create_scene(client, token, show_id, scene_number, scheduled_time, **extra):
    payload = {
        "show_id": show_id,
        "scene_number": scene_number,
        "title": f"Scene {scene_number}",
        "scheduled_time": scheduled_time,
        **extra,
    }
    return client.post("/api/scenes/", json=payload, headers=auth_headers(token))


def setup_production(client):
    register_company(client)
    admin_token = login_user(client, "admin@northlight.example.com")
    actor = add_member(client, admin_token, "Ari Actor", "ari@northlight.example.com", "actor")
    grip = add_member(client, admin_token, "Gus Grip", "gus@northlight.example.com", "crew")
    show = create_show(client, admin_token)
    return admin_token, actor, grip, show


def test_create_scene_reports_resource_conflict_and_persists(client):
    admin_token, actor, grip, show = setup_production(client)

    first = create_scene(
        client,
        admin_token,
        show["id"],
        "12",
        "2026-03-02T09:00:00Z",
        duration_minutes=90,
        assigned_actors=[actor["id"]],
        assigned_crew=[grip["id"]],
    )
    assert first.status_code == 201
    assert first.json()["conflicts"] == {"has_conflicts": False, "conflicts": []}

    second = create_scene(
        client,
        admin_token,
        show["id"],
        "13",
        "2026-03-02T10:00:00Z",
        assigned_actors=[actor["id"]],
    )
    assert second.status_code == 201
    body = second.json()
    assert body["assigned_actors"] == [actor["id"]]
    assert body["conflicts"]["has_conflicts"] is True
    [conflict] = body["conflicts"]["conflicts"]
    assert conflict["scene_id"] == body["id"]
    assert conflict["conflict_type"] == "resource"
    assert conflict["conflicting_scene_id"] == first.json()["id"]
    assert conflict["conflicting_scene_number"] == "12"
    assert conflict["conflicting_resources"] == [actor["id"]]

    listed = client.get("/api/scenes/", params={"show_id": show["id"]}, headers=auth_headers(admin_token))
    assert listed.status_code == 200
    assert [scene["scene_number"] for scene in listed.json()] == ["12", "13"]


def test_back_to_back_scenes_and_time_conflicts(client):
    admin_token, actor, grip, show = setup_production(client)

    create_scene(client, admin_token, show["id"], "1", "2026-03-02T09:00:00Z", duration_minutes=60)
    adjacent = create_scene(client, admin_token, show["id"], "2", "2026-03-02T10:00:00Z")
    assert adjacent.json()["conflicts"]["has_conflicts"] is False

    overlapping = create_scene(client, admin_token, show["id"], "3", "2026-03-02T09:30:00Z")
    conflicts = overlapping.json()["conflicts"]["conflicts"]
    assert {item["conflict_type"] for item in conflicts} == {"time"}
    assert all(item["conflicting_resources"] is None for item in conflicts)
    assert len(conflicts) == 2


def test_update_scene_rescans_final_state_and_excludes_itself(client):
    admin_token, actor, grip, show = setup_production(client)
    first = create_scene(
        client, admin_token, show["id"], "1", "2026-03-02T09:00:00Z", assigned_crew=[grip["id"]]
    ).json()
    second = create_scene(client, admin_token, show["id"], "2", "2026-03-02T14:00:00Z").json()
    assert second["conflicts"]["has_conflicts"] is False

    moved = client.put(
        f"/api/scenes/{second['id']}",
        json={"scheduled_time": "2026-03-02T09:15:00Z", "assigned_crew": [grip["id"]]},
        headers=auth_headers(admin_token),
    )
    assert moved.status_code == 200
    body = moved.json()
    assert body["title"] == "Scene 2"
    [conflict] = body["conflicts"]["conflicts"]
    assert conflict["conflicting_scene_id"] == first["id"]
    assert conflict["conflict_type"] == "resource"

    cleared = client.put(
        f"/api/scenes/{second['id']}",
        json={"assigned_crew": []},
        headers=auth_headers(admin_token),
    )
    assert cleared.json()["assigned_crew"] == []
    assert cleared.json()["conflicts"]["conflicts"][0]["conflict_type"] == "time"

    unscheduled = client.put(
        f"/api/scenes/{second['id']}",
        json={"scheduled_time": None},
        headers=auth_headers(admin_token),
    )
    assert unscheduled.json()["conflicts"] == {"has_conflicts": False, "conflicts": []}


def test_update_rejects_null_required_fields(client):
    admin_token, actor, grip, show = setup_production(client)
    scene = create_scene(client, admin_token, show["id"], "1", None).json()

    response = client.put(
        f"/api/scenes/{scene['id']}",
        json={"title": None},
        headers=auth_headers(admin_token),
    )
    assert response.status_code == 400


def test_scene_personnel_must_belong_to_company(client):
    admin_token, actor, grip, show = setup_production(client)
    register_company(client, company_name="Harbor Films", email="admin@harbor.example.com")
    outsider_id = login_user_id(client, "admin@harbor.example.com")

    response = create_scene(
        client, admin_token, show["id"], "1", "2026-03-02T09:00:00Z", assigned_actors=[outsider_id]
    )
    assert response.status_code == 400


def test_scene_in_foreign_show_is_not_found(client):
    admin_token, actor, grip, show = setup_production(client)
    register_company(client, company_name="Harbor Films", email="admin@harbor.example.com")
    other_token = login_user(client, "admin@harbor.example.com")

    response = create_scene(client, other_token, show["id"], "1", "2026-03-02T09:00:00Z")
    assert response.status_code == 404
    assert response.json()["details"] == {"resource_type": "Show", "resource_id": show["id"]}


def test_foreign_scene_access_is_denied(client):
    admin_token, actor, grip, show = setup_production(client)
    scene = create_scene(client, admin_token, show["id"], "1", "2026-03-02T09:00:00Z").json()
    register_company(client, company_name="Harbor Films", email="admin@harbor.example.com")
    other_token = login_user(client, "admin@harbor.example.com")

    response = client.get(f"/api/scenes/{scene['id']}", headers=auth_headers(other_token))
    assert response.status_code == 403
    assert response.json()["message"] == "You don't have access to this scene"

    missing = client.get("/api/scenes/9999", headers=auth_headers(admin_token))
    assert missing.status_code == 404


def test_actor_cannot_create_scenes_and_sees_only_own_scenes(client):
    admin_token, actor, grip, show = setup_production(client)
    own = create_scene(
        client, admin_token, show["id"], "1", "2026-03-02T09:00:00Z", assigned_actors=[actor["id"]]
    ).json()
    create_scene(client, admin_token, show["id"], "2", "2026-03-02T12:00:00Z")
    actor_token = login_user(client, "ari@northlight.example.com")

    denied = create_scene(client, actor_token, show["id"], "3", "2026-03-02T15:00:00Z")
    assert denied.status_code == 403
    assert denied.json()["details"] == {"required": "manage_scenes"}

    listed = client.get("/api/scenes/", headers=auth_headers(actor_token))
    assert [scene["id"] for scene in listed.json()] == [own["id"]]


def test_list_filters_by_location_and_actor(client):
    admin_token, actor, grip, show = setup_production(client)
    create_scene(client, admin_token, show["id"], "1", None, location="Harbor Pier")
    create_scene(client, admin_token, show["id"], "2", None, location="Studio B", assigned_actors=[actor["id"]])

    by_location = client.get("/api/scenes/", params={"location": "pier"}, headers=auth_headers(admin_token))
    assert [scene["scene_number"] for scene in by_location.json()] == ["1"]

    by_actor = client.get("/api/scenes/", params={"actor_id": actor["id"]}, headers=auth_headers(admin_token))
    assert [scene["scene_number"] for scene in by_actor.json()] == ["2"]


def test_timer_and_completion_flow(client):
    admin_token, actor, grip, show = setup_production(client)
    scene = create_scene(client, admin_token, show["id"], "1", "2026-03-02T09:00:00Z").json()
    headers = auth_headers(admin_token)

    not_started = client.post(f"/api/scenes/{scene['id']}/timer/stop", headers=headers)
    assert not_started.status_code == 400

    started = client.post(f"/api/scenes/{scene['id']}/timer/start", headers=headers)
    assert started.status_code == 200
    assert started.json()["status"] == "in_progress"
    assert started.json()["timer_start"] is not None

    stopped = client.post(f"/api/scenes/{scene['id']}/timer/stop", headers=headers)
    assert stopped.status_code == 200
    assert stopped.json()["timer_end"] is not None
    assert stopped.json()["actual_duration_minutes"] == 0

    completed = client.post(f"/api/scenes/{scene['id']}/complete", headers=headers)
    assert completed.status_code == 200
    assert completed.json()["status"] == "complete"

    restart = client.post(f"/api/scenes/{scene['id']}/timer/start", headers=headers)
    assert restart.status_code == 400


def test_crew_cannot_run_timers(client):
    admin_token, actor, grip, show = setup_production(client)
    scene = create_scene(client, admin_token, show["id"], "1", "2026-03-02T09:00:00Z").json()
    crew_token = login_user(client, "gus@northlight.example.com")

    response = client.post(f"/api/scenes/{scene['id']}/timer/start", headers=auth_headers(crew_token))
    assert response.status_code == 403


def test_delete_scene(client):
    admin_token, actor, grip, show = setup_production(client)
    scene = create_scene(client, admin_token, show["id"], "1", None).json()

    deleted = client.delete(f"/api/scenes/{scene['id']}", headers=auth_headers(admin_token))
    assert deleted.status_code == 200
    assert deleted.json()["success"] is True
    assert client.get(f"/api/scenes/{scene['id']}", headers=auth_headers(admin_token)).status_code == 404


def test_store_failure_during_scan_fails_request_but_keeps_saved_scene(client, monkeypatch):
    admin_token, actor, grip, show = setup_production(client)

    def failing_candidate_query(*args, **kwargs):
        raise OperationalError("SELECT scenes", {}, Exception("database is unavailable"))

    monkeypatch.setattr("app.services.conflict_service._candidate_query", failing_candidate_query)
    unchecked_client = TestClient(app, raise_server_exceptions=False)

    response = create_scene(unchecked_client, admin_token, show["id"], "1", "2026-03-02T09:00:00Z")
    assert response.status_code == 500

    listed = client.get("/api/scenes/", headers=auth_headers(admin_token))
    assert [scene["scene_number"] for scene in listed.json()] == ["1"]
