def standup_item(**overrides):
    item = {
        "title": "Standup",
        "recurrence_type": "weekly",
        "item_start_date": "2024-06-03",
        "day_of_week": 1,
        "start_time": "09:00",
        "end_time": "09:15",
        "color": "green",
    }
    item.update(overrides)
    return item


def create_scheduler(client, items=None, **fields):
    payload = {"title": "Team calendar", "category": "work", "items": items or [standup_item()]}
    payload.update(fields)
    response = client.post("/api/schedulers/", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"
    assert client.get("/").status_code == 200


def test_create_scheduler(client):
    body = create_scheduler(client)
    assert body["title"] == "Team calendar"
    item = body["items"][0]
    assert item["recurrence_type"] == "weekly"
    assert item["item_start_date"] == "2024-06-03"
    assert item["start_time"] == "09:00"
    assert item["next_occurrence"] == "2024-06-03"
    assert item["exclusion_dates"] == []
    assert body["occurrences"] == {}


def test_create_one_time_item_from_target_date(client):
    body = create_scheduler(client, items=[{
        "title": "Dentist",
        "target_date": "2024-06-12T00:00:00Z",
        "end_date": "2024-06-20",
    }])
    item = body["items"][0]
    assert item["recurrence_type"] == "one-time"
    assert item["start_date"] == "2024-06-12"
    assert item["item_start_date"] == "2024-06-12"
    assert item["item_end_date"] is None
    assert item["day_of_week"] == 3


def test_create_rejects_invalid_rule(client):
    response = client.post("/api/schedulers/", json={
        "title": "Broken",
        "items": [standup_item(item_start_date="2024-06-10", item_end_date="2024-06-01")],
    })
    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "error": "End date 2024-06-01 is before anchor date 2024-06-10",
        "code": "INVALID_RULE",
    }


def test_create_rejects_malformed_date(client):
    response = client.post("/api/schedulers/", json={
        "title": "Broken",
        "items": [standup_item(item_start_date="03/06/2024")],
    })
    assert response.status_code == 422


def test_create_with_legacy_exclusion_dates(client):
    body = create_scheduler(client, items=[standup_item(exclusion_dates=["2024-06-03", "2024-06-17"])])
    item = body["items"][0]
    assert item["exclusion_dates"] == ["2024-06-03", "2024-06-17"]
    assert item["next_occurrence"] == "2024-06-10"
    assert f"{item['id']}_2024-06-03" in body["occurrences"]


def test_list_schedulers(client):
    create_scheduler(client, title="Gym", category="health")
    create_scheduler(client, title="Sprint", category="work")
    create_scheduler(client, title="Private", is_public=False, user_id="user-1")

    body = client.get("/api/schedulers/").json()
    assert body["total"] == 2
    assert {row["title"] for row in body["data"]} == {"Gym", "Sprint"}

    work = client.get("/api/schedulers/", params={"category": "work"}).json()
    assert [row["title"] for row in work["data"]] == ["Sprint"]

    search = client.get("/api/schedulers/", params={"search": "gy"}).json()
    assert [row["title"] for row in search["data"]] == ["Gym"]

    mine = client.get("/api/schedulers/", params={"user_id": "user-1"}).json()
    assert [row["title"] for row in mine["data"]] == ["Private"]


def test_get_missing_scheduler(client):
    assert client.get("/api/schedulers/999").status_code == 404


def test_update_preserves_overrides_of_kept_items(client):
    body = create_scheduler(client, items=[standup_item(), standup_item(title="Retro", day_of_week=5)])
    standup, retro = body["items"]
    client.delete(f"/api/scheduler-items/{standup['id']}/occurrence/2024-06-10")

    response = client.put(f"/api/schedulers/{body['id']}", json={
        "title": "Renamed calendar",
        "items": [standup_item(id=standup["id"], title="Daily standup"), standup_item(title="Planning")],
    })
    assert response.status_code == 200, response.text
    updated = response.json()
    assert updated["title"] == "Renamed calendar"
    titles = {item["title"]: item for item in updated["items"]}
    assert set(titles) == {"Daily standup", "Planning"}
    assert titles["Daily standup"]["id"] == standup["id"]
    assert titles["Daily standup"]["exclusion_dates"] == ["2024-06-10"]
    assert retro["id"] not in {item["id"] for item in updated["items"]}

    view = client.get(f"/api/schedulers/{body['id']}/occurrences",
                      params={"start": "2024-06-01", "end": "2024-06-30"}).json()
    standup_dates = [o["date"] for o in view["occurrences"] if o["source_item_id"] == standup["id"]]
    assert standup_dates == ["2024-06-03", "2024-06-17", "2024-06-24"]


def test_update_without_items_keeps_items(client):
    body = create_scheduler(client)
    response = client.put(f"/api/schedulers/{body['id']}", json={"description": "Updated"})
    assert response.status_code == 200
    assert response.json()["description"] == "Updated"
    assert len(response.json()["items"]) == 1


def test_delete_scheduler(client):
    body = create_scheduler(client)
    response = client.delete(f"/api/schedulers/{body['id']}")
    assert response.json()["success"] is True
    assert client.get(f"/api/schedulers/{body['id']}").status_code == 404
    assert client.delete(f"/api/schedulers/{body['id']}").status_code == 404


def test_occurrence_window(client):
    body = create_scheduler(client)
    response = client.get(f"/api/schedulers/{body['id']}/occurrences",
                          params={"start": "2024-06-01", "end": "2024-06-30"})
    assert response.status_code == 200
    occurrences = response.json()["occurrences"]
    assert [o["date"] for o in occurrences] == ["2024-06-03", "2024-06-10", "2024-06-17", "2024-06-24"]
    assert occurrences[0]["start_time"] == "09:00"
    assert occurrences[0]["color"] == "green"


def test_occurrence_window_too_large(client):
    body = create_scheduler(client)
    response = client.get(f"/api/schedulers/{body['id']}/occurrences",
                          params={"start": "2024-01-01", "end": "2026-01-01"})
    assert response.status_code == 400
    assert response.json()["code"] == "WINDOW_TOO_LARGE"


def test_occurrence_window_bad_date(client):
    body = create_scheduler(client)
    response = client.get(f"/api/schedulers/{body['id']}/occurrences",
                          params={"start": "June 1", "end": "2024-06-30"})
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_DATE_FORMAT"


def test_daily_view_rejects_trailing_garbage(client):
    body = create_scheduler(client)
    response = client.get(f"/api/schedulers/{body['id']}/daily/2024-06-01Tgarbage")
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_DATE_FORMAT"


def test_daily_view(client):
    body = create_scheduler(client)
    view = client.get(f"/api/schedulers/{body['id']}/daily/2024-06-10").json()
    assert view["day_of_week"] == 1
    assert [o["title"] for o in view["occurrences"]] == ["Standup"]

    empty = client.get(f"/api/schedulers/{body['id']}/daily/2024-06-11").json()
    assert empty["occurrences"] == []


def test_today_view_uses_injected_clock(client):
    body = create_scheduler(client, items=[{"title": "Kickoff", "target_date": "2024-06-01"}])
    view = client.get(f"/api/schedulers/{body['id']}/today").json()
    assert view["date"] == "2024-06-01"
    assert [o["title"] for o in view["occurrences"]] == ["Kickoff"]


def test_weekly_view_by_date_and_iso_week(client):
    body = create_scheduler(client)
    by_date = client.get(f"/api/schedulers/{body['id']}/weekly/2024-06-13").json()
    by_week = client.get(f"/api/schedulers/{body['id']}/weekly/2024-W24").json()
    assert by_date == by_week
    assert by_date["start_date"] == "2024-06-10"
    assert by_date["end_date"] == "2024-06-16"
    assert list(by_date["days"]) == [f"2024-06-{day}" for day in range(10, 17)]
    assert len(by_date["days"]["2024-06-10"]) == 1
    assert by_date["days"]["2024-06-11"] == []


def test_monthly_view(client):
    body = create_scheduler(client, items=[{
        "title": "Rent",
        "recurrence_type": "monthly",
        "item_start_date": "2024-01-31",
    }])
    view = client.get(f"/api/schedulers/{body['id']}/monthly/2024-02").json()
    assert view["days_in_month"] == 29
    assert all(not day for day in view["days"].values())

    march = client.get(f"/api/schedulers/{body['id']}/monthly/2024-03").json()
    assert [o["title"] for o in march["days"]["2024-03-31"]] == ["Rent"]


def test_views_for_missing_scheduler(client):
    assert client.get("/api/schedulers/999/daily/2024-06-10").status_code == 404


def test_alignment_report(client):
    create_scheduler(client, items=[
        standup_item(),
        standup_item(title="Drifted", item_start_date="2024-01-03", day_of_week=1),
    ])
    report = client.get("/api/admin/alignment").json()
    assert len(report) == 1
    assert report[0]["title"] == "Drifted"
    assert report[0]["anchor_date"] == "2024-01-03"
    assert report[0]["effective_anchor"] == "2024-01-08"
