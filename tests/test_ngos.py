import csv
import io

from bson import ObjectId


def analytics_payload(public: bool = False, restricted_to=None, **overrides):
    payload = {
        "title": "Post-harvest losses 2025",
        "description": "Losses along the maize value chain",
        "type": "waste",
        "timeframe": {"start": "2025-01-01T00:00:00Z", "end": "2025-12-31T00:00:00Z"},
        "scope": {"country": "Kenya", "region": "Rift Valley", "cropTypes": ["maize", "beans"]},
        "metrics": [
            {"name": "loss_rate", "value": 18.5, "unit": "%", "trend": -2.1},
            {"name": "volume_lost", "value": 1200, "unit": "t"},
        ],
        "insights": ["Storage is the main loss point"],
        "accessRights": {"public": public, "restrictedTo": restricted_to or []},
    }
    payload.update(overrides)
    return payload


def create_analytics(client, user, **kwargs):
    resp = client.post("/api/ngos/analytics", json=analytics_payload(**kwargs), headers=user["headers"])
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_creator_is_added_to_restricted_list(client, ngo):
    created = create_analytics(client, ngo)
    assert created["createdBy"] == ngo["id"]
    assert created["accessRights"] == {"public": False, "restrictedTo": [ngo["id"]]}


def test_timeframe_must_be_ordered(client, ngo):
    payload = analytics_payload(timeframe={"start": "2025-12-31T00:00:00Z", "end": "2025-01-01T00:00:00Z"})
    resp = client.post("/api/ngos/analytics", json=payload, headers=ngo["headers"])
    assert resp.status_code == 400


def test_timeframe_naive_bound_is_read_as_utc(client, ngo):
    created = create_analytics(client, ngo, timeframe={"start": "2025-01-01T00:00:00", "end": "2025-12-31T00:00:00Z"})
    assert created["timeframe"]["start"] == "2025-01-01T00:00:00+00:00"
    assert created["timeframe"]["end"] == "2025-12-31T00:00:00+00:00"


def test_timeframe_mixed_bounds_still_ordered(client, ngo):
    payload = analytics_payload(timeframe={"start": "2025-12-31T00:00:00", "end": "2025-01-01T00:00:00+02:00"})
    resp = client.post("/api/ngos/analytics", json=payload, headers=ngo["headers"])
    assert resp.status_code == 400


def test_update_timeframe_with_mixed_bounds(client, ngo):
    created = create_analytics(client, ngo)
    resp = client.put(
        f"/api/ngos/analytics/{created['id']}",
        json={"timeframe": {"start": "2025-03-01T00:00:00+03:00", "end": "2025-06-01T00:00:00"}},
        headers=ngo["headers"],
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["timeframe"]["start"] == "2025-02-28T21:00:00+00:00"


def test_private_analytics_hidden_from_outsiders(client, ngo, register_user):
    outsider = register_user("ngo", email="outsider@example.com")
    private = create_analytics(client, ngo, title="Private")
    public = create_analytics(client, ngo, title="Public", public=True)

    mine = client.get("/api/ngos/analytics", headers=ngo["headers"]).json()
    assert {a["title"] for a in mine} == {"Private", "Public"}

    theirs = client.get("/api/ngos/analytics", headers=outsider["headers"]).json()
    assert [a["title"] for a in theirs] == ["Public"]

    resp = client.get(f"/api/ngos/analytics/{private['id']}", headers=outsider["headers"])
    assert resp.status_code == 403
    resp = client.get(f"/api/ngos/analytics/{public['id']}", headers=outsider["headers"])
    assert resp.status_code == 200


def test_restricted_to_named_user_or_role(client, ngo, register_user):
    partner = register_user("ngo", email="partner@example.com")
    shared = create_analytics(client, ngo, title="Shared", restricted_to=[partner["id"]])
    role_wide = create_analytics(client, ngo, title="All NGOs", restricted_to=["ngo"])

    titles = {a["title"] for a in client.get("/api/ngos/analytics", headers=partner["headers"]).json()}
    assert titles == {"Shared", "All NGOs"}
    assert client.get(f"/api/ngos/analytics/{shared['id']}", headers=partner["headers"]).status_code == 200
    assert client.get(f"/api/ngos/analytics/{role_wide['id']}", headers=partner["headers"]).status_code == 200


def test_list_filters(client, ngo):
    create_analytics(client, ngo, title="Waste KE")
    create_analytics(client, ngo, title="Market UG", type="market", scope={"country": "Uganda", "cropTypes": ["coffee"]})
    create_analytics(
        client, ngo, title="Old",
        timeframe={"start": "2020-01-01T00:00:00Z", "end": "2020-12-31T00:00:00Z"},
    )

    def titles(**params):
        resp = client.get("/api/ngos/analytics", params=params, headers=ngo["headers"])
        assert resp.status_code == 200
        return {a["title"] for a in resp.json()}

    assert titles(type="market") == {"Market UG"}
    assert titles(country="Kenya") == {"Waste KE", "Old"}
    assert titles(cropType="coffee") == {"Market UG"}
    assert titles(startDate="2024-01-01T00:00:00Z") == {"Waste KE", "Market UG"}
    assert titles(endDate="2021-01-01T00:00:00Z") == {"Old"}


def test_get_bad_and_missing_id(client, ngo):
    assert client.get("/api/ngos/analytics/123", headers=ngo["headers"]).status_code == 400
    assert client.get(f"/api/ngos/analytics/{ObjectId()}", headers=ngo["headers"]).status_code == 404


def test_update_keeps_editor_access(client, ngo):
    created = create_analytics(client, ngo)
    resp = client.put(
        f"/api/ngos/analytics/{created['id']}",
        json={"title": "Renamed", "accessRights": {"public": False, "restrictedTo": []}},
        headers=ngo["headers"],
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["title"] == "Renamed"
    assert body["accessRights"]["restrictedTo"] == [ngo["id"]]
    assert body["metrics"][0]["name"] == "loss_rate"


def test_outsider_cannot_update_or_delete(client, ngo, register_user):
    outsider = register_user("ngo", email="outsider@example.com")
    created = create_analytics(client, ngo, public=True)

    resp = client.put(f"/api/ngos/analytics/{created['id']}", json={"title": "x"}, headers=outsider["headers"])
    assert resp.status_code == 403
    resp = client.delete(f"/api/ngos/analytics/{created['id']}", headers=outsider["headers"])
    assert resp.status_code == 403


def test_delete(client, ngo):
    created = create_analytics(client, ngo)
    resp = client.delete(f"/api/ngos/analytics/{created['id']}", headers=ngo["headers"])
    assert resp.status_code == 200
    assert resp.json()["message"] == "Analytics removed"
    assert client.get(f"/api/ngos/analytics/{created['id']}", headers=ngo["headers"]).status_code == 404


def test_export_json(client, ngo):
    created = create_analytics(client, ngo)
    resp = client.get(f"/api/ngos/export/{created['id']}", headers=ngo["headers"])
    assert resp.status_code == 200
    body = resp.json()
    assert body["title"] == created["title"]
    assert body["timeframe"] == created["timeframe"]
    assert len(body["metrics"]) == 2
    assert body["sources"] == []
    assert "exportedAt" in body
    assert "accessRights" not in body


def test_export_csv(client, ngo):
    created = create_analytics(client, ngo)
    resp = client.get(f"/api/ngos/export/{created['id']}", params={"format": "csv"}, headers=ngo["headers"])
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert f"analytics-{created['id']}.csv" in resp.headers["content-disposition"]
    rows = list(csv.reader(io.StringIO(resp.text)))
    assert rows[0] == ["name", "value", "unit", "trend"]
    assert rows[1] == ["loss_rate", "18.5", "%", "-2.1"]
    assert rows[2] == ["volume_lost", "1200.0", "t", ""]


def test_export_unknown_format_is_400(client, ngo):
    created = create_analytics(client, ngo)
    resp = client.get(f"/api/ngos/export/{created['id']}", params={"format": "xml"}, headers=ngo["headers"])
    assert resp.status_code == 400


def test_export_private_to_outsider_is_403(client, ngo, register_user):
    outsider = register_user("ngo", email="outsider@example.com")
    created = create_analytics(client, ngo)
    assert client.get(f"/api/ngos/export/{created['id']}", headers=outsider["headers"]).status_code == 403


def test_vendor_cannot_use_ngo_routes(client, vendor):
    assert client.get("/api/ngos/analytics", headers=vendor["headers"]).status_code == 403
