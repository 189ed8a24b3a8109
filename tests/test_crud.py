import pytest

PAYLOADS = {
    "experience": {
        "yearRange": "2021 - 2023",
        "title": "Backend Engineer",
        "institution": "Acme",
        "location": "Remote",
        "description": "APIs",
    },
    "skill": {"name": "Python", "level": "Expert", "icon": "python"},
    "project": {
        "title": "Portfolio",
        "description": "This site",
        "tags": ["fastapi", "mongodb"],
        "githubLink": "https://github.com/me/portfolio",
        "vercelLink": "https://portfolio.example",
    },
    "art": {"title": "Sunset", "type": "Watercolor", "image": "http://testserver/uploads/art/1-2.png"},
}


@pytest.mark.parametrize("collection", sorted(PAYLOADS))
def test_create_then_list(client, admin_headers, collection):
    payload = PAYLOADS[collection]
    r = client.post(f"/{collection}", json=payload, headers=admin_headers)
    assert r.status_code == 200
    created = r.json()
    assert created["statuscode"] == 1
    assert created["d"]["id"]

    listed = client.get(f"/{collection}").json()["d"]
    assert len(listed) == 1
    record = listed[0]
    assert record["id"] == created["d"]["id"]
    assert {k: record[k] for k in payload} == payload


def test_put_is_full_replace(client, admin_headers):
    created = client.post("/experience", json=PAYLOADS["experience"], headers=admin_headers).json()["d"]
    r = client.put(f"/experience/{created['id']}", json={"title": "Staff Engineer"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["d"]["title"] == "Staff Engineer"

    listed = client.get("/experience").json()["d"]
    matching = [e for e in listed if e["id"] == created["id"]]
    assert len(matching) == 1
    assert matching[0]["title"] == "Staff Engineer"
    assert matching[0]["institution"] is None
    assert matching[0]["yearRange"] is None


def test_put_project_without_tags_clears_them(client, admin_headers):
    created = client.post("/project", json=PAYLOADS["project"], headers=admin_headers).json()["d"]
    r = client.put(f"/project/{created['id']}", json={"title": "Renamed", "tags": None}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["d"]["tags"] == []


@pytest.mark.parametrize("bad_id", ["665f1c2e8b3e4a0012345678", "not-an-object-id"])
def test_put_missing_record_is_404(client, admin_headers, bad_id):
    r = client.put(f"/skill/{bad_id}", json={"name": "Go"}, headers=admin_headers)
    assert r.status_code == 404
    assert r.json() == {"statuscode": 0, "error": "Not found"}


def test_delete_removes_only_target(client, admin_headers):
    first = client.post("/skill", json={"name": "Python"}, headers=admin_headers).json()["d"]
    second = client.post("/skill", json={"name": "Rust"}, headers=admin_headers).json()["d"]

    r = client.delete(f"/skill/{first['id']}", headers=admin_headers)
    assert r.status_code == 200
    assert r.json() == {"statuscode": 1}

    remaining = client.get("/skill").json()["d"]
    assert [s["id"] for s in remaining] == [second["id"]]
    assert remaining[0]["name"] == "Rust"

    again = client.delete(f"/skill/{first['id']}", headers=admin_headers)
    assert again.status_code == 404


def test_skill_level_not_enforced(client, admin_headers):
    r = client.post("/skill", json={"name": "Juggling", "level": "Wizard"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["d"]["level"] == "Wizard"


def test_list_is_public_and_empty(client):
    r = client.get("/art")
    assert r.status_code == 200
    assert r.json() == {"statuscode": 1, "d": []}


def test_wrong_field_type_is_422(client, admin_headers):
    r = client.post("/project", json={"tags": "not-a-list"}, headers=admin_headers)
    assert r.status_code == 422
    assert r.json() == {"statuscode": 0, "error": "Invalid request body"}
