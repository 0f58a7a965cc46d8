"""Route tests for /api/projects and project membership."""

import pytest


def test_create_project_defaults(client, make_user):
    owner = make_user()

    resp = client.post("/api/projects", json={"name": "Web", "key": "WEB", "ownerId": owner["id"]})

    assert resp.status_code == 201
    project = resp.json()["data"]
    assert project["status"] == "active"
    assert project["ownerId"] == owner["id"]


def test_duplicate_key_conflicts(client, make_project, make_user):
    make_project(key="CORE")

    resp = client.post(
        "/api/projects", json={"name": "Other", "key": "CORE", "ownerId": make_user()["id"]}
    )

    assert resp.status_code == 409
    assert resp.json()["code"] == "DUPLICATE_KEY"


def test_missing_owner_is_400(client):
    resp = client.post("/api/projects", json={"name": "X", "key": "XX", "ownerId": 404})

    assert resp.status_code == 400
    assert resp.json()["code"] == "OWNER_NOT_FOUND"


@pytest.mark.parametrize("key", ["A", "TOOLONG", "ab", "A1"])
def test_invalid_key_rejected(client, make_user, key):
    resp = client.post("/api/projects", json={"name": "X", "key": key, "ownerId": make_user()["id"]})

    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR"


def test_update_key_uniqueness_excludes_self(client, make_project):
    project = make_project(key="ONE")
    make_project(key="TWO")

    assert client.patch(f"/api/projects/{project['id']}", json={"key": "ONE"}).status_code == 200

    resp = client.put(f"/api/projects/{project['id']}", json={"key": "TWO"})
    assert resp.status_code == 409
    assert resp.json()["code"] == "DUPLICATE_KEY"


def test_update_owner_must_exist(client, make_project):
    project = make_project()

    resp = client.patch(f"/api/projects/{project['id']}", json={"ownerId": 999})

    assert resp.status_code == 400
    assert resp.json()["code"] == "OWNER_NOT_FOUND"


def test_list_projects_filters(client, make_project, make_user):
    owner = make_user()
    make_project(name="Mobile", key="MOB", ownerId=owner["id"])
    make_project(name="Legacy", key="LEG", status="archived", ownerId=owner["id"])
    make_project(name="Other", key="OTH")

    archived = client.get("/api/projects", params={"status": "archived"}).json()
    by_owner = client.get("/api/projects", params={"ownerId": owner["id"]}).json()
    ignored = client.get("/api/projects", params={"status": "deleted", "ownerId": "abc"}).json()

    assert [p["key"] for p in archived["data"]] == ["LEG"]
    assert {p["key"] for p in by_owner["data"]} == {"MOB", "LEG"}
    assert ignored["pagination"]["total"] == 3


def test_get_and_delete_project(client, make_project):
    project = make_project()

    assert client.get(f"/api/projects/{project['id']}").json()["data"]["key"] == project["key"]

    resp = client.delete(f"/api/projects/{project['id']}")
    assert resp.status_code == 200
    assert resp.json()["message"] == "Project deleted successfully"

    missing = client.get(f"/api/projects/{project['id']}")
    assert missing.status_code == 404
    assert missing.json()["code"] == "PROJECT_NOT_FOUND"


class TestMembers:
    def test_add_and_list_members(self, client, make_project, make_user):
        project = make_project()
        user = make_user(name="Member")

        resp = client.post(
            f"/api/projects/{project['id']}/members", json={"userId": user["id"], "role": "maintainer"}
        )
        assert resp.status_code == 201
        assert resp.json()["data"]["user"]["name"] == "Member"

        listing = client.get(f"/api/projects/{project['id']}/members").json()
        assert listing["pagination"]["pageSize"] == 50
        assert [m["userId"] for m in listing["data"]] == [user["id"]]
        assert listing["data"][0]["role"] == "maintainer"

    def test_duplicate_member_conflicts(self, client, make_project, make_user):
        project = make_project()
        user = make_user()
        url = f"/api/projects/{project['id']}/members"
        client.post(url, json={"userId": user["id"], "role": "viewer"})

        resp = client.post(url, json={"userId": user["id"], "role": "owner"})

        assert resp.status_code == 409
        assert resp.json()["code"] == "MEMBER_EXISTS"

    def test_missing_project_or_user(self, client, make_project, make_user):
        user = make_user()
        missing_project = client.post("/api/projects/999/members", json={"userId": user["id"], "role": "viewer"})
        missing_user = client.post(
            f"/api/projects/{make_project()['id']}/members", json={"userId": 999, "role": "viewer"}
        )

        assert missing_project.status_code == 404
        assert missing_project.json()["code"] == "PROJECT_NOT_FOUND"
        assert missing_user.status_code == 404
        assert missing_user.json()["code"] == "USER_NOT_FOUND"
        assert client.get("/api/projects/999/members").status_code == 404

    def test_change_role(self, client, make_project, make_user):
        project = make_project()
        user = make_user()
        url = f"/api/projects/{project['id']}/members"
        client.post(url, json={"userId": user["id"], "role": "viewer"})

        resp = client.patch(url, json={"userId": user["id"], "role": "owner"})
        assert resp.status_code == 200
        assert resp.json()["data"]["role"] == "owner"

        absent = client.patch(url, json={"userId": 999, "role": "owner"})
        assert absent.status_code == 404
        assert absent.json()["code"] == "MEMBER_NOT_FOUND"

    def test_remove_member_by_body_or_query(self, client, make_project, make_user):
        project = make_project()
        first, second = make_user(), make_user()
        url = f"/api/projects/{project['id']}/members"
        for user in (first, second):
            client.post(url, json={"userId": user["id"], "role": "contributor"})

        by_body = client.request("DELETE", url, json={"userId": first["id"]})
        by_query = client.delete(url, params={"userId": second["id"]})

        assert by_body.status_code == 200
        assert by_body.json()["message"] == "Member removed successfully"
        assert by_query.status_code == 200
        assert client.get(url).json()["data"] == []

        again = client.delete(url, params={"userId": second["id"]})
        assert again.status_code == 404
        assert again.json()["code"] == "MEMBER_NOT_FOUND"

    def test_remove_member_rejects_non_numeric_query_id(self, client, make_project):
        project = make_project()

        resp = client.delete(f"/api/projects/{project['id']}/members", params={"userId": "\u00b2"})

        assert resp.status_code == 400
        assert resp.json()["code"] == "INVALID_ID"
