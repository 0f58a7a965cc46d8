"""Route tests for bugs, their comments and their history."""

import pytest


def test_create_bug_defaults(client, make_project, make_user):
    project = make_project()
    reporter = make_user()

    resp = client.post(
        "/api/bugs",
        json={
            "projectId": project["id"],
            "title": "  Login fails  ",
            "description": "Steps",
            "reporterId": reporter["id"],
        },
    )

    assert resp.status_code == 201
    bug = resp.json()["data"]
    assert bug["title"] == "Login fails"
    assert bug["priority"] == "medium"
    assert bug["status"] == "open"
    assert bug["assigneeId"] is None


@pytest.mark.parametrize(
    "field, code",
    [
        ("projectId", "PROJECT_NOT_FOUND"),
        ("reporterId", "REPORTER_NOT_FOUND"),
        ("assigneeId", "ASSIGNEE_NOT_FOUND"),
    ],
)
def test_create_bug_with_missing_reference_is_400(client, make_project, make_user, field, code):
    payload = {
        "projectId": make_project()["id"],
        "title": "T",
        "description": "D",
        "reporterId": make_user()["id"],
        field: 9999,
    }

    resp = client.post("/api/bugs", json=payload)

    assert resp.status_code == 400
    assert resp.json()["code"] == code


def test_create_bug_rejects_blank_title_and_bad_priority(client, make_project, make_user):
    base = {"projectId": make_project()["id"], "description": "D", "reporterId": make_user()["id"]}

    assert client.post("/api/bugs", json={**base, "title": "   "}).status_code == 400
    assert client.post("/api/bugs", json={**base, "title": "x" * 256}).status_code == 400
    assert client.post("/api/bugs", json={**base, "title": "T", "priority": "urgent"}).status_code == 400


def test_list_bugs_is_enriched(client, make_bug):
    bug = make_bug()

    row = client.get("/api/bugs").json()["data"][0]

    assert row["id"] == bug["id"]
    assert set(row["project"]) == {"id", "name", "key"}
    assert set(row["reporter"]) == {"id", "name", "email"}


def test_get_bug_includes_assignee(client, make_bug, make_user):
    assignee = make_user(name="Fixer")
    bug = make_bug(assigneeId=assignee["id"])

    data = client.get(f"/api/bugs/{bug['id']}").json()["data"]

    assert data["assignee"]["name"] == "Fixer"
    assert data["project"]["id"] == bug["projectId"]


def test_get_missing_bug(client):
    resp = client.get("/api/bugs/424242")

    assert resp.status_code == 404
    assert resp.json()["code"] == "BUG_NOT_FOUND"


def test_filter_search_and_sort(client, make_project, make_user):
    project = make_project()
    other = make_project()
    reporter = make_user()
    common = {"reporterId": reporter["id"], "description": "details"}
    client.post("/api/bugs", json={**common, "projectId": project["id"], "title": "Beta crash", "priority": "high"})
    client.post("/api/bugs", json={**common, "projectId": project["id"], "title": "Alpha glitch", "status": "closed"})
    client.post("/api/bugs", json={**common, "projectId": other["id"], "title": "Gamma CRASH"})

    by_project = client.get("/api/bugs", params={"projectId": project["id"], "sort": "title"}).json()
    assert [b["title"] for b in by_project["data"]] == ["Alpha glitch", "Beta crash"]

    desc = client.get("/api/bugs", params={"projectId": project["id"], "sort": "title", "order": "desc"}).json()
    assert [b["title"] for b in desc["data"]] == ["Beta crash", "Alpha glitch"]

    crashes = client.get("/api/bugs", params={"search": "crash"}).json()
    assert crashes["pagination"]["total"] == 2

    combined = client.get("/api/bugs", params={"search": "crash", "priority": "high"}).json()
    assert [b["title"] for b in combined["data"]] == ["Beta crash"]

    ignored = client.get("/api/bugs", params={"projectId": "abc", "status": "nope"}).json()
    assert ignored["pagination"]["total"] == 3


def test_search_treats_wildcards_literally(client, make_bug):
    make_bug(title="100% broken")
    make_bug(title="Mostly fine")

    data = client.get("/api/bugs", params={"search": "%"}).json()["data"]

    assert [b["title"] for b in data] == ["100% broken"]


def test_pagination_bounds(client, make_bug):
    for _ in range(3):
        make_bug()

    page = client.get("/api/bugs", params={"page": 2, "pageSize": 2}).json()
    clamped = client.get("/api/bugs", params={"pageSize": 500}).json()

    assert len(page["data"]) == 1
    assert page["pagination"]["offset"] == 2
    assert page["pagination"]["hasPrevious"] is True
    assert clamped["pagination"]["pageSize"] == 100


class TestUpdateAndHistory:
    def test_status_change_writes_one_history_row(self, client, make_bug, make_user):
        bug = make_bug()
        actor = make_user()

        resp = client.patch(
            f"/api/bugs/{bug['id']}", json={"status": "in_progress"}, headers={"X-User-Id": str(actor["id"])}
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "in_progress"

        history = client.get(f"/api/bugs/{bug['id']}/history").json()
        assert history["pagination"]["total"] == 1
        entry = history["data"][0]
        assert entry["field"] == "status"
        assert entry["oldValue"] == "open"
        assert entry["newValue"] == "in_progress"
        assert entry["userId"] == actor["id"]
        assert entry["user"]["id"] == actor["id"]

    def test_history_defaults_to_reporter(self, client, make_bug):
        bug = make_bug()

        client.put(f"/api/bugs/{bug['id']}", json={"priority": "critical"})

        entry = client.get(f"/api/bugs/{bug['id']}/history").json()["data"][0]
        assert entry["userId"] == bug["reporterId"]

    def test_unchanged_fields_are_not_recorded(self, client, make_bug):
        bug = make_bug()

        client.patch(f"/api/bugs/{bug['id']}", json={"status": "open", "title": "Renamed"})

        fields = [e["field"] for e in client.get(f"/api/bugs/{bug['id']}/history").json()["data"]]
        assert fields == ["title"]

    def test_null_assignee_unassigns(self, client, make_bug, make_user):
        assignee = make_user()
        bug = make_bug(assigneeId=assignee["id"])

        resp = client.patch(f"/api/bugs/{bug['id']}", json={"assigneeId": None})

        assert resp.status_code == 200
        assert resp.json()["data"]["assigneeId"] is None
        entry = client.get(f"/api/bugs/{bug['id']}/history").json()["data"][0]
        assert entry["field"] == "assigneeId"
        assert entry["oldValue"] == str(assignee["id"])
        assert entry["newValue"] is None

    def test_null_required_field_rejected(self, client, make_bug):
        bug = make_bug()

        resp = client.patch(f"/api/bugs/{bug['id']}", json={"title": None})

        assert resp.status_code == 400
        assert resp.json()["code"] == "VALIDATION_ERROR"

    def test_update_reference_checks(self, client, make_bug):
        bug = make_bug()

        resp = client.patch(f"/api/bugs/{bug['id']}", json={"assigneeId": 777})

        assert resp.status_code == 400
        assert resp.json()["code"] == "ASSIGNEE_NOT_FOUND"

    def test_history_of_missing_bug(self, client):
        resp = client.get("/api/bugs/31337/history")

        assert resp.status_code == 404
        assert resp.json()["code"] == "BUG_NOT_FOUND"

    def test_delete_bug(self, client, make_bug):
        bug = make_bug()

        resp = client.delete(f"/api/bugs/{bug['id']}")

        assert resp.status_code == 200
        assert resp.json()["data"]["id"] == bug["id"]
        assert resp.json()["message"] == "Bug deleted successfully"


class TestComments:
    def test_create_and_list_comments(self, client, make_bug, make_user):
        bug = make_bug()
        author = make_user(name="Commenter")
        url = f"/api/bugs/{bug['id']}/comments"

        first = client.post(url, json={"authorId": author["id"], "body": "  first  "})
        second = client.post(url, json={"authorId": author["id"], "body": "second"})

        assert first.status_code == 201
        assert first.json()["data"]["body"] == "first"
        listing = client.get(url).json()
        assert [c["id"] for c in listing["data"]] == [second.json()["data"]["id"], first.json()["data"]["id"]]
        assert listing["data"][0]["author"]["name"] == "Commenter"
        assert listing["pagination"]["pageSize"] == 50

    def test_comment_errors(self, client, make_bug, make_user):
        bug = make_bug()
        author = make_user()

        missing_bug = client.post("/api/bugs/999/comments", json={"authorId": author["id"], "body": "x"})
        missing_author = client.post(f"/api/bugs/{bug['id']}/comments", json={"authorId": 999, "body": "x"})
        blank = client.post(f"/api/bugs/{bug['id']}/comments", json={"authorId": author["id"], "body": "  "})

        assert missing_bug.status_code == 404
        assert missing_bug.json()["code"] == "BUG_NOT_FOUND"
        assert missing_author.status_code == 404
        assert missing_author.json()["code"] == "AUTHOR_NOT_FOUND"
        assert blank.status_code == 400

    def test_single_comment_lifecycle(self, client, make_bug, make_user):
        bug = make_bug()
        author = make_user()
        created = client.post(
            f"/api/bugs/{bug['id']}/comments", json={"authorId": author["id"], "body": "draft"}
        ).json()["data"]
        url = f"/api/comments/{created['id']}"

        assert client.get(url).json()["data"]["body"] == "draft"
        assert client.put(url, json={"body": "final"}).json()["data"]["body"] == "final"
        assert client.patch(url, json={"body": "edited"}).json()["data"]["body"] == "edited"

        deleted = client.delete(url)
        assert deleted.status_code == 200
        assert deleted.json()["message"] == "Comment deleted successfully"

        missing = client.get(url)
        assert missing.status_code == 404
        assert missing.json()["code"] == "COMMENT_NOT_FOUND"
