"""Operations on ids that do not exist answer 404 with an entity-specific code."""

import pytest


@pytest.mark.parametrize(
    "path, code",
    [
        ("/api/users/999", "USER_NOT_FOUND"),
        ("/api/projects/999", "PROJECT_NOT_FOUND"),
        ("/api/bugs/999", "BUG_NOT_FOUND"),
        ("/api/comments/999", "COMMENT_NOT_FOUND"),
        ("/api/attachments/999", "ATTACHMENT_NOT_FOUND"),
    ],
)
def test_delete_missing_resource_is_404(client, path, code):
    resp = client.delete(path)

    assert resp.status_code == 404
    assert resp.json()["code"] == code


def test_delete_twice_is_404(client, make_bug):
    bug = make_bug()

    assert client.delete(f"/api/bugs/{bug['id']}").status_code == 200

    again = client.delete(f"/api/bugs/{bug['id']}")
    assert again.status_code == 404
    assert again.json()["code"] == "BUG_NOT_FOUND"
