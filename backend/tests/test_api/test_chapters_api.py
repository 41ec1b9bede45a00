"""HTTP tests for project, chapter, and export routes."""
import io
from urllib.parse import unquote

import pytest
from docx import Document


@pytest.fixture
def headers(author, auth_headers):
    return auth_headers(author)


@pytest.fixture
def project(client, headers):
    response = client.post("/api/v1/projects", json={"title": "Moonlight", "genre": "Fantasy"}, headers=headers)
    assert response.status_code == 201
    return response.json()


def chapters_of(client, headers, project_id):
    response = client.get(f"/api/v1/projects/{project_id}/chapters", headers=headers)
    assert response.status_code == 200
    return response.json()


class TestProjects:
    def test_create_includes_first_chapter(self, client, headers, project):
        assert project["chapter_count"] == 1
        assert project["word_count"] == 0
        chapters = chapters_of(client, headers, project["id"])
        assert [(c["title"], c["order_index"], c["word_count"]) for c in chapters] == [("Chapter 1", 0, 0)]
        assert set(chapters[0]) == {"id", "title", "word_count", "order_index", "updated_at"}

    def test_list(self, client, headers, project):
        items = client.get("/api/v1/projects", headers=headers).json()
        assert [p["id"] for p in items] == [project["id"]]

    def test_word_count_not_writable(self, client, headers, project):
        response = client.put(f"/api/v1/projects/{project['id']}", json={"word_count": 999, "title": "Renamed"},
                              headers=headers)
        assert response.status_code == 200
        assert response.json()["word_count"] == 0
        assert response.json()["title"] == "Renamed"

    def test_delete(self, client, headers, project):
        assert client.delete(f"/api/v1/projects/{project['id']}", headers=headers).status_code == 200
        assert client.get(f"/api/v1/projects/{project['id']}", headers=headers).status_code == 404


class TestChapterFlow:
    def test_scenarios(self, client, headers, project):
        project_id = project["id"]
        chapter_one = chapters_of(client, headers, project_id)[0]["id"]

        response = client.put(f"/api/v1/chapters/{chapter_one}",
                              json={"content": "<p>The quick brown fox jumps.</p>"}, headers=headers)
        assert response.json()["word_count"] == 5

        created = client.post(f"/api/v1/projects/{project_id}/chapters",
                              json={"title": "Chapter 2"}, headers=headers)
        assert created.status_code == 201
        assert created.json()["order_index"] == 1
        chapter_two = created.json()["id"]
        client.put(f"/api/v1/chapters/{chapter_two}", json={"content": "<p>Hello world</p>"}, headers=headers)
        assert client.get(f"/api/v1/projects/{project_id}", headers=headers).json()["word_count"] == 7

        deleted = client.delete(f"/api/v1/chapters/{chapter_one}", headers=headers)
        assert deleted.status_code == 200
        assert deleted.json()["message"]
        assert [(c["id"], c["order_index"]) for c in chapters_of(client, headers, project_id)] == [(chapter_two, 0)]
        assert client.get(f"/api/v1/projects/{project_id}", headers=headers).json()["word_count"] == 2

    def test_get_includes_project_and_reading_time(self, client, headers, project):
        chapter_id = chapters_of(client, headers, project["id"])[0]["id"]
        body = client.get(f"/api/v1/chapters/{chapter_id}", headers=headers).json()
        assert body["project"] == {"id": project["id"], "title": "Moonlight"}
        assert body["reading_time_minutes"] == 1
        assert body["content"] == ""

    def test_get_advertises_autosave_delay(self, client, headers, project, settings):
        chapter_id = chapters_of(client, headers, project["id"])[0]["id"]
        body = client.get(f"/api/v1/chapters/{chapter_id}", headers=headers).json()
        assert body["autosave_delay_seconds"] == settings.AUTOSAVE_DELAY_SECONDS

    def test_autosave_skip(self, client, headers, project):
        chapter_id = chapters_of(client, headers, project["id"])[0]["id"]
        url = f"/api/v1/chapters/{chapter_id}/autosave"
        first = client.post(url, json={"content": "<p>Hello&nbsp;world</p>"}, headers=headers).json()
        second = client.post(url, json={"content": "<p>Hello&nbsp;world</p>"}, headers=headers).json()
        assert first["skipped"] is False and first["word_count"] == 2
        assert second["skipped"] is True
        assert second["saved_at"] == first["saved_at"]

    def test_autosave_stale_sequence(self, client, headers, project):
        chapter_id = chapters_of(client, headers, project["id"])[0]["id"]
        url = f"/api/v1/chapters/{chapter_id}/autosave"
        client.post(url, json={"content": "<p>newest</p>", "sequence": 20}, headers=headers)
        late = client.post(url, json={"content": "<p>old</p>", "sequence": 10}, headers=headers).json()
        assert late["stale"] is True
        assert client.get(f"/api/v1/chapters/{chapter_id}", headers=headers).json()["content"] == "<p>newest</p>"

    def test_autosave_sequence_starts_at_one(self, client, headers, project):
        chapter_id = chapters_of(client, headers, project["id"])[0]["id"]
        url = f"/api/v1/chapters/{chapter_id}/autosave"
        rejected = client.post(url, json={"content": "<p>zero</p>", "sequence": 0}, headers=headers)
        assert rejected.status_code == 400
        assert "sequence" in rejected.json()["details"]

        first = client.post(url, json={"content": "<p>one</p>", "sequence": 1}, headers=headers).json()
        assert first["stale"] is False and first["skipped"] is False
        assert client.get(f"/api/v1/chapters/{chapter_id}", headers=headers).json()["content"] == "<p>one</p>"

    def test_reorder(self, client, headers, project):
        project_id = project["id"]
        first = chapters_of(client, headers, project_id)[0]["id"]
        second = client.post(f"/api/v1/projects/{project_id}/chapters", json={"title": "Two"},
                             headers=headers).json()["id"]
        response = client.put(f"/api/v1/projects/{project_id}/chapters/order",
                              json={"chapter_ids": [second, first]}, headers=headers)
        assert response.status_code == 200
        assert [c["id"] for c in response.json()] == [second, first]

    def test_reorder_rejects_partial_list(self, client, headers, project):
        project_id = project["id"]
        client.post(f"/api/v1/projects/{project_id}/chapters", json={"title": "Two"}, headers=headers)
        first = chapters_of(client, headers, project_id)[0]["id"]
        response = client.put(f"/api/v1/projects/{project_id}/chapters/order",
                              json={"chapter_ids": [first]}, headers=headers)
        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"


class TestChapterErrors:
    def test_title_boundaries(self, client, headers, project):
        url = f"/api/v1/projects/{project['id']}/chapters"
        assert client.post(url, json={"title": ""}, headers=headers).status_code == 400
        assert client.post(url, json={"title": "x" * 255}, headers=headers).status_code == 201
        response = client.post(url, json={"title": "x" * 256}, headers=headers)
        assert response.status_code == 400
        assert "title" in response.json()["details"]

    def test_requires_authentication(self, client, project):
        response = client.get(f"/api/v1/projects/{project['id']}/chapters")
        assert response.status_code == 401
        assert response.json()["code"] == "not_authenticated"

    def test_foreign_project_forbidden(self, client, project, other_author, auth_headers):
        response = client.get(f"/api/v1/projects/{project['id']}/chapters", headers=auth_headers(other_author))
        assert response.status_code == 403

    def test_missing_chapter_is_not_found(self, client, headers):
        response = client.get("/api/v1/chapters/does-not-exist", headers=headers)
        assert response.status_code == 404
        assert response.json() == {"error": "Chapter not found", "code": "not_found"}

    def test_existence_checked_before_ownership(self, client, other_author, auth_headers):
        response = client.delete("/api/v1/chapters/does-not-exist", headers=auth_headers(other_author))
        assert response.status_code == 404


class TestExport:
    def test_plain_text(self, client, headers, project):
        chapter_id = chapters_of(client, headers, project["id"])[0]["id"]
        client.put(f"/api/v1/chapters/{chapter_id}", json={"content": "<p>It begins.</p>"}, headers=headers)

        response = client.get(f"/api/v1/projects/{project['id']}/export?format=plain-text", headers=headers)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.headers["cache-control"] == "no-store"
        assert 'filename="Moonlight.txt"' in response.headers["content-disposition"]
        assert "# Chapter 1\n\nIt begins." in response.text

    def test_docx_with_unicode_title(self, client, headers):
        project = client.post("/api/v1/projects", json={"title": "달빛: 밤"}, headers=headers).json()

        response = client.get(f"/api/v1/projects/{project['id']}/export?format=docx", headers=headers)

        assert response.status_code == 200
        disposition = response.headers["content-disposition"]
        assert 'filename="project.docx"' in disposition
        assert unquote(disposition.split("filename*=UTF-8''", 1)[1]) == "달빛 밤.docx"
        doc = Document(io.BytesIO(response.content))
        assert doc.paragraphs[0].text == "달빛: 밤"

    def test_unknown_format(self, client, headers, project):
        response = client.get(f"/api/v1/projects/{project['id']}/export?format=pdf", headers=headers)
        assert response.status_code == 400


class TestHealth:
    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "healthy"
