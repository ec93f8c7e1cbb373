"""Tests for API routes."""

import json

from fastapi.testclient import TestClient
from sqlmodel import Session, select

from openchecklist.checklists.files import FileStorage
from openchecklist.core.config import StorageMode, settings
from openchecklist.models import Checklist, Contribution, DownloadEvent

PDF_BYTES = b"%PDF-1.4 uploaded"


class TestHealthEndpoint:
    """Tests for the health check endpoint."""

    def test_health_check(self, client: TestClient):
        """Test the health endpoint returns OK."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestBrowseRoutes:
    """Tests for public checklist browsing."""

    def test_list_checklists(self, client: TestClient, sample_checklist: Checklist):
        response = client.get("/checklists")
        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["title"] == "Restaurant Opening Checklist"
        assert data[0]["formats"] == ["pdf", "markdown"]
        assert "items" not in data[0]

    def test_list_empty(self, client: TestClient):
        response = client.get("/checklists")
        assert response.status_code == 200
        assert response.json() == []

    def test_list_invalid_sort(self, client: TestClient):
        response = client.get("/checklists?sort=random")
        assert response.status_code == 422

    def test_get_checklist(self, client: TestClient, sample_checklist: Checklist):
        response = client.get(f"/checklists/{sample_checklist.id}")
        assert response.status_code == 200
        data = response.json()
        assert data["features"] == ["120+ steps", "Permit templates"]
        assert [i["item_order"] for i in data["items"]] == [0, 1, 2, 3]
        assert data["items"][0]["is_required"] is True

    def test_get_checklist_not_found(self, client: TestClient):
        response = client.get("/checklists/9999")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_search(self, client: TestClient, sample_checklist: Checklist, empty_checklist):
        response = client.get("/search", params={"q": "restaurant"})
        assert response.status_code == 200
        assert [c["id"] for c in response.json()] == [sample_checklist.id]

    def test_categories(self, client: TestClient, sample_checklist: Checklist):
        response = client.get("/categories")
        assert response.json() == ["Food & Beverage"]

        response = client.get("/categories/Food & Beverage")
        assert [c["id"] for c in response.json()] == [sample_checklist.id]

    def test_stats(self, client: TestClient, sample_checklist: Checklist):
        response = client.get("/stats")
        assert response.status_code == 200
        assert response.json() == {
            "total_checklists": 1,
            "total_downloads": 0,
            "total_contributors": 1,
        }


class TestAdminRoutes:
    """Tests for the admin-gated management routes."""

    def test_create_requires_admin(self, client: TestClient, session: Session):
        response = client.post("/checklists", data={"title": "T", "description": "D"})
        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"
        assert session.exec(select(Checklist)).all() == []

    def test_wrong_admin_key(self, client: TestClient):
        response = client.post(
            "/checklists",
            data={"title": "T", "description": "D"},
            headers={"X-Admin-Key": "guess"},
        )
        assert response.status_code == 401

    def test_create_checklist(self, client: TestClient, admin_headers, session: Session):
        items = [
            {"phase": "Setup", "item_text": "Buy domain", "is_required": True},
            {"phase": "Setup", "item_text": "Pick theme"},
        ]
        response = client.post(
            "/checklists",
            data={
                "title": "Blog Launch",
                "description": "Start a blog",
                "category": "Media",
                "features": "SEO guide\nContent calendar\n",
                "items": json.dumps(items),
            },
            headers=admin_headers,
        )
        assert response.status_code == 201
        checklist_id = response.json()["id"]

        detail = client.get(f"/checklists/{checklist_id}").json()
        assert detail["features"] == ["SEO guide", "Content calendar"]
        assert [i["item_text"] for i in detail["items"]] == ["Buy domain", "Pick theme"]

    def test_create_missing_title(self, client: TestClient, admin_headers):
        response = client.post(
            "/checklists", data={"description": "D"}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["error"] == "invalid"

    def test_create_bad_items_json(self, client: TestClient, admin_headers):
        response = client.post(
            "/checklists",
            data={"title": "T", "description": "D", "items": "not json"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_create_with_pdf_upload(self, client: TestClient, admin_headers):
        response = client.post(
            "/checklists",
            data={"title": "Uploaded Guide", "description": "D"},
            files={"file": ("guide.pdf", PDF_BYTES, "application/pdf")},
            headers=admin_headers,
        )
        assert response.status_code == 201
        checklist_id = response.json()["id"]

        download = client.get(f"/checklists/{checklist_id}/download?format=pdf")
        assert download.content == PDF_BYTES
        assert 'filename="guide.pdf"' in download.headers["content-disposition"]

    def test_create_rejects_other_file_types(self, client: TestClient, admin_headers):
        response = client.post(
            "/checklists",
            data={"title": "T", "description": "D"},
            files={"file": ("notes.txt", b"hello", "text/plain")},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_create_in_file_mode_failure_keeps_no_file(
        self, client: TestClient, admin_headers, file_storage: FileStorage, monkeypatch
    ):
        monkeypatch.setattr(settings, "storage_mode", StorageMode.FILE)
        response = client.post(
            "/checklists",
            data={"title": "", "description": "D"},
            files={"file": ("guide.pdf", PDF_BYTES, "application/pdf")},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert [p for p in file_storage.root.iterdir() if p.is_file()] == []

    def test_update_checklist(
        self, client: TestClient, admin_headers, sample_checklist: Checklist
    ):
        response = client.put(
            f"/checklists/{sample_checklist.id}",
            json={"description": "Updated", "features": ["Only feature"]},
            headers=admin_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Restaurant Opening Checklist"
        assert data["description"] == "Updated"
        assert data["features"] == ["Only feature"]
        assert len(data["items"]) == 4

    def test_update_not_found(self, client: TestClient, admin_headers):
        response = client.put("/checklists/9999", json={"title": "x"}, headers=admin_headers)
        assert response.status_code == 404

    def test_delete_checklist(
        self, client: TestClient, admin_headers, sample_checklist: Checklist
    ):
        response = client.delete(f"/checklists/{sample_checklist.id}", headers=admin_headers)
        assert response.status_code == 200
        assert client.get(f"/checklists/{sample_checklist.id}").status_code == 404

    def test_add_item(self, client: TestClient, admin_headers, sample_checklist: Checklist):
        response = client.post(
            f"/checklists/{sample_checklist.id}/items",
            json={"phase": "Launch", "item_text": "Invite press"},
            headers=admin_headers,
        )
        assert response.status_code == 201
        assert response.json()["item_order"] == 4

    def test_upload_file_replaces_and_bumps_version(
        self, client: TestClient, admin_headers, sample_checklist: Checklist
    ):
        response = client.post(
            f"/checklists/{sample_checklist.id}/file",
            files={"file": ("bundle.zip", b"PK\x03\x04", "application/zip")},
            headers=admin_headers,
        )
        assert response.status_code == 200
        detail = client.get(f"/checklists/{sample_checklist.id}").json()
        assert detail["version"] == "1.1"
        assert "zip" in detail["formats"]
        assert detail["has_file"] is True

    def test_download_analytics(
        self, client: TestClient, admin_headers, sample_checklist: Checklist
    ):
        client.get(f"/checklists/{sample_checklist.id}/download?format=markdown")
        response = client.get("/analytics/downloads", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()[0]["download_count"] == 1

    def test_download_analytics_requires_admin(self, client: TestClient):
        assert client.get("/analytics/downloads").status_code == 401


class TestDownloadRoutes:
    """Tests for checklist downloads."""

    def test_markdown_download(
        self, client: TestClient, session: Session, sample_checklist: Checklist
    ):
        response = client.get(f"/checklists/{sample_checklist.id}/download?format=markdown")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/markdown")
        assert (
            response.headers["content-disposition"]
            == 'attachment; filename="restaurant-opening-checklist.md"'
        )
        assert response.text.startswith("# Restaurant Opening Checklist")

        session.refresh(sample_checklist)
        assert sample_checklist.downloads == 1
        assert len(session.exec(select(DownloadEvent)).all()) == 1

    def test_default_format_is_pdf(self, client: TestClient, sample_checklist: Checklist):
        response = client.get(f"/checklists/{sample_checklist.id}/download")
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")

    def test_zip_not_available(self, client: TestClient, session: Session, sample_checklist):
        response = client.get(f"/checklists/{sample_checklist.id}/download?format=zip")
        assert response.status_code == 404
        assert response.json()["error"] == "not_available"
        assert session.exec(select(DownloadEvent)).all() == []

    def test_zip_download(self, client: TestClient, zip_checklist: Checklist):
        response = client.get(f"/checklists/{zip_checklist.id}/download?format=zip")
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/zip"

    def test_excel_not_implemented(self, client: TestClient, sample_checklist: Checklist):
        response = client.get(f"/checklists/{sample_checklist.id}/download?format=excel")
        assert response.status_code == 501

    def test_unknown_format(self, client: TestClient, sample_checklist: Checklist):
        response = client.get(f"/checklists/{sample_checklist.id}/download?format=docx")
        assert response.status_code == 400

    def test_download_not_found(self, client: TestClient):
        response = client.get("/checklists/9999/download?format=markdown")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"


class TestContributionRoutes:
    """Tests for community contribution routes."""

    def test_submit_and_approve(
        self, client: TestClient, admin_headers, session: Session, sample_checklist: Checklist
    ):
        response = client.post(
            "/contributions/submit",
            json={
                "checklist_id": sample_checklist.id,
                "name": "Sam",
                "email": "sam@example.com",
                "type": "item",
                "content": "Order signage",
            },
        )
        assert response.status_code == 201
        contribution_id = response.json()["id"]

        pending = client.get("/contributions/pending", headers=admin_headers).json()
        assert [c["id"] for c in pending] == [contribution_id]
        assert pending[0]["checklist_title"] == "Restaurant Opening Checklist"

        response = client.put(
            f"/contributions/{contribution_id}/review",
            json={"status": "approved", "notes": "Thanks"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["status"] == "approved"

        detail = client.get(f"/checklists/{sample_checklist.id}").json()
        assert detail["items"][-1]["item_text"] == "Order signage"
        assert detail["contributors"] == 2

        approved = client.get(f"/contributions/checklist/{sample_checklist.id}").json()
        assert [c["id"] for c in approved] == [contribution_id]

    def test_review_twice_conflicts(
        self, client: TestClient, admin_headers, session: Session, sample_checklist: Checklist
    ):
        contribution = Contribution(checklist_id=sample_checklist.id, content="Extra")
        session.add(contribution)
        session.commit()
        session.refresh(contribution)

        url = f"/contributions/{contribution.id}/review"
        assert client.put(url, json={"status": "rejected"}, headers=admin_headers).status_code == 200
        response = client.put(url, json={"status": "approved"}, headers=admin_headers)
        assert response.status_code == 409
        assert response.json()["error"] == "already_reviewed"

    def test_submit_unknown_checklist(self, client: TestClient):
        response = client.post(
            "/contributions/submit", json={"checklist_id": 9999, "content": "x"}
        )
        assert response.status_code == 404

    def test_submit_empty_content(self, client: TestClient, sample_checklist: Checklist):
        response = client.post(
            "/contributions/submit",
            json={"checklist_id": sample_checklist.id, "content": ""},
        )
        assert response.status_code == 400

    def test_pending_requires_admin(self, client: TestClient):
        assert client.get("/contributions/pending").status_code == 401

    def test_stats(self, client: TestClient, sample_checklist: Checklist):
        client.post(
            "/contributions/submit",
            json={"checklist_id": sample_checklist.id, "email": "a@b.c", "content": "x"},
        )
        response = client.get("/contributions/stats")
        assert response.json() == {
            "total_contributions": 1,
            "unique_contributors": 1,
            "approved_contributions": 0,
            "pending_contributions": 1,
        }


class TestPdfFromCommunityContent:
    """Tests for PDF generation from contributed text."""

    def test_image_markdown_in_approved_item(
        self, client: TestClient, admin_headers, tmp_path, sample_checklist: Checklist
    ):
        response = client.post(
            "/contributions/submit",
            json={
                "checklist_id": sample_checklist.id,
                "content": f"![a]({tmp_path}/missing.png) Hang the menu board",
            },
        )
        contribution_id = response.json()["id"]
        client.put(
            f"/contributions/{contribution_id}/review",
            json={"status": "approved"},
            headers=admin_headers,
        )

        response = client.get(f"/checklists/{sample_checklist.id}/download?format=pdf")
        assert response.status_code == 200
        assert response.content.startswith(b"%PDF")


class TestUpdateKeepsFile:
    """Tests for partial updates of a checklist with an attached file."""

    def test_null_content_keeps_file(
        self, client: TestClient, admin_headers, zip_checklist: Checklist
    ):
        response = client.put(
            f"/checklists/{zip_checklist.id}",
            json={"content": None, "title": "Starter Kit v2"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["has_file"] is True
        assert "zip" in data["formats"]

        download = client.get(f"/checklists/{zip_checklist.id}/download?format=zip")
        assert download.status_code == 200
