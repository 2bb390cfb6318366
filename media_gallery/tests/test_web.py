#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Tests for the Flask JSON API.
"""

import io

import pytest

from media_gallery.web import create_app

from .fixtures.builders import comfy_workflow, noisy_png, png_with_text


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "DB_PATH": str(tmp_path / "web.db"),
        "MEDIA_ROOT": str(tmp_path / "media"),
    })
    yield app
    app.extensions["media_gallery"].db.close()


@pytest.fixture
def client(app):
    return app.test_client()


def upload(client, name="ComfyUI_00007_.png", data=None, field="file", **form):
    data = data if data is not None else png_with_text({"workflow": comfy_workflow()})
    form[field] = (io.BytesIO(data), name)
    return client.post("/upload", data=form, content_type="multipart/form-data")


class TestUpload:

    def test_upload_png(self, client):
        resp = upload(client)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["success"] is True
        assert body["degraded"] is False
        assert body["serverPath"].startswith("images/")
        assert body["originalName"] == "ComfyUI_00007_.png"
        assert body["mediaType"] == "image"

        media = client.get(f"/api/media/{body['imageId']}").get_json()["media"]
        assert media["tags"] == "ComfyUI,AI-Generated"
        assert media["imageData"] == ""

        served = client.get("/" + body["serverPath"])
        assert served.status_code == 200

    def test_image_field_accepted(self, client):
        assert upload(client, field="image").status_code == 200

    def test_forced_source(self, client):
        resp = upload(client, name="export.png",
                      data=png_with_text({"prompt": '{"prompt": "A", "tool": "DALL-E 3"}'}),
                      source="chatgpt")
        media = client.get(f"/api/media/{resp.get_json()['imageId']}").get_json()["media"]
        assert media["model"] == "DALL-E 3"

    def test_no_file(self, client):
        resp = client.post("/upload", data={}, content_type="multipart/form-data")
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "No file uploaded"}

    def test_unsupported_type(self, client):
        resp = upload(client, name="notes.txt", data=b"hello")
        assert resp.status_code == 400
        assert "error" in resp.get_json()

    def test_too_large(self, app, client):
        app.config["MAX_CONTENT_LENGTH"] = 1024
        resp = upload(client, data=b"\x00" * 4096)
        assert resp.status_code == 400
        assert resp.get_json()["error"].startswith("File too large")


class TestMediaApi:

    def test_update_and_delete(self, client, app):
        record_id = upload(client).get_json()["imageId"]

        resp = client.put(f"/api/media/{record_id}",
                          json={"title": "Renamed", "thumbnailPosition": {"x": 10, "y": 20}})
        assert resp.get_json() == {"success": True, "changes": 1}
        media = client.get(f"/api/media/{record_id}").get_json()["media"]
        assert media["title"] == "Renamed"
        assert media["thumbnailPosition"] == {"x": 10, "y": 20}

        assert client.put(f"/api/media/{record_id}", json={"dateAdded": "x"}).status_code == 400

        resp = client.delete(f"/api/media/{record_id}")
        assert resp.get_json() == {"success": True, "changes": 1}
        assert client.get(f"/api/media/{record_id}").status_code == 404
        assert app.extensions["media_gallery"].blobs.list() == []

    @pytest.mark.parametrize("body", [
        {"serverPath": None, "imageData": ""},
        {"imageData": "data:image/png;base64,AAAA"},
        {"mediaType": "video"},
        {"phash": "0000"},
        {"title": "ok", "thumbnailData": ""},
    ])
    def test_storage_fields_are_read_only(self, client, app, body):
        record_id = upload(client).get_json()["imageId"]
        before = client.get(f"/api/media/{record_id}").get_json()["media"]

        resp = client.put(f"/api/media/{record_id}", json=body)

        assert resp.status_code == 400
        assert "cannot be updated" in resp.get_json()["error"]
        after = client.get(f"/api/media/{record_id}").get_json()["media"]
        assert after == before
        blobs = app.extensions["media_gallery"].blobs
        assert blobs.exists(after["serverPath"])

    def test_missing_media(self, client):
        resp = client.get("/api/media/42")
        assert resp.status_code == 404
        assert resp.get_json() == {"error": "Media not found"}
        assert client.put("/api/media/42", json={"title": "x"}).status_code == 404
        assert client.delete("/api/media/42").get_json()["changes"] == 0

    def test_list_search_stats(self, client):
        upload(client)
        assert len(client.get("/api/media").get_json()["media"]) == 1
        assert len(client.get("/api/media/search/comfyui").get_json()["media"]) == 1
        assert client.get("/api/media/search/nothing-like-this").get_json()["media"] == []
        stats = client.get("/api/stats").get_json()
        assert stats["stats"]["images"] == 1
        files = client.get("/api/images").get_json()
        assert files["totalImages"] == 1
        assert len(files["dates"]) == 1

    def test_unknown_route_is_json(self, client):
        resp = client.get("/api/nope")
        assert resp.status_code == 404
        assert "error" in resp.get_json()


class TestBackupApi:

    def test_export_then_migrate(self, client):
        upload(client)
        resp = client.get("/api/export")
        assert "attachment" in resp.headers["Content-Disposition"]
        export = resp.get_json()
        assert export["totalItems"] == 1

        body = client.post("/api/migrate", json=export).get_json()
        assert body["imported"] == 1
        assert body["message"] == "Successfully imported 1 items with 0 errors"
        assert len(client.get("/api/media").get_json()["media"]) == 2

    def test_migrate_rejects_garbage(self, client):
        resp = client.post("/api/migrate", json=[1, 2, 3])
        assert resp.status_code == 400
        assert resp.get_json()["error"].startswith("Migration failed")


class TestMaintenanceApi:

    def test_integrity_and_cleanup(self, client, app):
        upload(client)
        blobs = app.extensions["media_gallery"].blobs
        orphan = blobs.write("image", b"orphan", "orphan.png")

        report = client.get("/api/integrity").get_json()["report"]
        assert report["orphanCount"] == 1
        assert report["integrityScore"] == 50

        sent = [{"path": "/" + orphan, "filename": "orphan.png", "size": 6},
                {"path": "images/2025-07-01/gone.png", "filename": "gone.png"}]
        body = client.post("/api/orphans/cleanup", json={"files": sent}).get_json()
        assert body["success"] is True
        assert body["results"] == {
            "success": [sent[0]],
            "failed": [{"file": sent[1], "error": "File not found"}],
        }
        assert client.get("/api/integrity").get_json()["report"]["integrityScore"] == 100

    def test_cleanup_everything_reports_file_info(self, client, app):
        upload(client)
        orphan = app.extensions["media_gallery"].blobs.write("image", b"orphan", "orphan.png")
        body = client.post("/api/orphans/cleanup", json={}).get_json()
        assert [f["path"] for f in body["results"]["success"]] == [orphan]
        assert body["results"]["success"][0]["mediaType"] == "image"
        assert body["results"]["failed"] == []

    def test_cleanup_bad_body(self, client):
        resp = client.post("/api/orphans/cleanup", json={"files": "everything"})
        assert resp.status_code == 400

    def test_repair_defaults_to_dry_run(self, client, app):
        app.extensions["media_gallery"].blobs.write("image", b"orphan", "orphan.png")
        body = client.post("/api/repair", json={"cleanupOrphans": True}).get_json()
        assert body["dryRun"] is True
        assert body["wouldDelete"] == 1
        assert len(app.extensions["media_gallery"].blobs.list()) == 1

        body = client.post("/api/repair", json={"cleanupOrphans": True, "dryRun": False}).get_json()
        assert body["orphansDeleted"] == 1

    def test_reclaim(self, client, app):
        db = app.extensions["media_gallery"].db
        record_id = upload(client, name="noise.png", data=noisy_png()).get_json()["imageId"]
        from media_gallery.ingest.thumbnails import to_data_url
        db.update(record_id, {"image_data": to_data_url(noisy_png(), "image/png")})

        body = client.post("/api/reclaim").get_json()
        assert body["cleanedCount"] == 1
        assert db.get_by_id(record_id).image_data == ""

    def test_health(self, client):
        body = client.get("/health").get_json()
        assert body["status"] == "healthy"
        assert body["items"] == 0
