"""Tests for the business image HTTP API."""

import io
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from bizmedia.api.v1.endpoints.business_images import _to_upload
from bizmedia.celery_app import celery_app

MB = 1024 * 1024


def _upload_logo(client, make_image, business_id="biz-1", **image_kwargs):
    return client.post(
        f"/v1/businesses/{business_id}/images/logo",
        files={"file": ("logo.png", make_image(**image_kwargs), "image/png")},
        data={"business_name": "Caffè Roma"},
    )


def _upload_gallery(client, files, business_id="biz-1"):
    return client.post(
        f"/v1/businesses/{business_id}/images/gallery",
        files=[("files", f) for f in files],
        data={"business_name": "Caffè Roma"},
    )


class TestListImages:
    def test_empty_business(self, client):
        response = client.get("/v1/businesses/biz-1/images")

        assert response.status_code == 200
        data = response.json()
        assert data["items"] == []
        assert data["total"] == 0
        assert data["has_logo"] is False
        assert data["gallery_count"] == 0

    def test_logo_first(self, client, make_image):
        _upload_gallery(client, [("a.png", make_image(), "image/png")])
        _upload_logo(client, make_image)

        data = client.get("/v1/businesses/biz-1/images").json()

        assert [item["is_primary"] for item in data["items"]] == [True, False]
        assert data["has_logo"] is True
        assert data["gallery_count"] == 1


class TestUploadLogo:
    def test_upload(self, client, make_image):
        response = _upload_logo(client, make_image)

        assert response.status_code == 201
        data = response.json()
        assert data["total"] == 1
        logo = data["items"][0]
        assert logo["is_primary"] is True
        assert logo["alt_text"] == "Caffè Roma logo"
        assert logo["url"].startswith("http://testserver/media/business-images/biz-1/")

    def test_replacement_keeps_single_logo(self, client, make_image):
        first = _upload_logo(client, make_image).json()["items"][0]

        data = _upload_logo(client, make_image, color=(0, 0, 0)).json()

        assert data["total"] == 1
        assert data["items"][0]["id"] != first["id"]
        assert data["warnings"] == []

    def test_too_large(self, client, storage_driver):
        response = client.post(
            "/v1/businesses/biz-1/images/logo",
            files={"file": ("logo.jpg", b"\xff" * (6 * MB), "image/jpeg")},
        )

        assert response.status_code == 400
        assert response.json()["detail"] == {
            "message": "File too large. Maximum 5MB allowed.",
            "stage": "validating",
        }
        assert storage_driver.uploads == []

    def test_unsupported_type(self, client):
        response = client.post(
            "/v1/businesses/biz-1/images/logo",
            files={"file": ("menu.pdf", b"%PDF-1.4", "application/pdf")},
        )

        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "Unsupported file type. Use JPG, PNG, WebP or GIF."

    def test_storage_failure(self, client, make_image, storage_driver):
        storage_driver.fail_upload_if = lambda path, content: True

        response = _upload_logo(client, make_image)

        assert response.status_code == 502
        assert response.json()["detail"]["stage"] == "storing"

    def test_missing_file(self, client):
        response = client.post("/v1/businesses/biz-1/images/logo")

        assert response.status_code == 422


class TestUploadGallery:
    def test_upload(self, client, make_image):
        response = _upload_gallery(
            client,
            [("a.png", make_image(), "image/png"), ("b.jpg", make_image(fmt="JPEG"), "image/jpeg")],
        )

        assert response.status_code == 201
        data = response.json()
        assert data["uploaded"] == 2
        assert data["failures"] == []
        assert [item["sort_order"] for item in data["items"]] == [1, 2]
        assert [item["alt_text"] for item in data["items"]] == [
            "Caffè Roma - Image 1",
            "Caffè Roma - Image 2",
        ]

    def test_partial_failure(self, client, make_image):
        response = _upload_gallery(
            client,
            [("a.png", make_image(), "image/png"), ("huge.jpg", b"\xff" * (12 * MB), "image/jpeg")],
        )

        assert response.status_code == 207
        data = response.json()
        assert data["uploaded"] == 1
        assert data["failures"] == [
            {"name": "huge.jpg", "reason": "File too large. Maximum 10MB allowed."}
        ]
        assert data["total"] == 1

    def test_all_failed(self, client):
        response = _upload_gallery(client, [("menu.pdf", b"%PDF-1.4", "application/pdf")])

        assert response.status_code == 400
        assert response.json()["uploaded"] == 0


class TestPromote:
    def test_promote(self, client, make_image):
        _upload_logo(client, make_image)
        gallery = _upload_gallery(client, [("a.png", make_image(), "image/png")]).json()["items"]
        target = gallery[1]

        response = client.post(f"/v1/images/{target['id']}/promote")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["id"] == target["id"]
        assert data["items"][0]["is_primary"] is True

    def test_unknown(self, client):
        response = client.post("/v1/images/missing/promote")

        assert response.status_code == 404
        assert response.json()["detail"]["stage"] == "cataloging"


class TestUpdateImage:
    def test_update_alt_text(self, client, make_image):
        image = _upload_gallery(client, [("a.png", make_image(), "image/png")]).json()["items"][0]

        response = client.patch(f"/v1/images/{image['id']}", json={"alt_text": "Outdoor seating"})

        assert response.status_code == 200
        assert response.json()["items"][0]["alt_text"] == "Outdoor seating"

    def test_too_long(self, client, make_image):
        image = _upload_gallery(client, [("a.png", make_image(), "image/png")]).json()["items"][0]

        response = client.patch(f"/v1/images/{image['id']}", json={"alt_text": "x" * 501})

        assert response.status_code == 422

    def test_unknown(self, client):
        response = client.patch("/v1/images/missing", json={"alt_text": "x"})

        assert response.status_code == 404


class TestDeleteImage:
    def test_delete(self, client, make_image, gateway, storage_driver):
        image = _upload_gallery(client, [("a.png", make_image(), "image/png")]).json()["items"][0]

        response = client.delete(f"/v1/images/{image['id']}")

        assert response.status_code == 200
        assert response.json()["total"] == 0
        assert not (storage_driver.base_path / gateway.path_for(image["url"])).exists()

    def test_storage_failure_keeps_image(self, client, make_image, storage_driver):
        image = _upload_gallery(client, [("a.png", make_image(), "image/png")]).json()["items"][0]
        storage_driver.fail_delete_if = lambda path: True

        response = client.delete(f"/v1/images/{image['id']}")

        assert response.status_code == 502
        assert response.json()["detail"]["stage"] == "storing"
        assert client.get("/v1/businesses/biz-1/images").json()["total"] == 1

    def test_unknown(self, client):
        assert client.delete("/v1/images/missing").status_code == 404


class TestBulkDelete:
    def test_bulk_delete(self, client, make_image):
        items = _upload_gallery(
            client,
            [("a.png", make_image(), "image/png"), ("b.png", make_image(), "image/png")],
        ).json()["items"]

        response = client.post(
            "/v1/businesses/biz-1/images/bulk-delete",
            json={"image_ids": [item["id"] for item in items]},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["deleted"] == 2
        assert data["total"] == 0

    def test_logo_rejected(self, client, make_image):
        logo = _upload_logo(client, make_image).json()["items"][0]
        items = _upload_gallery(client, [("a.png", make_image(), "image/png")]).json()["items"]

        response = client.post(
            "/v1/businesses/biz-1/images/bulk-delete",
            json={"image_ids": [logo["id"], items[1]["id"]]},
        )

        assert response.status_code == 207
        data = response.json()
        assert data["deleted"] == 1
        assert data["failures"] == [{"name": logo["id"], "reason": "The logo cannot be bulk deleted"}]
        assert [item["id"] for item in data["items"]] == [logo["id"]]

    def test_nothing_deleted(self, client):
        response = client.post(
            "/v1/businesses/biz-1/images/bulk-delete",
            json={"image_ids": ["missing"]},
        )

        assert response.status_code == 400
        assert response.json()["failures"][0]["reason"] == "Image not found"

    def test_empty_request(self, client):
        response = client.post("/v1/businesses/biz-1/images/bulk-delete", json={"image_ids": []})

        assert response.status_code == 422


class TestSweep:
    def test_dispatch(self, client, monkeypatch):
        send_task = MagicMock(return_value=SimpleNamespace(id="task-123"))
        monkeypatch.setattr(celery_app, "send_task", send_task)

        response = client.post("/v1/businesses/biz-1/images/sweep")

        assert response.status_code == 202
        assert response.json()["task_id"] == "task-123"
        send_task.assert_called_once_with(
            "bizmedia.tasks.sweep.sweep_orphaned_images",
            args=["biz-1"],
        )

    def test_dispatch_failure(self, client, monkeypatch):
        def broker_down(*args, **kwargs):
            raise ConnectionError("broker unavailable")

        monkeypatch.setattr(celery_app, "send_task", broker_down)

        assert client.post("/v1/businesses/biz-1/images/sweep").status_code == 500

    def test_status(self, client, monkeypatch):
        async_result = MagicMock(state="SUCCESS", result={"deleted": 2})
        async_result.ready.return_value = True
        async_result.successful.return_value = True
        monkeypatch.setattr(celery_app, "AsyncResult", lambda task_id: async_result)

        response = client.get("/v1/images/sweep/task-123")

        assert response.status_code == 200
        assert response.json() == {
            "task_id": "task-123",
            "status": "SUCCESS",
            "result": {"deleted": 2},
            "error": None,
        }

    def test_status_pending(self, client, monkeypatch):
        async_result = MagicMock(state="PENDING")
        async_result.ready.return_value = False
        monkeypatch.setattr(celery_app, "AsyncResult", lambda task_id: async_result)

        data = client.get("/v1/images/sweep/task-123").json()

        assert data["status"] == "PENDING"
        assert data["result"] is None


class TestUploadIntake:
    """Reading multipart files into uploads."""

    @pytest.mark.asyncio
    async def test_oversized_declared_size_not_read(self):
        body = MagicMock(wraps=io.BytesIO(b"\xff" * 16))
        file = UploadFile(
            file=body,
            size=6 * MB,
            filename="logo.jpg",
            headers=Headers({"content-type": "image/jpeg"}),
        )

        upload = await _to_upload(file, 5)

        assert upload.content == b""
        assert upload.size_bytes == 6 * MB
        assert upload.content_type == "image/jpeg"
        body.read.assert_not_called()

    @pytest.mark.asyncio
    async def test_within_ceiling_read(self):
        file = UploadFile(
            file=io.BytesIO(b"\x89PNG-bytes"),
            size=10,
            filename="logo.png",
            headers=Headers({"content-type": "image/png"}),
        )

        upload = await _to_upload(file, 5)

        assert upload.content == b"\x89PNG-bytes"
        assert upload.size_bytes == 10
