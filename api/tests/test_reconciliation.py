"""Tests for the orphaned object sweep."""

import asyncio
import os
import time
from datetime import datetime, timedelta

import pytest

from bizmedia.services.catalog import AssetCatalog
from bizmedia.services.errors import CatalogFailure
from bizmedia.services.reconciliation import sweep_orphaned_objects
from bizmedia.storage.base import StorageError
from bizmedia.storage.gateway import ObjectStoreGateway
from bizmedia.storage.local_driver import LocalStorageDriver
from bizmedia.tasks import sweep as sweep_task


def _age(storage_driver, path, hours=2):
    """Backdate a stored object's modification time."""
    past = time.time() - hours * 3600
    os.utime(storage_driver.base_path / path, (past, past))


@pytest.fixture
def catalog(test_db):
    return AssetCatalog(test_db)


class TestSweepOrphanedObjects:
    """Tests for sweep_orphaned_objects."""

    @pytest.mark.asyncio
    async def test_old_orphans_deleted(self, manager, make_upload, catalog, gateway, storage_driver):
        kept = (await manager.upload_gallery("biz-1", "Roma", [make_upload()])).images[0]
        kept_url = kept.url
        orphan = await gateway.put("biz-1", b"orphan", "x.png", "image/png")
        _age(storage_driver, orphan.path)
        _age(storage_driver, gateway.path_for(kept_url))

        report = await sweep_orphaned_objects(catalog, gateway, "biz-1")

        assert report.scanned == 2
        assert report.referenced == 1
        assert report.deleted == 1
        assert report.deleted_paths == [orphan.path]
        assert await gateway.exists(kept_url)
        assert not await gateway.exists(orphan.path)

    @pytest.mark.asyncio
    async def test_recent_orphans_skipped(self, catalog, gateway):
        orphan = await gateway.put("biz-1", b"in flight", "x.png", "image/png")

        report = await sweep_orphaned_objects(catalog, gateway, "biz-1")

        assert report.deleted == 0
        assert report.skipped_recent == 1
        assert await gateway.exists(orphan.path)

    @pytest.mark.asyncio
    async def test_injected_clock(self, catalog, gateway):
        orphan = await gateway.put("biz-1", b"x", "x.png", "image/png")

        report = await sweep_orphaned_objects(
            catalog,
            gateway,
            "biz-1",
            grace_period=timedelta(minutes=5),
            now=datetime.utcnow() + timedelta(minutes=10),
        )

        assert report.deleted_paths == [orphan.path]

    @pytest.mark.asyncio
    async def test_other_businesses_untouched(self, catalog, gateway, storage_driver):
        other = await gateway.put("biz-2", b"x", "x.png", "image/png")
        _age(storage_driver, other.path)

        report = await sweep_orphaned_objects(catalog, gateway, "biz-1")

        assert report.scanned == 0
        assert await gateway.exists(other.path)

    @pytest.mark.asyncio
    async def test_delete_errors_collected(self, catalog, gateway, storage_driver):
        orphan = await gateway.put("biz-1", b"x", "x.png", "image/png")
        _age(storage_driver, orphan.path)
        storage_driver.fail_delete_if = lambda path: True

        report = await sweep_orphaned_objects(catalog, gateway, "biz-1")

        assert report.deleted == 0
        assert len(report.errors) == 1
        assert report.errors[0].startswith(orphan.path)

    @pytest.mark.asyncio
    async def test_unresolvable_references_abort_sweep(self, manager, make_upload, catalog, storage_driver):
        live = (await manager.upload_gallery("biz-1", "Roma", [make_upload()])).images[0]
        live_id = live.id
        live_path = ObjectStoreGateway(storage_driver).path_for(live.url)
        _age(storage_driver, live_path)

        # Same store, now published under a different base URL
        moved = ObjectStoreGateway(
            LocalStorageDriver(
                {
                    "base_path": str(storage_driver.base_path),
                    "public_base_url": "https://cdn.example.com/business-images",
                }
            )
        )

        report = await sweep_orphaned_objects(catalog, moved, "biz-1")

        assert report.deleted == 0
        assert report.errors == [f"Unresolvable catalog reference: {catalog.get(live_id).url}"]
        assert (storage_driver.base_path / live_path).exists()

    @pytest.mark.asyncio
    async def test_catalog_failure_aborts(self, catalog, gateway, storage_driver, monkeypatch):
        orphan = await gateway.put("biz-1", b"x", "x.png", "image/png")
        _age(storage_driver, orphan.path)

        def unavailable(business_id):
            raise CatalogFailure("database unavailable")

        monkeypatch.setattr(catalog, "referenced_urls", unavailable)

        with pytest.raises(CatalogFailure):
            await sweep_orphaned_objects(catalog, gateway, "biz-1")
        assert await gateway.exists(orphan.path)


class TestSweepTask:
    """Tests for the Celery sweep task, run eagerly."""

    @pytest.fixture(autouse=True)
    def wire(self, monkeypatch, test_db, storage_driver):
        monkeypatch.setattr(sweep_task, "SessionLocal", lambda: test_db)
        monkeypatch.setattr(sweep_task, "get_storage_driver", lambda settings: storage_driver)

    def test_task_deletes_orphans(self, gateway, storage_driver):
        orphan = asyncio.run(gateway.put("biz-1", b"x", "x.png", "image/png"))
        _age(storage_driver, orphan.path)

        result = sweep_task.sweep_orphaned_images("biz-1")

        assert result["deleted"] == 1
        assert result["deleted_paths"] == [orphan.path]
        assert result["business_id"] == "biz-1"

    def test_task_reports_storage_errors(self, storage_driver, monkeypatch):
        async def broken(path=""):
            raise StorageError("bucket unreachable")

        monkeypatch.setattr(storage_driver, "list_files", broken)

        result = sweep_task.sweep_orphaned_images("biz-1")

        assert result["deleted"] == 0
        assert result["errors"] == ["Failed to list images: bucket unreachable"]
