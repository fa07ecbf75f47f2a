"""
Unit tests for report_engine.store
"""

import json

import pytest

from report_engine.errors import ConcurrentUpdateError, NotFoundError
from report_engine.store import (
    GENERATED_REPORTS,
    RECONCILIATIONS,
    SCHEDULED_REPORTS,
    FileRecordStore,
    InMemoryRecordStore,
)


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    """Each contract test runs against both store implementations"""
    if request.param == "memory":
        return InMemoryRecordStore()
    return FileRecordStore(str(tmp_path / "state"))


# ============================================================================
# Test Store Contract
# ============================================================================

class TestRecordStoreContract:
    """Test behaviour shared by every record store"""

    def test_create_sets_version_one(self, store):
        stored = store.create(SCHEDULED_REPORTS, {"id": "job-1", "name": "Weekly"})

        assert stored["version"] == 1
        assert store.get(SCHEDULED_REPORTS, "job-1")["name"] == "Weekly"

    def test_create_duplicate_rejected(self, store):
        store.create(SCHEDULED_REPORTS, {"id": "job-1"})

        with pytest.raises(ConcurrentUpdateError):
            store.create(SCHEDULED_REPORTS, {"id": "job-1"})

    def test_get_missing(self, store):
        with pytest.raises(NotFoundError):
            store.get(GENERATED_REPORTS, "run-404")

    def test_list_ordered_by_id_with_predicate(self, store):
        for record_id, status in [("run-b", "sent"), ("run-a", "failed"), ("run-c", "sent")]:
            store.create(GENERATED_REPORTS, {"id": record_id, "status": status})

        all_ids = [r["id"] for r in store.list(GENERATED_REPORTS)]
        sent = [r["id"] for r in store.list(GENERATED_REPORTS, lambda r: r["status"] == "sent")]

        assert all_ids == ["run-a", "run-b", "run-c"]
        assert sent == ["run-b", "run-c"]

    def test_update_if_version_increments(self, store):
        store.create(RECONCILIATIONS, {"id": "rec-1", "status": "pending"})

        updated = store.update_if_version(
            RECONCILIATIONS, {"id": "rec-1", "status": "reconciled"}, 1
        )

        assert updated["version"] == 2
        assert store.get(RECONCILIATIONS, "rec-1")["status"] == "reconciled"

    def test_stale_version_rejected(self, store):
        store.create(RECONCILIATIONS, {"id": "rec-1", "status": "pending"})
        store.update_if_version(RECONCILIATIONS, {"id": "rec-1", "status": "discrepancy"}, 1)

        with pytest.raises(ConcurrentUpdateError):
            store.update_if_version(RECONCILIATIONS, {"id": "rec-1", "status": "reconciled"}, 1)

        assert store.get(RECONCILIATIONS, "rec-1")["status"] == "discrepancy"

    def test_update_missing(self, store):
        with pytest.raises(NotFoundError):
            store.update_if_version(RECONCILIATIONS, {"id": "rec-404"}, 1)

    def test_delete(self, store):
        store.create(SCHEDULED_REPORTS, {"id": "job-1"})

        store.delete(SCHEDULED_REPORTS, "job-1")

        with pytest.raises(NotFoundError):
            store.get(SCHEDULED_REPORTS, "job-1")
        with pytest.raises(NotFoundError):
            store.delete(SCHEDULED_REPORTS, "job-1")

    def test_collections_are_separate(self, store):
        store.create(SCHEDULED_REPORTS, {"id": "shared"})

        assert store.list(GENERATED_REPORTS) == []


# ============================================================================
# Test Memory Store
# ============================================================================

class TestInMemoryRecordStore:
    """Test copy semantics of the memory store"""

    def test_returned_records_are_copies(self):
        store = InMemoryRecordStore()
        store.create(SCHEDULED_REPORTS, {"id": "job-1", "recipients": ["a@example.com"]})

        fetched = store.get(SCHEDULED_REPORTS, "job-1")
        fetched["recipients"].append("b@example.com")

        assert store.get(SCHEDULED_REPORTS, "job-1")["recipients"] == ["a@example.com"]


# ============================================================================
# Test File Store
# ============================================================================

class TestFileRecordStore:
    """Test on-disk layout of the file store"""

    def test_creates_collection_directories(self, tmp_path):
        FileRecordStore(str(tmp_path / "state"))

        for name in (SCHEDULED_REPORTS, GENERATED_REPORTS, RECONCILIATIONS):
            assert (tmp_path / "state" / name).is_dir()

    def test_one_json_file_per_record(self, file_store, tmp_path):
        file_store.create(SCHEDULED_REPORTS, {"id": "job-1", "name": "Weekly"})

        path = tmp_path / "state" / SCHEDULED_REPORTS / "job-1.json"
        assert json.loads(path.read_text()) == {"id": "job-1", "name": "Weekly", "version": 1}

    def test_list_skips_temporary_and_corrupt_files(self, file_store, tmp_path):
        file_store.create(SCHEDULED_REPORTS, {"id": "job-1"})
        directory = tmp_path / "state" / SCHEDULED_REPORTS
        (directory / ".tmp-abc.json").write_text("{")
        (directory / "broken.json").write_text("not json")

        assert [r["id"] for r in file_store.list(SCHEDULED_REPORTS)] == ["job-1"]

    def test_unsafe_ids_are_sanitized(self, file_store, tmp_path):
        file_store.create(GENERATED_REPORTS, {"id": "run/1:2"})

        assert (tmp_path / "state" / GENERATED_REPORTS / "run_1_2.json").exists()
        assert file_store.get(GENERATED_REPORTS, "run/1:2")["id"] == "run/1:2"

    def test_survives_reopen(self, tmp_path):
        FileRecordStore(str(tmp_path / "state")).create(RECONCILIATIONS, {"id": "rec-1"})

        reopened = FileRecordStore(str(tmp_path / "state"))

        assert reopened.get(RECONCILIATIONS, "rec-1")["version"] == 1
