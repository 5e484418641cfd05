from __future__ import annotations

from datetime import UTC, datetime, timedelta

from pricelist_ingest.models.upload_status import UploadState, UploadStatus
from pricelist_ingest.services.status_store import InMemoryStatusStore

T0 = datetime(2024, 1, 1, tzinfo=UTC)


def test_put_get_and_overwrite():
    store = InMemoryStatusStore()
    status = UploadStatus(upload_id="u1", filename="a.xlsx", started_at=T0)
    store.put("u1", status)
    assert store.get("u1") is status
    assert store.get("missing") is None

    done = status.advance(state=UploadState.DONE, products_processed=3, total_products=3)
    store.put("u1", done)
    assert store.get("u1").state is UploadState.DONE
    assert len(store) == 1


def test_recent_orders_by_start_time():
    store = InMemoryStatusStore()
    for i in range(12):
        store.put(f"u{i}", UploadStatus(upload_id=f"u{i}", filename="f", started_at=T0 + timedelta(minutes=i)))
    recent = store.recent()
    assert len(recent) == 10
    assert recent[0].upload_id == "u11"
    assert [s.upload_id for s in store.recent(limit=2)] == ["u11", "u10"]


def test_progress():
    s = UploadStatus(upload_id="u", filename="f", total_products=4, products_processed=1)
    assert s.progress == 25
    assert UploadStatus(upload_id="u", filename="f").progress == 0
    assert s.advance(state=UploadState.ERROR, error="boom").progress == 100
    assert UploadState.UPLOADING.value == "uploading"
