# tests/test_upload.py
import io
from unittest.mock import MagicMock, patch

import pytest
from PIL import Image

from cloudshelf.exceptions import StoreIOError
from cloudshelf.storage.dto import UploadBlob
from cloudshelf.upload import ProgressTracker, prepare_blob, upload_batch, upload_blob


def jpeg_blob(name="big.jpg", size=(4000, 3000)) -> UploadBlob:
    buffered = io.BytesIO()
    Image.new("RGB", size, color="blue").save(buffered, format="JPEG")
    return UploadBlob(name=name, content_type="image/jpeg", data=buffered.getvalue())


def test_progress_tracker_is_monotonic_and_ends_at_100():
    received = []
    tracker = ProgressTracker(10, received.append)

    for chunk in (3, 3, 0, 3, 1):
        tracker(chunk)
    tracker.finish()

    assert tracker.values == [30, 60, 90, 100]
    assert received == tracker.values


def test_progress_tracker_empty_file_reports_100_on_finish():
    tracker = ProgressTracker(0)
    tracker(0)
    tracker.finish()
    assert tracker.values == [100]


def test_prepare_blob_resizes_images(settings):
    blob = jpeg_blob()

    prepared = prepare_blob(blob, settings)

    assert prepared.name == blob.name
    assert prepared.content_type == blob.content_type
    assert Image.open(io.BytesIO(prepared.data)).size == (1440, 1080)


def test_prepare_blob_leaves_non_images_alone(settings):
    blob = UploadBlob(name="notes.txt", content_type="text/plain", data=b"hello")
    assert prepare_blob(blob, settings) is blob


def test_prepare_blob_falls_back_to_original_on_resize_failure(settings):
    blob = UploadBlob(name="broken.jpg", content_type="image/jpeg", data=b"not really a jpeg")
    assert prepare_blob(blob, settings) is blob


@patch("cloudshelf.upload.resize")
def test_prepare_blob_respects_resize_switch(mock_resize, settings):
    settings.RESIZE_IMAGES = False
    blob = jpeg_blob()

    assert prepare_blob(blob, settings) is blob
    mock_resize.assert_not_called()


def test_upload_blob_puts_under_destination(memory_store):
    blob = UploadBlob(name="fileX.txt", content_type="text/plain", data=b"0123456789")
    progress = []

    location = upload_blob(memory_store, blob, "Docs/", on_progress=progress.append)

    assert location == "memory://Docs/fileX.txt"
    data, content_type, _ = memory_store.objects["Docs/fileX.txt"]
    assert data == b"0123456789"
    assert content_type == "text/plain"
    assert progress == sorted(progress)
    assert progress[-1] == 100


def test_upload_blob_store_error_propagates():
    store = MagicMock()
    store.put.side_effect = StoreIOError("quota exceeded", operation="put", key="a.txt")
    blob = UploadBlob(name="a.txt", data=b"x")

    with pytest.raises(StoreIOError, match="quota exceeded"):
        upload_blob(store, blob, "")


def test_upload_batch_partial_failure(memory_store, settings):
    blobs = [UploadBlob(name=f"f{i}.txt", content_type="text/plain", data=b"abcdefgh") for i in range(3)]
    memory_store.fail("put", "Docs/f1.txt")

    result = upload_batch(memory_store, blobs, "Docs/", settings)

    assert [r.name for r in result.results] == ["f0.txt", "f1.txt", "f2.txt"]
    assert len(result.succeeded) == 2
    assert [r.name for r in result.failed] == ["f1.txt"]
    assert "Injected put failure" in result.failed[0].error
    assert result.is_partial
    assert not result.all_succeeded and not result.all_failed
    assert "Docs/f0.txt" in memory_store.objects
    assert "Docs/f2.txt" in memory_store.objects
    assert "Docs/f1.txt" not in memory_store.objects


def test_upload_batch_progress_per_file(memory_store, settings):
    blobs = [UploadBlob(name=f"f{i}.bin", data=bytes(37)) for i in range(5)]
    events = []

    result = upload_batch(
        memory_store, blobs, "", settings, on_progress=lambda name, p: events.append((name, p))
    )

    assert result.all_succeeded
    for item in result.results:
        assert item.progress == sorted(set(item.progress))
        assert item.progress[-1] == 100
        assert [p for name, p in events if name == item.name] == item.progress


def test_upload_batch_failure_keeps_original_filename_after_resize(memory_store, settings):
    memory_store.fail("put")

    result = upload_batch(memory_store, [jpeg_blob("holiday.jpg")], "", settings)

    assert result.all_failed
    assert result.failed[0].name == "holiday.jpg"
    assert result.failed[0].progress == []


def test_upload_batch_invalid_name_is_a_per_file_failure(memory_store, settings):
    blobs = [UploadBlob(name="ok.txt", data=b"1"), UploadBlob(name="", data=b"2")]

    result = upload_batch(memory_store, blobs, "", settings)

    assert [r.success for r in result.results] == [True, False]
    assert result.results[0].key == "ok.txt"
    assert result.results[1].key is None
    assert "Name cannot be empty" in result.results[1].error


def test_upload_batch_keys_come_from_normalized_destination(memory_store, settings):
    result = upload_batch(memory_store, [UploadBlob(name="a.txt", data=b"1")], "/Docs//Sub", settings)

    assert result.results[0].key == "Docs/Sub/a.txt"
    assert "Docs/Sub/a.txt" in memory_store.objects


def test_upload_batch_empty(memory_store, settings):
    assert upload_batch(memory_store, [], "", settings).results == []
