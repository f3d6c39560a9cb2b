# upload.py
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional

from .exceptions import StoreIOError
from .imaging import resize
from .paths import child_file_key
from .storage.base import ObjectStoreClient
from .storage.dto import BatchUploadResult, UploadBlob, UploadResult


class ProgressTracker:
    """
    Turns byte acknowledgements from the store into whole percentages for one file.
    Emitted values are strictly increasing and end at 100 once the upload succeeds.
    """

    def __init__(self, total_bytes: int, on_progress: Optional[Callable[[int], None]] = None):
        self.total_bytes = total_bytes
        self.on_progress = on_progress
        self.values: List[int] = []
        self._loaded = 0
        self._last = -1
        # Multipart transfers acknowledge parts from several threads
        self._lock = threading.Lock()

    def __call__(self, bytes_transferred: int):
        with self._lock:
            self._loaded += bytes_transferred
            if self.total_bytes <= 0:
                return
            percent = min(100, self._loaded * 100 // self.total_bytes)
            self._emit(percent)

    def finish(self):
        with self._lock:
            self._emit(100)

    def _emit(self, percent: int):
        if percent <= self._last:
            return
        self._last = percent
        self.values.append(percent)
        if self.on_progress:
            self.on_progress(percent)


def prepare_blob(blob: UploadBlob, settings) -> UploadBlob:
    """
    Downscales images before upload. Resizing is best effort: on any failure
    the original blob is returned unchanged.
    """
    if not settings.RESIZE_IMAGES or not blob.content_type.startswith("image/"):
        return blob
    try:
        data = resize(
            blob.data,
            settings.IMAGE_MAX_WIDTH,
            settings.IMAGE_MAX_HEIGHT,
            settings.IMAGE_QUALITY,
        )
    except Exception as e:
        logging.warning(f"Could not resize image {blob.name}, uploading the original. Error: {e}")
        return blob
    logging.info(f"Resized {blob.name} from {blob.size} to {len(data)} bytes.")
    return UploadBlob(name=blob.name, content_type=blob.content_type, data=data)


def upload_blob(
    store: ObjectStoreClient,
    blob: UploadBlob,
    destination_folder: str,
    on_progress: Optional[Callable[[int], None]] = None,
    tracker: Optional[ProgressTracker] = None,
) -> str:
    """Puts one blob under a folder and returns its stored location."""
    key = child_file_key(destination_folder, blob.name)
    tracker = tracker or ProgressTracker(blob.size, on_progress)
    location = store.put(key, blob.data, blob.content_type, progress_callback=tracker)
    tracker.finish()
    logging.info(f"Uploaded {blob.name} to {key}.")
    return location


def _upload_one(
    store: ObjectStoreClient,
    blob: UploadBlob,
    destination_folder: str,
    settings,
    on_progress: Optional[Callable[[str, int], None]],
) -> UploadResult:
    """Full cycle for one file of a batch. Owns its own tracker and result."""
    forward = (lambda percent: on_progress(blob.name, percent)) if on_progress else None
    key = None
    try:
        key = child_file_key(destination_folder, blob.name)
        prepared = prepare_blob(blob, settings)
        tracker = ProgressTracker(prepared.size, forward)
        location = upload_blob(store, prepared, destination_folder, tracker=tracker)
        return UploadResult(
            name=blob.name, key=key, success=True, location=location, progress=tracker.values
        )
    except (StoreIOError, ValueError) as e:
        logging.error(f"Upload failed for file {blob.name}: {e}")
        return UploadResult(name=blob.name, key=key, success=False, error=str(e))
    except Exception as e:
        logging.critical(f"Unexpected error uploading {blob.name}: {e}", exc_info=True)
        return UploadResult(name=blob.name, key=key, success=False, error=str(e))


def upload_batch(
    store: ObjectStoreClient,
    blobs: List[UploadBlob],
    destination_folder: str,
    settings,
    on_progress: Optional[Callable[[str, int], None]] = None,
) -> BatchUploadResult:
    """
    Uploads every blob concurrently and waits for all of them, whatever the outcome.
    Successful uploads are kept even when others fail.
    """
    if not blobs:
        return BatchUploadResult()

    workers = settings.UPLOAD_MAX_CONCURRENCY or len(blobs)
    workers = min(workers, len(blobs))
    logging.info(f"Uploading {len(blobs)} files to '{destination_folder}' with {workers} workers.")

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="upload") as executor:
        futures = [
            executor.submit(_upload_one, store, blob, destination_folder, settings, on_progress)
            for blob in blobs
        ]
        results = [future.result() for future in futures]

    batch = BatchUploadResult(results=results)
    if batch.failed:
        logging.warning(
            f"{len(batch.failed)} of {len(results)} uploads failed: "
            + ", ".join(f"{r.name}: {r.error}" for r in batch.failed)
        )
    return batch
