# manager.py
import logging
from typing import Callable, List, Optional, Union

from . import mutations
from .exceptions import NotInitializedError, StoreIOError
from .listing import list_child_keys, list_prefix
from .paths import ROOT, folder_name, normalize_folder_path, parent_path
from .s3 import S3StoreClient
from .storage.base import ObjectStoreClient
from .storage.dto import BatchUploadResult, FolderRecord, Listing, UploadBlob
from .upload import upload_batch


class HierarchyManager:
    """
    Files-and-folders view over a flat object store.

    Holds no state besides the injected store and settings: every read goes to
    the store, and every mutation returns a listing fetched after it completed.
    """

    def __init__(self, store: ObjectStoreClient, settings):
        if store is None:
            raise NotInitializedError("Object store client is not initialized")
        self.store = store
        self.settings = settings

    @classmethod
    def from_settings(cls, settings, verify: bool = True) -> "HierarchyManager":
        """Builds an S3-backed manager, checking the bucket is reachable first."""
        store = S3StoreClient.from_settings(settings)
        if verify:
            store.verify_bucket()
        return cls(store, settings)

    def list(self, path: str = ROOT) -> Listing:
        return list_prefix(
            self.store, normalize_folder_path(path), self.settings.SIGNED_URL_TTL_SECONDS
        )

    def upload(
        self,
        blobs: Union[UploadBlob, List[UploadBlob]],
        destination: str = ROOT,
        on_progress: Optional[Callable[[str, int], None]] = None,
    ) -> BatchUploadResult:
        """
        Uploads one or more blobs into a folder. Never raises for per-file failures:
        inspect the returned BatchUploadResult, which also carries the destination
        listing fetched after the batch.
        """
        if isinstance(blobs, UploadBlob):
            blobs = [blobs]
        destination = normalize_folder_path(destination)
        result = upload_batch(self.store, blobs, destination, self.settings, on_progress)
        try:
            result.listing = self.list(destination)
        except StoreIOError as e:
            logging.warning(f"Uploaded to '{destination}' but could not re-list it. Error: {e}")
        return result

    def create_folder(self, parent: str, name: str) -> Listing:
        parent = normalize_folder_path(parent)
        mutations.create_folder(self.store, parent, name)
        return self.list(parent)

    def rename_folder(self, path: str, new_name: str) -> Listing:
        path = normalize_folder_path(path)
        mutations.rename_folder(self.store, path, new_name)
        return self.list(parent_path(path))

    def delete_folder(self, path: str) -> Listing:
        path = normalize_folder_path(path)
        mutations.delete_folder(self.store, path)
        return self.list(parent_path(path))

    def delete_object(self, key: str) -> Listing:
        mutations.delete_object(self.store, key)
        return self.list(parent_path(key))

    def list_all_folders(self, max_depth: int = 2) -> List[FolderRecord]:
        """
        Best-effort snapshot of the folder hierarchy down to max_depth levels,
        e.g. for a destination picker. Stale as soon as anything changes.
        A subfolder that cannot be listed is skipped; a root failure propagates.
        """
        folders: List[FolderRecord] = []
        level = self._subfolders(ROOT)
        depth = 1
        while level:
            folders.extend(level)
            if depth >= max_depth:
                break
            next_level: List[FolderRecord] = []
            for folder in level:
                try:
                    next_level.extend(self._subfolders(folder.path))
                except StoreIOError as e:
                    logging.warning(f"Skipping subfolders of '{folder.path}': {e}")
            level = next_level
            depth += 1
        return folders

    def _subfolders(self, path: str) -> List[FolderRecord]:
        # Folder-only walk; no URLs are signed
        _, paths = list_child_keys(self.store, path)
        return [FolderRecord(path=p, name=folder_name(p)) for p in paths]
