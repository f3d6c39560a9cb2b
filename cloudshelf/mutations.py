# mutations.py
"""
Folder and object mutations emulated with marker objects plus copy/delete.

None of these are atomic: the store offers no multi-key transaction, so a failure
can leave a tree split between its old and new location. Deletes of missing keys
are no-ops, which makes re-running a partially applied rename or delete safe.
"""
import logging
from typing import List

from .exceptions import PartialFailure, StoreIOError
from .listing import iter_key_pages, list_child_keys
from .paths import ROOT, child_folder_path, folder_name, normalize_folder_path, rebase_key, sibling_path
from .storage.base import ObjectStoreClient
from .storage.dto import FolderRecord, KeyFailure, OperationReport

MARKER_CONTENT_TYPE = "application/x-directory"
BULK_DELETE_LIMIT = 1000


def create_folder(store: ObjectStoreClient, parent: str, name: str) -> FolderRecord:
    """Writes the zero-byte marker for a folder. Creating an existing folder is not an error."""
    path = child_folder_path(parent, name)
    logging.info(f"Creating folder marker '{path}'")
    store.put(path, b"", MARKER_CONTENT_TYPE)
    return FolderRecord(path=path, name=name)


def _move_tree(store: ObjectStoreClient, old_prefix: str, new_prefix: str, report: OperationReport):
    file_keys, subfolders = list_child_keys(store, old_prefix)

    store.put(new_prefix, b"", MARKER_CONTENT_TYPE)

    for key in file_keys:
        new_key = rebase_key(key, old_prefix, new_prefix)
        # The original is only deleted once its copy is known to exist
        store.copy(key, new_key)
        store.delete(key)
        report.succeeded.append(key)

    for subfolder in subfolders:
        _move_tree(store, subfolder, rebase_key(subfolder, old_prefix, new_prefix), report)

    store.delete(old_prefix)
    report.succeeded.append(old_prefix)


def rename_folder(store: ObjectStoreClient, old_path: str, new_name: str) -> OperationReport:
    """
    Renames a folder by recreating it next to the original and moving every
    descendant: copy, then delete, file by file, recursing into subfolders.

    Raises StoreIOError if nothing was moved yet, PartialFailure once some keys
    have already moved; the report on the exception lists both sides.
    """
    old_path = normalize_folder_path(old_path)
    if old_path == ROOT:
        raise ValueError("The root folder cannot be renamed")

    new_path = sibling_path(old_path, new_name)
    report = OperationReport()
    if new_path == old_path:
        logging.info(f"Folder '{old_path}' already has the name '{new_name}'.")
        return report

    logging.info(f"Renaming folder '{old_path}' to '{new_path}'...")
    try:
        _move_tree(store, old_path, new_path, report)
    except StoreIOError as e:
        if not report.succeeded:
            raise
        report.failed.append(KeyFailure(key=e.key or old_path, error=str(e)))
        logging.error(
            f"Rename of '{old_path}' stopped after moving {len(report.succeeded)} keys. Error: {e}"
        )
        raise PartialFailure(
            f"Rename of '{folder_name(old_path)}' to '{new_name}' was only partially applied", report
        ) from e

    logging.info(f"Renamed '{old_path}' to '{new_path}' ({len(report.succeeded)} keys moved).")
    return report


def _chunks(keys: List[str], size: int):
    for start in range(0, len(keys), size):
        yield keys[start:start + size]


def delete_folder(store: ObjectStoreClient, path: str) -> OperationReport:
    """
    Deletes every key under a folder at any depth, markers included.

    The scan follows continuation tokens, so it ends after one pass over the prefix
    even if the store is slow to reflect deletions.
    """
    path = normalize_folder_path(path)
    if path == ROOT:
        raise ValueError("Refusing to delete the root folder")

    logging.info(f"Deleting folder '{path}' and all its contents...")
    report = OperationReport()
    try:
        for keys in iter_key_pages(store, path):
            for batch in _chunks(keys, BULK_DELETE_LIMIT):
                failures = store.bulk_delete(batch)
                refused = {failure.key for failure in failures}
                report.succeeded.extend(key for key in batch if key not in refused)
                report.failed.extend(failures)
    except StoreIOError as e:
        if not report.succeeded:
            raise
        report.failed.append(KeyFailure(key=path, error=str(e)))
        raise PartialFailure(f"Folder '{path}' was only partially deleted", report) from e

    if report.failed:
        raise PartialFailure(
            f"{len(report.failed)} keys under '{path}' could not be deleted", report
        )
    if not report.succeeded:
        logging.info(f"Folder '{path}' was already empty. Nothing to delete.")
    return report


def delete_object(store: ObjectStoreClient, key: str):
    """Deletes a single object; a key that does not exist is left to the store (normally a no-op)."""
    if not key or key.endswith("/"):
        raise ValueError(f"'{key}' is not an object key")
    store.delete(key)
