# listing.py
import logging
from typing import Iterator, List, Tuple

from .paths import DELIMITER, folder_name, name_from_key
from .storage.base import ObjectStoreClient
from .storage.dto import FolderRecord, ListPage, Listing, ObjectRecord

DEFAULT_MEDIA_TYPE = "application/octet-stream"

MEDIA_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "mp4": "video/mp4",
    "webm": "video/webm",
    "ogg": "video/ogg",
    "mp3": "audio/mp3",
    "wav": "audio/wav",
    "pdf": "application/pdf",
}


def media_type_for(name: str) -> str:
    """Guesses a media type from the file extension. The store is never consulted."""
    if "." not in name:
        return DEFAULT_MEDIA_TYPE
    extension = name.rsplit(".", 1)[-1].lower()
    return MEDIA_TYPES.get(extension, DEFAULT_MEDIA_TYPE)


def _fetch_all_pages(store: ObjectStoreClient, prefix: str, delimiter=None) -> Iterator[ListPage]:
    token = None
    while True:
        page = store.list_page(prefix, delimiter=delimiter, continuation_token=token)
        yield page
        if not page.is_truncated:
            return
        if not page.next_continuation_token:
            # A truncated page without a token would make us re-read the first page forever
            logging.warning(f"Listing of '{prefix}' reported more results but returned no continuation token.")
            return
        logging.info("Found more keys, continuing listing...")
        token = page.next_continuation_token


def list_prefix(store: ObjectStoreClient, prefix: str, url_ttl: int = 3600) -> Listing:
    """
    Returns the immediate files and folders under a prefix, handling pagination.
    Signed URLs are minted on every call and never cached.
    Any store error propagates; pages already fetched are discarded.
    """
    logging.info(f"Listing folder '{prefix}'")
    files: List[ObjectRecord] = []
    folders: List[FolderRecord] = []

    for page in _fetch_all_pages(store, prefix, delimiter=DELIMITER):
        for entry in page.entries:
            # The folder's own marker, and stray nested markers, are not files
            if entry.key == prefix or entry.key.endswith(DELIMITER):
                continue
            name = name_from_key(entry.key)
            files.append(
                ObjectRecord(
                    key=entry.key,
                    name=name,
                    last_modified=entry.last_modified,
                    size=entry.size,
                    url=store.signed_url(entry.key, url_ttl),
                    type=media_type_for(name),
                )
            )
        for common_prefix in page.common_prefixes:
            folders.append(FolderRecord(path=common_prefix, name=folder_name(common_prefix)))

    return Listing(files=files, folders=folders)


def list_child_keys(store: ObjectStoreClient, prefix: str) -> Tuple[List[str], List[str]]:
    """Keys of the immediate files and paths of the immediate subfolders, without signing URLs."""
    file_keys: List[str] = []
    folder_paths: List[str] = []
    for page in _fetch_all_pages(store, prefix, delimiter=DELIMITER):
        file_keys.extend(
            entry.key
            for entry in page.entries
            if entry.key != prefix and not entry.key.endswith(DELIMITER)
        )
        folder_paths.extend(page.common_prefixes)
    return file_keys, folder_paths


def iter_key_pages(store: ObjectStoreClient, prefix: str) -> Iterator[List[str]]:
    """
    Yields every key under a prefix at any depth, one page at a time,
    walking continuation tokens so the scan always terminates.
    """
    for page in _fetch_all_pages(store, prefix):
        keys = [entry.key for entry in page.entries]
        if keys:
            yield keys
