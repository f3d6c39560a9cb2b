# cloudshelf/storage/base.py
from abc import ABC, abstractmethod
from typing import Callable, List, Optional
from .dto import KeyFailure, ListPage


class ObjectStoreClient(ABC):
    """
    Abstract base class for a flat, key-addressed object store.
    Defines the primitives the hierarchy manager is built on; the store
    itself has no notion of directories.
    """

    @abstractmethod
    def list_page(
        self,
        prefix: str,
        delimiter: Optional[str] = None,
        continuation_token: Optional[str] = None,
    ) -> ListPage:
        """
        Lists one page of keys starting with a prefix.

        :param prefix: The key prefix to list ("" for the whole bucket).
        :param delimiter: If set, keys are grouped up to the next delimiter into common prefixes.
        :param continuation_token: Token from a previous truncated page.
        :return: A ListPage DTO.
        """
        pass

    @abstractmethod
    def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
        progress_callback: Optional[Callable[[int], None]] = None,
    ) -> str:
        """
        Stores bytes under a key.

        :param key: The destination key.
        :param data: The object content.
        :param content_type: The media type stored with the object.
        :param progress_callback: Called with the number of bytes acknowledged since the previous call.
        :return: The stored location of the object.
        """
        pass

    @abstractmethod
    def copy(self, source_key: str, dest_key: str):
        """
        Copies an object inside the store, without downloading it.

        :param source_key: The key to copy from.
        :param dest_key: The key to copy to.
        """
        pass

    @abstractmethod
    def delete(self, key: str):
        """
        Deletes a single object. Deleting a missing key is not an error.

        :param key: The key to delete.
        """
        pass

    @abstractmethod
    def bulk_delete(self, keys: List[str]) -> List[KeyFailure]:
        """
        Deletes several objects in one request.

        :param keys: The keys to delete.
        :return: The keys the store refused to delete; empty when all were acknowledged.
        """
        pass

    @abstractmethod
    def signed_url(self, key: str, ttl_seconds: int) -> str:
        """
        Mints a time-limited read URL for an object.

        :param key: The object key.
        :param ttl_seconds: Validity window of the URL.
        """
        pass

    @abstractmethod
    def verify_bucket(self):
        """
        Verifies the configured bucket exists and is accessible.
        Raises an error if it does not.
        """
        pass
