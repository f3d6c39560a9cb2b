# tests/conftest.py
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set, Tuple

import pytest

from cloudshelf.config import Settings, get_settings
from cloudshelf.exceptions import StoreIOError
from cloudshelf.storage.base import ObjectStoreClient
from cloudshelf.storage.dto import KeyFailure, ListPage, StoreEntry

TEST_BUCKET_NAME = "test-bucket"


class InMemoryStore(ObjectStoreClient):
    """
    Dict-backed object store with S3 listing semantics: lexicographic order,
    delimiter grouping, "start after" continuation tokens and a page size.
    Individual operations can be made to fail with `fail(operation, key)`.
    """

    def __init__(self, page_size: int = 1000, chunk_size: int = 4):
        self.objects: Dict[str, Tuple[bytes, str, datetime]] = {}
        self.page_size = page_size
        self.chunk_size = chunk_size
        self.failures: Set[Tuple[str, Optional[str]]] = set()
        self.calls: List[Tuple[str, Optional[str]]] = []

    def fail(self, operation: str, key: Optional[str] = None):
        self.failures.add((operation, key))

    def _check(self, operation: str, key: Optional[str] = None):
        self.calls.append((operation, key))
        if (operation, key) in self.failures or (operation, None) in self.failures:
            raise StoreIOError(f"Injected {operation} failure for '{key}'", operation=operation, key=key)

    def seed(self, *keys: str, data: bytes = b"data"):
        for key in keys:
            body = b"" if key.endswith("/") else data
            self.objects[key] = (body, "application/octet-stream", datetime.now(timezone.utc))

    def list_page(self, prefix, delimiter=None, continuation_token=None) -> ListPage:
        self._check("list", prefix)
        items = []
        seen_prefixes = set()
        for key in sorted(k for k in self.objects if k.startswith(prefix)):
            rest = key[len(prefix):]
            if delimiter and delimiter in rest:
                common = prefix + rest[: rest.index(delimiter) + 1]
                if common not in seen_prefixes:
                    seen_prefixes.add(common)
                    items.append(("prefix", common))
                continue
            items.append(("key", key))

        if continuation_token:
            items = [item for item in items if item[1] > continuation_token]
        page, remaining = items[: self.page_size], items[self.page_size:]

        return ListPage(
            entries=[
                StoreEntry(key=value, size=len(self.objects[value][0]), last_modified=self.objects[value][2])
                for kind, value in page
                if kind == "key"
            ],
            common_prefixes=[value for kind, value in page if kind == "prefix"],
            next_continuation_token=page[-1][1] if remaining else None,
            is_truncated=bool(remaining),
        )

    def put(self, key, data, content_type, progress_callback=None) -> str:
        self._check("put", key)
        for start in range(0, len(data), self.chunk_size):
            if progress_callback:
                progress_callback(len(data[start:start + self.chunk_size]))
        self.objects[key] = (data, content_type, datetime.now(timezone.utc))
        return f"memory://{key}"

    def copy(self, source_key, dest_key):
        self._check("copy", source_key)
        if source_key not in self.objects:
            raise StoreIOError(f"NoSuchKey: {source_key}", operation="copy", key=source_key)
        self.objects[dest_key] = self.objects[source_key]

    def delete(self, key):
        self._check("delete", key)
        self.objects.pop(key, None)

    def bulk_delete(self, keys) -> List[KeyFailure]:
        self._check("bulk_delete")
        failures = []
        for key in keys:
            if ("delete", key) in self.failures:
                failures.append(KeyFailure(key=key, error="AccessDenied: injected"))
            else:
                self.objects.pop(key, None)
        return failures

    def signed_url(self, key, ttl_seconds) -> str:
        self._check("sign", key)
        return f"https://memory.test/{key}?expires={ttl_seconds}"

    def verify_bucket(self):
        pass


@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest.fixture
def settings():
    """Real settings built from explicit values, isolated from any .env file."""
    return Settings(
        _env_file=None,
        S3_BUCKET_NAME=TEST_BUCKET_NAME,
        AWS_REGION="us-east-1",
        AWS_ACCESS_KEY_ID="testing",
        AWS_SECRET_ACCESS_KEY="testing",
        UPLOAD_MAX_CONCURRENCY=4,
    )


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fake credentials so boto3 never reaches for a real account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """get_settings is cached; never let one test's settings leak into another."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
